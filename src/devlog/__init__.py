"""devlog - incremental git ingestion and worklog generation."""

__version__ = "0.1.0"
