"""Database access layer for devlog."""
