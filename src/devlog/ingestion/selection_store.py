"""Persistence of branch selections per profile and repository."""

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class BranchSelection(BaseModel):
    """The authoritative branch plus the closed set of branches to ingest."""

    main_branch: str
    selected_branches: list[str] = Field(default_factory=list)

    def normalized(self) -> "BranchSelection":
        """Main branch first, then the rest in order, without duplicates."""
        ordered = [self.main_branch]
        for name in self.selected_branches:
            if name not in ordered:
                ordered.append(name)
        return BranchSelection(main_branch=self.main_branch, selected_branches=ordered)


class ProfileSelections(BaseModel):
    branch_selections: dict[str, BranchSelection] = Field(default_factory=dict)


class SelectionFile(BaseModel):
    profiles: dict[str, ProfileSelections] = Field(default_factory=dict)


class SelectionStore:
    """JSON file of saved selections keyed by profile and absolute repo path."""

    def __init__(self, path: Path, profile: str = "default"):
        self.path = Path(path)
        self.profile = profile

    @staticmethod
    def _repo_key(repo_path: str | Path) -> str:
        return str(Path(repo_path).expanduser().resolve())

    def _load(self) -> SelectionFile:
        if not self.path.exists():
            return SelectionFile()
        try:
            return SelectionFile.model_validate_json(
                self.path.read_text(encoding="utf-8")
            )
        except (OSError, ValidationError, ValueError) as e:
            logger.warning(
                f"Ignoring unreadable branch selection file {self.path}: {e}"
            )
            return SelectionFile()

    def _write(self, data: SelectionFile) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(data.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def get(self, repo_path: str | Path) -> Optional[BranchSelection]:
        profile = self._load().profiles.get(self.profile)
        if profile is None:
            return None
        return profile.branch_selections.get(self._repo_key(repo_path))

    def save(self, repo_path: str | Path, selection: BranchSelection) -> None:
        data = self._load()
        profile = data.profiles.setdefault(self.profile, ProfileSelections())
        profile.branch_selections[self._repo_key(repo_path)] = selection.normalized()
        self._write(data)

    def clear(self, repo_path: str | Path) -> bool:
        data = self._load()
        profile = data.profiles.get(self.profile)
        if profile is None:
            return False
        removed = profile.branch_selections.pop(self._repo_key(repo_path), None)
        if removed is None:
            return False
        self._write(data)
        return True
