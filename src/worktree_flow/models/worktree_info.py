"""Pydantic models for worktree information."""

import os
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class WorktreeInfo(BaseModel):
    """Information about a git worktree."""

    path: Path = Field(description="Absolute path to the worktree directory")
    branch: str = Field(description="Branch name checked out in this worktree")
    head_commit: str = Field(default="", description="Short SHA of the HEAD commit")
    is_main: bool = Field(default=False, description="Whether this is the primary worktree")
    is_detached: bool = Field(default=False, description="Whether HEAD is detached")

    @property
    def name(self) -> str:
        """Get the worktree directory name."""
        return self.path.name

    @property
    def short_path(self) -> str:
        """Get a shortened display path."""
        return f"~/{self.path.relative_to(Path.home())}" if self.path.is_relative_to(
            Path.home()
        ) else str(self.path)


class ChangeStrategy(str, Enum):
    """What to do with uncommitted changes before creating a worktree."""

    COMMIT = "commit"
    STASH = "stash"
    PROCEED = "proceed"


class WorktreePlan(BaseModel):
    """Dry-run plan presented before a worktree is created."""

    branch: str
    base_branch: str
    path: Path
    repo_root: Path
    change_strategy: ChangeStrategy = ChangeStrategy.PROCEED
    commit_message: Optional[str] = None

    @property
    def relative_path(self) -> str:
        """Target path relative to the repository the plan was made from."""
        return os.path.relpath(self.path, self.repo_root)

    def summary_lines(self) -> list[str]:
        lines = [
            f"Branch:      {self.branch}",
            f"Base branch: {self.base_branch}",
            f"Path:        {self.relative_path}",
        ]
        if self.change_strategy == ChangeStrategy.COMMIT:
            lines.append(f"Before:      commit changes ({self.commit_message})")
        elif self.change_strategy == ChangeStrategy.STASH:
            lines.append("Before:      stash changes")
        return lines


class CreationStatus(str, Enum):
    """Outcome of a create invocation."""

    CREATED = "created"
    CANCELLED = "cancelled"


class CreationResult(BaseModel):
    """Result of running the creation flow."""

    status: CreationStatus
    plan: Optional[WorktreePlan] = None
    worktree: Optional[WorktreeInfo] = None


class RemovalStatus(str, Enum):
    """Outcome of a remove invocation."""

    REMOVED = "removed"
    CANCELLED = "cancelled"


class RemovalResult(BaseModel):
    """Result of running the removal flow."""

    status: RemovalStatus
    target: WorktreeInfo
    primary: WorktreeInfo
    forced: bool = Field(
        default=False, description="Whether the forced removal was needed"
    )
    remaining: list[WorktreeInfo] = Field(default_factory=list)
