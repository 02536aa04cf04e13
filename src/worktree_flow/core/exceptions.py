"""Exceptions raised by the worktree flows."""

from pathlib import Path
from typing import Optional


class WorktreeError(Exception):
    """Base exception for worktree operations."""


class NotARepositoryError(WorktreeError):
    """Raised when the path is not inside a git repository."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Not a git repository: {path}")


class NotAWorktreeError(WorktreeError):
    """Raised when the path is not a registered worktree."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Not a registered worktree: {path}")


class CannotRemovePrimaryError(WorktreeError):
    """Raised when the primary worktree is the removal target."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Cannot remove the primary worktree: {path}")


class CollaboratorOperationError(WorktreeError):
    """Raised when a git operation fails."""

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        self.message = message

        error_msg = f"git {operation} failed"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class RemovalFailedError(WorktreeError):
    """Raised when both the safe and the forced removal failed."""

    def __init__(self, path: Path, errors: Optional[list[str]] = None):
        self.path = path
        self.errors = errors or []

        error_msg = f"Failed to remove worktree: {path}"
        if self.errors:
            error_msg += "\n" + "\n".join(self.errors)

        super().__init__(error_msg)


class NoBaseBranchError(WorktreeError):
    """Raised when none of the base branch candidates exists."""

    def __init__(self, candidates: list[str]):
        self.candidates = candidates
        super().__init__(
            f"No base branch found (looked for: {', '.join(candidates)})"
        )


class InvalidBranchNameError(WorktreeError):
    """Raised when a branch name is not a valid git ref name."""


class FlowStateError(WorktreeError):
    """Raised when a finished flow is advanced again."""


class ConfigError(WorktreeError):
    """Raised when an explicitly requested config file cannot be loaded."""
