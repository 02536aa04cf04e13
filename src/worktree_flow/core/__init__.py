"""
Core modules for worktree-flow.

This package contains the core logic for:
- The version control backend (GitPython)
- The worktree creation flow
- The worktree removal flow
"""

from worktree_flow.core.exceptions import (
    CannotRemovePrimaryError,
    CollaboratorOperationError,
    NoBaseBranchError,
    NotARepositoryError,
    NotAWorktreeError,
    RemovalFailedError,
    WorktreeError,
)
from worktree_flow.core.vcs import GitBackend, VersionControl

__all__ = [
    "CannotRemovePrimaryError",
    "CollaboratorOperationError",
    "NoBaseBranchError",
    "NotARepositoryError",
    "NotAWorktreeError",
    "RemovalFailedError",
    "WorktreeError",
    "GitBackend",
    "VersionControl",
]
