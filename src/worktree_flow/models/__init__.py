"""
Pydantic models for worktree-flow.

This package contains data models for:
- Worktree information and creation plans
- Uncommitted change-sets
- Results of the create and remove flows
"""

from worktree_flow.models.change_set import ChangeSet, FileStatus
from worktree_flow.models.worktree_info import (
    ChangeStrategy,
    CreationResult,
    CreationStatus,
    RemovalResult,
    RemovalStatus,
    WorktreeInfo,
    WorktreePlan,
)

__all__ = [
    "ChangeSet",
    "FileStatus",
    "ChangeStrategy",
    "CreationResult",
    "CreationStatus",
    "RemovalResult",
    "RemovalStatus",
    "WorktreeInfo",
    "WorktreePlan",
]
