"""
worktree-flow - interactive git worktree creation and removal.

Creates a branch in its own sibling worktree and tears secondary
worktrees down again, returning to the primary worktree.
"""

__version__ = "0.1.0"

from worktree_flow.config import Config, load_config

__all__ = [
    "__version__",
    "Config",
    "load_config",
]
