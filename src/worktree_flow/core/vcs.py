"""Version control operations used by the worktree flows."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from worktree_flow.core.exceptions import (
    CollaboratorOperationError,
    NotARepositoryError,
)
from worktree_flow.models.change_set import ChangeSet
from worktree_flow.models.worktree_info import WorktreeInfo

logger = logging.getLogger(__name__)


class VersionControl(ABC):
    """Abstract worktree, branch and status operations.

    Every operation takes the path it runs in explicitly, so callers never
    depend on the process working directory.
    """

    @abstractmethod
    def is_repository(self, path: Path) -> bool:
        """Check whether path is inside a repository."""

    @abstractmethod
    def worktree_root(self, path: Path) -> Path:
        """Get the top-level directory of the worktree containing path."""

    @abstractmethod
    def list_worktrees(self, path: Path) -> list[WorktreeInfo]:
        """List registered worktrees; the first entry is the primary one."""

    @abstractmethod
    def current_branch(self, path: Path) -> str:
        """Get the branch checked out at path."""

    @abstractmethod
    def change_set(self, path: Path) -> ChangeSet:
        """Get staged, unstaged and untracked changes at path."""

    @abstractmethod
    def list_branches(self, path: Path) -> set[str]:
        """Get the names of all local branches."""

    @abstractmethod
    def add_worktree(self, path: Path, target: Path, branch: str, base_branch: str) -> None:
        """Create branch from base_branch and check it out at target."""

    @abstractmethod
    def remove_worktree(self, path: Path, target: Path, force: bool = False) -> None:
        """Remove the worktree at target."""

    @abstractmethod
    def commit_all(self, path: Path, message: str) -> None:
        """Stage everything at path and commit it."""

    @abstractmethod
    def stash_changes(self, path: Path, message: str) -> None:
        """Stash everything at path, untracked files included."""

    @abstractmethod
    def undo_commit(self, path: Path) -> None:
        """Drop the last commit at path, keeping its changes in the work tree."""

    @abstractmethod
    def pop_stash(self, path: Path) -> None:
        """Restore the most recent stash at path and drop it."""

    @abstractmethod
    def unpushed_commits(self, path: Path) -> Optional[int]:
        """Count commits not on the upstream branch, None without upstream."""


class GitBackend(VersionControl):
    """VersionControl implementation backed by GitPython."""

    def _get_repo(self, path: Path) -> Repo:
        try:
            return Repo(path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise NotARepositoryError(path) from e

    def _run(self, path: Path, operation: str, *args: str) -> str:
        repo = self._get_repo(path)
        logger.debug(f"git {operation} {' '.join(args)} (in {path})")
        try:
            return getattr(repo.git, operation.replace("-", "_"))(*args)
        except GitCommandError as e:
            stderr = (e.stderr or "").strip() or str(e)
            raise CollaboratorOperationError(operation, stderr) from e

    def is_repository(self, path: Path) -> bool:
        try:
            self._get_repo(path)
        except NotARepositoryError:
            return False
        return True

    def worktree_root(self, path: Path) -> Path:
        return Path(self._get_repo(path).working_dir)

    def list_worktrees(self, path: Path) -> list[WorktreeInfo]:
        output = self._run(path, "worktree", "list", "--porcelain")

        worktrees: list[WorktreeInfo] = []
        current_wt: dict = {}
        for line in output.split("\n"):
            line = line.strip()

            if not line:
                if current_wt:
                    worktrees.append(self._parse_worktree_entry(current_wt, not worktrees))
                    current_wt = {}
                continue

            if line.startswith("worktree "):
                current_wt["path"] = line[9:]
            elif line.startswith("HEAD "):
                current_wt["head"] = line[5:]
            elif line.startswith("branch "):
                current_wt["branch"] = line[7:]
            elif line == "detached":
                current_wt["detached"] = True
            elif line == "bare":
                current_wt["bare"] = True

        if current_wt:
            worktrees.append(self._parse_worktree_entry(current_wt, not worktrees))

        return worktrees

    def _parse_worktree_entry(self, entry: dict, is_first: bool) -> WorktreeInfo:
        branch_ref = entry.get("branch", "")

        if branch_ref.startswith("refs/heads/"):
            branch = branch_ref[11:]
        else:
            branch = branch_ref or "(detached)"

        return WorktreeInfo(
            path=Path(entry.get("path", "")),
            branch=branch,
            head_commit=entry.get("head", "")[:7],
            is_main=is_first,
            is_detached=entry.get("detached", False),
        )

    def current_branch(self, path: Path) -> str:
        repo = self._get_repo(path)
        if repo.head.is_detached:
            return "(detached)"
        return repo.active_branch.name

    def change_set(self, path: Path) -> ChangeSet:
        output = self._run(path, "status", "--porcelain", "-z", "--untracked-files=all")
        return ChangeSet.from_porcelain(output)

    def list_branches(self, path: Path) -> set[str]:
        return {head.name for head in self._get_repo(path).heads}

    def add_worktree(self, path: Path, target: Path, branch: str, base_branch: str) -> None:
        self._run(path, "worktree", "add", "-b", branch, str(target), base_branch)
        logger.info(f"Created worktree for {branch} at {target}")

    def remove_worktree(self, path: Path, target: Path, force: bool = False) -> None:
        args = ["remove"]
        if force:
            args.append("--force")
        args.append(str(target))

        self._run(path, "worktree", *args)
        logger.info(f"Removed worktree at {target}{' (forced)' if force else ''}")

    def commit_all(self, path: Path, message: str) -> None:
        self._run(path, "add", "--all")
        self._run(path, "commit", "-m", message)
        logger.info(f"Committed pending changes in {path}")

    def stash_changes(self, path: Path, message: str) -> None:
        self._run(path, "stash", "push", "--include-untracked", "-m", message)
        logger.info(f"Stashed pending changes in {path}")

    def undo_commit(self, path: Path) -> None:
        self._run(path, "reset", "--mixed", "HEAD~1")
        logger.info(f"Undid the last commit in {path}")

    def pop_stash(self, path: Path) -> None:
        self._run(path, "stash", "pop")
        logger.info(f"Restored stashed changes in {path}")

    def unpushed_commits(self, path: Path) -> Optional[int]:
        try:
            output = self._run(path, "rev-list", "--count", "@{upstream}..HEAD")
        except CollaboratorOperationError:
            return None
        return int(output.strip() or 0)
