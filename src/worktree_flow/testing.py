"""
In-memory doubles for the version control backend and the prompter.

FakeVersionControl and ScriptedPrompter let the create and remove flows
run without a git repository or a terminal. All state is provided via
the constructor; what the flows did is recorded for assertions.
"""

from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from worktree_flow.core.exceptions import CollaboratorOperationError, NotARepositoryError
from worktree_flow.core.prompts import Prompter
from worktree_flow.core.vcs import VersionControl
from worktree_flow.models.change_set import ChangeSet
from worktree_flow.models.worktree_info import WorktreeInfo


class FakeVersionControl(VersionControl):
    """In-memory VersionControl with a worktree registry and scripted failures."""

    def __init__(
        self,
        *,
        worktrees: Sequence[Union[Path, tuple[Path, str]]] = (),
        branches: Iterable[str] = ("main",),
        change_sets: Optional[dict[Path, ChangeSet]] = None,
        unpushed: Optional[dict[Path, int]] = None,
        fail_add: Optional[str] = None,
        fail_safe_remove: Optional[str] = None,
        fail_force_remove: Optional[str] = None,
    ) -> None:
        """Create a fake repository.

        Args:
            worktrees: Registered worktrees as paths or (path, branch) pairs,
                primary first. Empty means "not a repository".
            branches: Local branch names.
            change_sets: Uncommitted changes per worktree path.
            unpushed: Unpushed commit counts per worktree path.
            fail_add: Error text returned by a failing add_worktree.
            fail_safe_remove: Error text returned by a failing safe removal.
            fail_force_remove: Error text returned by a failing forced removal.
        """
        self._worktrees: list[WorktreeInfo] = []
        for index, entry in enumerate(worktrees):
            path, branch = entry if isinstance(entry, tuple) else (entry, "main")
            self._worktrees.append(
                WorktreeInfo(path=Path(path), branch=branch, head_commit="abc1234", is_main=index == 0)
            )
        self._branches = set(branches)
        self._change_sets = dict(change_sets or {})
        self._unpushed = dict(unpushed or {})
        self._fail_add = fail_add
        self._fail_safe_remove = fail_safe_remove
        self._fail_force_remove = fail_force_remove
        self._shelved: dict[tuple[str, Path], list[ChangeSet]] = {}
        self.mutations: list[tuple] = []

    def _owner(self, path: Path) -> Optional[WorktreeInfo]:
        path = Path(path)
        for worktree in sorted(self._worktrees, key=lambda wt: len(wt.path.parts), reverse=True):
            if path == worktree.path or worktree.path in path.parents:
                return worktree
        return None

    def _require(self, path: Path) -> WorktreeInfo:
        owner = self._owner(path)
        if owner is None:
            raise NotARepositoryError(Path(path))
        return owner

    def is_repository(self, path: Path) -> bool:
        return self._owner(path) is not None

    def worktree_root(self, path: Path) -> Path:
        return self._require(path).path

    def list_worktrees(self, path: Path) -> list[WorktreeInfo]:
        self._require(path)
        return list(self._worktrees)

    def current_branch(self, path: Path) -> str:
        return self._require(path).branch

    def change_set(self, path: Path) -> ChangeSet:
        return self._change_sets.get(self._require(path).path, ChangeSet())

    def list_branches(self, path: Path) -> set[str]:
        self._require(path)
        return set(self._branches)

    def add_worktree(self, path: Path, target: Path, branch: str, base_branch: str) -> None:
        self._require(path)
        if self._fail_add:
            raise CollaboratorOperationError("worktree", self._fail_add)
        self.mutations.append(("add_worktree", Path(target), branch, base_branch))
        self._branches.add(branch)
        self._worktrees.append(
            WorktreeInfo(path=Path(target), branch=branch, head_commit="def5678")
        )

    def remove_worktree(self, path: Path, target: Path, force: bool = False) -> None:
        self._require(path)
        self.mutations.append(("remove_worktree", Path(target), force))
        failure = self._fail_force_remove if force else self._fail_safe_remove
        if failure:
            raise CollaboratorOperationError("worktree", failure)
        self._worktrees = [wt for wt in self._worktrees if wt.path != Path(target)]

    def _shelve(self, kind: str, path: Path, operation: str, message: str) -> None:
        owner = self._require(path)
        self.mutations.append((operation, owner.path, message))
        change_set = self._change_sets.pop(owner.path, ChangeSet())
        self._shelved.setdefault((kind, owner.path), []).append(change_set)

    def _unshelve(self, kind: str, path: Path, operation: str) -> None:
        owner = self._require(path)
        shelved = self._shelved.get((kind, owner.path))
        if not shelved:
            raise CollaboratorOperationError(operation, f"nothing to restore in {owner.path}")
        self.mutations.append((f"{kind}_restored", owner.path))
        self._change_sets[owner.path] = shelved.pop()

    def commit_all(self, path: Path, message: str) -> None:
        self._shelve("commit", path, "commit_all", message)

    def stash_changes(self, path: Path, message: str) -> None:
        self._shelve("stash", path, "stash_changes", message)

    def undo_commit(self, path: Path) -> None:
        self._unshelve("commit", path, "reset")

    def pop_stash(self, path: Path) -> None:
        self._unshelve("stash", path, "stash")

    def unpushed_commits(self, path: Path) -> Optional[int]:
        return self._unpushed.get(self._require(path).path)


class ScriptedPrompter(Prompter):
    """Prompter that answers from a fixed script and records every question."""

    def __init__(self, answers: Iterable[Union[str, bool]] = ()) -> None:
        self._answers = list(answers)
        self.questions: list[str] = []
        self.shown: list[str] = []

    def _next(self, message: str) -> Union[str, bool]:
        self.questions.append(message)
        if not self._answers:
            raise AssertionError(f"Unexpected prompt: {message}")
        return self._answers.pop(0)

    def show(self, lines: Sequence[str], title: str = "") -> None:
        if title:
            self.shown.append(title)
        self.shown.extend(lines)

    def choose(self, message: str, choices: Sequence[str]) -> str:
        answer = self._next(message)
        if answer not in choices:
            raise AssertionError(f"{answer!r} is not one of {list(choices)}")
        return answer

    def text(self, message: str) -> str:
        return str(self._next(message))

    def confirm(self, message: str) -> bool:
        return bool(self._next(message))

    @property
    def remaining(self) -> list[Union[str, bool]]:
        return list(self._answers)
