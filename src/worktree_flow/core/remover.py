"""
Worktree removal flow.

Removes the secondary worktree the user is standing in and hands control
back to the primary worktree. The flow is linear:

    Start -> Validated -> ConfirmedIfDirty -> UserConfirmedRemoval -> Removed

A "no" at either confirmation ends the flow in Cancelled with nothing
changed. A safe removal that git refuses is retried once with --force;
if that fails too the flow ends in Failed.
"""

import logging
import os
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from worktree_flow.core.exceptions import (
    CannotRemovePrimaryError,
    CollaboratorOperationError,
    FlowStateError,
    NotARepositoryError,
    NotAWorktreeError,
    RemovalFailedError,
)
from worktree_flow.core.flow import (
    Ask,
    AskKind,
    ChangeDirectory,
    Effect,
    OperationOutcome,
    RemoveWorktree,
    ShowWorktrees,
    pending_ask,
)
from worktree_flow.core.prompts import Prompter
from worktree_flow.core.vcs import VersionControl
from worktree_flow.models.change_set import ChangeSet
from worktree_flow.models.worktree_info import (
    RemovalResult,
    RemovalStatus,
    WorktreeInfo,
)

logger = logging.getLogger(__name__)


class RemovalPhase(str, Enum):
    """Position of the removal flow."""

    VALIDATED = "validated"
    CONFIRMED_IF_DIRTY = "confirmed_if_dirty"
    USER_CONFIRMED_REMOVAL = "user_confirmed_removal"
    REMOVED = "removed"
    CANCELLED = "cancelled"
    FAILED = "failed"


TERMINAL_PHASES = (RemovalPhase.REMOVED, RemovalPhase.CANCELLED, RemovalPhase.FAILED)


@dataclass(frozen=True)
class RemovalContext:
    """Validated facts about the worktree being removed."""

    target: WorktreeInfo
    primary: WorktreeInfo
    change_set: ChangeSet
    unpushed_commits: Optional[int] = None
    current_branch: str = ""

    @property
    def branch(self) -> str:
        return self.current_branch or self.target.branch


@dataclass(frozen=True)
class RemovalState:
    phase: RemovalPhase
    context: RemovalContext
    force_attempted: bool = False
    errors: tuple[str, ...] = ()


def _same_path(left: Path, right: Path) -> bool:
    return os.path.realpath(left) == os.path.realpath(right)


def validate_removal(
    current: Path, worktrees: Sequence[WorktreeInfo]
) -> tuple[WorktreeInfo, WorktreeInfo]:
    """
    Identify the removal target and the primary worktree.

    Args:
        current: Top-level directory of the worktree the user is in.
        worktrees: Registered worktrees, primary first.

    Returns:
        Tuple of (target, primary).

    Raises:
        NotAWorktreeError: If current is not a registered worktree.
        CannotRemovePrimaryError: If current is the primary worktree.
    """
    if not worktrees:
        raise NotAWorktreeError(current)

    primary = worktrees[0]
    if _same_path(current, primary.path):
        raise CannotRemovePrimaryError(primary.path)

    for worktree in worktrees[1:]:
        if _same_path(current, worktree.path):
            return worktree, primary

    raise NotAWorktreeError(current)


def _removal_ask(context: RemovalContext) -> Ask:
    details = [
        f"Worktree: {context.target.path}",
        f"Branch:   {context.branch}",
        f"Primary:  {context.primary.path}",
    ]
    if context.unpushed_commits:
        details.append(f"Unpushed: {context.unpushed_commits} commit(s) on {context.branch}")
    details.append("The branch itself is kept.")

    return Ask(
        kind=AskKind.CONFIRM,
        message="Remove this worktree?",
        details=tuple(details),
        title="Remove worktree",
    )


def start_removal(context: RemovalContext) -> tuple[RemovalState, list[Effect]]:
    """Enter the flow from Validated; warn about uncommitted changes first."""
    if not context.change_set.is_empty:
        ask = Ask(
            kind=AskKind.CONFIRM,
            message="Uncommitted changes will be lost. Continue?",
            details=tuple(context.change_set.summary_lines()),
            title="Uncommitted changes",
        )
        return RemovalState(phase=RemovalPhase.VALIDATED, context=context), [ask]

    state = RemovalState(phase=RemovalPhase.CONFIRMED_IF_DIRTY, context=context)
    return state, [_removal_ask(context)]


def advance_removal(
    state: RemovalState, answer: Union[bool, OperationOutcome]
) -> tuple[RemovalState, list[Effect]]:
    """
    Feed a confirmation answer or a removal outcome into the flow.

    Pure function: returns the next state and the effects to carry out.

    Raises:
        FlowStateError: If the flow already finished.
    """
    phase = state.phase
    context = state.context

    if phase == RemovalPhase.VALIDATED:
        if not answer:
            return replace(state, phase=RemovalPhase.CANCELLED), []
        return replace(state, phase=RemovalPhase.CONFIRMED_IF_DIRTY), [_removal_ask(context)]

    if phase == RemovalPhase.CONFIRMED_IF_DIRTY:
        if not answer:
            return replace(state, phase=RemovalPhase.CANCELLED), []
        effects: list[Effect] = [
            ChangeDirectory(path=context.primary.path),
            RemoveWorktree(target=context.target.path, force=False),
        ]
        return replace(state, phase=RemovalPhase.USER_CONFIRMED_REMOVAL), effects

    if phase == RemovalPhase.USER_CONFIRMED_REMOVAL:
        if answer.succeeded:
            return replace(state, phase=RemovalPhase.REMOVED), [ShowWorktrees()]

        errors = state.errors + (answer.error,)
        if state.force_attempted:
            return replace(state, phase=RemovalPhase.FAILED, errors=errors), []
        next_state = replace(state, force_attempted=True, errors=errors)
        return next_state, [RemoveWorktree(target=context.target.path, force=True)]

    raise FlowStateError(f"Removal flow already finished ({phase.value})")


class WorktreeRemover:
    """Runs the removal flow against a version control backend and a prompter."""

    def __init__(
        self,
        vcs: VersionControl,
        prompter: Prompter,
        chdir: Callable[[Path], None] = os.chdir,
    ):
        self.vcs = vcs
        self.prompter = prompter
        self.chdir = chdir

    def gather_context(self, cwd: Path) -> RemovalContext:
        """
        Validate cwd as a removable worktree (Start -> Validated).

        Raises:
            NotARepositoryError: If cwd is not inside a repository.
            NotAWorktreeError: If cwd is not a registered worktree.
            CannotRemovePrimaryError: If cwd is the primary worktree.
        """
        if not self.vcs.is_repository(cwd):
            raise NotARepositoryError(cwd)

        current = self.vcs.worktree_root(cwd)
        target, primary = validate_removal(current, self.vcs.list_worktrees(current))

        return RemovalContext(
            target=target,
            primary=primary,
            change_set=self.vcs.change_set(target.path),
            unpushed_commits=self.vcs.unpushed_commits(target.path),
            current_branch=self.vcs.current_branch(target.path),
        )

    def remove(self, cwd: Path) -> RemovalResult:
        """
        Run the interactive removal flow from cwd.

        Returns:
            RemovalResult for the removed worktree, or a cancelled status.

        Raises:
            NotARepositoryError: If cwd is not inside a repository.
            NotAWorktreeError: If cwd is not a registered worktree.
            CannotRemovePrimaryError: If cwd is the primary worktree.
            RemovalFailedError: If both the safe and the forced removal failed.
        """
        context = self.gather_context(cwd)
        state, effects = start_removal(context)
        remaining: list[WorktreeInfo] = []

        while True:
            outcome = None
            for effect in effects:
                if isinstance(effect, ChangeDirectory):
                    self.chdir(effect.path)
                elif isinstance(effect, RemoveWorktree):
                    outcome = self._remove(context, effect)
                elif isinstance(effect, ShowWorktrees):
                    remaining = self._remaining(context)

            if state.phase in TERMINAL_PHASES:
                break
            if outcome is not None:
                state, effects = advance_removal(state, outcome)
            else:
                state, effects = advance_removal(state, self.prompter.answer(pending_ask(effects)))

        if state.phase == RemovalPhase.CANCELLED:
            logger.info("Worktree removal cancelled")
            return RemovalResult(
                status=RemovalStatus.CANCELLED,
                target=context.target,
                primary=context.primary,
            )

        if state.phase == RemovalPhase.FAILED:
            raise RemovalFailedError(context.target.path, list(state.errors))

        return RemovalResult(
            status=RemovalStatus.REMOVED,
            target=context.target,
            primary=context.primary,
            forced=state.force_attempted,
            remaining=remaining,
        )

    def _remove(self, context: RemovalContext, effect: RemoveWorktree) -> OperationOutcome:
        if effect.force:
            logger.warning(f"Safe removal refused, forcing removal of {effect.target}")
        try:
            self.vcs.remove_worktree(context.primary.path, effect.target, force=effect.force)
        except CollaboratorOperationError as e:
            logger.debug(f"Removal of {effect.target} failed: {e}")
            return OperationOutcome(succeeded=False, error=str(e))
        return OperationOutcome(succeeded=True)

    def _remaining(self, context: RemovalContext) -> list[WorktreeInfo]:
        remaining = self.vcs.list_worktrees(context.primary.path)
        if any(_same_path(wt.path, context.target.path) for wt in remaining):
            raise RemovalFailedError(
                context.target.path, ["Worktree is still registered after removal"]
            )
        return remaining
