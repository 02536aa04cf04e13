"""
Worktree creation flow.

Walks the user from a repository to a new branch checked out in its own
worktree:

- Resolve uncommitted changes (commit, stash or leave them)
- Classify the work item, which prefixes the branch name
- Detect the base branch
- Confirm a dry-run summary before anything is changed
"""

import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Union

from worktree_flow.config import Config
from worktree_flow.core.exceptions import (
    CollaboratorOperationError,
    FlowStateError,
    InvalidBranchNameError,
    NoBaseBranchError,
    NotARepositoryError,
)
from worktree_flow.core.flow import (
    AddWorktree,
    Ask,
    AskKind,
    CommitChanges,
    Effect,
    StashChanges,
    pending_ask,
)
from worktree_flow.core.prompts import Prompter
from worktree_flow.core.vcs import VersionControl
from worktree_flow.models.change_set import ChangeSet
from worktree_flow.models.worktree_info import (
    ChangeStrategy,
    CreationResult,
    CreationStatus,
    WorktreeInfo,
    WorktreePlan,
)

logger = logging.getLogger(__name__)

_INVALID_REF_CHARS = re.compile(r"[\x00-\x20~^:?*\[\\\x7f]")


class WorkItemType(str, Enum):
    """Kind of work a new branch is for."""

    ISSUE = "issue"
    FEATURE = "feature"
    FIX = "fix"
    REFACTOR = "refactor"
    CHORE = "chore"


class CreationPhase(str, Enum):
    """Question the creation flow is waiting on, or its final outcome."""

    RESOLVE_CHANGES = "resolve_changes"
    COMMIT_MESSAGE = "commit_message"
    CLASSIFY = "classify"
    NAME = "name"
    CONFIRM = "confirm"
    CREATED = "created"
    CANCELLED = "cancelled"


TERMINAL_PHASES = (CreationPhase.CREATED, CreationPhase.CANCELLED)


@dataclass(frozen=True)
class CreationContext:
    """Repository facts gathered before the first question is asked."""

    repo_root: Path
    primary_root: Path
    change_set: ChangeSet
    branches: frozenset[str]
    base_branch: str
    worktrees_dir: Path
    stash_message: str = "wtflow: auto-stash before creating {branch}"


@dataclass(frozen=True)
class CreationState:
    phase: CreationPhase
    context: CreationContext
    strategy: ChangeStrategy = ChangeStrategy.PROCEED
    commit_message: Optional[str] = None
    work_item: Optional[WorkItemType] = None
    plan: Optional[WorktreePlan] = None


def detect_base_branch(
    branches: Union[set[str], frozenset[str]],
    candidates: Sequence[str] = ("develop", "main", "stg"),
) -> str:
    """
    Pick the first candidate that exists as a branch.

    Args:
        branches: Names of the local branches.
        candidates: Base branches in priority order.

    Returns:
        Name of the selected base branch.

    Raises:
        NoBaseBranchError: If none of the candidates exists.
    """
    for candidate in candidates:
        if candidate in branches:
            return candidate
    raise NoBaseBranchError(list(candidates))


def build_branch_name(work_item: WorkItemType, name: str) -> str:
    """
    Build `<work-item>/<name>` from a free-form name.

    Whitespace runs become dashes. Names git would reject as a ref are
    refused.

    Raises:
        InvalidBranchNameError: If the name cannot be used in a branch name.
    """
    slug = re.sub(r"\s+", "-", name.strip()).strip("/")
    if not slug:
        raise InvalidBranchNameError("Branch name cannot be empty")

    if (
        _INVALID_REF_CHARS.search(slug)
        or ".." in slug
        or "//" in slug
        or "@{" in slug
        or slug.startswith("-")
        or slug.endswith(".")
        or slug.endswith(".lock")
        or any(part.startswith(".") for part in slug.split("/"))
    ):
        raise InvalidBranchNameError(f"Not a valid branch name: {slug}")

    return f"{work_item.value}/{slug}"


def _classify_ask() -> Ask:
    return Ask(
        kind=AskKind.CHOICE,
        message="Work item type",
        choices=tuple(item.value for item in WorkItemType),
    )


def _name_ask(work_item: WorkItemType, error: str = "") -> Ask:
    return Ask(
        kind=AskKind.TEXT,
        message=f"Branch name ({work_item.value}/...)",
        details=(error,) if error else (),
    )


def _confirm_ask(plan: WorktreePlan) -> Ask:
    return Ask(
        kind=AskKind.CONFIRM,
        message="Create this worktree?",
        details=tuple(plan.summary_lines()),
        title="New worktree",
    )


def start_creation(context: CreationContext) -> tuple[CreationState, list[Effect]]:
    """Enter the flow: ask about uncommitted changes first if there are any."""
    if not context.change_set.is_empty:
        state = CreationState(phase=CreationPhase.RESOLVE_CHANGES, context=context)
        ask = Ask(
            kind=AskKind.CHOICE,
            message="Uncommitted changes found. What should happen to them?",
            choices=tuple(strategy.value for strategy in ChangeStrategy),
            details=tuple(context.change_set.summary_lines()),
            title="Uncommitted changes",
        )
        return state, [ask]

    state = CreationState(phase=CreationPhase.CLASSIFY, context=context)
    return state, [_classify_ask()]


def advance_creation(
    state: CreationState, answer: Union[str, bool]
) -> tuple[CreationState, list[Effect]]:
    """
    Feed the answer to the pending question into the flow.

    Pure function: returns the next state and the effects to carry out.
    Mutating effects are only ever returned from the confirmation step.

    Raises:
        FlowStateError: If the flow already finished.
    """
    phase = state.phase
    context = state.context

    if phase == CreationPhase.RESOLVE_CHANGES:
        strategy = ChangeStrategy(answer)
        if strategy == ChangeStrategy.COMMIT:
            next_state = replace(state, phase=CreationPhase.COMMIT_MESSAGE, strategy=strategy)
            return next_state, [Ask(kind=AskKind.TEXT, message="Commit message")]
        next_state = replace(state, phase=CreationPhase.CLASSIFY, strategy=strategy)
        return next_state, [_classify_ask()]

    if phase == CreationPhase.COMMIT_MESSAGE:
        message = str(answer).strip()
        if not message:
            return state, [
                Ask(
                    kind=AskKind.TEXT,
                    message="Commit message",
                    details=("Commit message cannot be empty",),
                )
            ]
        next_state = replace(state, phase=CreationPhase.CLASSIFY, commit_message=message)
        return next_state, [_classify_ask()]

    if phase == CreationPhase.CLASSIFY:
        work_item = WorkItemType(answer)
        next_state = replace(state, phase=CreationPhase.NAME, work_item=work_item)
        return next_state, [_name_ask(work_item)]

    if phase == CreationPhase.NAME:
        try:
            branch = build_branch_name(state.work_item, str(answer))
        except InvalidBranchNameError as e:
            return state, [_name_ask(state.work_item, str(e))]

        if branch in context.branches:
            return state, [_name_ask(state.work_item, f"Branch already exists: {branch}")]

        plan = WorktreePlan(
            branch=branch,
            base_branch=context.base_branch,
            path=context.worktrees_dir / branch,
            repo_root=context.primary_root,
            change_strategy=state.strategy,
            commit_message=state.commit_message,
        )
        next_state = replace(state, phase=CreationPhase.CONFIRM, plan=plan)
        return next_state, [_confirm_ask(plan)]

    if phase == CreationPhase.CONFIRM:
        if not answer:
            return replace(state, phase=CreationPhase.CANCELLED), []

        plan = state.plan
        effects: list[Effect] = []
        if plan.change_strategy == ChangeStrategy.COMMIT:
            effects.append(CommitChanges(message=plan.commit_message))
        elif plan.change_strategy == ChangeStrategy.STASH:
            effects.append(StashChanges(message=context.stash_message.format(branch=plan.branch)))
        effects.append(
            AddWorktree(target=plan.path, branch=plan.branch, base_branch=plan.base_branch)
        )
        return replace(state, phase=CreationPhase.CREATED), effects

    raise FlowStateError(f"Creation flow already finished ({phase.value})")


class WorktreeCreator:
    """Runs the creation flow against a version control backend and a prompter."""

    def __init__(
        self,
        vcs: VersionControl,
        prompter: Prompter,
        config: Optional[Config] = None,
    ):
        self.vcs = vcs
        self.prompter = prompter
        self.config = config or Config()

    def gather_context(self, cwd: Path) -> CreationContext:
        """
        Query everything the flow needs before the first question.

        Raises:
            NotARepositoryError: If cwd is not inside a repository.
            NoBaseBranchError: If no base branch candidate exists.
        """
        if not self.vcs.is_repository(cwd):
            raise NotARepositoryError(cwd)

        repo_root = self.vcs.worktree_root(cwd)
        worktrees = self.vcs.list_worktrees(repo_root)
        primary_root = worktrees[0].path if worktrees else repo_root
        branches = frozenset(self.vcs.list_branches(repo_root))
        base_branch = detect_base_branch(
            branches, self.config.worktree.base_branch_candidates
        )
        logger.debug(f"Base branch for new worktree: {base_branch}")

        return CreationContext(
            repo_root=repo_root,
            primary_root=primary_root,
            change_set=self.vcs.change_set(repo_root),
            branches=branches,
            base_branch=base_branch,
            worktrees_dir=self.config.worktree.worktrees_directory(primary_root),
            stash_message=self.config.creation.stash_message,
        )

    def create(self, cwd: Path) -> CreationResult:
        """
        Run the interactive creation flow from cwd.

        Returns:
            CreationResult with the created worktree, or a cancelled status.

        Raises:
            NotARepositoryError: If cwd is not inside a repository.
            NoBaseBranchError: If no base branch candidate exists.
            CollaboratorOperationError: If a git operation fails.
        """
        context = self.gather_context(cwd)
        state, effects = start_creation(context)

        while True:
            self._perform(context, effects)
            if state.phase in TERMINAL_PHASES:
                break
            ask = pending_ask(effects)
            state, effects = advance_creation(state, self.prompter.answer(ask))

        if state.phase == CreationPhase.CANCELLED:
            logger.info("Worktree creation cancelled")
            return CreationResult(status=CreationStatus.CANCELLED, plan=state.plan)

        return CreationResult(
            status=CreationStatus.CREATED,
            plan=state.plan,
            worktree=self._find_created(context.repo_root, state.plan),
        )

    def _perform(self, context: CreationContext, effects: list[Effect]) -> None:
        undo: list = []
        for effect in effects:
            if isinstance(effect, CommitChanges):
                self.vcs.commit_all(context.repo_root, effect.message)
                undo.append(self.vcs.undo_commit)
            elif isinstance(effect, StashChanges):
                self.vcs.stash_changes(context.repo_root, effect.message)
                undo.append(self.vcs.pop_stash)
            elif isinstance(effect, AddWorktree):
                try:
                    self.vcs.add_worktree(
                        context.repo_root, effect.target, effect.branch, effect.base_branch
                    )
                except CollaboratorOperationError:
                    self._roll_back(context.repo_root, undo)
                    raise

    def _roll_back(self, repo_root: Path, undo: list) -> None:
        """Put committed or stashed changes back after a failed worktree add."""
        for restore in reversed(undo):
            try:
                restore(repo_root)
            except CollaboratorOperationError as e:
                logger.error(f"Could not restore pending changes in {repo_root}: {e}")
                raise
            logger.warning(f"Worktree was not created; pending changes restored in {repo_root}")

    def _find_created(self, repo_root: Path, plan: WorktreePlan) -> WorktreeInfo:
        for worktree in self.vcs.list_worktrees(repo_root):
            if worktree.branch == plan.branch:
                return worktree
        return WorktreeInfo(path=plan.path, branch=plan.branch)
