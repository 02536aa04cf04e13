"""
Unit tests for the worktree creation flow.

Tests cover:
- Base branch detection priority
- Branch name building and validation
- Pure state transitions
- The full flow against an in-memory backend
"""

import subprocess
from pathlib import Path

import pytest

from worktree_flow.config import Config, WorktreeConfig
from worktree_flow.core.creator import (
    CreationContext,
    CreationPhase,
    WorkItemType,
    WorktreeCreator,
    advance_creation,
    build_branch_name,
    detect_base_branch,
    start_creation,
)
from worktree_flow.core.exceptions import (
    CollaboratorOperationError,
    FlowStateError,
    InvalidBranchNameError,
    NoBaseBranchError,
    NotARepositoryError,
)
from worktree_flow.core.flow import AddWorktree, AskKind, CommitChanges, StashChanges
from worktree_flow.core.vcs import GitBackend
from worktree_flow.models.change_set import ChangeSet
from worktree_flow.models.worktree_info import ChangeStrategy, CreationStatus
from worktree_flow.testing import FakeVersionControl, ScriptedPrompter


def run_git(cwd, *args):
    return subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True)


class TestDetectBaseBranch:
    """Tests for base branch auto-detection."""

    @pytest.mark.parametrize(
        "branches, expected",
        [
            ({"develop", "main", "stg"}, "develop"),
            ({"main", "stg"}, "main"),
            ({"stg"}, "stg"),
            ({"main", "feature/x"}, "main"),
        ],
    )
    def test_priority_order(self, branches, expected):
        assert detect_base_branch(branches) == expected

    def test_no_candidate_raises(self):
        with pytest.raises(NoBaseBranchError):
            detect_base_branch(set())

    def test_unrelated_branches_raise(self):
        with pytest.raises(NoBaseBranchError, match="develop, main, stg"):
            detect_base_branch({"master", "feature/x"})

    def test_custom_candidates(self):
        assert detect_base_branch({"master"}, ["trunk", "master"]) == "master"


class TestBuildBranchName:
    """Tests for branch name building."""

    def test_prefixes_work_item(self):
        assert build_branch_name(WorkItemType.FEATURE, "login") == "feature/login"

    def test_whitespace_becomes_dashes(self):
        assert build_branch_name(WorkItemType.FIX, "  broken  login page ") == "fix/broken-login-page"

    def test_nested_names_are_kept(self):
        assert build_branch_name(WorkItemType.ISSUE, "123/crash") == "issue/123/crash"

    @pytest.mark.parametrize("name", ["", "   ", "a..b", "x~1", "what?", "-flag", "name.lock", ".hidden"])
    def test_invalid_names_raise(self, name):
        with pytest.raises(InvalidBranchNameError):
            build_branch_name(WorkItemType.CHORE, name)


class TestCreationTransitions:
    """Tests for the pure creation state machine."""

    @pytest.fixture
    def context(self):
        return CreationContext(
            repo_root=Path("/work/shop"),
            primary_root=Path("/work/shop"),
            change_set=ChangeSet(),
            branches=frozenset({"main", "feature/taken"}),
            base_branch="main",
            worktrees_dir=Path("/work/shop-worktrees"),
        )

    @pytest.fixture
    def dirty_context(self, context, dirty_change_set):
        return CreationContext(
            repo_root=context.repo_root,
            primary_root=context.primary_root,
            change_set=dirty_change_set,
            branches=context.branches,
            base_branch=context.base_branch,
            worktrees_dir=context.worktrees_dir,
        )

    def test_clean_tree_starts_with_classification(self, context):
        state, effects = start_creation(context)

        assert state.phase == CreationPhase.CLASSIFY
        assert len(effects) == 1
        assert effects[0].kind == AskKind.CHOICE
        assert effects[0].choices == ("issue", "feature", "fix", "refactor", "chore")

    def test_dirty_tree_asks_about_changes(self, dirty_context):
        state, effects = start_creation(dirty_context)

        assert state.phase == CreationPhase.RESOLVE_CHANGES
        assert effects[0].choices == ("commit", "stash", "proceed")
        assert any("app.py" in line for line in effects[0].details)

    def test_commit_choice_asks_for_message(self, dirty_context):
        state, _ = start_creation(dirty_context)
        state, effects = advance_creation(state, "commit")

        assert state.phase == CreationPhase.COMMIT_MESSAGE
        assert state.strategy == ChangeStrategy.COMMIT
        assert effects[0].kind == AskKind.TEXT

    def test_empty_commit_message_is_asked_again(self, dirty_context):
        state, _ = start_creation(dirty_context)
        state, _ = advance_creation(state, "commit")
        state, effects = advance_creation(state, "   ")

        assert state.phase == CreationPhase.COMMIT_MESSAGE
        assert "cannot be empty" in effects[0].details[0]

    def test_name_builds_plan_and_asks_confirmation(self, context):
        state, _ = start_creation(context)
        state, _ = advance_creation(state, "feature")
        state, effects = advance_creation(state, "login")

        assert state.phase == CreationPhase.CONFIRM
        assert state.plan.branch == "feature/login"
        assert state.plan.path == Path("/work/shop-worktrees/feature/login")
        assert effects[0].kind == AskKind.CONFIRM
        assert "Base branch: main" in effects[0].details

    def test_existing_branch_is_asked_again(self, context):
        state, _ = start_creation(context)
        state, _ = advance_creation(state, "feature")
        state, effects = advance_creation(state, "taken")

        assert state.phase == CreationPhase.NAME
        assert "already exists" in effects[0].details[0]

    def test_invalid_name_is_asked_again(self, context):
        state, _ = start_creation(context)
        state, _ = advance_creation(state, "fix")
        state, effects = advance_creation(state, "bad..name")

        assert state.phase == CreationPhase.NAME
        assert effects[0].details

    def test_no_mutation_before_confirmation(self, dirty_context):
        state, effects = start_creation(dirty_context)
        collected = list(effects)
        for answer in ["stash", "refactor", "cleanup"]:
            state, effects = advance_creation(state, answer)
            collected.extend(effects)

        assert state.phase == CreationPhase.CONFIRM
        assert not any(isinstance(e, (StashChanges, CommitChanges, AddWorktree)) for e in collected)

    def test_decline_cancels_without_effects(self, context):
        state, _ = start_creation(context)
        state, _ = advance_creation(state, "chore")
        state, _ = advance_creation(state, "deps")
        state, effects = advance_creation(state, False)

        assert state.phase == CreationPhase.CANCELLED
        assert effects == []

    def test_confirm_commits_then_adds(self, dirty_context):
        state, _ = start_creation(dirty_context)
        for answer in ["commit", "wip", "feature", "login"]:
            state, _ = advance_creation(state, answer)
        state, effects = advance_creation(state, True)

        assert state.phase == CreationPhase.CREATED
        assert effects == [
            CommitChanges(message="wip"),
            AddWorktree(
                target=Path("/work/shop-worktrees/feature/login"),
                branch="feature/login",
                base_branch="main",
            ),
        ]

    def test_confirm_stashes_with_branch_in_message(self, dirty_context):
        state, _ = start_creation(dirty_context)
        for answer in ["stash", "fix", "typo"]:
            state, _ = advance_creation(state, answer)
        _, effects = advance_creation(state, True)

        assert isinstance(effects[0], StashChanges)
        assert "fix/typo" in effects[0].message
        assert isinstance(effects[1], AddWorktree)

    def test_advancing_finished_flow_raises(self, context):
        state, _ = start_creation(context)
        for answer in ["feature", "login", False]:
            state, _ = advance_creation(state, answer)

        with pytest.raises(FlowStateError):
            advance_creation(state, True)


class TestWorktreeCreator:
    """Tests for the WorktreeCreator driver."""

    @pytest.fixture
    def clean_repo(self, primary_path):
        return FakeVersionControl(worktrees=[primary_path], branches=["main"])

    def test_not_a_repository(self, tmp_path):
        vcs = FakeVersionControl(worktrees=[])
        prompter = ScriptedPrompter()

        with pytest.raises(NotARepositoryError):
            WorktreeCreator(vcs, prompter).create(tmp_path)

        assert vcs.mutations == []
        assert prompter.questions == []

    def test_no_base_branch_fails_before_prompting(self, primary_path):
        vcs = FakeVersionControl(worktrees=[primary_path], branches=["master"])
        prompter = ScriptedPrompter()

        with pytest.raises(NoBaseBranchError):
            WorktreeCreator(vcs, prompter).create(primary_path)

        assert prompter.questions == []
        assert vcs.mutations == []

    def test_feature_login_end_to_end(self, clean_repo, primary_path):
        prompter = ScriptedPrompter(["feature", "login", True])

        result = WorktreeCreator(clean_repo, prompter).create(primary_path)

        assert result.status == CreationStatus.CREATED
        assert result.plan.relative_path == "../shop-worktrees/feature/login"
        assert "Base branch: main" in prompter.shown
        assert result.worktree.branch == "feature/login"
        assert result.worktree.path == Path("/work/shop-worktrees/feature/login")
        assert clean_repo.mutations == [
            ("add_worktree", Path("/work/shop-worktrees/feature/login"), "feature/login", "main")
        ]

    def test_clean_tree_skips_change_question(self, clean_repo, primary_path):
        prompter = ScriptedPrompter(["fix", "crash", True])

        WorktreeCreator(clean_repo, prompter).create(primary_path)

        assert prompter.questions[0] == "Work item type"

    def test_decline_leaves_repository_untouched(self, clean_repo, primary_path):
        prompter = ScriptedPrompter(["feature", "login", False])

        result = WorktreeCreator(clean_repo, prompter).create(primary_path)

        assert result.status == CreationStatus.CANCELLED
        assert result.worktree is None
        assert clean_repo.mutations == []

    def test_stash_runs_only_after_confirmation(self, primary_path, dirty_change_set):
        vcs = FakeVersionControl(
            worktrees=[primary_path],
            branches=["develop", "main"],
            change_sets={primary_path: dirty_change_set},
        )
        prompter = ScriptedPrompter(["stash", "refactor", "models", True])

        result = WorktreeCreator(vcs, prompter).create(primary_path)

        assert result.plan.base_branch == "develop"
        assert [m[0] for m in vcs.mutations] == ["stash_changes", "add_worktree"]

    def test_dirty_tree_decline_does_not_stash(self, primary_path, dirty_change_set):
        vcs = FakeVersionControl(
            worktrees=[primary_path],
            change_sets={primary_path: dirty_change_set},
        )
        prompter = ScriptedPrompter(["stash", "refactor", "models", False])

        WorktreeCreator(vcs, prompter).create(primary_path)

        assert vcs.mutations == []

    def test_proceed_keeps_changes(self, primary_path, dirty_change_set):
        vcs = FakeVersionControl(
            worktrees=[primary_path],
            change_sets={primary_path: dirty_change_set},
        )
        prompter = ScriptedPrompter(["proceed", "chore", "bump", True])

        WorktreeCreator(vcs, prompter).create(primary_path)

        assert [m[0] for m in vcs.mutations] == ["add_worktree"]

    def test_collaborator_failure_surfaces_git_text(self, primary_path):
        vcs = FakeVersionControl(
            worktrees=[primary_path],
            fail_add="fatal: '/work/shop-worktrees/feature/login' already exists",
        )
        prompter = ScriptedPrompter(["feature", "login", True])

        with pytest.raises(CollaboratorOperationError, match="already exists"):
            WorktreeCreator(vcs, prompter).create(primary_path)

    @pytest.mark.parametrize(
        "answers, restored",
        [
            (["stash", "feature", "login", True], ("stash_changes", "stash_restored")),
            (["commit", "wip", "feature", "login", True], ("commit_all", "commit_restored")),
        ],
    )
    def test_failed_add_restores_pending_changes(self, primary_path, dirty_change_set, answers, restored):
        vcs = FakeVersionControl(
            worktrees=[primary_path],
            change_sets={primary_path: dirty_change_set},
            fail_add="fatal: '/work/shop-worktrees/feature/login' already exists",
        )
        prompter = ScriptedPrompter(answers)

        with pytest.raises(CollaboratorOperationError, match="already exists"):
            WorktreeCreator(vcs, prompter).create(primary_path)

        assert tuple(m[0] for m in vcs.mutations) == restored
        assert vcs.change_set(primary_path) == dirty_change_set
        assert [wt.path for wt in vcs.list_worktrees(primary_path)] == [primary_path]

    def test_failed_add_restores_stash_in_real_repository(self, git_repo, temp_directory):
        (git_repo / "README.md").write_text("# Changed\n")
        (git_repo / "notes.txt").write_text("todo\n")
        occupied = temp_directory / "test-repo-worktrees" / "feature" / "login"
        occupied.mkdir(parents=True)
        (occupied / "keep.txt").write_text("in the way\n")
        vcs = GitBackend()
        prompter = ScriptedPrompter(["stash", "feature", "login", True])

        with pytest.raises(CollaboratorOperationError):
            WorktreeCreator(vcs, prompter).create(git_repo)

        change_set = vcs.change_set(git_repo)
        assert [entry.path for entry in change_set.unstaged()] == ["README.md"]
        assert [entry.path for entry in change_set.untracked()] == ["notes.txt"]
        assert run_git(git_repo, "stash", "list").stdout == ""
        assert len(vcs.list_worktrees(git_repo)) == 1

    def test_failed_add_undoes_commit_in_real_repository(self, git_repo, temp_directory):
        (git_repo / "notes.txt").write_text("todo\n")
        occupied = temp_directory / "test-repo-worktrees" / "feature" / "login"
        occupied.mkdir(parents=True)
        (occupied / "keep.txt").write_text("in the way\n")
        vcs = GitBackend()
        prompter = ScriptedPrompter(["commit", "wip", "feature", "login", True])

        with pytest.raises(CollaboratorOperationError):
            WorktreeCreator(vcs, prompter).create(git_repo)

        assert [entry.path for entry in vcs.change_set(git_repo).untracked()] == ["notes.txt"]
        assert run_git(git_repo, "log", "-1", "--format=%s").stdout.strip() == "Initial commit"

    def test_created_from_secondary_worktree_uses_primary_name(self, fake_repo, secondary_path):
        prompter = ScriptedPrompter(["issue", "42", True])

        result = WorktreeCreator(fake_repo, prompter).create(secondary_path)

        assert result.worktree.path == Path("/work/shop-worktrees/issue/42")

    def test_configured_directory_and_candidates(self, primary_path):
        vcs = FakeVersionControl(worktrees=[primary_path], branches=["trunk"])
        config = Config(
            worktree=WorktreeConfig(
                base_directory="../trees/{project}",
                base_branch_candidates=["trunk"],
            )
        )
        prompter = ScriptedPrompter(["feature", "login", True])

        result = WorktreeCreator(vcs, prompter, config).create(primary_path)

        assert result.plan.base_branch == "trunk"
        assert result.worktree.path == Path("/work/trees/shop/feature/login")
