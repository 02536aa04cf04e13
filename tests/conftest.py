"""
Pytest configuration and shared fixtures for worktree-flow tests.
"""

import subprocess
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from worktree_flow.models.change_set import ChangeSet, FileStatus
from worktree_flow.testing import FakeVersionControl, ScriptedPrompter


def run_git(cwd: Path, *args: str) -> subprocess.CompletedProcess:
    return subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True)


@pytest.fixture
def temp_directory() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir).resolve()


@pytest.fixture
def git_repo(temp_directory: Path) -> Generator[Path, None, None]:
    """Create a temporary git repository with one commit on main."""
    repo_path = temp_directory / "test-repo"
    repo_path.mkdir()

    run_git(repo_path, "init")
    run_git(repo_path, "config", "user.email", "test@example.com")
    run_git(repo_path, "config", "user.name", "Test User")
    run_git(repo_path, "config", "commit.gpgsign", "false")

    readme = repo_path / "README.md"
    readme.write_text("# Test Repository\n")

    run_git(repo_path, "add", ".")
    run_git(repo_path, "commit", "-m", "Initial commit")
    run_git(repo_path, "branch", "-M", "main")

    yield repo_path


@pytest.fixture
def git_worktree(git_repo: Path, temp_directory: Path) -> Generator[Path, None, None]:
    """Create a secondary git worktree for tests."""
    worktree_path = temp_directory / "test-worktree"

    run_git(git_repo, "worktree", "add", "-b", "test-branch", str(worktree_path))

    yield worktree_path

    if worktree_path.exists():
        run_git(git_repo, "worktree", "remove", "--force", str(worktree_path))


@pytest.fixture
def primary_path() -> Path:
    return Path("/work/shop")


@pytest.fixture
def secondary_path() -> Path:
    return Path("/work/shop-worktrees/feature/login")


@pytest.fixture
def dirty_change_set() -> ChangeSet:
    return ChangeSet(
        entries=[
            FileStatus(index_status="M", worktree_status=" ", path="app.py"),
            FileStatus(index_status="?", worktree_status="?", path="notes.txt"),
        ]
    )


@pytest.fixture
def fake_repo(primary_path: Path, secondary_path: Path) -> FakeVersionControl:
    """A repository with a primary and one secondary worktree."""
    return FakeVersionControl(
        worktrees=[(primary_path, "main"), (secondary_path, "feature/login")],
        branches=["main", "feature/login"],
    )


@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()
