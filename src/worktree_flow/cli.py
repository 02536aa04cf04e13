"""CLI entry point for worktree-flow."""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from worktree_flow.config import Config, load_config
from worktree_flow.core.creator import WorktreeCreator
from worktree_flow.core.exceptions import WorktreeError
from worktree_flow.core.prompts import ConsolePrompter
from worktree_flow.core.remover import WorktreeRemover
from worktree_flow.core.vcs import GitBackend, VersionControl
from worktree_flow.logging_config import setup_logging
from worktree_flow.models.worktree_info import (
    CreationStatus,
    RemovalStatus,
    WorktreeInfo,
)

console = Console()


def get_backend() -> VersionControl:
    """Get the version control backend used by the commands."""
    return GitBackend()


def get_config(ctx: click.Context) -> Config:
    """Get the loaded configuration, loading defaults for standalone commands."""
    ctx.ensure_object(dict)
    if "config" not in ctx.obj:
        ctx.obj["config"] = load_config()
    return ctx.obj["config"]


def print_worktrees(worktrees: list[WorktreeInfo], title: str = "Git Worktrees") -> None:
    """Print worktrees as a table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Name", style="bold")
    table.add_column("Branch", style="green")
    table.add_column("Commit", style="dim")
    table.add_column("Path")
    table.add_column("Status", justify="center")

    for wt in worktrees:
        if wt.is_main:
            status = "[blue]primary[/blue]"
        elif wt.is_detached:
            status = "[yellow]detached[/yellow]"
        else:
            status = "[green]active[/green]"

        table.add_row(wt.name, wt.branch, wt.head_commit, wt.short_path, status)

    console.print()
    console.print(table)
    console.print()


@click.group()
@click.version_option(package_name="worktree-flow")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Path to a .worktreerc TOML file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show informational log messages.")
@click.option("--debug", is_flag=True, help="Show debug log messages.")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], verbose: bool, debug: bool) -> None:
    """worktree-flow - create and remove git worktrees interactively.

    Each new branch lives in its own worktree next to the repository,
    under ../<repo>-worktrees/<branch>.
    """
    try:
        config = load_config(config_path)
    except WorktreeError as e:
        raise click.ClickException(str(e)) from e

    setup_logging(verbose=verbose, debug=debug, level=config.logging.level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command("create")
@click.pass_context
def create_worktree(ctx: click.Context) -> None:
    """Create a new branch in its own worktree.

    Asks what to do with uncommitted changes, the kind of work
    (issue, feature, fix, refactor, chore) and a name, then shows a
    summary to confirm before anything is changed.

    Example:
        wtflow create
    """
    creator = WorktreeCreator(get_backend(), ConsolePrompter(console), get_config(ctx))

    try:
        result = creator.create(Path.cwd())
    except WorktreeError as e:
        raise click.ClickException(str(e)) from e

    if result.status == CreationStatus.CANCELLED:
        console.print("[yellow]Aborted.[/yellow]")
        return

    worktree = result.worktree
    console.print()
    console.print("[bold green]Worktree created successfully!")
    console.print()
    console.print(f"[bold]Branch:[/bold]  {worktree.branch}")
    console.print(f"[bold]Base:[/bold]    {result.plan.base_branch}")
    console.print(f"[bold]Path:[/bold]    {worktree.path}")
    console.print()
    console.print(f"[dim]cd {worktree.path}[/dim]")


@main.command("remove")
def remove_worktree() -> None:
    """Remove the worktree you are in and return to the primary one.

    Uncommitted changes are shown and must be confirmed first, then the
    removal itself is confirmed separately. The branch is kept.

    Example:
        wtflow remove
    """
    remover = WorktreeRemover(get_backend(), ConsolePrompter(console))

    try:
        result = remover.remove(Path.cwd())
    except WorktreeError as e:
        raise click.ClickException(str(e)) from e

    if result.status == RemovalStatus.CANCELLED:
        console.print("[yellow]Aborted.[/yellow]")
        return

    console.print()
    if result.forced:
        console.print("[yellow]Safe removal was refused; the worktree was force-removed.[/yellow]")
    console.print(f"[bold green]Worktree removed:[/bold green] {result.target.path}")
    console.print(f"[bold]Branch kept:[/bold] {result.target.branch}")

    print_worktrees(result.remaining, title="Remaining worktrees")
    console.print(f"[dim]cd {result.primary.path}[/dim]")


@main.command("list")
def list_worktrees() -> None:
    """List all worktrees for this repository.

    Example:
        wtflow list
    """
    backend = get_backend()
    cwd = Path.cwd()

    try:
        if not backend.is_repository(cwd):
            raise click.ClickException(f"Not a git repository: {cwd}")
        worktrees = backend.list_worktrees(backend.worktree_root(cwd))
    except WorktreeError as e:
        raise click.ClickException(str(e)) from e

    print_worktrees(worktrees)
