"""
Effects emitted by the create and remove state machines.

The state machines never talk to git or the terminal themselves. Each
transition returns the effects to carry out; an `Ask` effect is always
the last one and its answer is fed into the next transition.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Union


class AskKind(str, Enum):
    """How a question is answered."""

    CHOICE = "choice"
    TEXT = "text"
    CONFIRM = "confirm"


@dataclass(frozen=True)
class Ask:
    """Ask the user a question and wait for the answer."""

    kind: AskKind
    message: str
    choices: tuple[str, ...] = ()
    details: tuple[str, ...] = ()
    title: str = ""


@dataclass(frozen=True)
class CommitChanges:
    message: str


@dataclass(frozen=True)
class StashChanges:
    message: str


@dataclass(frozen=True)
class AddWorktree:
    target: Path
    branch: str
    base_branch: str


@dataclass(frozen=True)
class ChangeDirectory:
    path: Path


@dataclass(frozen=True)
class RemoveWorktree:
    target: Path
    force: bool = False


@dataclass(frozen=True)
class ShowWorktrees:
    pass


@dataclass(frozen=True)
class OperationOutcome:
    """Answer fed back to a state machine after a git mutation."""

    succeeded: bool
    error: str = ""


Effect = Union[
    Ask,
    CommitChanges,
    StashChanges,
    AddWorktree,
    ChangeDirectory,
    RemoveWorktree,
    ShowWorktrees,
]


def pending_ask(effects: Sequence[Effect]) -> Optional[Ask]:
    """Return the trailing question of a transition, if any."""
    if effects and isinstance(effects[-1], Ask):
        return effects[-1]
    return None
