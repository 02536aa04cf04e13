"""Pydantic models for uncommitted changes in a worktree."""

from typing import Optional

from pydantic import BaseModel, Field

_STATUS_LABELS = {
    "M": "modified",
    "A": "added",
    "D": "deleted",
    "R": "renamed",
    "C": "copied",
    "U": "unmerged",
    "T": "type changed",
}


class FileStatus(BaseModel):
    """A single entry of `git status --porcelain -z`."""

    index_status: str = Field(description="Status of the file in the index (X)")
    worktree_status: str = Field(description="Status of the file in the work tree (Y)")
    path: str
    orig_path: Optional[str] = Field(default=None, description="Source path of a rename or copy")

    @classmethod
    def from_porcelain(cls, record: str) -> "FileStatus":
        """Parse one `XY path` porcelain record."""
        return cls(index_status=record[0], worktree_status=record[1], path=record[3:])

    @property
    def is_rename_or_copy(self) -> bool:
        return self.index_status in ("R", "C") or self.worktree_status in ("R", "C")

    @property
    def display_path(self) -> str:
        if self.orig_path:
            return f"{self.orig_path} -> {self.path}"
        return self.path

    @property
    def is_untracked(self) -> bool:
        return self.index_status == "?" and self.worktree_status == "?"

    @property
    def is_staged(self) -> bool:
        return not self.is_untracked and self.index_status not in (" ", "!")

    @property
    def is_unstaged(self) -> bool:
        return not self.is_untracked and self.worktree_status not in (" ", "!")

    @property
    def label(self) -> str:
        if self.is_untracked:
            return "untracked"
        code = self.index_status if self.is_staged else self.worktree_status
        state = "staged" if self.is_staged else "unstaged"
        return f"{_STATUS_LABELS.get(code, code)} ({state})"


class ChangeSet(BaseModel):
    """Staged and unstaged modifications of a worktree at one point in time."""

    entries: list[FileStatus] = Field(default_factory=list)

    @classmethod
    def from_porcelain(cls, output: str) -> "ChangeSet":
        """Parse NUL-separated `git status --porcelain -z` output.

        Paths are not quoted in this format. A rename or copy record is
        followed by a separate field holding the source path.
        """
        entries: list[FileStatus] = []
        fields = iter(output.split("\0"))
        for record in fields:
            if len(record) < 4:
                continue
            entry = FileStatus.from_porcelain(record)
            if entry.is_rename_or_copy:
                entry.orig_path = next(fields, None) or None
            entries.append(entry)
        return cls(entries=entries)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def staged(self) -> list[FileStatus]:
        return [entry for entry in self.entries if entry.is_staged]

    def unstaged(self) -> list[FileStatus]:
        return [entry for entry in self.entries if entry.is_unstaged]

    def untracked(self) -> list[FileStatus]:
        return [entry for entry in self.entries if entry.is_untracked]

    def summary_lines(self) -> list[str]:
        return [f"{entry.label:<22} {entry.display_path}" for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)
