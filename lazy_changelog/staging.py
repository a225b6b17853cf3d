"""In-memory staging of file changes.

Every changelog write of a run goes into one StagedChangeSet. Reads see the
staged content, so two changelogs targeting the same file merge correctly.
Nothing touches the disk until flush(), which happens once, after every
changelog has been assembled.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from pathlib import Path
from typing import Literal


@dataclass(frozen=True)
class FileChange:
    path: str
    type: Literal["CREATE", "UPDATE"]
    content: str


class StagedChangeSet:
    """Pending writes keyed by workspace-relative path."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self._pending: dict[str, str] = {}
        self._flushed = False

    def _disk_content(self, path: str) -> str | None:
        file = self.root / path
        return file.read_text() if file.is_file() else None

    def read(self, path: str) -> str | None:
        if path in self._pending:
            return self._pending[path]
        return self._disk_content(path)

    def write(self, path: str, content: str) -> None:
        self._pending[path] = content

    def list_changes(self) -> list[FileChange]:
        """Pending changes that differ from the disk, in staging order."""
        changes: list[FileChange] = []
        for path, content in self._pending.items():
            original = self._disk_content(path)
            if content == original:
                continue
            changes.append(FileChange(path, "CREATE" if original is None else "UPDATE", content))
        return changes

    def print_changes(self, path: str | None = None) -> None:
        """Print a unified diff of the pending changes (or of just path)."""
        for change in self.list_changes():
            if path is not None and change.path != path:
                continue
            before = (self._disk_content(change.path) or "").splitlines(keepends=True)
            after = change.content.splitlines(keepends=True)
            print(f"  {change.type} {change.path}")
            for line in difflib.unified_diff(
                before, after, fromfile=f"a/{change.path}", tofile=f"b/{change.path}", n=3
            ):
                print(f"    {line.rstrip()}")

    def flush(self, dry_run: bool = False) -> list[FileChange]:
        """Write every pending change to disk (unless dry_run) and return them.

        Raises:
            RuntimeError: If called twice on the same change set.
        """
        if self._flushed:
            raise RuntimeError("StagedChangeSet has already been flushed")
        self._flushed = True
        changes = self.list_changes()
        if dry_run:
            return changes
        for change in changes:
            file = self.root / change.path
            file.parent.mkdir(parents=True, exist_ok=True)
            file.write_text(change.content)
        return changes
