"""Tests for lazy_changelog.staging."""

from __future__ import annotations

from pathlib import Path

import pytest

from lazy_changelog.staging import FileChange, StagedChangeSet


class TestStagedChangeSet:
    def test_reads_see_staged_content(self, tmp_path: Path) -> None:
        (tmp_path / "CHANGELOG.md").write_text("disk")
        staged = StagedChangeSet(tmp_path)
        assert staged.read("CHANGELOG.md") == "disk"

        staged.write("CHANGELOG.md", "staged")

        assert staged.read("CHANGELOG.md") == "staged"
        assert (tmp_path / "CHANGELOG.md").read_text() == "disk"

    def test_read_missing_file(self, tmp_path: Path) -> None:
        assert StagedChangeSet(tmp_path).read("missing.md") is None

    def test_list_changes_skips_unchanged(self, tmp_path: Path) -> None:
        (tmp_path / "same.md").write_text("same")
        (tmp_path / "old.md").write_text("old")
        staged = StagedChangeSet(tmp_path)
        staged.write("same.md", "same")
        staged.write("old.md", "new")
        staged.write("pkg/new.md", "created")

        assert staged.list_changes() == [
            FileChange("old.md", "UPDATE", "new"),
            FileChange("pkg/new.md", "CREATE", "created"),
        ]

    def test_flush_writes_once(self, tmp_path: Path) -> None:
        staged = StagedChangeSet(tmp_path)
        staged.write("pkg/CHANGELOG.md", "content")

        staged.flush()

        assert (tmp_path / "pkg" / "CHANGELOG.md").read_text() == "content"
        with pytest.raises(RuntimeError, match="already been flushed"):
            staged.flush()

    def test_dry_run_flush_touches_nothing(self, tmp_path: Path) -> None:
        staged = StagedChangeSet(tmp_path)
        staged.write("CHANGELOG.md", "content")

        changes = staged.flush(dry_run=True)

        assert [c.path for c in changes] == ["CHANGELOG.md"]
        assert not (tmp_path / "CHANGELOG.md").exists()

    def test_print_changes_shows_diff(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        (tmp_path / "CHANGELOG.md").write_text("old line\n")
        staged = StagedChangeSet(tmp_path)
        staged.write("CHANGELOG.md", "new line\nold line\n")

        staged.print_changes()

        out = capsys.readouterr().out
        assert "UPDATE CHANGELOG.md" in out
        assert "+new line" in out
