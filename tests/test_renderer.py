"""Tests for lazy_changelog.renderer."""

from __future__ import annotations

import pytest

from lazy_changelog.config import ConventionalCommitsConfig
from lazy_changelog.exceptions import ConfigError
from lazy_changelog.models import Author, Change, DependencyBump, Reference
from lazy_changelog.remote_release import GitHubReleaseClient, RemoteReleaseClient
from lazy_changelog.renderer import (
    ChangelogRenderer,
    DefaultChangelogRenderer,
    resolve_changelog_renderer,
)

NO_DATE = {"version_title_date": False}


class UppercaseRenderer(ChangelogRenderer):
    def render(self) -> str:
        return f"# {self.version.upper()}"


def _render(
    changes: list[Change],
    conventional_commits: ConventionalCommitsConfig,
    project: str | None = None,
    entry_when_no_changes: bool | str = True,
    **kwargs,
) -> str:
    return DefaultChangelogRenderer(
        changes=changes,
        version="2.0.0",
        project=project,
        entry_when_no_changes=entry_when_no_changes,
        conventional_commits=conventional_commits,
        remote_release_client=kwargs.pop("client", RemoteReleaseClient()),
        render_options=kwargs.pop("render_options", NO_DATE),
        **kwargs,
    ).render()


class TestDefaultChangelogRenderer:
    def test_sections_in_type_order(self, conventional_commits: ConventionalCommitsConfig) -> None:
        changes = [
            Change(type="fix", description="repair", authors=[Author(name="Ada")]),
            Change(type="feat", description="add", authors=[Author(name="Grace")]),
        ]
        assert _render(changes, conventional_commits) == (
            "## 2.0.0\n\n"
            "### ✨ Features\n\n- add\n\n"
            "### 🐛 Bug Fixes\n\n- repair\n\n"
            "### ❤️ Thank You\n\n- Ada\n- Grace"
        )

    def test_breaking_changes_first_with_body(
        self, conventional_commits: ConventionalCommitsConfig
    ) -> None:
        changes = [
            Change(type="feat", scope="api", description="drop v1", body="Use v2.", is_breaking=True)
        ]
        output = _render(changes, conventional_commits, render_options={**NO_DATE, "authors": False})
        assert output == "## 2.0.0\n\n### ⚠️ Breaking Changes\n\n- **api:** drop v1\n\n  Use v2."

    def test_version_title_date(self, conventional_commits: ConventionalCommitsConfig) -> None:
        output = _render([], conventional_commits, render_options={})
        assert output.startswith("## 2.0.0 (")

    def test_project_filter_and_own_scope(
        self, conventional_commits: ConventionalCommitsConfig
    ) -> None:
        changes = [
            Change(type="fix", scope="pkg-a", description="mine", affected_projects=["pkg-a"]),
            Change(type="fix", description="theirs", affected_projects=["pkg-b"]),
        ]
        output = _render(changes, conventional_commits, project="pkg-a")
        assert "- mine" in output
        assert "theirs" not in output

    def test_no_changes_default_note(self, conventional_commits: ConventionalCommitsConfig) -> None:
        assert _render([], conventional_commits) == (
            "## 2.0.0\n\nThis was a version bump only, there were no code changes."
        )
        assert "to align it with other projects" in _render([], conventional_commits, project="a")

    def test_no_changes_disabled(self, conventional_commits: ConventionalCommitsConfig) -> None:
        assert _render([], conventional_commits, entry_when_no_changes=False) == ""

    def test_no_changes_custom_note(self, conventional_commits: ConventionalCommitsConfig) -> None:
        output = _render([], conventional_commits, entry_when_no_changes="Nothing new.")
        assert output == "## 2.0.0\n\nNothing new."

    def test_dependency_bumps(self, conventional_commits: ConventionalCommitsConfig) -> None:
        output = _render(
            [],
            conventional_commits,
            project="b",
            dependency_bumps=[DependencyBump(dependency_name="a", new_version="1.1.0")],
        )
        assert output == "## 2.0.0\n\n### 🧱 Updated Dependencies\n\n- Updated a to 1.1.0"

    def test_reverted_changes_are_dropped(
        self, conventional_commits: ConventionalCommitsConfig
    ) -> None:
        changes = [
            Change(type="revert", description="feat: x", reverted_hashes=["abc1234ffff"]),
            Change(type="feat", description="x", short_hash="abc1234"),
            Change(type="fix", description="kept", short_hash="def5678"),
        ]
        output = _render(changes, conventional_commits)
        assert "- kept" in output
        assert "- x" not in output
        assert "Revert" not in output

    def test_references_link_to_remote(
        self, conventional_commits: ConventionalCommitsConfig
    ) -> None:
        changes = [
            Change(
                type="fix",
                description="repair",
                references=[Reference(type="pull-request", value="#12")],
            )
        ]
        output = _render(changes, conventional_commits, client=GitHubReleaseClient("https://github.com/o/r"))
        assert "- repair ([#12](https://github.com/o/r/pull/12))" in output


class TestResolveChangelogRenderer:
    def test_default(self) -> None:
        assert resolve_changelog_renderer("default") is DefaultChangelogRenderer

    def test_import_path(self) -> None:
        assert resolve_changelog_renderer(f"{__name__}:UppercaseRenderer") is UppercaseRenderer

    def test_bare_unknown_id_raises(self) -> None:
        with pytest.raises(ConfigError, match="Unknown changelog renderer"):
            resolve_changelog_renderer("fancy")

    def test_unimportable_raises(self) -> None:
        with pytest.raises(ConfigError, match="Unable to load"):
            resolve_changelog_renderer("no_such_module_here:Renderer")

    def test_not_a_renderer_raises(self) -> None:
        with pytest.raises(ConfigError, match="not a ChangelogRenderer"):
            resolve_changelog_renderer("pathlib:Path")
