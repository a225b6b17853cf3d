"""Tests for lazy_changelog.git_ops."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, call, patch

import click
import pytest

from lazy_changelog.config import ReleaseGroup
from lazy_changelog.exceptions import DuplicateTagError, RecreateHistoricalReleaseError
from lazy_changelog.git_ops import (
    ApplyOptions,
    apply_changes,
    check_recreate_historical_release,
    create_commit_message_values,
    create_git_tag_values,
    handle_duplicate_git_tags,
    prompt_for_remote_release,
    release_version_for,
)
from lazy_changelog.models import GroupVersionPlan, VersionDataEntry
from lazy_changelog.staging import StagedChangeSet

MESSAGE = "chore(release): publish {version}"

FIXED = ReleaseGroup(name="core", projects=["a", "b"], release_tag_pattern="v{version}")
INDEPENDENT = ReleaseGroup(
    name="plugins",
    projects=["x", "y"],
    projects_relationship="independent",
    release_tag_pattern="{project_name}@{version}",
)


def _data(**versions: str | None) -> dict[str, VersionDataEntry]:
    return {name: VersionDataEntry(new_version=v) for name, v in versions.items()}


class TestReleaseVersionFor:
    def test_prefers_docker_version(self) -> None:
        group = FIXED.model_copy(update={"prefer_docker_version": True})
        entry = VersionDataEntry(new_version="1.0.0", docker_version="2024.01.1")
        assert release_version_for(group, entry).git_tag == "v2024.01.1"

    def test_null_version(self) -> None:
        assert release_version_for(FIXED, VersionDataEntry(new_version=None)) is None


class TestCreateGitTagValues:
    def test_fixed_group_single_tag(self) -> None:
        tags = create_git_tag_values([FIXED], {"core": ["a", "b"]}, _data(a="2.0.0", b="2.0.0"))
        assert tags == ["v2.0.0"]

    def test_independent_tags_skip_unreleased(self) -> None:
        tags = create_git_tag_values(
            [INDEPENDENT], {"plugins": ["x", "y"]}, _data(x="1.1.0", y=None)
        )
        assert tags == ["x@1.1.0"]

    def test_fixed_group_with_project_pattern(self) -> None:
        group = FIXED.model_copy(update={"release_tag_pattern": "{project_name}/v{version}"})
        tags = create_git_tag_values([group], {"core": ["a", "b"]}, _data(a="2.0.0", b="2.0.0"))
        assert tags == ["a/v2.0.0", "b/v2.0.0"]


class TestHandleDuplicateGitTags:
    def test_duplicates_raise(self) -> None:
        with pytest.raises(DuplicateTagError) as exc_info:
            handle_duplicate_git_tags(["v1.0.0", "x@1.0.0", "v1.0.0"])
        assert exc_info.value.duplicates == ["v1.0.0"]

    def test_unique_tags_pass(self) -> None:
        handle_duplicate_git_tags(["v1.0.0", "x@1.0.0"])

    def test_independent_pattern_without_project_name_collides(self) -> None:
        group = INDEPENDENT.model_copy(update={"release_tag_pattern": "v{version}"})
        tags = create_git_tag_values([group], {"plugins": ["x", "y"]}, _data(x="1.0.0", y="1.0.0"))
        with pytest.raises(DuplicateTagError):
            handle_duplicate_git_tags(tags)


class TestCreateCommitMessageValues:
    def test_single_fixed_group_interpolates(self) -> None:
        messages = create_commit_message_values(
            [FIXED], {"core": ["a", "b"]}, _data(a="2.0.0", b="2.0.0"), MESSAGE
        )
        assert messages == ["chore(release): publish 2.0.0"]

    def test_single_project_interpolates_name(self) -> None:
        messages = create_commit_message_values(
            [INDEPENDENT], {"plugins": ["x"]}, _data(x="1.1.0"), "release {project_name} {version}"
        )
        assert messages == ["release x 1.1.0"]

    def test_multiple_units_list_tags(self) -> None:
        messages = create_commit_message_values(
            [FIXED, INDEPENDENT],
            {"core": ["a", "b"], "plugins": ["x", "y"]},
            _data(a="2.0.0", b="2.0.0", x="1.1.0", y=None),
            MESSAGE,
        )
        assert messages == [
            "chore(release): publish",
            "- release-group: v2.0.0",
            "- project: x@1.1.0",
        ]


class TestCheckRecreateHistoricalRelease:
    def test_auto_commit_on_old_ref_raises(self) -> None:
        with pytest.raises(RecreateHistoricalReleaseError):
            check_recreate_historical_release(True, "head", "old")

    def test_allowed_combinations(self) -> None:
        check_recreate_historical_release(True, "head", "head")
        check_recreate_historical_release(False, "head", "old")


@patch("lazy_changelog.git_ops.step")
class TestApplyChanges:
    @pytest.fixture
    def staged(self, tmp_path: Path) -> StagedChangeSet:
        staged = StagedChangeSet(tmp_path)
        staged.write("CHANGELOG.md", "## 1.0.0")
        return staged

    @patch("lazy_changelog.git_ops.get_commit_hash")
    @patch("lazy_changelog.git_ops.git_push")
    @patch("lazy_changelog.git_ops.git_tag")
    @patch("lazy_changelog.git_ops.git_commit")
    @patch("lazy_changelog.git_ops.git_add")
    def test_order_write_delete_commit_tag_push(
        self,
        mock_add: MagicMock,
        mock_commit: MagicMock,
        mock_tag: MagicMock,
        mock_push: MagicMock,
        mock_hash: MagicMock,
        mock_step: MagicMock,
        staged: StagedChangeSet,
        tmp_path: Path,
    ) -> None:
        plan_file = tmp_path / ".lazy-changelog" / "version-plans" / "p.md"
        plan_file.parent.mkdir(parents=True)
        plan_file.write_text("---\ncore: patch\n---\nx")
        group = FIXED.model_copy(
            update={
                "resolved_version_plans": [
                    GroupVersionPlan(
                        message="x",
                        group_version_bump="patch",
                        relative_path=".lazy-changelog/version-plans/p.md",
                    )
                ]
            }
        )
        manager = MagicMock()
        manager.attach_mock(mock_add, "add")
        manager.attach_mock(mock_commit, "commit")
        manager.attach_mock(mock_tag, "tag")
        manager.attach_mock(mock_push, "push")
        mock_hash.return_value = "new-head"
        options = ApplyOptions(commit=True, tag=True, push=True)

        latest = apply_changes(options, staged, "old-head", [], ["msg"], ["v1.0.0"], [group])

        assert latest == "new-head"
        assert (tmp_path / "CHANGELOG.md").read_text() == "## 1.0.0"
        assert not plan_file.exists()
        assert [c[0] for c in manager.mock_calls] == ["add", "commit", "tag", "push"]
        mock_add.assert_called_once_with(
            ["CHANGELOG.md"],
            [".lazy-changelog/version-plans/p.md"],
            dry_run=False,
            verbose=False,
        )
        mock_push.assert_called_once_with(
            "origin", ["HEAD", "refs/tags/v1.0.0"], [], dry_run=False, verbose=False
        )

    @patch("lazy_changelog.git_ops.git_commit")
    @patch("lazy_changelog.git_ops.git_add")
    def test_stage_only(
        self,
        mock_add: MagicMock,
        mock_commit: MagicMock,
        mock_step: MagicMock,
        staged: StagedChangeSet,
    ) -> None:
        latest = apply_changes(
            ApplyOptions(stage_changes=True, delete_version_plans=False),
            staged,
            "sha",
            [],
            ["msg"],
            [],
            [FIXED],
        )
        assert latest == "sha"
        mock_add.assert_called_once()
        mock_commit.assert_not_called()

    @patch("lazy_changelog.git_ops.git_tag")
    def test_dry_run_writes_nothing(
        self,
        mock_tag: MagicMock,
        mock_step: MagicMock,
        staged: StagedChangeSet,
        tmp_path: Path,
    ) -> None:
        apply_changes(
            ApplyOptions(dry_run=True, tag=True), staged, "sha", [], ["msg"], ["v1.0.0"], [FIXED]
        )
        assert not (tmp_path / "CHANGELOG.md").exists()
        mock_tag.assert_called_once_with("v1.0.0", "", [], dry_run=True, verbose=False)

    def test_no_changes_and_no_tasks(self, mock_step: MagicMock, tmp_path: Path) -> None:
        latest = apply_changes(
            ApplyOptions(), StagedChangeSet(tmp_path), "sha", [], ["msg"], [], [FIXED]
        )
        assert latest is None

    @patch("lazy_changelog.git_ops.is_ci")
    def test_no_changes_in_ci_skips_releases(
        self, mock_ci: MagicMock, mock_step: MagicMock, tmp_path: Path
    ) -> None:
        mock_ci.return_value = True
        latest = apply_changes(
            ApplyOptions(), StagedChangeSet(tmp_path), "sha", [MagicMock()], ["msg"], [], [FIXED],
            provider_name="GitHub",
        )
        assert latest is None

    @patch("lazy_changelog.git_ops.prompt_for_remote_release")
    @patch("lazy_changelog.git_ops.is_ci")
    def test_no_changes_prompts_interactively(
        self,
        mock_ci: MagicMock,
        mock_prompt: MagicMock,
        mock_step: MagicMock,
        tmp_path: Path,
    ) -> None:
        mock_ci.return_value = False
        mock_prompt.return_value = True
        latest = apply_changes(
            ApplyOptions(), StagedChangeSet(tmp_path), "sha", [MagicMock()], ["msg"], [], [FIXED],
            provider_name="GitHub",
        )
        assert latest == "sha"
        mock_prompt.assert_called_once_with("GitHub")

    @patch("lazy_changelog.git_ops.git_add")
    @patch("lazy_changelog.git_ops.git_commit")
    @patch("lazy_changelog.git_ops.get_commit_hash")
    def test_dry_run_commit_keeps_to_sha(
        self,
        mock_hash: MagicMock,
        mock_commit: MagicMock,
        mock_add: MagicMock,
        mock_step: MagicMock,
        staged: StagedChangeSet,
    ) -> None:
        latest = apply_changes(
            ApplyOptions(dry_run=True, commit=True), staged, "sha", [], ["msg"], [], [FIXED]
        )
        assert latest == "sha"
        mock_hash.assert_not_called()
        assert mock_commit.call_args == call(["msg"], [], dry_run=True, verbose=False)

    @patch("lazy_changelog.git_ops.git_commit")
    @patch("lazy_changelog.git_ops.git_tag")
    @patch("lazy_changelog.git_ops.is_ci")
    def test_file_less_changelogs_still_tag(
        self,
        mock_ci: MagicMock,
        mock_tag: MagicMock,
        mock_commit: MagicMock,
        mock_step: MagicMock,
        tmp_path: Path,
    ) -> None:
        """Changelogs rendered only for remote releases write nothing but are released."""
        mock_ci.return_value = True
        latest = apply_changes(
            ApplyOptions(commit=True, tag=True),
            StagedChangeSet(tmp_path),
            "sha",
            [MagicMock()],
            ["msg"],
            ["v1.0.0"],
            [FIXED],
            provider_name="GitHub",
            changelog_files_enabled=False,
        )
        assert latest == "sha"
        mock_tag.assert_called_once_with("v1.0.0", "", [], dry_run=False, verbose=False)
        mock_commit.assert_not_called()

    def test_dry_run_reports_plan_removal(
        self,
        mock_step: MagicMock,
        staged: StagedChangeSet,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        plan_file = tmp_path / ".lazy-changelog" / "version-plans" / "p.md"
        plan_file.parent.mkdir(parents=True)
        plan_file.write_text("---\ncore: patch\n---\nx")
        group = FIXED.model_copy(
            update={
                "resolved_version_plans": [
                    GroupVersionPlan(
                        message="x",
                        group_version_bump="patch",
                        relative_path=".lazy-changelog/version-plans/p.md",
                    )
                ]
            }
        )

        apply_changes(ApplyOptions(dry_run=True), staged, "sha", [], ["msg"], [], [group])

        assert plan_file.exists()
        out = capsys.readouterr().out
        assert "Would remove .lazy-changelog/version-plans/p.md, but --dry-run was set" in out


class TestPromptForRemoteRelease:
    @patch("lazy_changelog.git_ops.click.confirm")
    def test_answer_is_returned(self, mock_confirm: MagicMock) -> None:
        mock_confirm.return_value = True
        assert prompt_for_remote_release("GitHub") is True
        mock_confirm.assert_called_once_with(
            "Do you want to create a GitHub release anyway?", default=False
        )

    @patch("lazy_changelog.git_ops.click.confirm")
    def test_abort_declines(self, mock_confirm: MagicMock) -> None:
        mock_confirm.side_effect = click.exceptions.Abort()
        assert prompt_for_remote_release("GitLab") is False
