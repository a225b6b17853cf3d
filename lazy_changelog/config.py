"""Release configuration.

Reads [tool.lazy-changelog] from the workspace root pyproject.toml and
validates it with Pydantic, then resolves it against the project graph into
concrete release groups.
"""

from __future__ import annotations

import fnmatch
from pathlib import Path
from typing import Any, Literal, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from .exceptions import ConfigError
from .models import ProjectInfo, VersionPlan
from .toml import get_tool_config, load_pyproject

DEFAULT_GROUP_NAME = "__default__"
DEFAULT_COMMIT_MESSAGE = "chore(release): publish {version}"

RemoteReleaseProvider = Literal["github", "gitlab"]


class ChangelogTypeConfig(BaseModel):
    title: str = ""
    hidden: bool = False


class CommitTypeConfig(BaseModel):
    semver_bump: Literal["major", "minor", "patch", "none"] = "patch"
    changelog: ChangelogTypeConfig = Field(default_factory=ChangelogTypeConfig)


DEFAULT_COMMIT_TYPES: dict[str, dict[str, Any]] = {
    "feat": {"semver_bump": "minor", "changelog": {"title": "✨ Features"}},
    "fix": {"semver_bump": "patch", "changelog": {"title": "🐛 Bug Fixes"}},
    "perf": {"semver_bump": "patch", "changelog": {"title": "⚡ Performance"}},
    "refactor": {"semver_bump": "patch", "changelog": {"title": "♻️ Refactoring"}},
    "docs": {"semver_bump": "none", "changelog": {"title": "📚 Documentation"}},
    "types": {"semver_bump": "patch", "changelog": {"title": "🏷️ Types"}},
    "build": {"semver_bump": "none", "changelog": {"title": "📦 Build"}},
    "revert": {"semver_bump": "patch", "changelog": {"title": "⏪ Revert"}},
    "chore": {"semver_bump": "none", "changelog": {"title": "🔨 Chores", "hidden": True}},
    "test": {"semver_bump": "none", "changelog": {"title": "🧪 Tests", "hidden": True}},
    "style": {"semver_bump": "none", "changelog": {"title": "💄 Style", "hidden": True}},
    "ci": {"semver_bump": "none", "changelog": {"title": "🔧 CI", "hidden": True}},
}


class ConventionalCommitsConfig(BaseModel):
    """The commit type taxonomy.

    User entries are merged over the defaults. A type set to ``false`` is
    hidden from changelogs; a table overrides individual fields.
    """

    types: dict[str, CommitTypeConfig] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _merge_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        merged: dict[str, Any] = {
            name: {**value, "changelog": dict(value["changelog"])}
            for name, value in DEFAULT_COMMIT_TYPES.items()
        }
        for name, value in (data.get("types") or {}).items():
            base = merged.get(name, {"changelog": {"title": name}})
            if value is False:
                base["changelog"]["hidden"] = True
            elif value is True:
                base["changelog"]["hidden"] = False
            elif isinstance(value, dict):
                base = {
                    **base,
                    **value,
                    "changelog": {**base.get("changelog", {}), **value.get("changelog", {})},
                }
            else:
                raise ValueError(f"commit type {name!r} must be a table or a boolean")
            merged[name] = base
        return {**data, "types": merged}

    def is_visible(self, commit_type: str) -> bool:
        """Unknown types are never visible."""
        type_config = self.types.get(commit_type)
        return type_config is not None and not type_config.changelog.hidden


class ChangelogPolicy(BaseModel):
    """Changelog settings for one scope (the workspace or a release group).

    Attributes:
        file: Path template relative to the workspace root. Supports
            {project_name}, {project_root} and {workspace_root}. An empty
            string renders the changelog (for remote releases) without
            writing a file.
        entry_when_no_changes: True for the default note, False to render
            nothing, or a custom template.
        create_release: Remote platform to publish a release on, or False.
    """

    file: str = "CHANGELOG.md"
    renderer: str = "default"
    entry_when_no_changes: Union[bool, str] = True
    create_release: Union[Literal[False], RemoteReleaseProvider] = False
    render_options: dict[str, Any] = Field(default_factory=dict)


DEFAULT_PROJECT_CHANGELOG_FILE = "{project_root}/CHANGELOG.md"


class ChangelogConfig(BaseModel):
    workspace_changelog: Union[bool, ChangelogPolicy] = True
    project_changelogs: Union[bool, ChangelogPolicy] = False
    automatic_from_ref: bool = False

    @model_validator(mode="after")
    def _expand_true(self) -> ChangelogConfig:
        if self.workspace_changelog is True:
            self.workspace_changelog = ChangelogPolicy()
        if self.project_changelogs is True:
            self.project_changelogs = ChangelogPolicy(file=DEFAULT_PROJECT_CHANGELOG_FILE)
        return self


class GitConfig(BaseModel):
    commit: bool = False
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    commit_args: list[str] = Field(default_factory=list)
    tag: bool = False
    tag_message: str = ""
    tag_args: list[str] = Field(default_factory=list)
    stage_changes: bool = False
    push: bool = False
    push_args: list[str] = Field(default_factory=list)
    remote: str = "origin"


class GroupConfig(BaseModel):
    """A [tool.lazy-changelog.groups.<name>] table.

    projects accepts exact project names or fnmatch globs. Unset fields fall
    back to the top-level settings.
    """

    projects: list[str]
    projects_relationship: Literal["fixed", "independent"] = "fixed"
    release_tag_pattern: str | None = None
    changelog: Union[bool, ChangelogPolicy, None] = None
    version_plans: bool | None = None
    prefer_docker_version: bool = False


class ReleaseConfig(BaseModel):
    """The validated [tool.lazy-changelog] table."""

    release_tag_pattern: str | None = None
    projects_relationship: Literal["fixed", "independent"] = "fixed"
    version_plans: bool = False
    changelog: ChangelogConfig = Field(default_factory=ChangelogConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    groups: dict[str, GroupConfig] = Field(default_factory=dict)
    conventional_commits: ConventionalCommitsConfig = Field(
        default_factory=lambda: ConventionalCommitsConfig.model_validate({})
    )

    @property
    def workspace_release_tag_pattern(self) -> str:
        return self.release_tag_pattern or "v{version}"


class ReleaseGroup(BaseModel):
    """A release group resolved against the project graph."""

    name: str
    projects: list[str]
    projects_relationship: Literal["fixed", "independent"] = "fixed"
    release_tag_pattern: str = "v{version}"
    changelog: Union[Literal[False], ChangelogPolicy] = False
    version_plans: bool = False
    prefer_docker_version: bool = False
    resolved_version_plans: list[VersionPlan] | None = None


def load_release_config(root: Path | None = None) -> ReleaseConfig:
    """Load and validate [tool.lazy-changelog] from the root pyproject.toml.

    Raises:
        ConfigError: If the table does not validate.
    """
    root = root or Path.cwd()
    raw = get_tool_config(load_pyproject(root / "pyproject.toml"))
    try:
        return ReleaseConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid [tool.lazy-changelog] configuration:\n{e}") from e


def _match_projects(patterns: list[str], names: list[str]) -> list[str]:
    matched: list[str] = []
    for pattern in patterns:
        for name in names:
            if fnmatch.fnmatchcase(name, pattern) and name not in matched:
                matched.append(name)
    return matched


def _default_tag_pattern(relationship: str, named_groups: int) -> str:
    if relationship == "independent":
        return "{project_name}@{version}"
    if named_groups > 1:
        return "{release_group_name}-v{version}"
    return "v{version}"


def _group_changelog(
    group_setting: Union[bool, ChangelogPolicy, None], config: ReleaseConfig
) -> Union[Literal[False], ChangelogPolicy]:
    setting = config.changelog.project_changelogs if group_setting is None else group_setting
    if setting is True:
        return ChangelogPolicy(file=DEFAULT_PROJECT_CHANGELOG_FILE)
    if setting is False:
        return False
    return setting


def resolve_release_groups(
    config: ReleaseConfig, projects: dict[str, ProjectInfo]
) -> list[ReleaseGroup]:
    """Turn configured groups into ReleaseGroups over real project names.

    With no groups configured, every project belongs to one implicit group.

    Raises:
        ConfigError: If a group matches no projects or a project is claimed
            by more than one group.
    """
    names = list(projects)
    if not config.groups:
        group_configs = {
            DEFAULT_GROUP_NAME: GroupConfig(
                projects=names, projects_relationship=config.projects_relationship
            )
        }
    else:
        group_configs = config.groups

    groups: list[ReleaseGroup] = []
    owner: dict[str, str] = {}
    for group_name, group_config in group_configs.items():
        members = _match_projects(group_config.projects, names)
        if not members:
            raise ConfigError(
                f'Release group "{group_name}" matches no projects: {group_config.projects}'
            )
        for member in members:
            if member in owner:
                raise ConfigError(
                    f'Project "{member}" is in both release groups "{owner[member]}" and "{group_name}"'
                )
            owner[member] = group_name

        pattern = (
            group_config.release_tag_pattern
            or config.release_tag_pattern
            or _default_tag_pattern(group_config.projects_relationship, len(config.groups))
        )
        groups.append(
            ReleaseGroup(
                name=group_name,
                projects=members,
                projects_relationship=group_config.projects_relationship,
                release_tag_pattern=pattern,
                changelog=_group_changelog(group_config.changelog, config),
                version_plans=(
                    config.version_plans
                    if group_config.version_plans is None
                    else group_config.version_plans
                ),
                prefer_docker_version=group_config.prefer_docker_version,
            )
        )
    return groups
