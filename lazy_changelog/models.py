"""Data models for lazy-changelog.

These Pydantic models represent the core data structures passed between the
extractor, the changelog assembler and the git coordinator.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .versions import is_prerelease

# Sentinel for a change that affects every project in the workspace.
ALL_PROJECTS = "*"

PostReleaseTask = Callable[[str], None]


def interpolate(template: str, values: dict[str, str]) -> str:
    """Replace ``{key}`` placeholders in template with values.

    Unknown placeholders are left untouched so literal braces survive.

    Examples:
        interpolate("{project_name}/v{version}", {"version": "1.0.0", "project_name": "a"})
            → "a/v1.0.0"
    """
    for key, value in values.items():
        template = template.replace("{" + key + "}", value)
    return template


class ProjectInfo(BaseModel):
    """Metadata for a single project in the workspace.

    Attributes:
        path: Relative path from workspace root to the project directory.
        version: Current version string from pyproject.toml.
        deps: List of internal (workspace) dependency names.
    """

    path: str
    version: str
    deps: list[str] = Field(default_factory=list)


class Author(BaseModel):
    name: str
    email: str = ""


class Reference(BaseModel):
    """A link-worthy reference found in a commit message."""

    type: Literal["pull-request", "issue", "hash"]
    value: str


class RawGitCommit(BaseModel):
    """A commit as read from ``git log``, before conventional parsing."""

    message: str
    body: str = ""
    short_hash: str
    author: Author
    affected_files: list[str] = Field(default_factory=list)


class GitCommit(BaseModel):
    """A commit parsed as a conventional commit.

    type is the empty string for messages that do not follow the
    ``type(scope)!: description`` convention.
    """

    raw: RawGitCommit
    type: str = ""
    scope: str = ""
    description: str
    body: str = ""
    is_breaking: bool = False
    references: list[Reference] = Field(default_factory=list)
    authors: list[Author] = Field(default_factory=list)
    reverted_hashes: list[str] = Field(default_factory=list)

    @property
    def short_hash(self) -> str:
        return self.raw.short_hash

    @property
    def affected_files(self) -> list[str]:
        return self.raw.affected_files


class Change(BaseModel):
    """One entry of a changelog, from a commit or a version plan.

    Attributes:
        type: Conventional commit type (feat, fix, ...).
        affected_projects: Names of the projects the change belongs to, or
            ALL_PROJECTS when it touches files outside every project.
    """

    type: str
    scope: str = ""
    description: str
    body: str = ""
    is_breaking: bool = False
    affected_projects: Union[list[str], Literal["*"]] = ALL_PROJECTS
    references: list[Reference] = Field(default_factory=list)
    authors: list[Author] = Field(default_factory=list)
    short_hash: str | None = None
    reverted_hashes: list[str] = Field(default_factory=list)

    def affects(self, project: str) -> bool:
        return self.affected_projects == ALL_PROJECTS or project in self.affected_projects


class DependencyBump(BaseModel):
    """A dependency of the changelog's project was released at new_version."""

    dependency_name: str
    new_version: str


class VersionPlanBase(BaseModel):
    """Fields shared by every version plan.

    Attributes:
        message: Human-authored description, used as the change description.
        commit: The commit that added the plan file, if it has been committed.
        absolute_path / relative_path: Location of the plan file, deleted once
            the plan has been folded into every changelog it affects.
    """

    message: str
    commit: RawGitCommit | None = None
    absolute_path: str = ""
    relative_path: str = ""


class GroupVersionPlan(VersionPlanBase):
    group_version_bump: str
    triggered_by_projects: list[str] | None = None


class ProjectsVersionPlan(VersionPlanBase):
    project_version_bumps: dict[str, str]


VersionPlan = Union[GroupVersionPlan, ProjectsVersionPlan]


class VersionDataEntry(BaseModel):
    """Resolved version information for one project.

    new_version is None when no change was detected for the project.
    """

    new_version: str | None
    current_version: str = ""
    dependent_projects: list[str] = Field(default_factory=list)
    docker_version: str | None = None


VersionData = dict[str, VersionDataEntry]


class ReleaseVersion(BaseModel):
    """A version string together with the git tag it will be released under."""

    model_config = ConfigDict(frozen=True)

    raw_version: str
    git_tag: str

    @classmethod
    def create(
        cls,
        version: str,
        release_tag_pattern: str,
        project_name: str = "",
        release_group_name: str = "",
    ) -> ReleaseVersion:
        tag = interpolate(
            release_tag_pattern,
            {
                "version": version,
                "project_name": project_name,
                "release_group_name": release_group_name,
            },
        )
        return cls(raw_version=version, git_tag=tag)

    @property
    def is_prerelease(self) -> bool:
        return is_prerelease(self.raw_version)


class ChangelogEntry(BaseModel):
    """The outcome of generating one changelog."""

    release_version: ReleaseVersion
    contents: str
    post_release_task: PostReleaseTask | None = None


class ChangelogResult(BaseModel):
    """Everything a changelog run produced.

    Attributes:
        failed_projects: Independent projects whose commit range could not be
            resolved, mapped to the error message. They get no changelog and
            no tag.
        remote_release_providers: Names of the remote platforms used in this
            run, in first-use order.
    """

    workspace_changelog: ChangelogEntry | None = None
    project_changelogs: dict[str, ChangelogEntry] = Field(default_factory=dict)
    failed_projects: dict[str, str] = Field(default_factory=dict)
    remote_release_providers: list[str] = Field(default_factory=list)
