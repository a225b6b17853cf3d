"""Changelog run: versions → changes → changelog files → git → releases.

This module orchestrates one lazy-changelog run:
1. Load the release config and the project graph
2. Resolve release groups, attach version plans, apply --projects/--groups
3. Resolve the version of every selected project
4. Compute commit message and tags (duplicates fail before any write)
5. Generate the workspace changelog
6. Generate project changelogs, group by group
7. Flush the staged files and run the git sequence once
8. Publish remote releases against the final commit

Every changelog write goes through one StagedChangeSet and every remote
release is a deferred task, so nothing is written or published until every
changelog has been assembled.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import click

from .config import (
    ChangelogPolicy,
    ConventionalCommitsConfig,
    ReleaseConfig,
    ReleaseGroup,
    load_release_config,
    resolve_release_groups,
)
from .dependency_bumps import compute_dependency_bumps
from .dispatch import run_post_release_tasks
from .exceptions import GitError, LazyChangelogError, MissingFromRefError, VersionDataMismatchError
from .extract import (
    ExtractionContext,
    extract_group_changes,
    extract_project_changes,
    extract_workspace_changes,
)
from .filters import filter_release_groups
from .git import get_commit_hash
from .git_ops import (
    ApplyOptions,
    apply_changes,
    check_recreate_historical_release,
    create_commit_message_values,
    create_git_tag_values,
    handle_duplicate_git_tags,
    release_version_for,
)
from .graph import discover_projects, reverse_deps
from .markdown import merge_changelog
from .models import (
    Change,
    ChangelogEntry,
    ChangelogResult,
    DependencyBump,
    PostReleaseTask,
    ProjectInfo,
    ReleaseVersion,
    VersionData,
    VersionDataEntry,
    interpolate,
)
from .remote_release import (
    RemoteReleaseClient,
    RemoteReleaseProviders,
    create_remote_release_client,
)
from .renderer import resolve_changelog_renderer
from .shell import step, warn
from .staging import StagedChangeSet
from .version_plans import read_raw_version_plans, set_resolved_version_plans_on_groups
from .versions import extract_preid

InteractiveScope = Literal["all", "workspace", "projects"]


@dataclass
class ChangelogOptions:
    """Inputs of one changelog run.

    version applies to every selected project; version_data gives each
    project its own entry and wins when both are set. The git_* fields and
    stage_changes override [tool.lazy-changelog.git] when not None.
    """

    version: str | None = None
    version_data: VersionData | None = None
    from_ref: str | None = None
    to_ref: str = "HEAD"
    projects: list[str] | None = None
    groups: list[str] | None = None
    first_release: bool = False
    interactive: InteractiveScope | None = None
    dry_run: bool = False
    verbose: bool = False
    git_commit: bool | None = None
    git_commit_message: str | None = None
    git_tag: bool | None = None
    stage_changes: bool | None = None
    git_push: bool | None = None
    git_remote: str | None = None
    create_release: bool = True
    delete_version_plans: bool = True


def resolve_changelog_versions(
    options: ChangelogOptions,
    group_projects: dict[str, list[str]],
    projects: dict[str, ProjectInfo],
) -> VersionData:
    """Version data for every selected project.

    Raises:
        VersionDataMismatchError: version_data lacks a selected project.
        LazyChangelogError: Neither version nor version_data was given.
    """
    selected = [p for members in group_projects.values() for p in members]
    dependents = reverse_deps(projects)

    if options.version_data is not None:
        version_data: VersionData = {}
        for project in selected:
            if project not in options.version_data:
                raise VersionDataMismatchError(project)
            entry = options.version_data[project]
            if not entry.dependent_projects:
                entry = entry.model_copy(update={"dependent_projects": dependents.get(project, [])})
            version_data[project] = entry
        return version_data

    if options.version is None:
        raise LazyChangelogError("Either a version or version data must be provided")
    return {
        project: VersionDataEntry(
            new_version=options.version,
            current_version=projects[project].version if project in projects else "",
            dependent_projects=dependents.get(project, []),
        )
        for project in selected
    }


def resolve_apply_options(options: ChangelogOptions, config: ReleaseConfig) -> ApplyOptions:
    """Merge CLI git overrides over [tool.lazy-changelog.git]."""
    git_config = config.git

    def pick(override: bool | None, configured: bool) -> bool:
        return configured if override is None else override

    return ApplyOptions(
        dry_run=options.dry_run,
        verbose=options.verbose,
        commit=pick(options.git_commit, git_config.commit),
        commit_args=list(git_config.commit_args),
        stage_changes=pick(options.stage_changes, git_config.stage_changes),
        tag=pick(options.git_tag, git_config.tag),
        tag_message=git_config.tag_message,
        tag_args=list(git_config.tag_args),
        push=pick(options.git_push, git_config.push),
        push_args=list(git_config.push_args),
        remote=options.git_remote or git_config.remote,
        delete_version_plans=options.delete_version_plans,
    )


def workspace_changelog_eligible(release_groups: list[ReleaseGroup]) -> str | None:
    """Why a workspace changelog cannot be generated, or None if it can."""
    if len(release_groups) > 1:
        return "there are multiple release groups"
    if release_groups and release_groups[0].projects_relationship == "independent":
        return "the projects are versioned independently"
    return None


def changelog_files_enabled(
    workspace_policy: ChangelogPolicy | Literal[False], release_groups: list[ReleaseGroup]
) -> bool:
    """True when some scope writes a changelog file rather than only rendering one."""
    if workspace_policy is not False and workspace_policy.file:
        return True
    return any(g.changelog is not False and g.changelog.file for g in release_groups)


def first_available_preid(
version_data: VersionData) -> str | None:
    """The preid used for shared (workspace and fixed group) tag lookups.

    An approximation: the first project with a prerelease version decides.
    """
    for entry in version_data.values():
        if entry.new_version:
            preid = extract_preid(entry.new_version)
            if preid:
                return preid
    return None


def resolve_changelog_path(template: str, project_name: str = "", project_root: str = "") -> str:
    """Interpolate a changelog file template into a workspace-relative path.

    Examples:
        "{project_root}/CHANGELOG.md", project_root "packages/a" → "packages/a/CHANGELOG.md"
        "{workspace_root}/CHANGELOG.md" → "CHANGELOG.md"
    """
    if not template:
        return ""
    path = interpolate(
        template,
        {"project_name": project_name, "project_root": project_root, "workspace_root": ""},
    )
    return posixpath.normpath(path.lstrip("/"))


def shares_one_document(policy: ChangelogPolicy) -> bool:
    """True when every project of a fixed group writes the same file."""
    return "{project_name}" not in policy.file and "{project_root}" not in policy.file


class ChangelogRun:
    """Run-scoped state: the staged files, deferred tasks and remote clients."""

    def __init__(
        self,
        options: ChangelogOptions,
        root: Path,
        remote: str,
        conventional_commits: ConventionalCommitsConfig,
    ) -> None:
        self.options = options
        self.conventional_commits = conventional_commits
        self.root = root
        self.remote = remote
        self.staged = StagedChangeSet(root)
        self.post_release_tasks: list[PostReleaseTask] = []
        self.providers = RemoteReleaseProviders()
        self._clients: dict[str, RemoteReleaseClient] = {}
        self._released_tags: set[str] = set()

    def client_for(self, policy: ChangelogPolicy) -> RemoteReleaseClient:
        """The remote client for a scope, built at most once per provider."""
        key = policy.create_release or ""
        if key not in self._clients:
            self._clients[key] = create_remote_release_client(policy.create_release, self.remote)
        return self._clients[key]

    def should_edit(self, scope: Literal["workspace", "projects"]) -> bool:
        return self.options.interactive in ("all", scope)

    def generate(
        self,
        policy: ChangelogPolicy,
        changes: list[Change],
        release_version: ReleaseVersion,
        *,
        project: str | None = None,
        project_root: str = "",
        dependency_bumps: list[DependencyBump] | None = None,
        is_version_plans: bool = False,
        edit: bool = False,
    ) -> ChangelogEntry | None:
        """Render, merge, and stage one changelog entry.

        Returns None when the renderer produced nothing to write.
        """
        project_name = project or ""
        entry_when_no_changes = policy.entry_when_no_changes
        if isinstance(entry_when_no_changes, str):
            entry_when_no_changes = interpolate(
                entry_when_no_changes,
                {"project_name": project_name, "version": release_version.raw_version},
            )

        client = self.client_for(policy)
        renderer_class = resolve_changelog_renderer(policy.renderer)
        contents = renderer_class(
            changes=changes,
            version=release_version.raw_version,
            project=project,
            entry_when_no_changes=entry_when_no_changes,
            conventional_commits=self.conventional_commits,
            remote_release_client=client,
            dependency_bumps=dependency_bumps,
            render_options=policy.render_options,
            is_version_plans=is_version_plans,
        ).render()

        if edit:
            contents = click.edit(contents, extension=".md", require_save=False) or ""
        if not contents.strip():
            return None

        path = resolve_changelog_path(policy.file, project_name, project_root)
        if path:
            verb = "Previewing" if self.options.dry_run else "Generating"
            print(f"  {verb} an entry in {path} for {release_version.git_tag}")
            merged = merge_changelog(self.staged.read(path) or "", contents, release_version.raw_version)
            self.staged.write(path, merged)

        task: PostReleaseTask | None = None
        if (
            policy.create_release
            and self.options.create_release
            and release_version.git_tag not in self._released_tags
        ):
            self.providers.add(client)
            task = client.create_post_release_task(release_version, contents, self.options.dry_run)
            self.post_release_tasks.append(task)
            self._released_tags.add(release_version.git_tag)

        return ChangelogEntry(release_version=release_version, contents=contents, post_release_task=task)


def _drop_tag(tags: list[str], commit_messages: list[str], tag: str) -> None:
    if tag in tags:
        tags.remove(tag)
    for line in [m for m in commit_messages[1:] if m.endswith(f": {tag}")]:
        commit_messages.remove(line)


def release_changelog(
    options: ChangelogOptions,
    config: ReleaseConfig | None = None,
    projects: dict[str, ProjectInfo] | None = None,
    root: Path | None = None,
) -> ChangelogResult:
    """Generate changelogs, apply git changes, and publish remote releases.

    Args:
        options: Run inputs (versions, refs, filters, CLI overrides).
        config: Release config; read from pyproject.toml when omitted.
        projects: Project graph; discovered from the uv workspace when omitted.
        root: Workspace root, the current directory by default.

    Raises:
        LazyChangelogError: Any configuration, extraction or git failure.
            Independent project extraction failures are reported on the
            result instead.
    """
    root = root or Path.cwd()
    config = config or load_release_config(root)
    projects = projects if projects is not None else discover_projects(root)

    release_groups = resolve_release_groups(config, projects)
    if any(g.version_plans for g in release_groups):
        set_resolved_version_plans_on_groups(
            read_raw_version_plans(root), release_groups, list(projects)
        )

    workspace_policy = config.changelog.workspace_changelog
    if workspace_policy is False and all(g.changelog is False for g in release_groups):
        warn(
            "Changelogs are disabled",
            "No changelog entries will be generated. Enable "
            "[tool.lazy-changelog.changelog] workspace_changelog or project_changelogs.",
        )
        return ChangelogResult()

    selected_groups, group_projects, note = filter_release_groups(
        release_groups, options.projects, options.groups
    )
    if note:
        print(note)

    version_data = resolve_changelog_versions(options, group_projects, projects)

    to_sha = get_commit_hash(options.to_ref)
    head_sha = get_commit_hash("HEAD")
    if options.verbose:
        print(f"  Resolved --to {options.to_ref} to {to_sha}")

    apply_options = resolve_apply_options(options, config)
    check_recreate_historical_release(apply_options.commit, head_sha, to_sha)

    commit_messages = create_commit_message_values(
        selected_groups,
        group_projects,
        version_data,
        options.git_commit_message or config.git.commit_message,
    )
    tags = create_git_tag_values(selected_groups, group_projects, version_data)
    handle_duplicate_git_tags(tags)

    ctx = ExtractionContext(
        to_sha=to_sha,
        projects=projects,
        conventional_commits=config.conventional_commits,
        from_ref=options.from_ref,
        automatic_from_ref=config.changelog.automatic_from_ref or options.first_release,
        shared_preid=first_available_preid(version_data),
        project_preids={
            p: extract_preid(e.new_version) if e.new_version else None
            for p, e in version_data.items()
        },
        verbose=options.verbose,
    )
    run = ChangelogRun(options, root, apply_options.remote, config.conventional_commits)
    result = ChangelogResult()

    if workspace_policy is not False:
        reason = workspace_changelog_eligible(release_groups)
        if reason:
            warn(
                "Workspace changelog is disabled",
                f"A workspace changelog cannot be generated because {reason}. "
                "Set workspace_changelog = false to silence this warning.",
            )
            workspace_policy = False

    if workspace_policy is not False and selected_groups:
        group = selected_groups[0]
        first_project = group_projects[group.name][0]
        version = options.version or version_data[first_project].new_version
        if version is not None:
            step("Generating workspace changelog")
            release_version = ReleaseVersion.create(
                version, group.release_tag_pattern, release_group_name=group.name
            )
            changes = extract_workspace_changes(ctx, selected_groups, group.release_tag_pattern)
            result.workspace_changelog = run.generate(
                workspace_policy,
                changes,
                release_version,
                is_version_plans=group.resolved_version_plans is not None,
                edit=run.should_edit("workspace"),
            )

    dependency_bumps = compute_dependency_bumps(selected_groups, version_data)

    for group in selected_groups:
        if group.changelog is False:
            continue
        policy = group.changelog
        members = group_projects[group.name]
        is_version_plans = group.resolved_version_plans is not None
        edit = run.should_edit("projects")
        step(f'Generating changelogs for release group "{group.name}"')

        if group.projects_relationship == "independent":
            for project in members:
                release_version = release_version_for(group, version_data[project], project)
                if release_version is None:
                    continue
                try:
                    changes = extract_project_changes(ctx, group, project)
                except (MissingFromRefError, GitError) as e:
                    warn(f'Skipping changelog for project "{project}"', str(e))
                    result.failed_projects[project] = str(e)
                    _drop_tag(tags, commit_messages, release_version.git_tag)
                    continue
                entry = run.generate(
                    policy,
                    changes,
                    release_version,
                    project=project,
                    project_root=projects[project].path,
                    dependency_bumps=dependency_bumps.get(project),
                    is_version_plans=is_version_plans,
                    edit=edit,
                )
                if entry is not None:
                    result.project_changelogs[project] = entry
            continue

        group_version = release_version_for(group, version_data[members[0]])
        if group_version is None:
            continue
        changes = extract_group_changes(ctx, group)
        if shares_one_document(policy):
            entry = run.generate(
                policy, changes, group_version, is_version_plans=is_version_plans, edit=edit
            )
            if entry is not None:
                for project in members:
                    result.project_changelogs[project] = entry
            continue
        for project in members:
            release_version = release_version_for(group, version_data[project], project)
            if release_version is None:
                continue
            entry = run.generate(
                policy,
                changes,
                release_version,
                project=project,
                project_root=projects[project].path,
                is_version_plans=is_version_plans,
                edit=edit,
            )
            if entry is not None:
                result.project_changelogs[project] = entry

    latest_commit = apply_changes(
        apply_options,
        run.staged,
        to_sha,
        run.post_release_tasks,
        commit_messages,
        tags,
        selected_groups,
        provider_name=run.providers.display_name,
        changelog_files_enabled=changelog_files_enabled(workspace_policy, release_groups),
    )
    if latest_commit is not None:
        run_post_release_tasks(run.post_release_tasks, latest_commit)

    result.remote_release_providers = list(run.providers.names)
    return result
