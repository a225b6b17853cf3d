"""Git tags, commit messages, and the ordered apply sequence.

Tag names and commit messages are computed up front so that duplicates and
misuse are reported before anything is written. apply_changes() then flushes
the staged files and performs delete → commit (or stage) → tag → push
strictly in that order, once per run.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

import click

from .config import ReleaseGroup
from .exceptions import DuplicateTagError, RecreateHistoricalReleaseError
from .git import get_commit_hash, git_add, git_commit, git_push, git_tag
from .models import PostReleaseTask, ReleaseVersion, VersionData, VersionDataEntry, interpolate
from .shell import is_ci, step, warn
from .staging import StagedChangeSet


def release_version_for(
    group: ReleaseGroup, entry: VersionDataEntry, project_name: str = ""
) -> ReleaseVersion | None:
    """The ReleaseVersion a project (or a whole fixed group) is released at.

    Returns None when there is nothing to release.
    """
    version = entry.new_version
    if group.prefer_docker_version and entry.docker_version:
        version = entry.docker_version
    if version is None:
        return None
    return ReleaseVersion.create(
        version,
        group.release_tag_pattern,
        project_name=project_name,
        release_group_name=group.name,
    )


def create_git_tag_values(
    release_groups: list[ReleaseGroup],
    group_projects: dict[str, list[str]],
    version_data: VersionData,
) -> list[str]:
    """Every tag this run will create.

    Independent groups get one tag per released project. Fixed groups get
    one tag for the group, or one per project when the tag pattern contains
    {project_name}.
    """
    tags: list[str] = []
    for group in release_groups:
        projects = group_projects.get(group.name, [])
        if not projects:
            continue
        if group.projects_relationship == "independent" or "{project_name}" in group.release_tag_pattern:
            for project in projects:
                release_version = release_version_for(group, version_data[project], project)
                if release_version is not None:
                    tags.append(release_version.git_tag)
            continue
        release_version = release_version_for(group, version_data[projects[0]])
        if release_version is not None:
            tags.append(release_version.git_tag)
    return tags


def handle_duplicate_git_tags(tags: list[str]) -> None:
    """Raise DuplicateTagError if any tag would be created twice."""
    duplicates = [tag for tag, count in Counter(tags).items() if count > 1]
    if duplicates:
        raise DuplicateTagError(duplicates)


def _strip_placeholders(message: str) -> str:
    for placeholder in ("{version}", "{project_name}"):
        message = message.replace(placeholder, "")
    return " ".join(message.split())


def create_commit_message_values(
    release_groups: list[ReleaseGroup],
    group_projects: dict[str, list[str]],
    version_data: VersionData,
    commit_message: str,
) -> list[str]:
    """The commit message as a list of lines, subject first.

    When a single version is well defined (one project, or one fixed group)
    the subject is interpolated with it. Otherwise the placeholders are
    stripped and one line per released unit lists its tag.
    """
    all_projects = [p for g in release_groups for p in group_projects.get(g.name, [])]
    if not all_projects:
        return [commit_message]

    if len(release_groups) == 1:
        group = release_groups[0]
        projects = group_projects.get(group.name, [])
        if len(projects) == 1 or group.projects_relationship == "fixed":
            entry = version_data[projects[0]]
            if entry.new_version is not None:
                project_name = projects[0] if len(projects) == 1 else ""
                subject = interpolate(
                    commit_message, {"version": entry.new_version, "project_name": project_name}
                )
                return [subject.strip()]

    values = [_strip_placeholders(commit_message)]
    for group in release_groups:
        projects = group_projects.get(group.name, [])
        if not projects:
            continue
        if group.projects_relationship == "fixed":
            release_version = release_version_for(group, version_data[projects[0]])
            if release_version is not None:
                values.append(f"- release-group: {release_version.git_tag}")
            continue
        for project in projects:
            release_version = release_version_for(group, version_data[project], project)
            if release_version is not None:
                values.append(f"- project: {release_version.git_tag}")
    return values


def check_recreate_historical_release(auto_commit: bool, head_sha: str, to_sha: str) -> None:
    """Refuse to author a new commit while regenerating an old release."""
    if auto_commit and head_sha != to_sha:
        raise RecreateHistoricalReleaseError()


@dataclass
class ApplyOptions:
    """Git behaviour of the apply sequence, resolved from config and CLI."""

    dry_run: bool = False
    verbose: bool = False
    commit: bool = False
    commit_args: list[str] = field(default_factory=list)
    stage_changes: bool = False
    tag: bool = False
    tag_message: str = ""
    tag_args: list[str] = field(default_factory=list)
    push: bool = False
    push_args: list[str] = field(default_factory=list)
    remote: str = "origin"
    delete_version_plans: bool = True


def prompt_for_remote_release(provider_name: str) -> bool:
    """Ask whether to create remote releases despite no changelog changes."""
    try:
        return click.confirm(
            f"Do you want to create a {provider_name} release anyway?", default=False
        )
    except (click.exceptions.Abort, KeyboardInterrupt):
        return False


def delete_version_plan_files(
    release_groups: list[ReleaseGroup], root: Path, *, dry_run: bool, verbose: bool
) -> list[str]:
    """Remove every consumed version plan file; return their relative paths."""
    removed: list[str] = []
    for group in release_groups:
        for plan in group.resolved_version_plans or []:
            if not plan.relative_path or plan.relative_path in removed:
                continue
            if dry_run:
                print(f"  Would remove {plan.relative_path}, but --dry-run was set")
            else:
                (root / plan.relative_path).unlink(missing_ok=True)
                if verbose:
                    print(f"  Removed {plan.relative_path}")
            removed.append(plan.relative_path)
    return removed


def apply_changes(
    options: ApplyOptions,
    staged: StagedChangeSet,
    to_sha: str,
    post_release_tasks: list[PostReleaseTask],
    commit_messages: list[str],
    tags: list[str],
    release_groups: list[ReleaseGroup],
    provider_name: str = "remote",
    changelog_files_enabled: bool = True,
) -> str | None:
    """Flush staged files and run the git sequence.

    When changelog files are enabled but none changed, the git sequence is
    skipped. Runs that only render changelogs for remote releases have no
    files to write and still tag and push.

    Returns:
        The commit id post-release tasks should target, or None when they
        must be skipped.
    """
    changes = staged.list_changes()

    if changelog_files_enabled and not changes:
        warn(
            "No changes detected for changelogs",
            "No changes were detected for any changelog files, so no changelog entries will be generated.",
        )
        if not post_release_tasks:
            return None
        if is_ci():
            warn(f"Skipped {provider_name} release creation because no changelog files changed.")
            return None
        return to_sha if prompt_for_remote_release(provider_name) else None

    if options.dry_run:
        step("Previewing changelog changes")
        staged.print_changes()
    staged.flush(dry_run=options.dry_run)

    changed_files = [c.path for c in changes]
    deleted_files: list[str] = []
    if options.delete_version_plans:
        deleted_files = delete_version_plan_files(
            release_groups, staged.root, dry_run=options.dry_run, verbose=options.verbose
        )

    latest_commit = to_sha
    if options.commit and (changed_files or deleted_files):
        step("Committing changes with git")
        git_add(changed_files, deleted_files, dry_run=options.dry_run, verbose=options.verbose)
        git_commit(
            commit_messages, options.commit_args, dry_run=options.dry_run, verbose=options.verbose
        )
        if not options.dry_run:
            latest_commit = get_commit_hash("HEAD")
    elif options.stage_changes and (changed_files or deleted_files):
        step("Staging changed files with git")
        git_add(changed_files, deleted_files, dry_run=options.dry_run, verbose=options.verbose)

    if options.tag:
        step("Tagging commit with git")
        for tag in tags:
            git_tag(
                tag,
                options.tag_message,
                options.tag_args,
                dry_run=options.dry_run,
                verbose=options.verbose,
            )
            print(f"  {tag}")

    if options.push:
        step(f'Pushing to git remote "{options.remote}"')
        refs = ["HEAD"] + ([f"refs/tags/{t}" for t in tags] if options.tag else [])
        git_push(
            options.remote, refs, options.push_args, dry_run=options.dry_run, verbose=options.verbose
        )

    return latest_commit
