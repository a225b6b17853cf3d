"""Change extraction.

Builds the ordered list of Change records a changelog is rendered from.
There are two sources and a release group uses exactly one of them:

- version plans: human-authored bump records (``resolved_version_plans``)
- commit history: conventional commits between a from ref and a to ref

Workspace and fixed-group extraction produce one shared list; independent
groups extract per project.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .attribution import create_file_to_project_map, get_affected_projects
from .commits import parse_commits, parse_git_commit
from .config import ConventionalCommitsConfig, ReleaseGroup
from .exceptions import MissingFromRefError, VersionPlanError
from .git import get_commit_hash, get_first_commit, get_git_diff, get_latest_tag_for_pattern
from .models import (
    ALL_PROJECTS,
    Author,
    Change,
    GitCommit,
    GroupVersionPlan,
    ProjectInfo,
    ProjectsVersionPlan,
    Reference,
    VersionPlan,
)
from .versions import BUMP_TYPE_TO_CHANGE_KIND


@dataclass
class ExtractionContext:
    """Inputs shared by every extraction in one run.

    Attributes:
        from_ref: Explicit --from ref; overrides tag lookup everywhere.
        to_sha: The resolved --to commit.
        automatic_from_ref: Fall back to the first commit when no tag matches.
        shared_preid: Preid used for workspace and fixed-group tag lookups.
        project_preids: Preid of each project's new version, if any.
    """

    to_sha: str
    projects: dict[str, ProjectInfo]
    conventional_commits: ConventionalCommitsConfig
    from_ref: str | None = None
    automatic_from_ref: bool = False
    shared_preid: str | None = None
    project_preids: dict[str, str | None] = field(default_factory=dict)
    verbose: bool = False


def version_plan_change_kind(bump: str) -> tuple[str, bool]:
    """Map a semver bump type to (change type, is_breaking).

    Raises:
        VersionPlanError: For anything that is not a semver bump type.
    """
    try:
        return BUMP_TYPE_TO_CHANGE_KIND[bump]
    except KeyError:
        raise VersionPlanError(f"Invalid semver bump type: {bump}") from None


def _plan_provenance(plan: VersionPlan) -> tuple[list[Reference], list[Author]]:
    if plan.commit is None:
        return [], []
    parsed = parse_git_commit(plan.commit)
    return parsed.references, [parsed.raw.author]


def changes_from_group_version_plans(plans: list[GroupVersionPlan]) -> list[Change]:
    """One change per group-wide plan, or one per triggering project."""
    changes: list[Change] = []
    for plan in plans:
        change_type, is_breaking = version_plan_change_kind(plan.group_version_bump)
        references, authors = _plan_provenance(plan)
        if not plan.triggered_by_projects:
            changes.append(
                Change(
                    type=change_type,
                    description=plan.message,
                    is_breaking=is_breaking,
                    affected_projects=ALL_PROJECTS,
                    references=references,
                    authors=authors,
                )
            )
            continue
        for project in plan.triggered_by_projects:
            changes.append(
                Change(
                    type=change_type,
                    scope=project,
                    description=plan.message,
                    is_breaking=is_breaking,
                    affected_projects=[project],
                    references=references,
                    authors=authors,
                )
            )
    return changes


def changes_from_project_version_plans(
    plans: list[ProjectsVersionPlan], project: str
) -> list[Change]:
    """One change per plan that bumps project."""
    changes: list[Change] = []
    for plan in plans:
        bump = plan.project_version_bumps.get(project)
        if not bump:
            continue
        change_type, is_breaking = version_plan_change_kind(bump)
        references, authors = _plan_provenance(plan)
        changes.append(
            Change(
                type=change_type,
                scope=project,
                description=plan.message,
                is_breaking=is_breaking,
                affected_projects=list(plan.project_version_bumps),
                references=references,
                authors=authors,
            )
        )
    return changes


def filter_hidden_changes(
    changes: list[Change], conventional_commits: ConventionalCommitsConfig
) -> list[Change]:
    """Drop changes whose type is unknown or hidden from changelogs."""
    return [c for c in changes if conventional_commits.is_visible(c.type)]


def commits_to_changes(
    commits: list[GitCommit], projects: dict[str, ProjectInfo] | None
) -> list[Change]:
    """Convert parsed commits to changes.

    With projects, each change is attributed from the files it touched;
    without, every change affects all projects (the workspace changelog).
    """
    file_map: dict[str, str] = {}
    if projects is not None:
        touched = {f for c in commits for f in c.affected_files}
        file_map = create_file_to_project_map(projects, touched)

    return [
        Change(
            type=c.type,
            scope=c.scope,
            description=c.description,
            body=c.body,
            is_breaking=c.is_breaking,
            affected_projects=(
                ALL_PROJECTS
                if projects is None
                else get_affected_projects(c.affected_files, file_map)
            ),
            references=c.references,
            authors=c.authors,
            short_hash=c.short_hash,
            reverted_hashes=c.reverted_hashes,
        )
        for c in commits
    ]


def get_commits(from_sha: str, to_sha: str) -> list[GitCommit]:
    return parse_commits(get_git_diff(from_sha, to_sha))


def filter_project_commits(commits: list[GitCommit], project_root: str) -> list[GitCommit]:
    prefix = project_root.rstrip("/") + "/"
    return [c for c in commits if any(f.startswith(prefix) for f in c.affected_files)]


def _shared_commit_range_changes(
    ctx: ExtractionContext,
    release_tag_pattern: str,
    scope: str,
    projects: dict[str, ProjectInfo] | None,
    release_group_name: str = "",
) -> list[Change]:
    from_ref = ctx.from_ref or get_latest_tag_for_pattern(
        release_tag_pattern, release_group_name=release_group_name, preid=ctx.shared_preid
    )
    if not from_ref:
        if not ctx.automatic_from_ref:
            raise MissingFromRefError(scope)
        from_ref = get_first_commit()
        if ctx.verbose:
            print(f"  Determined {scope} --from ref from the first commit: {from_ref}")

    # Make sure the from ref is actually resolvable
    from_sha = get_commit_hash(from_ref)
    changes = commits_to_changes(get_commits(from_sha, ctx.to_sha), projects)
    return filter_hidden_changes(changes, ctx.conventional_commits)


def extract_workspace_changes(
    ctx: ExtractionContext,
    release_groups: list[ReleaseGroup],
    release_tag_pattern: str,
) -> list[Change]:
    """Changes for the workspace changelog.

    Version plans are only used when the workspace is a single fixed group;
    any extraction failure here is fatal for the run.
    """
    first_group = release_groups[0]
    if first_group.resolved_version_plans is not None:
        if len(release_groups) == 1 and first_group.projects_relationship == "fixed":
            return changes_from_group_version_plans(
                [p for p in first_group.resolved_version_plans if isinstance(p, GroupVersionPlan)]
            )
        return []
    return _shared_commit_range_changes(ctx, release_tag_pattern, "the workspace", None)


def extract_group_changes(ctx: ExtractionContext, group: ReleaseGroup) -> list[Change]:
    """One shared change list for a fixed release group."""
    if group.resolved_version_plans is not None:
        return changes_from_group_version_plans(
            [p for p in group.resolved_version_plans if isinstance(p, GroupVersionPlan)]
        )
    return _shared_commit_range_changes(
        ctx,
        group.release_tag_pattern,
        f'release group "{group.name}"',
        ctx.projects,
        release_group_name=group.name,
    )


def extract_project_changes(
    ctx: ExtractionContext, group: ReleaseGroup, project: str
) -> list[Change]:
    """Changes for one project of an independent release group.

    Raises:
        MissingFromRefError: No tag matched and automatic mode is off.
        GitError: The from ref does not resolve.
    """
    if group.resolved_version_plans is not None:
        return changes_from_project_version_plans(
            [p for p in group.resolved_version_plans if isinstance(p, ProjectsVersionPlan)],
            project,
        )

    root = ctx.projects[project].path
    from_ref = ctx.from_ref or get_latest_tag_for_pattern(
        group.release_tag_pattern,
        project_name=project,
        release_group_name=group.name,
        preid=ctx.project_preids.get(project),
    )
    if from_ref:
        commits = filter_project_commits(get_commits(get_commit_hash(from_ref), ctx.to_sha), root)
    elif ctx.automatic_from_ref:
        # The first commit in which the project exists bounds its history
        commits = filter_project_commits(get_commits(get_first_commit(), ctx.to_sha), root)
        if ctx.verbose:
            first = commits[-1].short_hash if commits else "<none>"
            print(f"  Determined --from ref for {project} from the first commit touching it: {first}")
    else:
        raise MissingFromRefError(f'project "{project}"')

    changes = commits_to_changes(commits, ctx.projects)
    return filter_hidden_changes(changes, ctx.conventional_commits)
