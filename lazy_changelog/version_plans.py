"""Version plan files.

A version plan is a markdown file under ``.lazy-changelog/version-plans/``
whose YAML front matter maps release groups or projects to a semver bump, and
whose body describes the change::

    ---
    core: minor
    pkg-a: patch
    ---

    Add streaming support to the client.

Plans are read once per run and attached to the release groups that have
version plans enabled.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import yaml

from .config import ReleaseGroup
from .exceptions import VersionPlanError
from .git import get_commit_adding_file
from .models import GroupVersionPlan, ProjectsVersionPlan, RawGitCommit, VersionPlan
from .versions import BUMP_TYPE_TO_CHANGE_KIND

VERSION_PLANS_DIR = ".lazy-changelog/version-plans"

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\n(?P<meta>.*?)\n---[ \t]*(?:\n|\Z)(?P<body>.*)\Z", re.DOTALL)

# Bump types ordered from weakest to strongest
_BUMP_ORDER = ["prerelease", "prepatch", "patch", "preminor", "minor", "premajor", "major"]


@dataclass
class RawVersionPlan:
    relative_path: str
    absolute_path: str
    bumps: dict[str, str]
    message: str
    commit: RawGitCommit | None = None


def parse_version_plan(text: str, relative_path: str) -> tuple[dict[str, str], str]:
    """Split a plan file into its {name: bump} front matter and message.

    Raises:
        VersionPlanError: Missing or invalid YAML front matter, a value that
            is not a name → bump mapping, or an unknown bump type.
    """
    match = _FRONT_MATTER_RE.match(text)
    if not match:
        raise VersionPlanError(f"{relative_path}: missing --- front matter block")

    try:
        meta = yaml.safe_load(match.group("meta")) or {}
    except yaml.YAMLError as e:
        raise VersionPlanError(f"{relative_path}: invalid YAML front matter: {e}") from e
    if not isinstance(meta, dict):
        raise VersionPlanError(
            f"{relative_path}: expected 'name: bump' front matter, got {type(meta).__name__}"
        )

    bumps: dict[str, str] = {}
    for name, bump in meta.items():
        if not isinstance(name, str) or not isinstance(bump, str):
            raise VersionPlanError(
                f"{relative_path}: expected 'name: bump', got {name!r}: {bump!r}"
            )
        if bump not in BUMP_TYPE_TO_CHANGE_KIND:
            raise VersionPlanError(f"{relative_path}: invalid semver bump type {bump!r} for {name}")
        bumps[name] = bump
    return bumps, match.group("body").strip()


def read_raw_version_plans(root: Path) -> list[RawVersionPlan]:
    """Read every plan file, in file name order."""
    plans_dir = root / VERSION_PLANS_DIR
    if not plans_dir.is_dir():
        return []
    plans: list[RawVersionPlan] = []
    for path in sorted(plans_dir.glob("*.md")):
        relative_path = path.relative_to(root).as_posix()
        bumps, message = parse_version_plan(path.read_text(), relative_path)
        plans.append(
            RawVersionPlan(
                relative_path=relative_path,
                absolute_path=str(path),
                bumps=bumps,
                message=message,
                commit=get_commit_adding_file(relative_path),
            )
        )
    return plans


def _strongest(bumps: list[str]) -> str:
    return max(bumps, key=_BUMP_ORDER.index)


def resolve_group_plans(group: ReleaseGroup, raw_plans: list[RawVersionPlan]) -> list[VersionPlan]:
    """The plans that concern one release group, shaped for its relationship."""
    resolved: list[VersionPlan] = []
    for raw in raw_plans:
        common = {
            "message": raw.message,
            "commit": raw.commit,
            "absolute_path": raw.absolute_path,
            "relative_path": raw.relative_path,
        }
        group_bump = raw.bumps.get(group.name)
        project_bumps = {p: b for p, b in raw.bumps.items() if p in group.projects}
        if group_bump is None and not project_bumps:
            continue

        if group.projects_relationship == "independent":
            if group_bump is not None:
                project_bumps = {p: project_bumps.get(p, group_bump) for p in group.projects}
            resolved.append(ProjectsVersionPlan(project_version_bumps=project_bumps, **common))
            continue

        if group_bump is not None:
            resolved.append(GroupVersionPlan(group_version_bump=group_bump, **common))
        else:
            resolved.append(
                GroupVersionPlan(
                    group_version_bump=_strongest(list(project_bumps.values())),
                    triggered_by_projects=list(project_bumps),
                    **common,
                )
            )
    return resolved


def set_resolved_version_plans_on_groups(
    raw_plans: list[RawVersionPlan],
    release_groups: list[ReleaseGroup],
    all_projects: list[str],
) -> None:
    """Attach resolved plans to every group that has version plans enabled.

    Raises:
        VersionPlanError: A plan names something that is neither a release
            group nor a project.
    """
    group_names = {g.name for g in release_groups}
    known = group_names | set(all_projects)
    for raw in raw_plans:
        unknown = [name for name in raw.bumps if name not in known]
        if unknown:
            raise VersionPlanError(
                f"{raw.relative_path}: {', '.join(unknown)} is not a release group or project"
            )

    for group in release_groups:
        if group.version_plans:
            group.resolved_version_plans = resolve_group_plans(group, raw_plans)
