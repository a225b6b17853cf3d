"""--projects / --groups filtering of release groups."""

from __future__ import annotations

import fnmatch

from .config import ReleaseGroup
from .exceptions import FilterError


def filter_release_groups(
    release_groups: list[ReleaseGroup],
    projects: list[str] | None = None,
    groups: list[str] | None = None,
) -> tuple[list[ReleaseGroup], dict[str, list[str]], str | None]:
    """Select the release groups and projects a run operates on.

    Returns:
        (selected groups, group name → selected projects, note for the user)

    Raises:
        FilterError: Both filters given, or a filter matches nothing.
    """
    if projects and groups:
        raise FilterError("--projects and --groups cannot be combined")

    if groups:
        known = {g.name for g in release_groups}
        unknown = [name for name in groups if name not in known]
        if unknown:
            raise FilterError(f"Unknown release group(s): {', '.join(unknown)}")
        selected = [g for g in release_groups if g.name in groups]
        note = f"Running for release group(s): {', '.join(g.name for g in selected)}"
        return selected, {g.name: list(g.projects) for g in selected}, note

    if projects:
        all_names = [p for g in release_groups for p in g.projects]
        matched: set[str] = set()
        for pattern in projects:
            hits = [n for n in all_names if fnmatch.fnmatchcase(n, pattern)]
            if not hits:
                raise FilterError(f'No projects matching "{pattern}" are in any release group')
            matched.update(hits)

        selected: list[ReleaseGroup] = []
        group_projects: dict[str, list[str]] = {}
        notes: list[str] = []
        for group in release_groups:
            members = [p for p in group.projects if p in matched]
            if not members:
                continue
            if group.projects_relationship == "fixed" and len(members) < len(group.projects):
                # A fixed group is released as a whole
                members = list(group.projects)
                notes.append(
                    f'Release group "{group.name}" is fixed, so all of its projects are included'
                )
            selected.append(group)
            group_projects[group.name] = members
        notes.insert(0, f"Running for project(s): {', '.join(sorted(matched))}")
        return selected, group_projects, "\n".join(notes)

    return list(release_groups), {g.name: list(g.projects) for g in release_groups}, None
