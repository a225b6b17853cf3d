"""Dependency bump notes for independent release groups.

When a project is released, every dependent that is also being released
records "dependency X bumped to Y" in its own changelog. The map is built in
one pass before any changelog is rendered, so circular dependencies (A needs
B, B needs A) simply record both directions instead of recursing.
"""

from __future__ import annotations

from .config import ReleaseGroup
from .models import DependencyBump, VersionData


def compute_dependency_bumps(
    release_groups: list[ReleaseGroup], version_data: VersionData
) -> dict[str, list[DependencyBump]]:
    """Map each dependent project to the bumps of its released dependencies.

    Only independent groups contribute: in a fixed group every project
    already shares the same version.

    Example:
        a 1.1.0 and b 2.0.0 depend on each other →
        {"a": [b → 2.0.0], "b": [a → 1.1.0]}
    """
    bumps: dict[str, list[DependencyBump]] = {}
    for group in release_groups:
        if group.projects_relationship != "independent":
            continue
        for project in group.projects:
            entry = version_data.get(project)
            # Unreleased projects don't bump anything
            if entry is None or entry.new_version is None:
                continue
            for dependent in entry.dependent_projects:
                dependent_entry = version_data.get(dependent)
                if dependent_entry is None or dependent_entry.new_version is None:
                    continue
                bumps.setdefault(dependent, []).append(
                    DependencyBump(dependency_name=project, new_version=entry.new_version)
                )
    return bumps
