"""Attribution of commits to projects.

A commit belongs to the projects whose directories contain the files it
touched. A commit that touches any file outside every project (root config,
CI files, ...) belongs to all projects.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .models import ALL_PROJECTS, ProjectInfo


def owner_of(file: str, projects: Mapping[str, ProjectInfo]) -> str | None:
    """Return the project whose root contains file; the deepest root wins."""
    best: tuple[int, str] | None = None
    for name, info in projects.items():
        root = info.path.rstrip("/")
        if root in ("", "."):
            # A project at the workspace root owns nothing exclusively
            continue
        if file == root or file.startswith(root + "/"):
            if best is None or len(root) > best[0]:
                best = (len(root), name)
    return best[1] if best else None


def create_file_to_project_map(
    projects: Mapping[str, ProjectInfo], files: Iterable[str]
) -> dict[str, str]:
    """Map every project-owned file to its project. Unowned files are left out."""
    file_map: dict[str, str] = {}
    for file in files:
        owner = owner_of(file, projects)
        if owner is not None:
            file_map[file] = owner
    return file_map


def get_affected_projects(
    touched_files: Iterable[str], file_to_project: Mapping[str, str]
) -> list[str] | str:
    """Resolve the projects a commit affects.

    Returns:
        ALL_PROJECTS if any touched file has no owning project, otherwise
        the sorted, deduplicated owning project names.
    """
    owners: set[str] = set()
    for file in touched_files:
        owner = file_to_project.get(file)
        if owner is None:
            return ALL_PROJECTS
        owners.add(owner)
    return sorted(owners)
