"""Project graph discovery.

Scans the uv workspace for projects and records the internal dependency
edges between them. The changelog run only reads the graph: it needs each
project's root (for file attribution and changelog paths) and its dependents
(for dependency bump notes).
"""

from __future__ import annotations

import glob
from pathlib import Path

from .deps import internal_deps
from .exceptions import ConfigError
from .models import ProjectInfo
from .toml import (
    get_all_dependency_strings,
    get_project_name,
    get_project_version,
    get_workspace_member_globs,
    load_pyproject,
)


def discover_projects(root: Path | None = None) -> dict[str, ProjectInfo]:
    """Scan the workspace and discover all projects.

    Reads [tool.uv.workspace].members from root pyproject.toml to find
    project directories, then extracts name, version, and internal deps
    from each project's pyproject.toml.

    Returns:
        Map of project name to ProjectInfo.
    """
    root = root or Path.cwd()
    root_doc = load_pyproject(root / "pyproject.toml")
    member_globs = get_workspace_member_globs(root_doc)

    member_dirs: list[Path] = []
    for pattern in member_globs:
        for match in sorted(glob.glob(str(root / pattern))):
            p = Path(match)
            if (p / "pyproject.toml").exists():
                member_dirs.append(p)

    if not member_dirs:
        raise ConfigError("No projects found matching workspace members")

    # First pass: collect basic info from each project
    projects: dict[str, ProjectInfo] = {}
    raw_deps: dict[str, list[str]] = {}
    for d in member_dirs:
        doc = load_pyproject(d / "pyproject.toml")
        name = get_project_name(doc, d.name)
        projects[name] = ProjectInfo(
            path=d.relative_to(root).as_posix(),
            version=get_project_version(doc),
        )
        raw_deps[name] = get_all_dependency_strings(doc)

    # Second pass: keep only deps that point at other workspace projects
    workspace_names = set(projects)
    for name, deps in raw_deps.items():
        projects[name].deps = [d for d in internal_deps(deps, workspace_names) if d != name]

    return projects


def reverse_deps(projects: dict[str, ProjectInfo]) -> dict[str, list[str]]:
    """Map each project to the projects that depend on it.

    Example:
        If A depends on B: reverse_deps({A, B}) → {A: [], B: [A]}
    """
    dependents: dict[str, list[str]] = {n: [] for n in projects}
    for name, info in projects.items():
        for dep in info.deps:
            if dep in dependents:
                dependents[dep].append(name)
    return dependents
