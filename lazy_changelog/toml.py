"""TOML reading utilities.

Uses tomlkit to read the workspace's pyproject.toml files: the root one for
the workspace layout and the [tool.lazy-changelog] table, each member's for
its name, version and dependencies.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
from packaging.utils import canonicalize_name
from tomlkit.exceptions import ParseError

from .exceptions import ConfigError

TOOL_NAME = "lazy-changelog"


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a pyproject.toml file."""
    try:
        return tomlkit.parse(path.read_text())
    except FileNotFoundError as e:
        raise ConfigError(f"No pyproject.toml found at {path}") from e
    except ParseError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e


def get_project_name(doc: tomlkit.TOMLDocument, fallback: str) -> str:
    """Extract the canonical package name from [project].name.

    Names are normalized per PEP 503 (lowercase, hyphens instead of
    underscores) for consistent comparison.

    Args:
        doc: Parsed pyproject.toml document.
        fallback: Value to return if name is not specified.
    """
    return canonicalize_name(doc.get("project", {}).get("name", fallback))


def get_project_version(doc: tomlkit.TOMLDocument) -> str:
    """Extract version from [project].version, defaulting to '0.0.0'."""
    return doc.get("project", {}).get("version", "0.0.0")


def get_all_dependency_strings(doc: tomlkit.TOMLDocument) -> list[str]:
    """Collect all dependency strings from a pyproject.toml.

    Gathers dependencies from three locations:
    - [project].dependencies (main runtime deps)
    - [project].optional-dependencies.* (extras like [dev], [test])
    - [dependency-groups].* (PEP 735 dependency groups)

    Returns raw PEP 508 strings like "requests>=2.0" or "pkg[extra]~=1.0".
    """
    project = doc.get("project", {})
    deps: list[str] = list(project.get("dependencies", []))
    for group_deps in project.get("optional-dependencies", {}).values():
        deps.extend(group_deps)
    for group_deps in doc.get("dependency-groups", {}).values():
        # PEP 735 allows {include-group = "..."} tables alongside strings
        deps.extend(d for d in group_deps if isinstance(d, str))
    return deps


def get_workspace_member_globs(doc: tomlkit.TOMLDocument) -> list[str]:
    """Extract workspace member glob patterns from [tool.uv.workspace].

    These patterns (e.g., "packages/*", "libs/*") define which directories
    contain workspace projects.

    Raises:
        ConfigError: If no workspace members are defined.
    """
    members = doc.get("tool", {}).get("uv", {}).get("workspace", {}).get("members")
    if not members:
        raise ConfigError("No [tool.uv.workspace] members defined in root pyproject.toml")
    return list(members)


def get_tool_config(doc: tomlkit.TOMLDocument) -> dict[str, Any]:
    """Return [tool.lazy-changelog] as plain Python data (empty if absent)."""
    table = doc.get("tool", {}).get(TOOL_NAME, {})
    return table.unwrap() if hasattr(table, "unwrap") else dict(table)
