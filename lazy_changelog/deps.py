"""Dependency string helpers.

Workspace dependency edges come from PEP 508 strings in each project's
pyproject.toml; only the canonical name matters for the project graph.
"""

from __future__ import annotations

from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name


def dep_canonical_name(dep_str: str) -> str | None:
    """Extract the canonical package name from a PEP 508 dependency string.

    Handles version specifiers, extras, and normalizes the name per PEP 503
    (lowercase, hyphens instead of underscores). Returns None for strings
    that are not valid requirements (e.g. local paths).

    Examples:
        "requests>=2.0" → "requests"
        "My_Package[extra]~=1.0" → "my-package"
    """
    try:
        return canonicalize_name(Requirement(dep_str).name)
    except InvalidRequirement:
        return None


def internal_deps(dep_strings: list[str], workspace_names: set[str]) -> list[str]:
    """Filter dependency strings down to workspace projects, in first-seen order."""
    seen: list[str] = []
    for dep_str in dep_strings:
        name = dep_canonical_name(dep_str)
        if name in workspace_names and name not in seen:
            seen.append(name)
    return seen
