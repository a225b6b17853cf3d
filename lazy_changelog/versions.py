"""Version parsing utilities.

Semver handling comes from semver, with padding for incomplete versions
(e.g., "1.0" → "1.0.0"). Python package versions follow PEP 440 ("1.0.0rc1",
"2.1"), so comparisons and prerelease detection fall back to
packaging.version for strings semver rejects.
"""

from __future__ import annotations

import semver
from packaging.version import InvalidVersion, Version

# Bump types a version plan may request, mapped to the changelog entry they
# produce: (conventional commit type, is_breaking).
BUMP_TYPE_TO_CHANGE_KIND: dict[str, tuple[str, bool]] = {
    "major": ("feat", True),
    "premajor": ("feat", True),
    "minor": ("feat", False),
    "preminor": ("feat", False),
    "patch": ("fix", False),
    "prepatch": ("fix", False),
    "prerelease": ("fix", False),
}


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3-beta.1" → "1.2.3-beta.1"

    Raises:
        ValueError: If the string is not a valid (possibly partial) semver.
    """
    return semver.Version.parse(version_str, optional_minor_and_patch=True)


def is_semver(version_str: str) -> bool:
    try:
        parse_version(version_str)
    except (ValueError, TypeError):
        return False
    return True


def parse_release_version(version_str: str) -> Version | None:
    """Parse a version the way Python packaging does (PEP 440), or None.

    Semver prereleases normalize too: "1.0.0-rc.1" → 1.0.0rc1.
    """
    try:
        return Version(version_str)
    except InvalidVersion:
        return None


def is_version(version_str: str) -> bool:
    """True for a semver or a PEP 440 version string."""
    return is_semver(version_str) or parse_release_version(version_str) is not None


def versions_equal(a: str, b: str) -> bool:
    """Compare two version strings as versions, or as text when either is unparseable.

    Examples:
        "1.0.0rc1" == "1.0.0-rc.1", "2.1" == "2.1.0", "1.0.0" != "1.0.0rc1"
    """
    parsed_a, parsed_b = parse_release_version(a), parse_release_version(b)
    if parsed_a is None or parsed_b is None:
        return a == b
    return parsed_a == parsed_b


def is_prerelease(version_str: str) -> bool:
    """True if the version carries a prerelease component.

    Examples:
        "1.0.0-rc.1" → True, "1.0.0rc1" → True, "1.0.0.dev2" → True
    """
    if is_semver(version_str):
        return parse_version(version_str).prerelease is not None
    parsed = parse_release_version(version_str)
    return parsed is not None and parsed.is_prerelease


def extract_preid(version_str: str) -> str | None:
    """Return the prerelease identifier of a version, if any.

    Examples:
        "1.0.0-beta.3" → "beta"
        "1.0.0-0" → "0"
        "1.0.0rc1" → "rc"
        "1.0.0.dev2" → "dev"
        "1.0.0" → None
    """
    if not is_prerelease(version_str):
        return None
    if is_semver(version_str):
        prerelease = parse_version(version_str).prerelease or ""
        preid = prerelease.split(".")[0].strip()
        return preid or None
    parsed = parse_release_version(version_str)
    if parsed is None:
        return None
    if parsed.pre is not None:
        return parsed.pre[0]
    return "dev" if parsed.dev is not None else None
