"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
import tomlkit

from lazy_changelog.config import ConventionalCommitsConfig
from lazy_changelog.models import Author, ProjectInfo, RawGitCommit


def raw_commit(
    message: str,
    files: list[str] | None = None,
    body: str = "",
    short_hash: str = "abc1234",
    author: str = "Ada",
) -> RawGitCommit:
    """Build a RawGitCommit the way parse_log_output would."""
    return RawGitCommit(
        message=message,
        body=body,
        short_hash=short_hash,
        author=Author(name=author, email=f"{author.lower()}@example.com"),
        affected_files=files or [],
    )


def write_workspace(root: Path, projects: dict[str, list[str]], tool_config: str = "") -> None:
    """Write a uv workspace with one packages/<name> project per entry.

    projects maps each project name to its workspace dependencies.
    """
    (root / "pyproject.toml").write_text(
        '[tool.uv.workspace]\nmembers = ["packages/*"]\n' + tool_config
    )
    for name, deps in projects.items():
        project_dir = root / "packages" / name
        project_dir.mkdir(parents=True)
        dep_list = ", ".join(f'"{d}>=1.0"' for d in deps)
        (project_dir / "pyproject.toml").write_text(
            f'[project]\nname = "{name}"\nversion = "1.0.0"\ndependencies = [{dep_list}]\n'
        )


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """Create a temporary pyproject.toml file."""
    content = """\
[project]
name = "test-package"
version = "1.0.0"
dependencies = [
    "requests>=2.0",
    "internal-dep>=1.0",
]

[project.optional-dependencies]
dev = ["pytest>=8.0", "another-internal>=0.5"]

[dependency-groups]
test = ["pytest>=8.0", "group-internal>=0.1", {include-group = "dev"}]
"""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(content)
    return pyproject


@pytest.fixture
def sample_toml_doc() -> tomlkit.TOMLDocument:
    """Create a sample TOML document."""
    content = """\
[project]
name = "my-package"
version = "2.0.0"
dependencies = ["click>=8.0", "pydantic>=2.0"]

[project.optional-dependencies]
dev = ["pytest>=8.0"]
docs = ["sphinx>=7.0"]

[dependency-groups]
test = ["hypothesis>=6.0"]

[tool.uv.workspace]
members = ["packages/*", "libs/*"]

[tool.lazy-changelog]
release_tag_pattern = "release-{version}"

[tool.lazy-changelog.git]
commit = true
"""
    return tomlkit.parse(content)


@pytest.fixture
def sample_projects() -> dict[str, ProjectInfo]:
    """proj-a ← proj-b ← proj-c, plus a standalone proj-d."""
    return {
        "proj-a": ProjectInfo(path="packages/proj-a", version="1.0.0"),
        "proj-b": ProjectInfo(path="packages/proj-b", version="1.0.0", deps=["proj-a"]),
        "proj-c": ProjectInfo(path="packages/proj-c", version="1.0.0", deps=["proj-b"]),
        "proj-d": ProjectInfo(path="packages/proj-d", version="1.0.0"),
    }


@pytest.fixture
def conventional_commits() -> ConventionalCommitsConfig:
    return ConventionalCommitsConfig.model_validate({})
