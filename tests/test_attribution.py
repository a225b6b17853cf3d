"""Tests for lazy_changelog.attribution."""

from __future__ import annotations

from lazy_changelog.attribution import create_file_to_project_map, get_affected_projects, owner_of
from lazy_changelog.models import ALL_PROJECTS, ProjectInfo

PROJECTS = {
    "projA": ProjectInfo(path="projA", version="1.0.0"),
    "projB": ProjectInfo(path="projB", version="1.0.0"),
    "nested": ProjectInfo(path="projA/plugins/nested", version="1.0.0"),
    "root": ProjectInfo(path=".", version="1.0.0"),
}


class TestOwnerOf:
    def test_file_inside_project(self) -> None:
        assert owner_of("projA/src/x.ts", PROJECTS) == "projA"

    def test_deepest_root_wins(self) -> None:
        assert owner_of("projA/plugins/nested/index.ts", PROJECTS) == "nested"

    def test_prefix_is_not_ownership(self) -> None:
        assert owner_of("projAB/file.ts", PROJECTS) is None

    def test_root_project_owns_nothing(self) -> None:
        assert owner_of("README.md", PROJECTS) is None


class TestGetAffectedProjects:
    def test_single_project(self) -> None:
        files = ["projA/src/x.ts"]
        file_map = create_file_to_project_map(PROJECTS, files)
        assert get_affected_projects(files, file_map) == ["projA"]

    def test_unowned_file_affects_all(self) -> None:
        files = ["projA/src/x.ts", "package.json"]
        file_map = create_file_to_project_map(PROJECTS, files)
        assert get_affected_projects(files, file_map) == ALL_PROJECTS

    def test_deduplicated_and_sorted(self) -> None:
        files = ["projB/a", "projA/b", "projB/c"]
        file_map = create_file_to_project_map(PROJECTS, files)
        assert get_affected_projects(files, file_map) == ["projA", "projB"]
