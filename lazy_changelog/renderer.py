"""Changelog rendering.

A renderer turns a change list into the markdown of exactly one release
section. Renderers are looked up by id: "default" is built in, anything
else is imported as ``package.module:ClassName``.
"""

from __future__ import annotations

import importlib
from datetime import date
from typing import Any

from .config import ConventionalCommitsConfig
from .exceptions import ConfigError
from .models import Change, DependencyBump
from .remote_release import RemoteReleaseClient


class ChangelogRenderer:
    """Base renderer holding everything a release section is built from.

    Args:
        changes: Changes for the changelog scope, already filtered for
            hidden types.
        version: The version the section is for.
        project: Project name for project changelogs, None for the workspace
            or a shared group document.
        entry_when_no_changes: True for the default note, False for no
            entry, or a custom note.
        dependency_bumps: Released dependencies of project.
        remote_release_client: Used to turn references into links.
    """

    def __init__(
        self,
        changes: list[Change],
        version: str,
        project: str | None,
        entry_when_no_changes: bool | str,
        conventional_commits: ConventionalCommitsConfig,
        remote_release_client: RemoteReleaseClient,
        dependency_bumps: list[DependencyBump] | None = None,
        render_options: dict[str, Any] | None = None,
        is_version_plans: bool = False,
    ) -> None:
        self.changes = changes
        self.version = version
        self.project = project
        self.entry_when_no_changes = entry_when_no_changes
        self.conventional_commits = conventional_commits
        self.remote_release_client = remote_release_client
        self.dependency_bumps = dependency_bumps or []
        self.render_options = render_options or {}
        self.is_version_plans = is_version_plans

    def render(self) -> str:
        raise NotImplementedError


class DefaultChangelogRenderer(ChangelogRenderer):
    """Markdown renderer: breaking changes first, then one section per type.

    Render options:
        version_title_date: Append today's date to the heading (default True).
        authors: Add a "Thank You" section (default True).
        commit_references: Link references after each entry (default True).
    """

    def relevant_changes(self) -> list[Change]:
        changes = self.changes
        if self.project is not None:
            changes = [c for c in changes if c.affects(self.project)]
        return _drop_reverted(changes)

    def version_title(self) -> str:
        title = f"## {self.version}"
        if self.render_options.get("version_title_date", True):
            title += f" ({date.today().isoformat()})"
        return title

    def no_changes_note(self) -> str | None:
        if self.entry_when_no_changes is False:
            return None
        if isinstance(self.entry_when_no_changes, str):
            return self.entry_when_no_changes
        if self.project is None:
            return "This was a version bump only, there were no code changes."
        return (
            f"This was a version bump only for {self.project} to align it with "
            "other projects, there were no code changes."
        )

    def render(self) -> str:
        changes = self.relevant_changes()
        if not changes and not self.dependency_bumps:
            note = self.no_changes_note()
            return f"{self.version_title()}\n\n{note}" if note else ""

        lines = [self.version_title(), ""]

        breaking = [c for c in changes if c.is_breaking]
        if breaking:
            lines += ["### ⚠️ Breaking Changes", ""]
            lines += [self.format_change(c) for c in breaking]
            lines.append("")

        for commit_type, type_config in self.conventional_commits.types.items():
            if type_config.changelog.hidden:
                continue
            of_type = [c for c in changes if c.type == commit_type and not c.is_breaking]
            if of_type:
                lines += [f"### {type_config.changelog.title or commit_type}", ""]
                lines += [self.format_change(c) for c in of_type]
                lines.append("")

        if self.dependency_bumps:
            lines += ["### 🧱 Updated Dependencies", ""]
            lines += [
                f"- Updated {b.dependency_name} to {b.new_version}" for b in self.dependency_bumps
            ]
            lines.append("")

        if self.render_options.get("authors", True):
            authors = _unique_author_names(changes)
            if authors:
                lines += ["### ❤️ Thank You", ""]
                lines += [f"- {name}" for name in authors]
                lines.append("")

        return "\n".join(lines).rstrip("\n")

    def format_change(self, change: Change) -> str:
        # A project changelog doesn't need to repeat its own name as scope
        scope = change.scope if change.scope and change.scope != self.project else ""
        entry = f"- **{scope}:** {change.description}" if scope else f"- {change.description}"
        if self.render_options.get("commit_references", True) and change.references:
            links = ", ".join(self.remote_release_client.format_reference(r) for r in change.references)
            entry += f" ({links})"
        if change.is_breaking and change.body and not self.is_version_plans:
            entry += "\n\n" + "\n".join(f"  {line}" for line in change.body.splitlines())
        return entry


def _drop_reverted(changes: list[Change]) -> list[Change]:
    """Drop changes reverted within the same range, together with the revert."""
    reverted = {h for c in changes for h in c.reverted_hashes}
    if not reverted:
        return changes
    dropped: set[int] = set()
    for i, change in enumerate(changes):
        if change.short_hash and any(h.startswith(change.short_hash) for h in reverted):
            dropped.add(i)
            for j, other in enumerate(changes):
                if any(h.startswith(change.short_hash) for h in other.reverted_hashes):
                    dropped.add(j)
    return [c for i, c in enumerate(changes) if i not in dropped]


def _unique_author_names(changes: list[Change]) -> list[str]:
    names: list[str] = []
    for change in changes:
        for author in change.authors:
            if author.name and author.name not in names:
                names.append(author.name)
    return names


RENDERERS: dict[str, type[ChangelogRenderer]] = {"default": DefaultChangelogRenderer}


def resolve_changelog_renderer(renderer_id: str) -> type[ChangelogRenderer]:
    """Look up a renderer class by id.

    Raises:
        ConfigError: If the id is neither registered nor importable.
    """
    if renderer_id in RENDERERS:
        return RENDERERS[renderer_id]
    module_name, _, class_name = renderer_id.partition(":")
    if not class_name:
        raise ConfigError(
            f'Unknown changelog renderer "{renderer_id}". Use "default" or "package.module:ClassName".'
        )
    try:
        renderer_class = getattr(importlib.import_module(module_name), class_name)
    except (ImportError, AttributeError) as e:
        raise ConfigError(f'Unable to load changelog renderer "{renderer_id}": {e}') from e
    if not (isinstance(renderer_class, type) and issubclass(renderer_class, ChangelogRenderer)):
        raise ConfigError(f'Changelog renderer "{renderer_id}" is not a ChangelogRenderer subclass')
    return renderer_class
