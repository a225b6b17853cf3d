"""Exception hierarchy for lazy-changelog.

Every error raised by the changelog run derives from LazyChangelogError so
callers of the programmatic API can catch one type. The CLI reports them all
as a click error with exit code 1.
"""

from __future__ import annotations


class LazyChangelogError(Exception):
    """Base class for all lazy-changelog errors."""


class ConfigError(LazyChangelogError):
    """Invalid or missing release configuration."""


class FilterError(LazyChangelogError):
    """Invalid --projects / --groups filter arguments."""


class VersionPlanError(LazyChangelogError):
    """A version plan file is malformed or names an unknown bump type."""


class MissingFromRefError(LazyChangelogError):
    """No starting point could be resolved for a commit range."""

    def __init__(self, scope: str) -> None:
        super().__init__(
            f"Unable to determine the previous git tag for {scope}. If this is the "
            "first release, use --first-release or set "
            '"automatic_from_ref = true" in [tool.lazy-changelog]. Otherwise, make '
            'sure "release_tag_pattern" matches the structure of your git tags.'
        )
        self.scope = scope


class VersionDataMismatchError(LazyChangelogError):
    """An explicit version map is missing a project selected by the filter."""

    def __init__(self, project: str) -> None:
        super().__init__(
            f'The provided version data does not contain a version for project "{project}". '
            "This suggests a filtering mismatch between the version and changelog invocations."
        )
        self.project = project


class DuplicateTagError(LazyChangelogError):
    """Two computed git tags resolve to the same name."""

    def __init__(self, duplicates: list[str]) -> None:
        super().__init__(
            "The following git tags would be created more than once:\n"
            + "\n".join(f"  - {tag}" for tag in duplicates)
            + "\nMake sure release_tag_pattern includes {project_name} or is unique per release group."
        )
        self.duplicates = duplicates


class RecreateHistoricalReleaseError(LazyChangelogError):
    """Auto-commit was requested while targeting a ref other than HEAD."""

    def __init__(self) -> None:
        super().__init__(
            "You are attempting to recreate the changelog for an old release, but "
            "auto-commit is enabled. Disable it in [tool.lazy-changelog.git] or pass "
            "--no-git-commit."
        )


class GitError(LazyChangelogError):
    """A git command exited non-zero."""

    def __init__(self, message: str, stderr: str = "") -> None:
        detail = f"\n{stderr.strip()}" if stderr and stderr.strip() else ""
        super().__init__(f"{message}{detail}")
        self.stderr = stderr


class RemoteReleaseError(LazyChangelogError):
    """The remote release platform CLI failed or is misconfigured."""


class PostReleaseTaskError(LazyChangelogError):
    """A deferred post-release task failed; the remaining tasks were not run."""

    def __init__(self, failed: str, completed: list[str], cause: BaseException) -> None:
        done = ", ".join(completed) if completed else "none"
        super().__init__(f"Post-release task {failed} failed: {cause} (completed: {done})")
        self.failed = failed
        self.completed = completed
