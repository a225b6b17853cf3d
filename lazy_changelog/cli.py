"""CLI entry point for lazy-changelog."""

from __future__ import annotations

from pathlib import Path

import click
from pydantic import TypeAdapter, ValidationError

from lazy_changelog.changelog import ChangelogOptions, release_changelog
from lazy_changelog.exceptions import LazyChangelogError
from lazy_changelog.models import VersionData, VersionDataEntry

_VERSION_DATA = TypeAdapter(dict[str, VersionDataEntry])


def _split_names(values: tuple[str, ...]) -> list[str] | None:
    """Flatten repeated and comma-separated option values."""
    names = [name.strip() for value in values for name in value.split(",") if name.strip()]
    return names or None


def load_version_data(path: Path) -> VersionData:
    """Read a {project: {new_version, ...}} JSON file."""
    try:
        return _VERSION_DATA.validate_json(path.read_text())
    except ValidationError as e:
        raise click.ClickException(f"Invalid version data in {path}:\n{e}") from e


@click.command()
@click.version_option(package_name="lazy-changelog")
@click.argument("new_version", metavar="VERSION", required=False)
@click.option(
    "--version-data",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file mapping each project to its version data.",
)
@click.option("--from", "from_ref", help="Start of the commit range (default: latest matching tag).")
@click.option("--to", "to_ref", default="HEAD", show_default=True, help="End of the commit range.")
@click.option("-p", "--projects", multiple=True, help="Projects to run for (names or globs).")
@click.option("-g", "--groups", multiple=True, help="Release groups to run for.")
@click.option(
    "--first-release",
    is_flag=True,
    help="Fall back to the first commit when no previous tag exists.",
)
@click.option(
    "-i",
    "--interactive",
    type=click.Choice(["all", "workspace", "projects"]),
    help="Edit the generated entries in $EDITOR before they are written.",
)
@click.option("--dry-run", is_flag=True, help="Preview the changes without writing anything.")
@click.option("--verbose", is_flag=True, help="Print more detail about each step.")
@click.option("--git-commit/--no-git-commit", default=None, help="Commit the changelog changes.")
@click.option("--git-commit-message", help="Commit message ({version} is interpolated).")
@click.option("--git-tag/--no-git-tag", default=None, help="Tag the release commit.")
@click.option(
    "--stage-changes/--no-stage-changes",
    default=None,
    help="Stage the changed files without committing.",
)
@click.option("--git-push/--no-git-push", default=None, help="Push the commit and tags.")
@click.option("--git-remote", help="Remote to push to (default: origin).")
@click.option("--no-create-release", is_flag=True, help="Skip creating remote releases.")
@click.option(
    "--no-delete-version-plans",
    is_flag=True,
    help="Keep the version plan files after the changelogs are generated.",
)
def cli(
    new_version: str | None,
    version_data: Path | None,
    from_ref: str | None,
    to_ref: str,
    projects: tuple[str, ...],
    groups: tuple[str, ...],
    first_release: bool,
    interactive: str | None,
    dry_run: bool,
    verbose: bool,
    git_commit: bool | None,
    git_commit_message: str | None,
    git_tag: bool | None,
    stage_changes: bool | None,
    git_push: bool | None,
    git_remote: str | None,
    no_create_release: bool,
    no_delete_version_plans: bool,
) -> None:
    """Generate changelogs for VERSION, then commit, tag and publish releases."""
    if new_version is None and version_data is None:
        raise click.UsageError("Provide a VERSION or --version-data.")

    options = ChangelogOptions(
        version=new_version,
        version_data=load_version_data(version_data) if version_data else None,
        from_ref=from_ref,
        to_ref=to_ref,
        projects=_split_names(projects),
        groups=_split_names(groups),
        first_release=first_release,
        interactive=interactive,
        dry_run=dry_run,
        verbose=verbose,
        git_commit=git_commit,
        git_commit_message=git_commit_message,
        git_tag=git_tag,
        stage_changes=stage_changes,
        git_push=git_push,
        git_remote=git_remote,
        create_release=not no_create_release,
        delete_version_plans=not no_delete_version_plans,
    )
    try:
        result = release_changelog(options)
    except LazyChangelogError as e:
        raise click.ClickException(str(e)) from e

    if result.failed_projects:
        click.echo()
        click.echo(f"Skipped {len(result.failed_projects)} project(s):")
        for project, reason in result.failed_projects.items():
            click.echo(f"  {project}: {reason.splitlines()[0]}")
    if dry_run:
        click.echo()
        click.echo("Dry run: no files were written and no git or release commands were run.")
