"""Git primitives used by the changelog run.

Read operations (ref resolution, history, tags) raise GitError when git
cannot complete them. Mutating operations (add, commit, tag, push) accept a
dry_run flag that prints the command instead of running it, so a dry run
walks through exactly the same sequence.
"""

from __future__ import annotations

import re

from .exceptions import GitError
from .models import Author, RawGitCommit, interpolate
from .shell import git
from .versions import extract_preid, is_version, parse_release_version

# ASCII record/unit separators keep commit bodies from breaking the parse.
_RECORD = "\x1e"
_UNIT = "\x1f"
_LOG_FORMAT = f"--format={_RECORD}%s{_UNIT}%h{_UNIT}%an{_UNIT}%ae%n%b"
_NAME_STATUS_RE = re.compile(r"^([ACDMRTUX])\d*\t(.+)$")

# What a {version} placeholder may match inside a tag; validated afterwards
# as a semver or PEP 440 version.
_VERSION_RE = r"(\d[0-9A-Za-z.+-]*)"


def get_commit_hash(ref: str) -> str:
    """Resolve a ref (branch, tag, sha, HEAD) to a full commit hash.

    Raises:
        GitError: If the ref does not resolve to a commit.
    """
    sha = git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}", check=False)
    if not sha:
        raise GitError(f'Unable to resolve "{ref}" to a commit')
    return sha


def get_first_commit() -> str:
    """Return the hash of the repository's first (root) commit."""
    roots = git("rev-list", "--max-parents=0", "HEAD").splitlines()
    if not roots:
        raise GitError("Unable to find the first commit in the repository")
    # Multiple roots happen after merging unrelated histories; take the oldest
    return roots[-1]


def parse_log_output(output: str) -> list[RawGitCommit]:
    """Parse ``git log`` output produced with _LOG_FORMAT and --name-status."""
    commits: list[RawGitCommit] = []
    for record in output.split(_RECORD):
        if not record.strip():
            continue
        header, _, rest = record.partition("\n")
        message, short_hash, name, email = (header.split(_UNIT) + ["", "", ""])[:4]

        body_lines: list[str] = []
        files: list[str] = []
        for line in rest.splitlines():
            match = _NAME_STATUS_RE.match(line)
            if match:
                # Renames and copies list both the old and the new path
                files.extend(match.group(2).split("\t"))
            else:
                body_lines.append(line)

        commits.append(
            RawGitCommit(
                message=message,
                body="\n".join(body_lines).strip(),
                short_hash=short_hash,
                author=Author(name=name, email=email),
                affected_files=files,
            )
        )
    return commits


def get_git_diff(from_sha: str, to_sha: str) -> list[RawGitCommit]:
    """Return the commits in from_sha..to_sha, newest first, with touched files."""
    output = git("--no-pager", "log", f"{from_sha}..{to_sha}", _LOG_FORMAT, "--name-status")
    return parse_log_output(output)


def get_commit_adding_file(path: str) -> RawGitCommit | None:
    """Return the commit that added path, or None if it is not committed yet."""
    output = git(
        "--no-pager",
        "log",
        "--diff-filter=A",
        "-1",
        _LOG_FORMAT,
        "--name-status",
        "--",
        path,
        check=False,
    )
    commits = parse_log_output(output)
    return commits[0] if commits else None


def get_remote_url(remote: str) -> str | None:
    return git("remote", "get-url", remote, check=False) or None


def tag_pattern_regex(
    pattern: str, project_name: str = "", release_group_name: str = ""
) -> re.Pattern[str]:
    """Build a regex matching tags produced by a release tag pattern.

    The {version} placeholder becomes a capture group; project and group
    names are matched literally.
    """
    escaped = re.escape(
        interpolate(
            pattern,
            {"project_name": project_name, "release_group_name": release_group_name},
        )
    )
    return re.compile("^" + escaped.replace(re.escape("{version}"), _VERSION_RE) + "$")


def get_latest_tag_for_pattern(
    pattern: str,
    project_name: str = "",
    release_group_name: str = "",
    preid: str | None = None,
) -> str | None:
    """Find the newest tag matching a release tag pattern.

    Both semver ("v1.0.0-rc.1") and PEP 440 ("v1.0.0rc1") tags match. Tags
    are ordered newest version first; tags packaging cannot order keep
    git's version sort after them. With a preid, the newest tag carrying
    that preid wins, falling back to the newest stable tag. Without one,
    the newest stable tag wins, falling back to the newest matching tag of
    any kind.

    Returns:
        The tag name, or None if no tag matches.
    """
    regex = tag_pattern_regex(pattern, project_name, release_group_name)
    tags = git("tag", "--list", "--sort=-v:refname", check=False).splitlines()

    candidates: list[tuple[str, str]] = []
    for tag in tags:
        match = regex.match(tag)
        if match and is_version(match.group(1)):
            candidates.append((tag, match.group(1)))
    if not candidates:
        return None

    def newest_first(index: int) -> tuple:
        parsed = parse_release_version(candidates[index][1])
        return (1, parsed) if parsed is not None else (0, -index)

    order = sorted(range(len(candidates)), key=newest_first, reverse=True)
    candidates = [candidates[i] for i in order]

    stable = [tag for tag, version in candidates if extract_preid(version) is None]
    if preid:
        same_preid = [tag for tag, version in candidates if extract_preid(version) == preid]
        if same_preid:
            return same_preid[0]
        return stable[0] if stable else None
    return stable[0] if stable else candidates[0][0]


def _mutate(args: list[str], dry_run: bool, verbose: bool) -> str:
    if dry_run:
        print(f"  Would run: git {' '.join(args)}")
        return ""
    if verbose:
        print(f"  Running: git {' '.join(args)}")
    return git(*args)


def git_add(
    changed_files: list[str],
    deleted_files: list[str],
    *,
    dry_run: bool = False,
    verbose: bool = False,
) -> None:
    """Stage changed files and the removal of tracked deleted files."""
    tracked = set(git("ls-files", "--", *deleted_files).splitlines()) if deleted_files else set()
    paths = changed_files + [f for f in deleted_files if f in tracked]
    if not paths:
        return
    _mutate(["add", "--all", "--", *paths], dry_run, verbose)


def git_commit(
    messages: list[str],
    extra_args: list[str] | None = None,
    *,
    dry_run: bool = False,
    verbose: bool = False,
) -> None:
    """Commit the index, one -m per message line (the first is the subject)."""
    args = ["commit"]
    for message in messages:
        args.extend(["-m", message])
    args.extend(extra_args or [])
    _mutate(args, dry_run, verbose)


def git_tag(
    tag: str,
    message: str = "",
    extra_args: list[str] | None = None,
    *,
    dry_run: bool = False,
    verbose: bool = False,
) -> None:
    """Create a tag at HEAD, annotated when a message is given."""
    args = ["tag", tag]
    if message:
        args = ["tag", "--annotate", tag, "--message", interpolate(message, {"tag": tag})]
    args.extend(extra_args or [])
    _mutate(args, dry_run, verbose)


def git_push(
    remote: str,
    refs: list[str],
    extra_args: list[str] | None = None,
    *,
    dry_run: bool = False,
    verbose: bool = False,
) -> None:
    """Push refs (branch heads and tags) atomically to remote."""
    args = ["push", "--atomic", remote, *refs, *(extra_args or [])]
    _mutate(args, dry_run, verbose)
