"""Conventional commit parsing.

Turns raw ``git log`` records into GitCommit objects:

- header ``type(scope)!: description``
- breaking changes via ``!`` or a ``BREAKING CHANGE:`` footer
- pull request / issue references and the short hash
- ``Co-authored-by:`` trailers as additional authors
- hashes reverted by ``This reverts commit <sha>.`` bodies
"""

from __future__ import annotations

import re

from .models import Author, GitCommit, RawGitCommit, Reference

CONVENTIONAL_RE = re.compile(
    r"^(?P<type>[a-zA-Z]+)(?:\((?P<scope>[^)]*)\))?(?P<breaking>!)?: (?P<description>.+)$"
)
REVERT_HEADER_RE = re.compile(r'^Revert "(?P<inner>.+)"$')
BREAKING_FOOTER_RE = re.compile(r"^BREAKING[ -]CHANGE:", re.MULTILINE)
CO_AUTHORED_BY_RE = re.compile(
    r"^co-authored-by:\s*(?P<name>[^<]+?)\s*<(?P<email>[^>]+)>", re.IGNORECASE | re.MULTILINE
)
PULL_REQUEST_RE = re.compile(r"\([ a-zA-Z]*(#\d+)\s*\)")
ISSUE_RE = re.compile(r"(#\d+)")
REVERTED_HASH_RE = re.compile(r"This reverts commit (?P<hash>[0-9a-f]{7,40})")


def _references(raw: RawGitCommit) -> list[Reference]:
    refs: list[Reference] = []
    for value in PULL_REQUEST_RE.findall(raw.message):
        refs.append(Reference(type="pull-request", value=value))
    seen = {r.value for r in refs}
    for value in ISSUE_RE.findall(raw.message):
        if value not in seen:
            refs.append(Reference(type="issue", value=value))
            seen.add(value)
    if raw.short_hash:
        refs.append(Reference(type="hash", value=raw.short_hash))
    return refs


def _authors(raw: RawGitCommit) -> list[Author]:
    authors = [raw.author]
    emails = {raw.author.email.lower()}
    for match in CO_AUTHORED_BY_RE.finditer(raw.body):
        email = match.group("email").strip()
        if email.lower() not in emails:
            authors.append(Author(name=match.group("name").strip(), email=email))
            emails.add(email.lower())
    return authors


def parse_git_commit(raw: RawGitCommit) -> GitCommit:
    """Parse a single raw commit.

    Non-conventional messages keep an empty type, so the type visibility
    table treats them as unknown and drops them.
    """
    header = raw.message.strip()
    commit_type = ""
    scope = ""
    breaking_marker = False
    description = header

    revert = REVERT_HEADER_RE.match(header)
    if revert:
        commit_type = "revert"
        description = revert.group("inner")
    else:
        match = CONVENTIONAL_RE.match(header)
        if match:
            commit_type = match.group("type").lower()
            scope = (match.group("scope") or "").strip()
            breaking_marker = bool(match.group("breaking"))
            description = match.group("description")

    # PR references are rendered as links, not as part of the description
    description = PULL_REQUEST_RE.sub("", description).strip()

    return GitCommit(
        raw=raw,
        type=commit_type,
        scope=scope,
        description=description,
        body=raw.body,
        is_breaking=breaking_marker or bool(BREAKING_FOOTER_RE.search(raw.body)),
        references=_references(raw),
        authors=_authors(raw),
        reverted_hashes=REVERTED_HASH_RE.findall(raw.body),
    )


def parse_commits(raw_commits: list[RawGitCommit]) -> list[GitCommit]:
    return [parse_git_commit(c) for c in raw_commits]
