"""Changelog document parsing and merging.

A changelog is a markdown document made of release sections, newest first.
A section starts at a level 1 or 2 heading whose first token is a version,
optionally bracketed or linked (``## 1.2.0 (2024-01-01)``,
``## [1.2.0rc1](https://...)``) and runs until the next section heading.
Semver and PEP 440 versions are both recognized.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .versions import is_version, versions_equal

# The first token of a level 1 or 2 heading, up to whitespace, "]" or "("
RELEASE_HEADING_RE = re.compile(
    r"^#{1,2}[ \t]+\[?v?(?P<version>\d[^\s\]\(]*)",
    re.MULTILINE,
)


@dataclass(frozen=True)
class ReleaseSection:
    """One release in a changelog document.

    start/end are offsets into the document: the heading starts at start
    and the section ends where the next release heading (or the document)
    begins.
    """

    version: str
    start: int
    end: int
    body: str


def parse_changelog_markdown(contents: str) -> list[ReleaseSection]:
    headings = [
        m for m in RELEASE_HEADING_RE.finditer(contents) if is_version(m.group("version"))
    ]
    sections: list[ReleaseSection] = []
    for i, heading in enumerate(headings):
        end = headings[i + 1].start() if i + 1 < len(headings) else len(contents)
        heading_line_end = contents.find("\n", heading.start(), end)
        body_start = end if heading_line_end == -1 else heading_line_end + 1
        sections.append(
            ReleaseSection(
                version=heading.group("version"),
                start=heading.start(),
                end=end,
                body=contents[body_start:end].strip(),
            )
        )
    return sections


def _join(section: str, rest: str) -> str:
    return section.rstrip("\n") + "\n\n" + rest


def merge_changelog(existing: str, new_section: str, version: str) -> str:
    """Merge a newly rendered release section into a changelog document.

    - no existing document: the result is exactly new_section
    - a section for version exists: its full span is replaced, every other
      section is kept byte for byte
    - otherwise: new_section goes above the newest release, below any title
      or preamble (or after the preamble when there are no releases yet)

    Merging the same section twice gives the same document as merging it once.
    """
    if not existing.strip():
        return new_section

    sections = parse_changelog_markdown(existing)
    for section in sections:
        if not versions_equal(section.version, version):
            continue
        before, after = existing[: section.start], existing[section.end :]
        if after:
            return before + _join(new_section, after)
        return before + new_section

    if not sections:
        return existing.rstrip("\n") + "\n\n" + new_section
    first = sections[0].start
    return existing[:first] + _join(new_section, existing[first:])
