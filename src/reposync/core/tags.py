"""
Tag Version Resolver.

Parses raw tag listings (``git ls-remote --tags`` output) and orders the
tags of one release family so that the last entry is the latest release.

Ordering rules:
    - Only lines of the form ``<sha> refs/tags/<prefix><suffix>`` survive,
      where ``<prefix>`` is the glob pattern without its trailing ``*`` and
      ``<suffix>`` is dotted numbers with an optional ``-RC.<n>``.
    - Tags are grouped by the number of dotted segments in the suffix.
      Families with more segments than the smallest family come first, by
      ascending segment count, each sorted by plain string comparison.
    - The smallest family comes last, sorted numerically with release
      candidates before the final release of the same number.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from itertools import groupby
from typing import Dict, List, Optional, Tuple

TAG_LINE_PATTERN = re.compile(r"^(?P<sha>[0-9a-fA-F]+)\s+refs/tags/(?P<name>\S+)$")
SUFFIX_PATTERN = re.compile(r"^(?P<numbers>\d+(?:\.\d+)*)(?:-RC\.(?P<rc>\d+))?$")
VERSION_PATTERN = re.compile(r"^(?:.*/)?(?P<numbers>\d+(?:\.\d+)*)(?:-RC\.(?P<rc>\d+))?$")
RELEASE_BRANCH_PATTERN = re.compile(r"^release/(?P<version>[^*]+)$")

RELEASE_TAG_PREFIX = "version/"

VersionKey = Tuple[Tuple[int, ...], int, int]


@dataclass(frozen=True)
class VersionTag:
    """
    A tag name split into its fixed prefix and its version suffix.

    Attributes:
        name: Full tag name, e.g. ``version/23.1.0-RC.2``.
        prefix: Fixed part taken from the glob pattern, e.g. ``version/23.1.``.
        suffix: Variable part, e.g. ``0-RC.2``.
        numbers: Dotted numeric components of the suffix.
        rc: Release candidate counter, or None for a final release.
    """

    name: str
    prefix: str
    suffix: str
    numbers: Tuple[int, ...]
    rc: Optional[int] = None

    @property
    def segment_count(self) -> int:
        return len(self.numbers)

    @property
    def is_release_candidate(self) -> bool:
        return self.rc is not None

    @property
    def numeric_key(self) -> VersionKey:
        # release candidates sort before the final release of the same number
        return (self.numbers, 0 if self.is_release_candidate else 1, self.rc or 0)

    @classmethod
    def parse(cls, name: str, prefix: str) -> Optional["VersionTag"]:
        """Parse ``name`` against ``prefix``; None if it does not belong to the family."""
        if not name.startswith(prefix):
            return None
        suffix = name[len(prefix):]
        match = SUFFIX_PATTERN.match(suffix)
        if not match:
            return None
        numbers = tuple(int(part) for part in match.group("numbers").split("."))
        rc = match.group("rc")
        return cls(
            name=name,
            prefix=prefix,
            suffix=suffix,
            numbers=numbers,
            rc=int(rc) if rc is not None else None,
        )


def pattern_prefix(pattern: str) -> str:
    """
    Strip the trailing wildcard from a tag glob.

    Raises:
        ValueError: If the pattern does not end with exactly one ``*``.
    """
    if not pattern.endswith("*") or "*" in pattern[:-1]:
        raise ValueError(f"Tag pattern must end with a single '*': {pattern}")
    return pattern[:-1]


def parse_tag_listing(listing: str, pattern: str) -> List[VersionTag]:
    """
    Extract the tags of one family from raw listing text.

    Malformed lines and tags outside the pattern are discarded.

    Args:
        listing: Newline-delimited ``<sha> refs/tags/<name>`` lines.
        pattern: Glob with one trailing ``*``, e.g. ``version/23.1.*``.

    Returns:
        Parsed tags in listing order.
    """
    prefix = pattern_prefix(pattern)
    tags: List[VersionTag] = []
    for line in listing.splitlines():
        match = TAG_LINE_PATTERN.match(line.strip())
        if not match:
            continue
        tag = VersionTag.parse(match.group("name"), prefix)
        if tag is not None:
            tags.append(tag)
    return tags


def sort_tags(tags: List[VersionTag]) -> List[VersionTag]:
    """
    Order tags ascending so the last element is the latest release.

    Non-canonical families are compared as strings, so ``12.5`` sorts before
    ``2.5``. This matches the ordering existing manifests were written with.
    """
    if not tags:
        return []

    by_count = sorted(tags, key=lambda t: t.segment_count)
    families: Dict[int, List[VersionTag]] = {
        count: list(members) for count, members in groupby(by_count, key=lambda t: t.segment_count)
    }
    canonical = min(families)

    ordered: List[VersionTag] = []
    for count in sorted(families):
        if count != canonical:
            ordered.extend(sorted(families[count], key=lambda t: t.suffix))
    ordered.extend(sorted(families[canonical], key=lambda t: t.numeric_key))
    return ordered


def ordered_tag_names(listing: str, pattern: str) -> List[str]:
    """Parse and order a listing, returning full tag names."""
    return [tag.name for tag in sort_tags(parse_tag_listing(listing, pattern))]


def latest_tag(listing: str, pattern: str) -> Optional[str]:
    """Return the latest tag of the family, or None when there is none."""
    names = ordered_tag_names(listing, pattern)
    return names[-1] if names else None


def listing_contains_tag(listing: str, tag: str) -> bool:
    """Check whether an exact tag name appears in a listing."""
    for line in listing.splitlines():
        match = TAG_LINE_PATTERN.match(line.strip())
        if match and match.group("name") == tag:
            return True
    return False


def release_tag_pattern(branch: Optional[str]) -> Optional[str]:
    """
    Map a release branch to the glob of its version tags.

    ``release/22.3`` maps to ``version/22.3.*``. Other branches have no
    associated tags and map to None.
    """
    if not branch:
        return None
    match = RELEASE_BRANCH_PATTERN.match(branch)
    if not match:
        return None
    return f"{RELEASE_TAG_PREFIX}{match.group('version')}.*"


def parse_version(tag: str) -> Optional[VersionKey]:
    """
    Parse a tag into a comparable version key.

    ``version/22.2.1-RC.3`` becomes ``((22, 2, 1), 0, 3)``; the final
    release ``version/22.2.1`` becomes ``((22, 2, 1), 1, 0)``.
    """
    match = VERSION_PATTERN.match(tag)
    if not match:
        return None
    numbers = tuple(int(part) for part in match.group("numbers").split("."))
    rc = match.group("rc")
    if rc is None:
        return (numbers, 1, 0)
    return (numbers, 0, int(rc))
