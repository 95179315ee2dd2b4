"""Version derivation from download URLs and version ordering."""

from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse

from packaging.version import InvalidVersion, Version

from ..models import VersionComparison

logger = logging.getLogger(__name__)

# Longest first so `.tar.gz` wins over `.gz`
ARCHIVE_EXTENSIONS = (
    ".tar.bz2",
    ".tar.gz",
    ".tar.lz",
    ".tar.xz",
    ".tar.zst",
    ".tbz2",
    ".tar",
    ".tbz",
    ".tgz",
    ".txz",
    ".zip",
    ".bz2",
    ".gem",
    ".jar",
    ".dmg",
    ".pkg",
    ".rar",
    ".7z",
    ".gz",
    ".xz",
)

# foo-1.2.3, foo_1.2, foo-v2.0rc1, openssl-1.0.2k, openssh-7.4p1
# and a lettered tail such as foo-1.0-src or node-v18.0.0-darwin-x64
STEM_VERSION_PATTERN = re.compile(
    r"[-_.]v?(\d+(?:[._]\d+)*[a-z]?(?:[-._]?(?:alpha|beta|pre|rc|a|b|p)\d*)?)"
    r"(?:[-_.][a-z][\w.+-]*)?$",
    re.IGNORECASE,
)
# v1.2.3 or 1.2 on its own (github archives, release directories)
BARE_VERSION_PATTERN = re.compile(r"v?(\d+(?:\.\d+)+(?:[-.]?[a-z]+\d*)?)", re.IGNORECASE)
QUOTED_PATTERN = re.compile(r"""(["'])(.*?)\1""")
TAG_PATTERN = re.compile(r"""(?::tag\s*=>|\btag:)\s*(["'])(.*?)\1""")
SEGMENT_PATTERN = re.compile(r"\d+|[a-z]+", re.IGNORECASE)

# Letter segments that sort before the release they precede
PRERELEASE_SEGMENTS = frozenset({"alpha", "beta", "pre", "rc", "a", "b", "dev"})


def _strip_archive_extension(name: str) -> str:
    lowered = name.lower()
    for ext in ARCHIVE_EXTENSIONS:
        if lowered.endswith(ext):
            return name[: -len(ext)]
    return name


def _normalize(raw: str) -> str:
    if "." not in raw:
        raw = raw.replace("_", ".")
    return raw


def first_quoted(argument: str) -> str | None:
    """Return the first quoted string in a DSL argument list."""
    match = QUOTED_PATTERN.search(argument)
    return match.group(2) if match else None


def version_from_tag(argument: str) -> str | None:
    """Derive a version from a `tag: "v1.2"` option on a url declaration."""
    match = TAG_PATTERN.search(argument)
    if not match:
        return None
    tag_match = BARE_VERSION_PATTERN.search(match.group(2))
    return tag_match.group(1) if tag_match else None


def version_from_url(url: str) -> str | None:
    """Derive a version string from a download URL's filename.

    Falls back to version-shaped directory names (e.g. `/releases/v1.2/foo.tgz`).
    Returns None when nothing version-like is found.
    """
    path = PurePosixPath(unquote(urlparse(url).path))
    stem = _strip_archive_extension(path.name)

    match = BARE_VERSION_PATTERN.fullmatch(stem)
    if match:
        return match.group(1)

    match = STEM_VERSION_PATTERN.search(stem)
    if match:
        return _normalize(match.group(1))

    for segment in reversed(path.parts[:-1]):
        match = BARE_VERSION_PATTERN.fullmatch(segment)
        if match:
            return match.group(1)

    logger.debug("No version found in URL %s", url)
    return None


def _segment_key(segment: int | str | None) -> tuple[int, int, str]:
    # prerelease < number (missing counts as 0) < patch letter such as `k` or `p`
    if segment is None:
        return (1, 0, "")
    if isinstance(segment, int):
        return (1, segment, "")
    if segment in PRERELEASE_SEGMENTS:
        return (0, 0, segment)
    return (2, 0, segment)


def _segments(version: str) -> list[int | str]:
    return [int(token) if token.isdigit() else token.lower() for token in SEGMENT_PATTERN.findall(version)]


def _compare_segments(current: str, historical: str) -> VersionComparison:
    """Segment-wise ordering for versions outside package-version syntax (1.0.2k, 7.4p1)."""
    left = _segments(current)
    right = _segments(historical)
    if not left or not right or not isinstance(left[0], int) or not isinstance(right[0], int):
        logger.warning("Cannot order versions %r and %r; version rules skipped", current, historical)
        return VersionComparison.INCOMPARABLE

    width = max(len(left), len(right))
    left_key = [_segment_key(s) for s in left] + [_segment_key(None)] * (width - len(left))
    right_key = [_segment_key(s) for s in right] + [_segment_key(None)] * (width - len(right))
    if left_key < right_key:
        return VersionComparison.LESS
    if left_key > right_key:
        return VersionComparison.GREATER
    return VersionComparison.EQUAL


def compare_versions(current: str | None, historical: str | None) -> VersionComparison:
    """Order `current` relative to `historical` using package-version semantics.

    Strings outside that syntax are compared segment by segment instead.
    """
    if current is None or historical is None:
        return VersionComparison.INCOMPARABLE
    if current == historical:
        return VersionComparison.EQUAL

    try:
        current_version = Version(current)
        historical_version = Version(historical)
    except InvalidVersion:
        return _compare_segments(current, historical)

    if current_version < historical_version:
        return VersionComparison.LESS
    if current_version > historical_version:
        return VersionComparison.GREATER
    return VersionComparison.EQUAL
