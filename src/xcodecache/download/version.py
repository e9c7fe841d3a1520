"""
Version Parsing and Ordering for the xcodecache Download Subsystem

This module provides the dotted-integer version value used for release
selection. Parsing never fails: anything that is not a plain numeric release
degrades to ``MINIMUM_VERSION`` so that comparisons stay total.
"""

from functools import total_ordering
from itertools import zip_longest
from typing import Any, Optional, Tuple

from packaging.version import InvalidVersion
from packaging.version import Version as PackagingVersion


def _normalized(segments: Tuple[int, ...]) -> Tuple[int, ...]:
    """Strip trailing zero segments; comparison treats them as padding."""
    end = len(segments)
    while end and segments[end - 1] == 0:
        end -= 1
    return segments[:end]


@total_ordering
class Version:
    """
    An immutable, totally ordered tuple of non-negative integer segments.

    Shorter versions are zero-padded for comparison only, so ``9.4`` equals
    ``9.4.0`` and hashes the same, while ``segments`` keeps what was parsed.
    """

    __slots__ = ("_segments",)

    def __init__(self, segments: Tuple[int, ...] = ()) -> None:
        if any((not isinstance(s, int)) or s < 0 for s in segments):
            raise ValueError(f"Invalid version segments: {segments!r}")
        object.__setattr__(self, "_segments", tuple(segments))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Version is immutable")

    @property
    def segments(self) -> Tuple[int, ...]:
        return self._segments

    @classmethod
    def parse(cls, text: Optional[str]) -> "Version":
        """
        Parse a dotted version string, returning MINIMUM_VERSION on failure.

        A leading "v" and surrounding whitespace are accepted. Pre-release,
        post-release, development, local and epoch markers are not plain
        numeric releases and therefore degrade to the minimum.
        """
        if not isinstance(text, str) or not text.strip():
            return MINIMUM_VERSION
        try:
            parsed = PackagingVersion(text.strip())
        except InvalidVersion:
            return MINIMUM_VERSION
        if (
            parsed.epoch
            or parsed.pre is not None
            or parsed.post is not None
            or parsed.dev is not None
            or parsed.local is not None
        ):
            return MINIMUM_VERSION
        return cls(tuple(parsed.release))

    def family_key(self, segments: int = 2) -> str:
        """
        Return the grouping key built from the first ``segments`` segments.

        Missing segments are zero-padded, so ``10`` and ``10.0.1`` both map
        to ``"10.0"`` for two segments.
        """
        if segments < 1:
            raise ValueError("segments must be at least 1")
        padded = self._segments + (0,) * max(0, segments - len(self._segments))
        return ".".join(str(part) for part in padded[:segments])

    def _cmp_key(self) -> Tuple[int, ...]:
        return _normalized(self._segments)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._cmp_key() == other._cmp_key()

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        for mine, theirs in zip_longest(self._segments, other._segments, fillvalue=0):
            if mine != theirs:
                return mine < theirs
        return False

    def __hash__(self) -> int:
        return hash(self._cmp_key())

    def __str__(self) -> str:
        if not self._segments:
            return "0"
        return ".".join(str(part) for part in self._segments)

    def __repr__(self) -> str:
        return f"Version('{self}')"


MINIMUM_VERSION = Version(())
"""Sentinel for unparsable input; compares equal to ``0`` and below every real release."""


def parse_version(text: Optional[str]) -> Version:
    """Module-level shortcut for ``Version.parse``."""
    return Version.parse(text)
