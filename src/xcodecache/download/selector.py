"""
Release Selection

Applies version floors, groups releases into minor-version families and keeps
the newest few builds of each family.

Tie-break: within a family, releases with equal versions keep the order in
which they were first seen in the input. All sorts here are stable, so the
same input always produces the same output.
"""

from typing import Callable, Dict, Hashable, Iterable, List, Mapping, TypeVar

from xcodecache.constants import DEFAULT_FAMILY_SEGMENTS, DEFAULT_KEEP_PER_FAMILY
from xcodecache.log_utils import logger

from .interfaces import Release, SimulatorImage
from .version import Version

T = TypeVar("T", Release, SimulatorImage)


def family_key(version: Version, segments: int = DEFAULT_FAMILY_SEGMENTS) -> str:
    """Return the family grouping key for ``version``."""
    return version.family_key(segments)


def _newest_per_family(
    items: Iterable[T],
    group_key: Callable[[T], Hashable],
    keep_per_family: int,
) -> List[T]:
    if keep_per_family < 1:
        raise ValueError("keep_per_family must be at least 1")

    # dicts keep insertion order, so families appear in first-seen order
    families: Dict[Hashable, List[T]] = {}
    for item in items:
        families.setdefault(group_key(item), []).append(item)

    selected: List[T] = []
    for members in families.values():
        newest = sorted(members, key=lambda item: item.version, reverse=True)
        selected.extend(newest[:keep_per_family])
    return selected


def select_newest(
    releases: Iterable[Release],
    floor: Version,
    family_segments: int = DEFAULT_FAMILY_SEGMENTS,
    keep_per_family: int = DEFAULT_KEEP_PER_FAMILY,
) -> List[Release]:
    """
    Select the newest ``keep_per_family`` releases of every version family.

    Parameters:
        releases: Candidate releases in any order.
        floor: Releases below this version are dropped.
        family_segments: Number of leading version segments forming a family.
        keep_per_family: How many releases to keep per family.

    Returns:
        List[Release]: Selected releases, newest version first.
    """
    eligible = [release for release in releases if release.version >= floor]
    selected = _newest_per_family(
        eligible,
        lambda release: family_key(release.version, family_segments),
        keep_per_family,
    )
    selected.sort(key=lambda release: release.version, reverse=True)
    logger.debug(
        "Selected %d of %d releases at or above %s", len(selected), len(eligible), floor
    )
    return selected


def _sort_by_platform_then_newest(images: List[SimulatorImage]) -> None:
    # Two stable passes: version descending, then platform ascending
    images.sort(key=lambda image: image.version, reverse=True)
    images.sort(key=lambda image: image.platform)


def select_simulators(
    images: Iterable[SimulatorImage],
    floors: Mapping[str, Version],
    family_segments: int = DEFAULT_FAMILY_SEGMENTS,
    keep_per_family: int = DEFAULT_KEEP_PER_FAMILY,
) -> List[SimulatorImage]:
    """
    Select simulator images using a separate floor for each platform.

    Images whose platform tag has no floor are dropped. Duplicate download
    sources collapse to their first occurrence after a stable
    (platform, newest-first) pre-sort. Families are formed per platform.

    Returns:
        List[SimulatorImage]: Ordered by platform ascending, then version descending.
    """
    eligible = [
        image
        for image in images
        if image.platform in floors and image.version >= floors[image.platform]
    ]
    _sort_by_platform_then_newest(eligible)

    seen_sources = set()
    unique: List[SimulatorImage] = []
    for image in eligible:
        if image.source in seen_sources:
            continue
        seen_sources.add(image.source)
        unique.append(image)

    selected = _newest_per_family(
        unique,
        lambda image: (image.platform, family_key(image.version, family_segments)),
        keep_per_family,
    )
    _sort_by_platform_then_newest(selected)
    return selected


def order_by_date_modified(releases: Iterable[Release]) -> List[Release]:
    """Legacy ordering: oldest catalog modification first, undated entries first."""
    return sorted(releases, key=lambda release: release.date_modified or 0)
