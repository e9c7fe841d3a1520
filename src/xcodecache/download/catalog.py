"""
Release Catalog Adapter

Turns the developer portal's download catalog (JSON) and the pre-release
download page (HTML) into uniform ``Release`` lists.
"""

import re
from typing import Any, Dict, Iterable, List, Optional

from xcodecache.constants import (
    ARTIFACT_EXTENSIONS,
    CATALOG_NAME_PATTERN,
    CATALOG_RESULT_OK,
)
from xcodecache.exceptions import CatalogError
from xcodecache.log_utils import logger

from .interfaces import Release
from .version import MINIMUM_VERSION, Version

_CATALOG_NAME_RX = re.compile(CATALOG_NAME_PATTERN)
_ARTIFACT_LINK_RX = re.compile(r'<a.+?href="(.+?\.(?:dmg|xip))".*>(.*)</a>')
_LINK_PARENT_RX = re.compile(r"path=(/.*/.*/)")
_PRODUCT_LABEL_RX = re.compile(r".*Xcode ")
_TAG_RX = re.compile(r"<.*?>")
_BETA_TITLE_RX = re.compile(r"platform-title.*Xcode.* beta.*</p>")
_GM_TITLE_RX = re.compile(r"Xcode.* GM.*</p>")
_BUTTON_LINK_RX = re.compile(r'<button .*"(.+?\.xip)".*</button>')
_NOTES_LINK_RX = re.compile(r'<a.+?href="(/go/\?id=xcode-.+?)".*>(.*)</a>')


def parse_catalog(
    payload: Dict[str, Any], floor: Version = MINIMUM_VERSION
) -> List[Release]:
    """
    Convert a catalog response into releases.

    Only product entries (names starting with the product name and a digit)
    whose version is at least ``floor`` and whose artifact is a disk image or
    signed archive are kept. The list is ordered oldest modification first.

    Parameters:
        payload: Decoded catalog response with ``resultCode``,
            ``resultString`` and ``downloads``.
        floor: Minimum version to keep.

    Returns:
        List[Release]: Releases in ``date_modified`` order.

    Raises:
        CatalogError: If the catalog reports a non-OK result code or the
            payload is not a mapping.
    """
    if not isinstance(payload, dict):
        raise CatalogError(
            "Invalid catalog response",
            details=f"expected object, got {type(payload).__name__}",
        )

    result_code = payload.get("resultCode")
    if result_code != CATALOG_RESULT_OK:
        raise CatalogError(
            str(payload.get("resultString") or "Catalog request failed"),
            result_code=result_code,
        )

    downloads = payload.get("downloads") or []
    releases: List[Release] = []
    for record in downloads:
        if not isinstance(record, dict):
            logger.warning(
                "Skipping malformed catalog entry: expected dict, got %s",
                type(record).__name__,
            )
            continue
        if not _CATALOG_NAME_RX.match(str(record.get("name", ""))):
            continue
        try:
            release = Release.from_catalog(record)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            logger.warning(
                "Skipping malformed catalog entry %r: %s", record.get("name"), exc
            )
            continue
        if release.version < floor:
            continue
        releases.append(release)

    releases.sort(key=lambda release: release.date_modified or 0)

    kept = [r for r in releases if r.url.endswith(ARTIFACT_EXTENSIONS)]
    logger.debug("Catalog listed %d releases, kept %d", len(downloads), len(kept))
    return kept


def _release_notes_for(body: str, link: str) -> Optional[str]:
    parent_match = _LINK_PARENT_RX.search(link)
    if not parent_match:
        return None
    parent = parent_match.group(1)
    notes = re.search(re.escape(parent) + r"(.+?\.pdf)", body)
    if not notes:
        return None
    return parent + notes.group(1)


def _fallback_prerelease(body: str) -> List[Release]:
    """Parse a page that shows a single beta or GM build behind a download button."""
    titles = _BETA_TITLE_RX.findall(body) or _GM_TITLE_RX.findall(body)
    if not titles:
        return []

    button = _BUTTON_LINK_RX.search(body)
    if not button:
        logger.debug("Pre-release title found but no download button")
        return []

    name = _PRODUCT_LABEL_RX.sub("", _TAG_RX.sub("", titles[0])).strip()
    notes = _NOTES_LINK_RX.search(body)
    return [
        Release.from_page_link(
            name, button.group(1), notes.group(1) if notes else None
        )
    ]


def parse_prerelease_page(body: str) -> List[Release]:
    """
    Scrape pre-release builds from the download page markup.

    Each anchor linking to a ``.dmg`` or ``.xip`` becomes a release named by
    the anchor's label; a release-notes PDF under the same remote directory is
    attached when the page mentions one. A page with no matches yields an
    empty list.
    """
    if not body:
        return []

    releases: List[Release] = []
    for link, label in _ARTIFACT_LINK_RX.findall(body):
        name = _PRODUCT_LABEL_RX.sub("", label.strip())
        releases.append(
            Release.from_prerelease(name, link, _release_notes_for(body, link))
        )

    if not releases:
        releases = _fallback_prerelease(body)

    logger.debug("Found %d pre-release builds on the download page", len(releases))
    return releases


def merge_prereleases(
    releases: Iterable[Release], prereleases: Iterable[Release]
) -> List[Release]:
    """Append pre-releases whose name is not already listed in the catalog."""
    merged = list(releases)
    names = {release.name for release in merged}
    for prerelease in prereleases:
        if prerelease.name not in names:
            merged.append(prerelease)
            names.add(prerelease.name)
    return merged
