"""
Simulator Image Source

Reads the downloadable-component indexes that installed product versions
advertise and turns their entries into ``SimulatorImage`` values.
"""

import plistlib
from pathlib import Path
from typing import Iterable, List, Optional

import requests

from xcodecache.constants import (
    CATALOG_REQUEST_TIMEOUT,
    DOWNLOADABLE_IDENTIFIER_PLACEHOLDER,
    DOWNLOADABLE_VERSION_PLACEHOLDER,
)
from xcodecache.log_utils import logger
from xcodecache.utils import build_http_session

from .interfaces import SimulatorImage, SimulatorSource
from .version import Version


def _expand(template: str, version: str, identifier: str) -> str:
    return template.replace(DOWNLOADABLE_VERSION_PLACEHOLDER, version).replace(
        DOWNLOADABLE_IDENTIFIER_PLACEHOLDER, identifier
    )


def parse_downloadable_index(data: bytes) -> List[SimulatorImage]:
    """
    Parse a downloadable index property list.

    Entries missing a name, version or source are skipped. Name and source
    templates have their version and identifier placeholders expanded.

    Raises:
        plistlib.InvalidFileException, ValueError: if ``data`` is not a property list.
    """
    index = plistlib.loads(data)
    downloadables = index.get("downloadables", []) if isinstance(index, dict) else []

    images: List[SimulatorImage] = []
    for entry in downloadables:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        version = entry.get("version")
        source = entry.get("source")
        if not (name and version and source):
            logger.debug("Skipping incomplete downloadable entry: %r", entry)
            continue
        identifier = str(entry.get("identifier", ""))
        images.append(
            SimulatorImage(
                name=_expand(str(name), str(version), identifier),
                version=Version.parse(str(version)),
                source=_expand(str(source), str(version), identifier),
            )
        )
    return images


class DownloadableIndexSource(SimulatorSource):
    """
    Collects simulator images from a list of index locations.

    A location is either an http(s) URL or a path to a local index file. A
    location that cannot be read or parsed is logged and skipped.
    """

    def __init__(
        self,
        locations: Iterable[str],
        session: Optional[requests.Session] = None,
        timeout: int = CATALOG_REQUEST_TIMEOUT,
    ):
        self.locations = list(locations)
        self.session = session or build_http_session()
        self.timeout = timeout

    def _read(self, location: str) -> bytes:
        if location.startswith(("http://", "https://")):
            response = self.session.get(location, timeout=self.timeout)
            response.raise_for_status()
            return response.content
        return Path(location).expanduser().read_bytes()

    def get_simulators(self) -> List[SimulatorImage]:
        images: List[SimulatorImage] = []
        for location in self.locations:
            try:
                images.extend(parse_downloadable_index(self._read(location)))
            except (OSError, requests.RequestException) as exc:
                logger.warning("Could not read simulator index %s: %s", location, exc)
            except (plistlib.InvalidFileException, ValueError) as exc:
                logger.warning("Invalid simulator index %s: %s", location, exc)
        logger.debug("Found %d simulator images", len(images))
        return images
