"""
Core Interfaces for the xcodecache Download Subsystem

This module defines the value objects that flow between the catalog adapter,
the selector and the orchestrator, plus the abstract sources that produce them.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from xcodecache.constants import (
    CATALOG_DOWNLOAD_URL_PREFIX,
    DEVELOPER_SITE_URL,
    PRODUCT_NAME,
)

from .version import Version

Pathish = Union[str, Path]

_PRODUCT_PREFIX_RX = re.compile(rf"^{re.escape(PRODUCT_NAME)} ")


def _version_from_name(name: str) -> Version:
    tokens = name.split()
    return Version.parse(tokens[0] if tokens else None)


@dataclass(frozen=True)
class Release:
    """
    One downloadable product build as listed by the catalog or the pre-release page.

    Two releases are equal only when date, name, path, url and version all
    match; ``release_notes_url`` is metadata and does not take part.
    """

    name: str
    """Display label with the product prefix removed (e.g. '9.4.1', '11 beta 5')"""

    path: str
    """Remote-relative artifact locator"""

    url: str
    """Fully qualified download URL"""

    release_notes_url: Optional[str] = field(default=None, compare=False)
    """Optional link to the release notes"""

    date_modified: Optional[int] = None
    """Catalog modification timestamp; only used for legacy ordering"""

    version: Version = field(init=False)
    """Parsed from the first whitespace-delimited token of ``name``"""

    def __post_init__(self) -> None:
        object.__setattr__(self, "version", _version_from_name(self.name))

    @classmethod
    def from_catalog(cls, record: Dict[str, Any]) -> "Release":
        """
        Build a release from one catalog download record.

        Parameters:
            record: Mapping with ``name``, ``files`` (first entry's
                ``remotePath`` is used), optional ``dateModified`` and
                optional ``release_notes_path``.

        Raises:
            KeyError, IndexError, TypeError: when the record is malformed.
        """
        name = _PRODUCT_PREFIX_RX.sub("", str(record["name"]))
        path = str(record["files"][0]["remotePath"])
        notes_path = record.get("release_notes_path")
        date_modified = record.get("dateModified")
        return cls(
            name=name,
            path=path,
            url=f"{CATALOG_DOWNLOAD_URL_PREFIX}{path}",
            release_notes_url=(
                f"{CATALOG_DOWNLOAD_URL_PREFIX}{notes_path}" if notes_path else None
            ),
            date_modified=int(date_modified) if date_modified is not None else None,
        )

    @classmethod
    def from_prerelease(
        cls, name: str, link: str, release_notes_path: Optional[str] = None
    ) -> "Release":
        """
        Build a release from a scraped download-page anchor.

        The link's ``path=`` query value becomes the remote path, so the
        resulting url is derived exactly as for catalog records.
        """
        record: Dict[str, Any] = {
            "name": name,
            "files": [{"remotePath": link.split("=")[-1]}],
        }
        if release_notes_path:
            record["release_notes_path"] = release_notes_path
        return cls.from_catalog(record)

    @classmethod
    def from_page_link(
        cls, name: str, link: str, release_notes_path: Optional[str] = None
    ) -> "Release":
        """Build a release from a bare site-relative link (e.g. a download button)."""
        relative = link.lstrip("/")
        notes = release_notes_path.lstrip("/") if release_notes_path else None
        return cls(
            name=name,
            path=relative.split("/")[-1],
            url=f"{DEVELOPER_SITE_URL}{relative}",
            release_notes_url=f"{DEVELOPER_SITE_URL}{notes}" if notes else None,
        )

    @property
    def file_name(self) -> str:
        """Last path component of the remote path."""
        return self.path.rstrip("/").split("/")[-1]

    def __str__(self) -> str:
        return f"{PRODUCT_NAME} {self.version} -- {self.url}"


@dataclass(frozen=True)
class SimulatorImage:
    """A companion simulator runtime image attached to an installed product version."""

    name: str
    """Display name whose first token is the platform tag (e.g. 'iOS 13.2 Simulator')"""

    version: Version
    """Runtime version"""

    source: str
    """Download URL"""

    @property
    def platform(self) -> str:
        tokens = self.name.split()
        return tokens[0] if tokens else ""

    @property
    def file_name(self) -> str:
        return self.source.rstrip("/").split("/")[-1]

    def __str__(self) -> str:
        return f"{self.name} -- {self.source}"


@dataclass
class DownloadResult:
    """Outcome of one orchestrated transfer."""

    success: bool
    """Whether the transfer succeeded"""

    name: str
    """Human-readable identifier of the item"""

    download_url: str
    """URL that was fetched"""

    file_path: Optional[Pathish] = None
    """Destination the artifact was written to"""

    error_message: Optional[str] = None
    """Reason for the failure, if any"""


class SimulatorSource(ABC):
    """
    Abstract provider of simulator images for the locally installed product versions.
    """

    @abstractmethod
    def get_simulators(self) -> List[SimulatorImage]:
        """
        Return every simulator image advertised by the installed versions.

        Returns:
            List[SimulatorImage]: Images in source order, duplicates included.
        """
