"""
xcodecache Download Subsystem

Core Components:
- version: dotted-integer version values
- interfaces: Release, SimulatorImage and result value objects
- catalog: catalog and pre-release page adapters
- simulators: downloadable index source
- selector: newest-per-family selection
- transfer: resumable transfer engine
- orchestrator: sequential download pipeline
"""

from .catalog import merge_prereleases, parse_catalog, parse_prerelease_page
from .interfaces import DownloadResult, Release, SimulatorImage, SimulatorSource
from .orchestrator import DownloadOrchestrator
from .selector import (
    family_key,
    order_by_date_modified,
    select_newest,
    select_simulators,
)
from .simulators import DownloadableIndexSource, parse_downloadable_index
from .transfer import (
    HostTransports,
    TransferEngine,
    TransferExit,
    TransportKind,
    detect_transports,
    select_transport,
)
from .version import MINIMUM_VERSION, Version, parse_version

__all__ = [
    # Values
    "Version",
    "MINIMUM_VERSION",
    "parse_version",
    "Release",
    "SimulatorImage",
    "DownloadResult",
    # Sources
    "SimulatorSource",
    "DownloadableIndexSource",
    "parse_catalog",
    "parse_prerelease_page",
    "merge_prereleases",
    "parse_downloadable_index",
    # Selection
    "family_key",
    "select_newest",
    "select_simulators",
    "order_by_date_modified",
    # Transfer
    "HostTransports",
    "TransportKind",
    "TransferExit",
    "TransferEngine",
    "detect_transports",
    "select_transport",
    # Orchestration
    "DownloadOrchestrator",
]
