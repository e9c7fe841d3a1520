"""
Download Pipeline Orchestrator

Drives the transfer engine over selected releases and simulator images,
strictly one item at a time, and aggregates the results.
"""

import os
import time
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

from xcodecache.constants import DEFAULT_DESTINATION, PRODUCT_NAME
from xcodecache.log_utils import logger

from .interfaces import DownloadResult, Pathish, Release, SimulatorImage
from .transfer import TransferEngine

if TYPE_CHECKING:
    from xcodecache.session import RunContext


class DownloadOrchestrator:
    """
    Runs one transfer per selected item, in the order it was given.

    A failed item is logged and recorded; the run then moves on to the next
    item. Retries are entirely the transfer engine's business.
    """

    def __init__(
        self,
        context: Optional["RunContext"],
        engine: TransferEngine,
        output_dir: Optional[Pathish] = None,
    ):
        """
        Parameters:
            context: The run context carrying the authenticated session;
                None for anonymous runs.
            engine: Transfer engine used for every item.
            output_dir: Directory to keep artifacts in; when omitted the
                artifacts are streamed to the discard sink.
        """
        self.context = context
        self.engine = engine
        self.output_dir = Path(output_dir).expanduser() if output_dir else None

        self.download_results: List[DownloadResult] = []
        self.failed_downloads: List[DownloadResult] = []

    def _destination_for(self, file_name: str) -> str:
        if self.output_dir is None:
            return DEFAULT_DESTINATION
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return str(self.output_dir / os.path.basename(file_name))

    def _fetch_one(
        self, label: str, url: str, file_name: str, cookie: Optional[str]
    ) -> DownloadResult:
        logger.info(label)
        destination = self._destination_for(file_name)
        if self.engine.fetch(url, destination, cookie=cookie):
            result = DownloadResult(
                success=True, name=label, download_url=url, file_path=destination
            )
            self.download_results.append(result)
        else:
            logger.error(f"Failed to download {label} from {url}")
            result = DownloadResult(
                success=False,
                name=label,
                download_url=url,
                file_path=destination,
                error_message="transfer failed",
            )
            self.failed_downloads.append(result)
        return result

    def run(
        self, releases: Iterable[Release]
    ) -> Tuple[List[DownloadResult], List[DownloadResult]]:
        """
        Download every release with the session cookie.

        Returns:
            Tuple[List[DownloadResult], List[DownloadResult]]: (successful, failed).
        """
        start_time = time.time()
        cookie = self.context.session.cookie if self.context else None
        for release in releases:
            self._fetch_one(
                f"{PRODUCT_NAME} {release.version}", release.url, release.file_name, cookie
            )
        self._log_summary(start_time)
        return self.download_results, self.failed_downloads

    def run_simulators(
        self, images: Iterable[SimulatorImage]
    ) -> Tuple[List[DownloadResult], List[DownloadResult]]:
        """Download simulator images; they are public and need no cookie."""
        start_time = time.time()
        for image in images:
            self._fetch_one(image.name, image.source, image.file_name, None)
        self._log_summary(start_time)
        return self.download_results, self.failed_downloads

    def _log_summary(self, start_time: float) -> None:
        elapsed = time.time() - start_time
        logger.info(
            f"Finished in {elapsed:.1f}s: {len(self.download_results)} downloaded, "
            f"{len(self.failed_downloads)} failed"
        )
        for failed in self.failed_downloads:
            logger.info(f"  failed: {failed.name}")
