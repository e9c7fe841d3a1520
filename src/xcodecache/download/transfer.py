"""
Resumable Transfer Engine

Runs an external downloader binary once per transfer attempt, resuming partial
output, retrying the whole attempt on the partial-transfer exit code and
keeping the session cookie on disk only for the duration of one ``fetch``.
"""

import os
import shutil
import subprocess
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from xcodecache.constants import (
    ARIA2_BINARY,
    COOKIE_FILE_PERMISSIONS,
    COOKIES_PATH,
    CURL_BINARY,
    DEFAULT_DESTINATION,
    DEFAULT_MAX_RESUME_ATTEMPTS,
    DEFAULT_MAX_RETRIES,
)
from xcodecache.exceptions import TransportUnavailableError
from xcodecache.log_utils import logger

from .interfaces import Pathish

# Runs a command and reports each output line; returns the process exit status
CommandRunner = Callable[[List[str], Callable[[str], None]], int]


class TransportKind(Enum):
    """Downloader binaries, tagged by whether they can present a session cookie."""

    COOKIE_CAPABLE = CURL_BINARY
    PLAIN = ARIA2_BINARY


class TransferExit(Enum):
    """Exit status contract at the subprocess boundary."""

    SUCCESS = 0
    PARTIAL_FILE = 18
    FAILURE = -1

    @classmethod
    def from_returncode(cls, kind: TransportKind, returncode: int) -> "TransferExit":
        """
        Translate a process exit status for the given transport.

        curl reports "partial file, only a part of the file was transferred"
        as 18; aria2c has no equivalent code and only distinguishes success.
        """
        if returncode == cls.SUCCESS.value:
            return cls.SUCCESS
        if kind is TransportKind.COOKIE_CAPABLE and returncode == cls.PARTIAL_FILE.value:
            return cls.PARTIAL_FILE
        return cls.FAILURE


@dataclass(frozen=True)
class HostTransports:
    """Which downloader binaries were found on the host."""

    cookie_capable: Optional[str] = None
    """Resolved path of the cookie-capable binary (curl)"""

    plain: Optional[str] = None
    """Resolved path of the plain binary (aria2c)"""

    def binary_for(self, kind: TransportKind) -> Optional[str]:
        if kind is TransportKind.COOKIE_CAPABLE:
            return self.cookie_capable
        return self.plain


def detect_transports(which: Callable[[str], Optional[str]] = shutil.which) -> HostTransports:
    """Look up the downloader binaries once; the result is passed around as configuration."""
    transports = HostTransports(
        cookie_capable=which(CURL_BINARY), plain=which(ARIA2_BINARY)
    )
    logger.debug(
        "Transfer binaries: %s=%s, %s=%s",
        CURL_BINARY,
        transports.cookie_capable,
        ARIA2_BINARY,
        transports.plain,
    )
    return transports


def select_transport(
    needs_cookie: bool,
    transports: HostTransports,
    destination: Optional[Pathish] = None,
) -> TransportKind:
    """
    Choose the transport for one transfer.

    Authenticated transfers require the cookie-capable binary, and so do
    transfers into the discard sink: aria2c needs a real directory for its
    control file. Other anonymous transfers prefer the plain binary and fall
    back to the cookie-capable one.

    Raises:
        TransportUnavailableError: If no installed binary can serve the transfer.
    """
    discard = destination is not None and str(destination) == DEFAULT_DESTINATION
    if needs_cookie or discard:
        if transports.cookie_capable:
            return TransportKind.COOKIE_CAPABLE
        purpose = "authenticated downloads" if needs_cookie else "discarded downloads"
        raise TransportUnavailableError(
            f"{CURL_BINARY} is required for {purpose} but was not found",
            details="Install curl and make sure it is on PATH",
        )

    if transports.plain:
        return TransportKind.PLAIN
    if transports.cookie_capable:
        return TransportKind.COOKIE_CAPABLE
    raise TransportUnavailableError(
        f"No download tool found; install {CURL_BINARY} or {ARIA2_BINARY}"
    )


def build_command(
    kind: TransportKind,
    binary: str,
    url: str,
    destination: Pathish,
    max_retries: int,
    cookie_path: Optional[Pathish] = None,
) -> List[str]:
    """Build the argument vector for one invocation of the chosen transport."""
    if kind is TransportKind.COOKIE_CAPABLE:
        command = [
            binary,
            "--location",
            "--retry",
            str(max_retries),
            "--continue-at",
            "-",
        ]
        if cookie_path is not None:
            command += ["--cookie", str(cookie_path), "--cookie-jar", str(cookie_path)]
        command += ["--output", str(destination), "--progress-bar", url]
        return command

    target = Path(destination)
    return [
        binary,
        "--continue=true",
        # aria2c counts the first try; 0 would mean unlimited
        f"--max-tries={max_retries + 1}",
        "--allow-overwrite=true",
        "--console-log-level=warn",
        "--summary-interval=0",
        f"--dir={target.parent}",
        f"--out={target.name}",
        url,
    ]


def run_command(command: List[str], on_line: Callable[[str], None]) -> int:
    """Run ``command``, streaming its merged output line by line."""
    with subprocess.Popen(
        command,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
    ) as process:
        assert process.stdout is not None
        for line in process.stdout:
            text = line.rstrip("\r\n")
            if text:
                on_line(text)
        return process.wait()


@contextmanager
def cookie_file(path: Pathish, cookie: str) -> Iterator[Path]:
    """
    Write ``cookie`` to ``path`` for the duration of the block.

    Whatever is already at the path (a stale file or a symlink) is removed
    first and a fresh private file is created in its place. The file is
    removed on exit whatever happens inside the block.
    """
    cookie_path = Path(path)
    try:
        cookie_path.unlink(missing_ok=True)
        fd = os.open(
            cookie_path,
            os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_NOFOLLOW", 0),
            COOKIE_FILE_PERMISSIONS,
        )
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(cookie)
        yield cookie_path
    finally:
        cookie_path.unlink(missing_ok=True)


class TransferEngine:
    """
    Executes one resumable, retryable download per ``fetch`` call.

    Ordinary connection failures are retried by the transport itself
    (``max_retries``). The partial-transfer exit status restarts the whole
    invocation, at most ``max_resume_attempts`` times. Any other failure ends
    the transfer immediately.
    """

    def __init__(
        self,
        transports: HostTransports,
        max_retries: int = DEFAULT_MAX_RETRIES,
        max_resume_attempts: int = DEFAULT_MAX_RESUME_ATTEMPTS,
        cookie_path: Pathish = COOKIES_PATH,
        on_line: Optional[Callable[[str], None]] = None,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        if max_retries < 0 or max_resume_attempts < 0:
            raise ValueError("retry budgets must not be negative")
        self.transports = transports
        self.max_retries = max_retries
        self.max_resume_attempts = max_resume_attempts
        self.cookie_path = Path(cookie_path)
        self.on_line = on_line or logger.info
        self.runner: CommandRunner = runner or run_command

    def fetch(
        self,
        url: str,
        destination: Pathish = DEFAULT_DESTINATION,
        cookie: Optional[str] = None,
    ) -> bool:
        """
        Download ``url`` to ``destination``, presenting ``cookie`` when given.

        Returns:
            bool: True when the transport finished successfully, False on a
            failed transfer or once the resume budget is exhausted.

        Raises:
            TransportUnavailableError: If no suitable binary is installed.
        """
        kind = select_transport(cookie is not None, self.transports, destination)
        binary = self.transports.binary_for(kind)
        assert binary is not None

        if cookie is None:
            return self._attempt_loop(kind, binary, url, destination, None)

        with cookie_file(self.cookie_path, cookie) as cookie_path:
            return self._attempt_loop(kind, binary, url, destination, cookie_path)

    def _attempt_loop(
        self,
        kind: TransportKind,
        binary: str,
        url: str,
        destination: Pathish,
        cookie_path: Optional[Path],
    ) -> bool:
        command = build_command(
            kind, binary, url, destination, self.max_retries, cookie_path
        )
        attempts = self.max_resume_attempts + 1
        for attempt in range(1, attempts + 1):
            logger.debug("Transfer attempt %d/%d for %s", attempt, attempts, url)
            try:
                returncode = self.runner(command, self.on_line)
            except FileNotFoundError as exc:
                raise TransportUnavailableError(
                    f"{binary} could not be started", details=str(exc)
                ) from exc

            outcome = TransferExit.from_returncode(kind, returncode)
            if outcome is TransferExit.SUCCESS:
                return True
            if outcome is TransferExit.FAILURE:
                logger.error("Download of %s failed with exit status %d", url, returncode)
                return False
            logger.warning(
                "Partial transfer of %s (attempt %d/%d), retrying", url, attempt, attempts
            )

        logger.error(
            "Giving up on %s after %d partial transfers", url, self.max_resume_attempts + 1
        )
        return False
