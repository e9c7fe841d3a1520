# src/xcodecache/cli.py

import argparse
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, NoReturn, Optional

from xcodecache import log_utils
from xcodecache.config import get_simulator_floors, load_config, parse_floor
from xcodecache.download.interfaces import Release
from xcodecache.download.orchestrator import DownloadOrchestrator
from xcodecache.download.selector import (
    order_by_date_modified,
    select_newest,
    select_simulators,
)
from xcodecache.download.simulators import DownloadableIndexSource
from xcodecache.download.transfer import (
    HostTransports,
    TransferEngine,
    detect_transports,
)
from xcodecache.exceptions import (
    APIError,
    CatalogError,
    ConfigurationError,
)
from xcodecache.session import AccountClient, PortalClient, RunContext, authenticate


def _fatal(message: str) -> NoReturn:
    """Print ``message`` to stderr and exit with status 1."""
    print(message, file=sys.stderr)
    sys.exit(1)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="xcodecache - mirror the newest Xcode builds of every minor release"
    )
    parser.add_argument("--config", help="Path to a YAML configuration file")
    parser.add_argument(
        "--log-level", help="Console log level (DEBUG, INFO, WARNING, ERROR)"
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("list", help="List the releases that would be downloaded")

    download_parser = subparsers.add_parser(
        "download", help="Download the newest releases of every minor version"
    )
    download_parser.add_argument(
        "--output-dir",
        help="Keep downloads in this directory instead of discarding them",
    )

    simulators_parser = subparsers.add_parser(
        "simulators", help="List or download simulator runtime images"
    )
    simulators_parser.add_argument(
        "--index",
        action="append",
        default=[],
        help="Downloadable index file or URL (can be passed multiple times)",
    )
    simulators_parser.add_argument(
        "--download", action="store_true", help="Download the selected images"
    )
    simulators_parser.add_argument(
        "--output-dir",
        help="Keep downloads in this directory instead of discarding them",
    )

    return parser


def _configure_logging(config: Dict[str, Any], cli_level: Optional[str]) -> None:
    level = cli_level or config.get("LOG_LEVEL")
    if level:
        log_utils.set_log_level(str(level))
    if config.get("LOG_DIR"):
        log_utils.add_file_logging(
            Path(str(config["LOG_DIR"])).expanduser(), str(level or "INFO")
        )


def _selected_releases(context: RunContext) -> List[Release]:
    config = context.config
    floor = parse_floor(config["MINIMUM_VERSION"], "MINIMUM_VERSION")
    context.load_catalog(floor)
    selected = select_newest(
        context.releases,
        floor,
        family_segments=config["FAMILY_SEGMENTS"],
        keep_per_family=config["KEEP_PER_FAMILY"],
    )
    if config.get("LEGACY_ORDER"):
        selected = order_by_date_modified(selected)
    return selected


def _make_engine(config: Dict[str, Any], transports: HostTransports) -> TransferEngine:
    return TransferEngine(
        transports,
        max_retries=config["MAX_RETRIES"],
        max_resume_attempts=config["MAX_RESUME_ATTEMPTS"],
    )


def _run_catalog_command(
    args: argparse.Namespace,
    config: Dict[str, Any],
    client_factory: Callable[[], AccountClient],
) -> None:
    outcome = authenticate(client_factory())
    # Missing and invalid credentials carry distinct operator messages
    if isinstance(outcome, ConfigurationError):
        _fatal(outcome.message)

    transports = detect_transports()
    context = RunContext(session=outcome, transports=transports, config=config)
    selected = _selected_releases(context)

    if args.command == "list":
        if not selected:
            log_utils.logger.info("No releases matched the selection")
        for release in selected:
            print(release)
        return

    orchestrator = DownloadOrchestrator(
        context,
        _make_engine(config, transports),
        output_dir=args.output_dir or config.get("DOWNLOAD_DIR"),
    )
    orchestrator.run(selected)


def _run_simulators_command(args: argparse.Namespace, config: Dict[str, Any]) -> None:
    locations = list(config.get("SIMULATOR_INDEXES") or []) + list(args.index)
    if not locations:
        log_utils.logger.warning(
            "No simulator indexes configured; pass --index or set SIMULATOR_INDEXES"
        )
        return

    images = DownloadableIndexSource(locations).get_simulators()
    selected = select_simulators(
        images,
        get_simulator_floors(config),
        family_segments=config["FAMILY_SEGMENTS"],
        keep_per_family=config["KEEP_PER_FAMILY"],
    )

    if not args.download:
        for image in selected:
            print(image)
        return

    transports = detect_transports()
    engine = _make_engine(config, transports)
    orchestrator = DownloadOrchestrator(
        None,
        engine,
        output_dir=args.output_dir or config.get("DOWNLOAD_DIR"),
    )
    orchestrator.run_simulators(selected)


def main(
    argv: Optional[List[str]] = None,
    client_factory: Callable[[], AccountClient] = PortalClient,
) -> None:
    """
    Entry point for the xcodecache command-line interface.

    Fatal conditions (missing or invalid credentials, no download tool,
    invalid configuration, a failed catalog) are printed to stderr and end
    the process with status 1. Individual download failures are logged and
    do not change the exit status.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    try:
        config = load_config(args.config)
    except ConfigurationError as error:
        _fatal(f"Configuration error: {error}")

    _configure_logging(config, args.log_level)

    try:
        if args.command == "simulators":
            _run_simulators_command(args, config)
        else:
            _run_catalog_command(args, config, client_factory)
    except ConfigurationError as error:
        _fatal(str(error))
    except CatalogError as error:
        _fatal(f"Catalog error: {error}")
    except APIError as error:
        _fatal(f"Developer portal error: {error}")


if __name__ == "__main__":
    main()
