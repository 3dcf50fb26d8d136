"""Command-line interface for zfs-remote-keyloader.

Provides the main entry point for running the key entry server or
checking a dataset's key status.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from keyloader.config.settings import ConfigError, Settings, parse_listen_address

logger = logging.getLogger(__name__)

EXIT_UNLOCKED = 0
EXIT_NOT_UNLOCKED = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="zfs-remote-keyloader",
        description="Run an HTTP server allowing ZFS keys to be loaded remotely",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: /etc/zfs-remote-keyloader/config.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    server_parser = subparsers.add_parser(
        "server",
        help="Serve a web form over HTTP to prompt for ZFS dataset decryption keys",
    )
    server_parser.add_argument(
        "--listen", type=str, default=None,
        help="addr:port to listen on (default: 0.0.0.0:3333)",
    )
    server_parser.add_argument(
        "--dataset", type=str, default=None,
        help="ZFS dataset to load keys for",
    )

    status_parser = subparsers.add_parser("status", help="Show whether the dataset key is loaded")
    status_parser.add_argument(
        "--dataset", type=str, default=None,
        help="ZFS dataset to inspect",
    )

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> None:
    """Apply command-line flags on top of the loaded settings."""
    if getattr(args, "dataset", None):
        settings.unlock.dataset = args.dataset
    if getattr(args, "listen", None):
        host, port = parse_listen_address(args.listen)
        settings.server.host = host
        settings.server.port = port
    if args.verbose:
        settings.logging.level = "DEBUG"


def _serve(settings: Settings) -> int:
    from keyloader.server.app import run_server

    if run_server(settings):
        return EXIT_UNLOCKED
    logger.warning("Server stopped without unlocking %s", settings.unlock.dataset)
    return EXIT_NOT_UNLOCKED


def _status(settings: Settings) -> int:
    from keyloader.unlock.base import UnlockError
    from keyloader.unlock.zfs import ZfsUnlockInvoker

    dataset = settings.require_dataset()
    invoker = ZfsUnlockInvoker(
        zfs_command=settings.unlock.zfs_command,
        timeout=settings.unlock.timeout,
    )
    try:
        status = asyncio.run(invoker.key_status(dataset))
    except UnlockError as e:
        logger.error("%s", e)
        return EXIT_NOT_UNLOCKED
    print(f"{dataset}: {status.value}")
    return EXIT_UNLOCKED


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the zfs-remote-keyloader CLI."""
    args = parse_args(argv)

    if args.command is None:
        build_parser().print_help(sys.stderr)
        return EXIT_CONFIG_ERROR

    from keyloader.config.settings import load_settings
    from keyloader.utils.logging import setup_logging

    try:
        settings = load_settings(args.config)
        apply_overrides(settings, args)
    except ConfigError as e:
        setup_logging()
        logger.error("%s", e)
        return EXIT_CONFIG_ERROR

    setup_logging(settings.logging)

    try:
        if args.command == "server":
            return _serve(settings)
        if args.command == "status":
            return _status(settings)
    except ConfigError as e:
        logger.error("%s", e)
        return EXIT_CONFIG_ERROR
    return EXIT_NOT_UNLOCKED


if __name__ == "__main__":
    sys.exit(main())
