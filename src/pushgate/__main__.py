"""Application entry point and CLI for pushgate.

This module implements the command line entry point: argument parsing,
configuration and batch loading, logging setup, a single push of the batch
and a per-notification report on stdout.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import NoReturn

from pushgate.core.config import ConfigurationError, load_main_config, load_notifications
from pushgate.core.connection import TLSConnectionProvider
from pushgate.core.coordinator import PushCoordinator
from pushgate.core.notification import Notification
from pushgate.utils.logging import configure_logging

__all__ = ["main"]

DEFAULT_CONFIG_PATH: Path = Path("config/pushgate.yaml")

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_DELIVERY_FAILED = 2


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    CLI Arguments:
        --config, -c: Path to configuration file
        --batch, -b: Path to notification batch file (YAML or JSON list)
        --sandbox: Force the sandbox gateway (overrides config)
        --log-level: Override log level from config
        --no-syslog: Disable syslog integration
    """
    parser = argparse.ArgumentParser(
        prog="pushgate",
        description="Push a batch of notifications through the binary push gateway",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pushgate --batch notifications.yaml
  pushgate --config /etc/pushgate.yaml --batch batch.json --sandbox
  pushgate --batch batch.yaml --log-level DEBUG --no-syslog
        """,
    )

    _ = parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})",
        metavar="PATH",
    )

    _ = parser.add_argument(
        "--batch",
        "-b",
        type=Path,
        required=True,
        help="Path to notification batch file",
        metavar="PATH",
    )

    _ = parser.add_argument(
        "--sandbox",
        action="store_true",
        help="Use the sandbox gateway (overrides config)",
    )

    _ = parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override log level from configuration",
        metavar="LEVEL",
    )

    _ = parser.add_argument(
        "--no-syslog",
        action="store_true",
        help="Disable syslog integration",
    )

    return parser.parse_args(argv)


def format_report(notifications: Sequence[Notification]) -> list[str]:
    """Render one report line per notification.

    Example:
        >>> format_report([notification])
        ['#0 tokens=2 success=1 failed=1 [NO_ERROR, INVALID_TOKEN]']
    """
    lines: list[str] = []
    for position, notification in enumerate(notifications):
        results = notification.results
        if results is None:
            lines.append(f"#{position} tokens={notification.count} not pushed")
            continue
        statuses = ", ".join(str(outcome) for outcome in results)
        lines.append(
            f"#{position} tokens={notification.count} success={results.success} failed={results.failed} [{statuses}]"
        )
    return lines


def run(
    *,
    config_path: Path,
    batch_path: Path,
    sandbox: bool = False,
    log_level: str | None = None,
    enable_syslog: bool = True,
) -> list[Notification]:
    """Load configuration and batch, push it and return the notifications.

    Raises:
        ConfigurationError: If configuration or batch is invalid
    """
    config = load_main_config(config_path)

    if sandbox:
        config.gateway.sandbox = True

    if log_level is not None:
        config.application.log_level = log_level

    configure_logging(
        log_level=config.application.log_level,
        enable_syslog=enable_syslog and config.application.syslog_enabled,
        enable_console=True,
    )
    logger = logging.getLogger(__name__)

    notifications = load_notifications(batch_path)
    logger.info("Loaded %d notifications from %s", len(notifications), batch_path)

    gateway = config.gateway
    try:
        certificate = gateway.read_certificate()
    except OSError as exc:
        msg = f"Failed to read certificate file: {gateway.certificate_file}\nError: {exc}"
        raise ConfigurationError(msg) from exc

    provider = TLSConnectionProvider(
        host=gateway.host,
        port=gateway.port,
        connect_timeout=gateway.connect_timeout,
        passphrase=gateway.passphrase,
    )
    coordinator = PushCoordinator(
        certificate,
        gateway.sandbox,
        provider=provider,
        grace_period=gateway.grace_period,
    )
    coordinator.push(notifications)
    return notifications


def main(argv: Sequence[str] | None = None) -> NoReturn:
    """Main entry point for the pushgate command.

    Exit Codes:
        0: Every frame was accepted
        1: Configuration or batch error
        2: At least one frame was rejected or left in an unknown state
    """
    args = parse_arguments(argv)

    config_path_arg: Path = args.config  # pyright: ignore[reportAny]  # argparse boundary
    batch_path_arg: Path = args.batch  # pyright: ignore[reportAny]  # argparse boundary
    sandbox_arg: bool = args.sandbox  # pyright: ignore[reportAny]  # argparse boundary
    log_level_arg: str | None = args.log_level  # pyright: ignore[reportAny]  # argparse boundary
    no_syslog_arg: bool = args.no_syslog  # pyright: ignore[reportAny]  # argparse boundary

    try:
        notifications = run(
            config_path=config_path_arg,
            batch_path=batch_path_arg,
            sandbox=sandbox_arg,
            log_level=log_level_arg,
            enable_syslog=not no_syslog_arg,
        )
    except ConfigurationError as exc:
        print(f"Configuration error:\n{exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    for line in format_report(notifications):
        print(line)

    if any(n.results is None or n.results.failed for n in notifications):
        sys.exit(EXIT_DELIVERY_FAILED)
    sys.exit(EXIT_SUCCESS)


if __name__ == "__main__":
    main()
