"""Checkinbot process entry-point.

Usage:
    python -m checkinbot [--once] [--no-dashboard] [--wallet PATH]
                         [--log-level LEVEL] [--log-format FORMAT]

The orchestration logic lives in ``checkinbot.orchestrator``.  This module is
intentionally thin — it resolves settings, calls ``configure_logging()`` so
that every subsequent import already has a working logger, then hands off to
:func:`~checkinbot.orchestrator.runner.run_bot`.

Exit status is 0 after an interactive stop (Ctrl+C / SIGTERM) or a completed
``--once`` run, and 1 on a configuration error or an unrecoverable fault.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from checkinbot.core import configure_logging
from checkinbot.core.exceptions import ConfigError, OrchestratorError
from checkinbot.core.settings import Settings

#: Operator log file used while the dashboard owns the terminal.
DEFAULT_DASHBOARD_LOG_FILE = "checkinbot.log"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="checkinbot",
        description="Daily automatic check-in for every account in the wallet file.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single check-in cycle and exit instead of repeating daily.",
    )
    parser.add_argument(
        "--no-dashboard",
        action="store_true",
        help="Do not draw the terminal dashboard; log to stderr instead.",
    )
    parser.add_argument(
        "--wallet",
        default=None,
        metavar="PATH",
        help="Override WALLET_PATH (one token per line).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        metavar="LEVEL",
        help="Override LOG_LEVEL env var (DEBUG|INFO|WARNING|ERROR).",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        metavar="FORMAT",
        help="Override LOG_FORMAT env var (text|json).",
    )
    return parser


def _load_settings(args: argparse.Namespace) -> Settings:
    overrides: dict[str, str] = {}
    if args.wallet is not None:
        overrides["wallet_path"] = args.wallet
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if args.log_format is not None:
        overrides["log_format"] = args.log_format
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


def main(argv: list[str] | None = None) -> None:
    """CLI entry-point registered in ``pyproject.toml``."""
    args = _build_parser().parse_args(argv)
    show_dashboard = not args.no_dashboard

    try:
        settings = _load_settings(args)
        log_file = settings.log_file or (DEFAULT_DASHBOARD_LOG_FILE if show_dashboard else None)
        configure_logging(
            level=settings.log_level,
            fmt=settings.log_format,
            force=True,
            log_file=log_file,
        )
    except (ConfigError, ValueError) as exc:
        print(f"checkinbot: configuration error: {exc}", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    logger = logging.getLogger(__name__)
    logger.info("checkinbot starting up (once=%s, dashboard=%s)", args.once, show_dashboard)

    # Lazy import keeps startup fast when module is imported without running.
    from checkinbot.orchestrator.runner import run_bot  # noqa: PLC0415

    try:
        asyncio.run(run_bot(settings, once=args.once, show_dashboard=show_dashboard))
    except OrchestratorError as exc:
        logger.critical("%s", exc)
        print(f"checkinbot: {exc}", file=sys.stderr)  # noqa: T201
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted — exiting.")
        sys.exit(0)

    logger.info("Shutdown complete — exiting.")
    sys.exit(0)


if __name__ == "__main__":
    main()
