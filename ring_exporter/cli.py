"""Command line entrypoint: ``ring-exporter {init,test,monitor}``.

Examples::

    # Create the config and authorize a token (prompts for username, password
    # and, when the account uses it, the 2FA code).
    ring-exporter --config.file /etc/ring/ring-config.json init

    # Check the stored token works.
    ring-exporter --config.file /etc/ring/ring-config.json test

    # Serve metrics.
    ring-exporter --config.file /etc/ring/ring-config.json monitor
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from ring_exporter.clients import (
    AuthError,
    Authenticator,
    RingApiError,
    open_authorized_session,
)
from ring_exporter.core.config import (
    AppSettings,
    ConfigError,
    ensure_config,
    get_settings,
    load_config,
)
from ring_exporter.core.logging import configure_logging
from ring_exporter.main import build_ledger, run
from ring_exporter.services import CliAuthenticator, LedgerPersistenceError

EXIT_OK = 0
EXIT_FAILURE = 2


async def handle_init(
    config_file: Path,
    settings: AppSettings,
    authenticator: Optional[Authenticator] = None,
) -> int:
    """Initialize (or reinitialize) the config and authorize a new token."""
    config = ensure_config(config_file)
    ledger = build_ledger(config_file, settings)
    session = await open_authorized_session(
        config.api_config,
        ledger,
        authenticator or CliAuthenticator(),
        timeout=settings.http_timeout_seconds,
    )
    await session.aclose()
    print(f"Token stored in {ledger.path}")
    return EXIT_OK


async def handle_test(config_file: Path, settings: AppSettings) -> int:
    """Exercise the stored token against the session and device APIs."""
    config = load_config(config_file)
    ledger = build_ledger(config_file, settings)

    # No authenticator: fails unless ``init`` already stored a token.
    async with await open_authorized_session(
        config.api_config, ledger, timeout=settings.http_timeout_seconds
    ) as session:
        info = await session.get_session_info()
        print(
            f"Ready to work with your bells, "
            f"{info.profile.first_name} {info.profile.last_name}"
        )

        devices = await session.get_devices()
        for doorbot in [*devices.doorbots, *devices.stickup_cams]:
            dings = await session.get_doorbot_history(doorbot.id)
            print(f"  {doorbot.description}: {len(dings)} recent ding(s)")
        for chime in devices.chimes:
            print(f"  {chime.description}: chime")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ring-exporter",
        description="A Prometheus exporter for Ring devices",
    )
    parser.add_argument(
        "--config.file",
        dest="config_file",
        default=None,
        help="JSON configuration file (default: ring-config.json)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("init", help="Initialize (or reinitialize) for background usage")
    subparsers.add_parser("test", help="Test the configuration and token")
    subparsers.add_parser("monitor", help="Execute monitoring and exposition of metrics")
    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    serve: Callable[[Path], None] = run,
) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)
    config_file = Path(args.config_file or settings.config_file)

    try:
        if args.command == "init":
            return asyncio.run(handle_init(config_file, settings))
        if args.command == "test":
            return asyncio.run(handle_test(config_file, settings))
        serve(config_file)
    except (AuthError, ConfigError, LedgerPersistenceError, RingApiError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
