"""Main entry point for the Gmail keyword alert agent."""

import argparse
import logging
import os
import sys
from typing import List, Optional

from .auth import AuthError, Authenticator, create_authenticator, decode_base64_artifacts
from .config import AppConfig, load_config
from .keepalive import start_keepalive_server
from .models import CycleResult
from .poller import PollLoop
from .scheduler import build_scheduler, run_pending_forever

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def run_job(authenticator: Authenticator, loop: PollLoop) -> Optional[CycleResult]:
    """
    Authenticate and run one poll cycle.

    Returns None when authentication fails; the cycle is not run then.
    Configuration errors (missing or malformed files) propagate.
    """
    logger.info("Checking emails...")
    try:
        credentials = authenticator.get_credentials()
    except AuthError as e:
        logger.error(f"Authentication failed, not checking mail: {e}")
        return None
    return loop.run_cycle(credentials)


def run_scheduled_job(authenticator: Authenticator, loop: PollLoop) -> None:
    """Scheduler entry: never lets an error escape into the scheduler loop."""
    try:
        run_job(authenticator, loop)
    except Exception as e:
        logger.error(f"Unexpected error during scheduled check: {e}", exc_info=True)


def _apply_overrides(config: AppConfig, args: argparse.Namespace) -> None:
    if args.auth_mode:
        config.gmail_auth.mode = args.auth_mode
    if args.schedule:
        config.scheduler.mode = args.schedule
    if args.no_dedup:
        config.dedup_enabled = False
    if args.no_keepalive:
        config.keepalive.enabled = False


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Poll Gmail for unread messages matching keywords and alert a Telegram chat"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single check and exit (no scheduler, no keep-alive listener)"
    )
    parser.add_argument(
        "--auth-mode",
        choices=["direct", "interactive"],
        default=None,
        help="Authenticator: tokens from env ('direct') or OAuth consent flow ('interactive')"
    )
    parser.add_argument(
        "--schedule",
        choices=["interval", "daily"],
        default=None,
        help="'interval' checks every 3 hours on the hour (00:00, 03:00, ...), 'daily' checks at 09:00 (default: SCHEDULE_MODE or 'interval')"
    )
    parser.add_argument(
        "--no-dedup",
        action="store_true",
        help="Alert on every matching unread message each cycle, even if already alerted"
    )
    parser.add_argument(
        "--no-keepalive",
        action="store_true",
        help="Do not start the keep-alive HTTP listener even if PORT is set"
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with command-line argument parsing."""
    args = parse_args(argv)
    setup_logging()

    try:
        logger.info("Loading configuration...")
        config = load_config()
        _apply_overrides(config, args)

        if config.gmail_auth.mode == "interactive":
            decode_base64_artifacts(config.gmail_auth)

        authenticator = create_authenticator(config.gmail_auth)
        loop = PollLoop(config)

        if args.once:
            run_job(authenticator, loop)
            return 0

        scheduler = build_scheduler(lambda: run_scheduled_job(authenticator, loop), config.scheduler)

        if config.keepalive.enabled:
            start_keepalive_server(config.keepalive)
    except Exception as e:
        logger.error(f"Fatal error during startup: {e}", exc_info=True)
        return 1

    # The startup check is guarded like the scheduled ones.
    if config.scheduler.run_on_start:
        run_scheduled_job(authenticator, loop)

    run_pending_forever(scheduler)
    return 0


if __name__ == "__main__":
    sys.exit(main())
