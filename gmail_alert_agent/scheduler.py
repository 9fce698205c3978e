"""Timer wiring: fixed interval or daily schedule."""

import logging
import time
from typing import Callable

import schedule

from .config import SchedulerConfig

logger = logging.getLogger(__name__)


def build_scheduler(job: Callable[[], object], config: SchedulerConfig) -> schedule.Scheduler:
    """
    Register `job` on a new scheduler.

    - "interval": every `interval_hours` hours, on the hour, counted from
      midnight (00:00, 03:00, ... for 3), like cron's `0 */3 * * *`.
    - "daily": every day at `daily_at` (HH:MM, local time).

    Raises:
        ValueError: On an unknown schedule mode or an interval that does not
            divide the day.
    """
    scheduler = schedule.Scheduler()
    if config.mode == "interval":
        hours = config.interval_hours
        if hours < 1 or 24 % hours:
            raise ValueError(f"interval_hours must divide 24, got {hours}")
        for hour in range(0, 24, hours):
            scheduler.every().day.at(f"{hour:02d}:00").do(job)
        logger.info(f"Scheduled mail check every {hours} hour(s), on the hour")
    elif config.mode == "daily":
        scheduler.every().day.at(config.daily_at).do(job)
        logger.info(f"Scheduled mail check daily at {config.daily_at}")
    else:
        raise ValueError(f"Unknown schedule mode: {config.mode!r}")
    return scheduler


def run_pending_forever(
    scheduler: schedule.Scheduler,
    poll_seconds: float = 1,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Run due jobs until interrupted. Jobs run one at a time on this thread."""
    logger.info("Entering main loop (Ctrl+C to stop)")
    while True:
        try:
            scheduler.run_pending()
            sleep(poll_seconds)
        except KeyboardInterrupt:
            logger.info("Shutting down")
            break
