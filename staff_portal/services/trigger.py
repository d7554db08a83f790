from __future__ import annotations

import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from staff_portal.config import (
    DEFAULT_CRON_SCHEDULE,
    DEFAULT_MISFIRE_GRACE_SECONDS,
    DEFAULT_TIMEZONE,
)
from staff_portal.errors import ConfigurationError

from .spawn_scheduler import SpawnScheduler

logger = logging.getLogger(__name__)

JOB_ID = "recurring-task-spawn"


class SpawnTrigger:
    """Fires spawn passes on a cron schedule and on demand.

    A scheduled pass that raises is logged and dropped; the job stays
    registered for its next firing. ``run_now`` lets the error through.
    """

    def __init__(
        self,
        scheduler: SpawnScheduler,
        cron: str = DEFAULT_CRON_SCHEDULE,
        timezone: str = DEFAULT_TIMEZONE,
        misfire_grace_seconds: int | None = DEFAULT_MISFIRE_GRACE_SECONDS,
    ) -> None:
        self._scheduler = scheduler
        self.cron = cron
        # Late firings still run; same-day reruns are no-ops.
        self.misfire_grace_seconds = misfire_grace_seconds
        try:
            tz = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError(f"Unknown scheduler timezone {timezone!r}") from exc
        try:
            self._trigger = CronTrigger.from_crontab(cron, timezone=tz)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid cron expression {cron!r}: {exc}") from exc
        self._background = BackgroundScheduler(timezone=tz)

    @property
    def running(self) -> bool:
        return self._background.running

    def start(self) -> None:
        self._background.add_job(
            self._scheduled_pass,
            trigger=self._trigger,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.misfire_grace_seconds,
            replace_existing=True,
        )
        self._background.start()
        logger.info("Recurring tasks job scheduled with schedule: %s", self.cron)

    def shutdown(self, wait: bool = True) -> None:
        if self._background.running:
            self._background.shutdown(wait=wait)
            logger.info("Recurring tasks job stopped")

    def next_run_time(self):
        job = self._background.get_job(JOB_ID)
        return getattr(job, "next_run_time", None) if job else None

    def run_now(self) -> dict[str, int]:
        logger.info("Manually triggering recurring tasks job")
        return self._scheduler.run_pass().as_dict()

    def _scheduled_pass(self) -> None:
        logger.info("Running scheduled recurring tasks spawn job")
        try:
            self._scheduler.run_pass()
        except Exception:
            logger.exception("Scheduled spawn pass failed")
