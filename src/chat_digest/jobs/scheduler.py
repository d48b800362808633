"""Cron trigger for the summary job (APScheduler)."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from chat_digest.exceptions import ConfigurationError
from chat_digest.jobs.summary import RunReport, SummaryJob

logger = logging.getLogger(__name__)

JOB_ID = "chat-digest-summary"


def build_trigger(cron: str, timezone: str) -> CronTrigger:
    """Parse a five-field crontab expression evaluated in ``timezone``."""
    try:
        return CronTrigger.from_crontab(cron, timezone=timezone)
    except (ValueError, LookupError) as e:
        raise ConfigurationError(f"Invalid summary schedule {cron!r}: {e}") from e


class SummaryScheduler:
    """Runs ``job.run`` on a cron schedule, plus on demand.

    Args:
        job: The summary job to trigger.
        cron: Crontab expression, e.g. ``0 20 * * *``.
        timezone: IANA zone the expression is evaluated in.
    """

    def __init__(self, job: SummaryJob, cron: str, timezone: str):
        self.job = job
        self.cron = cron
        self.timezone = timezone
        self.trigger = build_trigger(cron, timezone)
        self._scheduler = AsyncIOScheduler(timezone=timezone)

    def start(self) -> None:
        """Register the job and start the scheduler. Needs a running event loop."""
        self._scheduler.add_job(
            self._run_scheduled,
            self.trigger,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(f"Summary schedule configured: {self.cron} ({self.timezone})")

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    async def run_now(self) -> RunReport | None:
        logger.info("Manual summary run requested")
        return await self.job.run()

    async def _run_scheduled(self) -> None:
        logger.info("Triggering scheduled summary")
        try:
            await self.job.run()
        except Exception:
            logger.exception("Scheduled summary run failed")
