"""
Recurring update runs driven by APScheduler.
"""

import asyncio
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .engine import DDNSUpdater
from .logger import log_exception, logger
from .types import RunReport

JOB_ID = "hover_ddns_update"


class DDNSScheduler:
    """
    Runs the updater once at start and then on a cron schedule.

    Overlap protection comes from the updater's run lock: a trigger that fires
    while a run is still going waits for it to finish. The job allows two
    instances so one trigger can queue behind a running one; further triggers
    in that window are coalesced by APScheduler.
    """

    def __init__(self, updater: DDNSUpdater, cron_expression: str) -> None:
        self._updater = updater
        self._trigger = CronTrigger.from_crontab(cron_expression)
        self.scheduler = AsyncIOScheduler()
        self._stopped = asyncio.Event()
        self.last_report: RunReport | None = None

    @property
    def running(self) -> bool:
        return self.scheduler.running and not self._stopped.is_set()

    def start(self, run_immediately: bool = True):
        self._stopped.clear()
        job_options = {}
        if run_immediately:
            job_options["next_run_time"] = datetime.now(timezone.utc)
        self.scheduler.add_job(
            self._scheduled_run,
            trigger=self._trigger,
            id=JOB_ID,
            replace_existing=True,
            max_instances=2,
            coalesce=True,
            **job_options,
        )
        self.scheduler.start()
        logger.info(f"Scheduled DNS updates with trigger {self._trigger}")

    @log_exception("Scheduled DNS update run")
    async def _scheduled_run(self):
        if self._stopped.is_set():
            return
        report = await self._updater.run()
        if report.started:
            self.last_report = report

    async def stop(self):
        """
        Stop scheduling new runs and wait for the one in progress, which ends
        after its current host.
        """
        self._stopped.set()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            # the asyncio scheduler finishes shutting down on the next loop iteration
            await asyncio.sleep(0)
        self._updater.request_stop()
        await self._updater.wait_idle()
