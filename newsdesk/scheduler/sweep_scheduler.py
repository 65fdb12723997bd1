"""
NewsDesk Sweep Scheduler
========================

Runs the ingestion sweep and the retention sweep on cron schedules evaluated
in a configured timezone, inside a single asyncio service loop.

Features:
- Named job registry with start/stop/restart per job
- Overlap guard: a job is skipped while its previous run is still going
- Manual execution and status reporting
- Job failures are logged and never stop the loop
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set
from zoneinfo import ZoneInfo

from croniter import croniter

from ..config.settings import NewsDeskSettings, get_settings
from ..processing.pipeline import IngestionPipeline
from ..utils.exceptions import JobNotFoundError
from ..utils.logging import get_logger_for_component

NEWS_FETCH = "news_fetch"
CLEANUP_ARTICLES = "cleanup_articles"


@dataclass
class ScheduledJob:
    """A recurring job and its runtime state."""
    key: str
    name: str
    schedule: str
    task: Callable[[], Awaitable[Any]]
    active: bool = False
    running: bool = False
    next_run_at: Optional[datetime] = None
    last_run_at: Optional[datetime] = None
    last_duration: Optional[float] = None
    last_error: Optional[str] = None


class SweepScheduler:
    """Cron-driven scheduler for the ingestion and retention sweeps."""

    def __init__(self, pipeline: IngestionPipeline, settings: Optional[NewsDeskSettings] = None):
        self.pipeline = pipeline
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component("scheduler")
        self.timezone = ZoneInfo(self.settings.schedule.timezone)

        self.jobs: Dict[str, ScheduledJob] = {
            NEWS_FETCH: ScheduledJob(
                key=NEWS_FETCH,
                name="News Fetching",
                schedule=self.settings.schedule.sweep_cron,
                task=self._fetch_news,
            ),
            CLEANUP_ARTICLES: ScheduledJob(
                key=CLEANUP_ARTICLES,
                name="Article Cleanup",
                schedule=self.settings.schedule.retention_cron,
                task=self._cleanup_articles,
            ),
        }

        self._stop_event: Optional[asyncio.Event] = None
        self._in_flight: Set[asyncio.Task] = set()

    async def _fetch_news(self) -> Dict[str, int]:
        result = await self.pipeline.run_full_sweep()
        self.logger.info(
            f"News fetching completed: {result.created_count} articles created, "
            f"{result.error_count} errors"
        )
        return result.to_dict()

    async def _cleanup_articles(self) -> int:
        deleted = self.pipeline.run_retention_sweep()
        self.logger.info(f"Article cleanup completed: {deleted} articles deleted")
        return deleted

    @staticmethod
    def validate_cron_expression(expression: str) -> bool:
        """Check whether a five-field cron expression is valid."""
        return croniter.is_valid(expression)

    def now(self) -> datetime:
        return datetime.now(self.timezone)

    def next_run_after(self, job: ScheduledJob, moment: datetime) -> datetime:
        return croniter(job.schedule, moment.astimezone(self.timezone)).get_next(datetime)

    def start(self) -> None:
        """Activate every job and compute its next run."""
        now = self.now()
        for job in self.jobs.values():
            job.active = True
            job.next_run_at = self.next_run_after(job, now)
            self.logger.info(f"Scheduled: {job.name} - {job.schedule} ({self.timezone.key})")
        self.logger.info(f"{len(self.jobs)} scheduled jobs started")

    def stop(self) -> None:
        """Deactivate every job and wake the service loop."""
        for job in self.jobs.values():
            job.active = False
            job.next_run_at = None
        if self._stop_event is not None:
            self._stop_event.set()
        self.logger.info("All scheduled jobs stopped")

    def stop_job(self, job_key: str) -> bool:
        job = self.jobs.get(job_key)
        if job is None or not job.active:
            return False
        job.active = False
        job.next_run_at = None
        self.logger.info(f"Stopped scheduled job: {job_key}")
        return True

    def restart_job(self, job_key: str) -> bool:
        job = self.jobs.get(job_key)
        if job is None:
            self.logger.error(f"Scheduled job not found: {job_key}")
            return False
        job.active = True
        job.next_run_at = self.next_run_after(job, self.now())
        self.logger.info(f"Restarted scheduled job: {job.name}")
        return True

    def tick(self, now: Optional[datetime] = None) -> List[asyncio.Task]:
        """Launch every due job and advance its next run time.

        Returns:
            Tasks started by this tick
        """
        now = now or self.now()
        started = []

        for job in self.jobs.values():
            if not job.active or job.next_run_at is None or job.next_run_at > now:
                continue

            job.next_run_at = self.next_run_after(job, now)

            if job.running:
                self.logger.warning(f"Skipping {job.name}: previous run still in progress")
                continue

            task = asyncio.create_task(self._execute(job))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)
            started.append(task)

        return started

    async def _execute(self, job: ScheduledJob) -> None:
        job.running = True
        job.last_run_at = self.now()
        start = time.monotonic()
        self.logger.info(f"Starting scheduled job: {job.name}")

        try:
            await job.task()
            job.last_error = None
            job.last_duration = time.monotonic() - start
            self.logger.info(f"Scheduled job completed: {job.name} ({job.last_duration:.2f}s)")
        except Exception as e:
            job.last_error = str(e)
            job.last_duration = time.monotonic() - start
            self.logger.error(f"Scheduled job failed: {job.name}: {e}", exc_info=True)
        finally:
            job.running = False

    async def run_job_manually(self, job_key: str) -> Dict[str, Any]:
        """Run a job immediately, outside its schedule.

        Raises:
            JobNotFoundError: If ``job_key`` is unknown
            Exception: Whatever the job raises
        """
        job = self.jobs.get(job_key)
        if job is None:
            raise JobNotFoundError(job_key)

        self.logger.info(f"Manually executing: {job.name}")
        start = time.monotonic()
        result = await job.task()
        duration = time.monotonic() - start
        self.logger.info(f"Manual execution completed: {job.name} ({duration:.2f}s)")

        return {"success": True, "duration": duration, "result": result}

    def get_jobs_status(self) -> Dict[str, Dict[str, Any]]:
        return {
            key: {
                "name": job.name,
                "schedule": job.schedule,
                "isRunning": job.active,
                "executing": job.running,
                "nextRun": job.next_run_at.isoformat() if job.next_run_at else None,
                "lastRun": job.last_run_at.isoformat() if job.last_run_at else None,
                "lastError": job.last_error,
            }
            for key, job in self.jobs.items()
        }

    async def run_forever(self, max_sleep: float = 60.0) -> None:
        """Service loop: sleep until the next due job, launch it, repeat until stopped."""
        # Bound to the running loop
        self._stop_event = asyncio.Event()
        self.start()
        self.logger.info("Sweep scheduler service started")

        try:
            while not self._stop_event.is_set():
                self.tick()

                pending = [job.next_run_at for job in self.jobs.values() if job.active and job.next_run_at]
                if pending:
                    delay = (min(pending) - self.now()).total_seconds()
                    delay = min(max(delay, 0.0), max_sleep)
                else:
                    delay = max_sleep

                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
        finally:
            if self._in_flight:
                self.logger.info(f"Waiting for {len(self._in_flight)} running jobs to finish")
                await asyncio.gather(*self._in_flight, return_exceptions=True)
            self.logger.info("Sweep scheduler service stopped")
