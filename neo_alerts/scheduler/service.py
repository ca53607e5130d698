"""Scheduler service for the periodic detection, drain and dispatch jobs."""

import functools
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from neo_alerts.logging import get_logger

logger = get_logger(__name__, component="scheduler")


class SchedulerService:
    """
    Wraps APScheduler to run each pipeline step at its own interval.

    Uses BackgroundScheduler to run jobs in worker threads while
    allowing the main thread to handle signals and coordinate shutdown.
    """

    def __init__(
        self,
        shutdown_event: Optional[threading.Event] = None,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        """
        Initialize the scheduler service.

        Args:
            shutdown_event: Optional event to set on shutdown for coordination
            scheduler: Scheduler to use instead of a new BackgroundScheduler
        """
        self.shutdown_event = shutdown_event
        self._jobs = {}

        self.scheduler = scheduler or BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
            },
            timezone=timezone.utc,
        )

    def add_interval_job(
        self,
        func: Callable[[], object],
        interval_seconds: int,
        job_id: str,
        name: Optional[str] = None,
        run_immediately: bool = True,
    ) -> None:
        """
        Register ``func`` to run every ``interval_seconds``.

        Overlapping runs of the same job are not started and a backlog of
        missed runs collapses into one. Exceptions raised by ``func`` are
        logged and the job stays scheduled.

        Args:
            func: Zero-argument callable to run
            interval_seconds: Interval between runs in seconds
            job_id: Unique job identifier
            name: Human-readable job name
            run_immediately: Run once as soon as the scheduler starts
        """
        if interval_seconds < 1:
            raise ValueError(f"interval_seconds must be at least 1, got: {interval_seconds}")

        wrapped = self._guard(func, job_id)
        self._jobs[job_id] = wrapped

        trigger = IntervalTrigger(seconds=interval_seconds, timezone=timezone.utc)
        job_kwargs = {}
        if run_immediately:
            job_kwargs["next_run_time"] = datetime.now(timezone.utc)

        self.scheduler.add_job(
            func=wrapped,
            trigger=trigger,
            id=job_id,
            name=name or job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=interval_seconds,
            **job_kwargs,
        )

        logger.info(
            f"Registered job {job_id} every {interval_seconds} seconds",
            extra={
                "event": "scheduler.job.registered",
                "job_id": job_id,
                "interval_seconds": interval_seconds,
                "run_immediately": run_immediately,
            },
        )

    @staticmethod
    def _guard(func: Callable[[], object], job_id: str) -> Callable[[], None]:
        @functools.wraps(func)
        def run_job() -> None:
            try:
                func()
            except Exception as e:
                logger.error(
                    f"Scheduled job {job_id} failed: {e}",
                    extra={
                        "event": "scheduler.job.failed",
                        "job_id": job_id,
                        "error_type": type(e).__name__,
                    },
                    exc_info=True,
                )

        return run_job

    def start(self) -> None:
        """Start the scheduler (spawns worker threads)."""
        self.scheduler.start()

        logger.info(
            f"Scheduler started with {len(self._jobs)} jobs",
            extra={"event": "scheduler.started", "job_ids": sorted(self._jobs)},
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler gracefully.

        Args:
            wait: If True, wait for running jobs to complete before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self, job_id: str) -> None:
        """
        Run a registered job synchronously in the current thread.

        Raises:
            KeyError: If no job with ``job_id`` is registered
        """
        if job_id not in self._jobs:
            raise KeyError(f"Unknown job: {job_id}")

        logger.info(
            f"Triggering immediate run of {job_id}",
            extra={"event": "scheduler.trigger_now", "job_id": job_id},
        )
        self._jobs[job_id]()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self, job_id: str) -> Optional[datetime]:
        """
        Get the next scheduled run time for a job.

        Returns:
            Next run time as a datetime, or None if not scheduled
        """
        job = self.scheduler.get_job(job_id)
        return job.next_run_time if job else None
