"""APScheduler wrapper running periodic collection and cache maintenance."""

from __future__ import annotations

from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..engine import TTLCache
from ..logging_conf import get_logger

COLLECTION_JOB_ID = "collection"
SWEEP_JOB_ID = "cache::sweep"


class APSchedulerAdapter:
    """Manage APScheduler jobs for collection runs."""

    def __init__(self, scheduler: BackgroundScheduler | None = None) -> None:
        self.scheduler = scheduler or BackgroundScheduler()
        self.logger = get_logger("scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_collection(self, callback: Callable[[], object], interval_minutes: float) -> None:
        # max_instances=1 keeps overlapping runs from being started by the scheduler itself
        self.scheduler.add_job(
            callback,
            trigger=IntervalTrigger(minutes=interval_minutes),
            id=COLLECTION_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info("job_scheduled", job=COLLECTION_JOB_ID, interval_minutes=interval_minutes)

    def schedule_cache_sweep(self, cache: TTLCache, interval_seconds: float) -> None:
        self.scheduler.add_job(
            self._sweep,
            trigger=IntervalTrigger(seconds=interval_seconds),
            id=SWEEP_JOB_ID,
            args=[cache],
            replace_existing=True,
        )
        self.logger.info("job_scheduled", job=SWEEP_JOB_ID, interval_seconds=interval_seconds)

    def _sweep(self, cache: TTLCache) -> int:
        removed = cache.sweep_expired()
        if removed:
            self.logger.debug("cache_swept", removed=removed)
        return removed

    def remove_job(self, job_id: str) -> None:
        try:
            self.scheduler.remove_job(job_id)
        except Exception:  # noqa: BLE001
            self.logger.warning("job_remove_failed", job=job_id)

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["APSchedulerAdapter", "COLLECTION_JOB_ID", "SWEEP_JOB_ID"]
