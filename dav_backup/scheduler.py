"""Periodic execution of the backup and retention cycles.

Usage::

    scheduler = BackupScheduler(settings, runner)
    scheduler.start()   # both cycles fire right away, then on their interval
    scheduler.stop()    # joins the worker threads
"""
from __future__ import annotations

import logging
import signal
import threading
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config import Settings
from .jobs import BackupRunner

LOGGER = logging.getLogger(__name__)

BACKUP_JOB_ID = "backup"
RETENTION_JOB_ID = "retention"


class BackupScheduler:
    def __init__(
        self,
        settings: Settings,
        runner: BackupRunner,
        scheduler: Optional[BackgroundScheduler] = None,
    ) -> None:
        self._settings = settings
        self._runner = runner
        self._scheduler = scheduler or BackgroundScheduler()
        self._running = False
        self._stop_requested = threading.Event()

    def start(self) -> None:
        if self._running:
            LOGGER.warning("Scheduler is already running.")
            return

        self._stop_requested.clear()
        now = datetime.now(self._scheduler.timezone)
        # The cycles do not exclude each other; each only refuses to overlap itself.
        self._scheduler.add_job(
            self._runner.run_backup_cycle,
            trigger=IntervalTrigger(seconds=self._settings.backup_interval.total_seconds()),
            id=BACKUP_JOB_ID,
            name="Database dump and upload",
            next_run_time=now,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
            replace_existing=True,
        )
        self._scheduler.add_job(
            self._runner.run_retention_cycle,
            trigger=IntervalTrigger(seconds=self._settings.retention_interval.total_seconds()),
            id=RETENTION_JOB_ID,
            name="Remote retention cleanup",
            next_run_time=now,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
            replace_existing=True,
        )
        self._scheduler.start()
        self._running = True
        LOGGER.info(
            "Scheduler started: backup every %s, retention every %s.",
            self._settings.backup_interval,
            self._settings.retention_interval,
        )

    def stop(self, wait: bool = True) -> None:
        if not self._running:
            return
        self._scheduler.shutdown(wait=wait)
        self._running = False
        self._stop_requested.set()
        LOGGER.info("Scheduler stopped.")

    def request_stop(self, *_args) -> None:
        self._stop_requested.set()

    def run_forever(self) -> None:
        """Start both cycles and block until SIGINT/SIGTERM or :meth:`request_stop`."""

        previous_handler = signal.signal(signal.SIGTERM, self.request_stop)
        self.start()
        try:
            while not self._stop_requested.wait(timeout=1.0):
                pass
        except KeyboardInterrupt:
            LOGGER.info("Interrupted, shutting down.")
        finally:
            self.stop()
            signal.signal(signal.SIGTERM, previous_handler)

    @property
    def is_running(self) -> bool:
        return self._running

    def next_run(self, job_id: str) -> Optional[datetime]:
        if not self._running:
            return None
        job = self._scheduler.get_job(job_id)
        return job.next_run_time if job else None


__all__ = ["BACKUP_JOB_ID", "BackupScheduler", "RETENTION_JOB_ID"]
