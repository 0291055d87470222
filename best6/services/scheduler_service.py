"""
Best6 Background Sync Scheduler Service

Runs sync pushes as detached one-shot jobs on an APScheduler background
scheduler. Callers never wait for a job and never see its failure; every
outcome is logged and counted in the scheduler stats.
"""

import atexit
import threading
import uuid
from datetime import datetime, timezone

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler

from best6.utils.logging_config import get_logger

logger = get_logger(__name__)


class _SpawnerStats:
    def __init__(self):
        self._lock = threading.Lock()
        self.data = {
            "last_run": None,
            "total_tasks": 0,
            "successful_tasks": 0,
            "failed_tasks": 0,
            "last_error": None,
        }

    def record(self, success, error=None):
        with self._lock:
            self.data["last_run"] = datetime.now(timezone.utc)
            self.data["total_tasks"] += 1
            if success:
                self.data["successful_tasks"] += 1
            else:
                self.data["failed_tasks"] += 1
                self.data["last_error"] = str(error)

    def snapshot(self):
        with self._lock:
            return dict(self.data)


class SchedulerService:
    """Fire-and-forget task spawner backed by APScheduler"""

    def __init__(self, max_workers=5):
        self.scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers)},
            job_defaults={"coalesce": False, "misfire_grace_time": None},
            daemon=True,
            timezone="UTC",
        )
        self.scheduler.add_listener(
            self._on_job_event, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR
        )
        self.is_running = False
        self._stats = _SpawnerStats()
        self._names = {}

        # Register shutdown
        atexit.register(self.shutdown)

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        self.scheduler.start()
        self.is_running = True
        logger.info("Sync scheduler started")

    def stop(self, wait=False):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        try:
            self.scheduler.shutdown(wait=wait)
            self.is_running = False
            logger.info("Sync scheduler stopped")
        except Exception as e:
            logger.error(f"Error stopping sync scheduler: {e}")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop(wait=False)

    def spawn(self, name, func, *args, **kwargs):
        """
        Run func once, as soon as a worker is free.

        Returns the job id. The result is never handed back to the caller.
        """
        if not self.is_running:
            self.start()

        job_id = f"{name}-{uuid.uuid4().hex[:8]}"
        self._names[job_id] = name
        self.scheduler.add_job(
            func=func,
            trigger="date",
            args=args,
            kwargs=kwargs,
            id=job_id,
            name=name,
        )
        logger.debug(f"Spawned task {job_id}")
        return job_id

    def _on_job_event(self, event):
        name = self._names.pop(event.job_id, event.job_id)
        if event.exception:
            self._stats.record(False, event.exception)
            logger.warning(f"Background task '{name}' failed: {event.exception}")
        else:
            self._stats.record(True)
            logger.debug(f"Background task '{name}' completed")

    def get_stats(self):
        """Get task statistics"""
        stats = self._stats.snapshot()
        stats["is_running"] = self.is_running
        return stats


class ImmediateSpawner:
    """Runs tasks inline with the same log-and-continue policy"""

    def __init__(self):
        self._stats = _SpawnerStats()

    def spawn(self, name, func, *args, **kwargs):
        try:
            func(*args, **kwargs)
        except Exception as e:
            self._stats.record(False, e)
            logger.warning(f"Background task '{name}' failed: {e}")
        else:
            self._stats.record(True)
        return name

    def shutdown(self):
        pass

    def get_stats(self):
        stats = self._stats.snapshot()
        stats["is_running"] = True
        return stats


def make_spawner(config):
    """Background scheduler when sync is enabled, inline execution otherwise"""
    if config.get("SYNC_IN_BACKGROUND", True):
        return SchedulerService(max_workers=config.get("SYNC_MAX_WORKERS", 5))
    return ImmediateSpawner()
