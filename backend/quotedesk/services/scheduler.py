"""
Background Job Scheduler.

WHAT: Configures and manages APScheduler for background tasks.

WHY: The totals recompute is normally run on demand, but deployments that
change pricing rules often want it on a fixed interval without anyone
calling the maintenance endpoint.

HOW: Uses APScheduler with AsyncIOScheduler so jobs run on the
application's event loop. The recompute job is registered only when
RECOMPUTE_SCHEDULE_ENABLED is set.

Example:
    # In main.py lifespan:
    await start_scheduler()
    ...
    await shutdown_scheduler()
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.triggers.interval import IntervalTrigger

from quotedesk.core.config import settings
from quotedesk.services.recompute_service import run_recompute


logger = logging.getLogger(__name__)


RECOMPUTE_JOB_ID = "recompute_totals"

# Global scheduler instance
_scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> Optional[AsyncIOScheduler]:
    """Get the global scheduler instance."""
    return _scheduler


async def start_scheduler() -> None:
    """
    Start the background job scheduler.

    HOW:
    1. Creates AsyncIOScheduler with memory job store
    2. Registers the recompute job when enabled
    3. Starts the scheduler

    Note: Call this from the FastAPI lifespan.
    """
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.warning("Scheduler already running")
        return

    jobstores = {
        "default": MemoryJobStore()
    }

    executors = {
        "default": AsyncIOExecutor()
    }

    job_defaults = {
        "coalesce": True,  # Combine multiple missed runs into one
        "max_instances": 1,  # Only one instance of each job at a time
        "misfire_grace_time": 60,
    }

    _scheduler = AsyncIOScheduler(
        jobstores=jobstores,
        executors=executors,
        job_defaults=job_defaults,
        timezone="UTC",
    )

    if settings.RECOMPUTE_SCHEDULE_ENABLED:
        _register_recompute_job()

    _scheduler.start()
    logger.info(f"Scheduler started with {len(_scheduler.get_jobs())} job(s)")


def _register_recompute_job() -> None:
    """
    Register the totals recompute job.

    HOW: Runs run_recompute every RECOMPUTE_INTERVAL_SECONDS.
    """
    if _scheduler is None:
        logger.error("Cannot register job: scheduler not initialized")
        return

    _scheduler.add_job(
        func=run_recompute,
        trigger=IntervalTrigger(seconds=settings.RECOMPUTE_INTERVAL_SECONDS),
        id=RECOMPUTE_JOB_ID,
        name="Quotation Totals Recompute",
        replace_existing=True,
    )

    logger.info(
        f"Registered totals recompute job (interval: {settings.RECOMPUTE_INTERVAL_SECONDS}s)"
    )


async def shutdown_scheduler() -> None:
    """
    Shut down the background job scheduler.

    Note: Call this from the FastAPI lifespan.
    """
    global _scheduler

    if _scheduler is None:
        logger.info("Scheduler not running")
        return

    if not _scheduler.running:
        logger.info("Scheduler already stopped")
        _scheduler = None
        return

    logger.info("Shutting down scheduler...")
    _scheduler.shutdown(wait=True)
    _scheduler = None
    logger.info("Scheduler shut down successfully")


def get_scheduler_status() -> dict:
    """
    Get scheduler status information.

    Returns:
        Dict with scheduler status and job details
    """
    if _scheduler is None:
        return {
            "running": False,
            "jobs": [],
            "message": "Scheduler not initialized",
        }

    jobs = []
    for job in _scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": str(job.next_run_time) if job.next_run_time else None,
            "trigger": str(job.trigger),
        })

    return {
        "running": _scheduler.running,
        "jobs": jobs,
        "message": "Scheduler is running" if _scheduler.running else "Scheduler is paused",
    }
