# app/scheduler.py
"""
Background scheduler that drives the durable task queue.

APScheduler runs a single interval job that dispatches every due row of the
`scheduled_tasks` table. The tasks themselves live in the database, so they
survive restarts and are shared by all instances of the service.
"""

import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED

from app.core.config import settings
from app.services.task_queue import dispatch_due_tasks

# Registers the task handlers with the dispatcher
import app.background_tasks.event_tasks  # noqa: F401

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = None


def _on_job_error(event):
    """Log scheduler job errors with full context."""
    job_id = event.job_id
    exc = event.exception
    tb = event.traceback
    logger.error(
        "Scheduled job FAILED: job_id=%s error=%s",
        job_id, exc,
        exc_info=(type(exc), exc, None) if exc else None,
    )
    if tb:
        logger.error("Traceback for job %s:\n%s", job_id, tb)


def _on_job_missed(event):
    """Log when a scheduled job misses its execution window."""
    logger.warning(
        "Scheduled job MISSED: job_id=%s scheduled_run_time=%s",
        event.job_id,
        event.scheduled_run_time,
    )


def init_scheduler():
    """
    Initialize the background scheduler and start dispatching due tasks.

    This is called once when the application starts up.
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already initialized")
        return scheduler

    scheduler = BackgroundScheduler(
        timezone="UTC",
        job_defaults={
            'coalesce': True,  # Combine missed executions
            'max_instances': 1,  # Only one dispatcher run at a time
            'misfire_grace_time': 60
        }
    )

    interval = settings.TASK_DISPATCH_INTERVAL_SECONDS
    scheduler.add_job(
        func=dispatch_due_tasks,
        trigger=IntervalTrigger(seconds=interval),
        id='dispatch_due_tasks',
        name='Dispatch Due Scheduled Tasks',
        replace_existing=True
    )
    logger.info(f"Scheduled job: dispatch_due_tasks (every {interval} seconds)")

    scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
    scheduler.add_listener(_on_job_missed, EVENT_JOB_MISSED)

    scheduler.start()
    logger.info("Background scheduler started successfully")

    return scheduler


def shutdown_scheduler():
    """
    Gracefully shutdown the scheduler.

    This is called when the application shuts down.
    """
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=True)
        logger.info("Background scheduler shutdown complete")
        scheduler = None


def get_scheduler_status():
    """
    Get the current status of the dispatcher job.

    Returns:
        Dict with the scheduler state and its jobs' next run times
    """
    global scheduler

    if scheduler is None:
        return {"status": "not_initialized", "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger)
        })

    return {
        "status": "running" if scheduler.running else "stopped",
        "jobs": jobs
    }
