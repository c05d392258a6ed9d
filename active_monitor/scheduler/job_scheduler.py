"""Job scheduler using APScheduler."""

import logging
from typing import Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent

from active_monitor.config import settings
from active_monitor.probing.models import GRANULARITIES, HostResult

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def _job_listener(event: JobExecutionEvent) -> None:
    """Listen for job execution events."""
    if event.exception:
        logger.error(
            "Job %s failed with exception: %s",
            event.job_id,
            event.exception,
        )
    else:
        logger.debug("Job %s executed successfully", event.job_id)


def job_id(measurement: str, granularity: str) -> str:
    return f"am_{measurement}_{granularity}"


def create_scheduler() -> AsyncIOScheduler:
    """Create and configure the scheduler.

    Returns:
        Configured AsyncIOScheduler instance.
    """
    job_defaults = {
        "coalesce": True,  # Combine missed runs into one
        "max_instances": 1,  # Only one instance of each job at a time
        "misfire_grace_time": 30,
    }

    return AsyncIOScheduler(
        job_defaults=job_defaults,
        timezone="UTC",
    )


def start_scheduler() -> None:
    """Start the scheduler with one job per measurement and granularity."""
    global scheduler

    # Import here to avoid circular imports
    from active_monitor.probing.monitor import get_measurements, run_measurement_cycle

    scheduler = create_scheduler()

    # Add job execution listener
    scheduler.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    for measurement in get_measurements().values():
        for granularity in measurement.granularities:
            if granularity not in settings.granularities_list:
                continue

            scheduler.add_job(
                run_measurement_cycle,
                trigger=IntervalTrigger(seconds=GRANULARITIES[granularity]),
                args=[measurement.key, granularity],
                id=job_id(measurement.key, granularity),
                name=f"{measurement.key} probe ({granularity})",
                replace_existing=True,
            )
            logger.info(
                "Scheduled %s probes every %d seconds",
                measurement.key,
                GRANULARITIES[granularity],
            )

    scheduler.start()
    logger.info(
        "Scheduler started with %d jobs",
        len(scheduler.get_jobs()),
    )


def shutdown_scheduler() -> None:
    """Gracefully shutdown the scheduler."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler shutdown complete")


def get_scheduler() -> Optional[AsyncIOScheduler]:
    """Get the current scheduler instance.

    Returns:
        The scheduler instance or None if not started.
    """
    return scheduler


def get_jobs_info() -> list:
    """Get information about scheduled jobs.

    Returns:
        List of job information dictionaries.
    """
    if not scheduler:
        return []

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger),
        })

    return jobs


async def trigger_manual_cycle(
    measurement: str,
    granularity: str,
) -> Optional[Dict[str, HostResult]]:
    """Trigger an immediate probing cycle.

    Returns:
        None when the cycle was queued on the scheduler, otherwise the
        results of the cycle run in place.
    """
    from active_monitor.probing.monitor import run_measurement_cycle

    if scheduler:
        scheduler.add_job(
            run_measurement_cycle,
            trigger="date",
            args=[measurement, granularity],
            id=f"manual_{job_id(measurement, granularity)}",
            name=f"Manual {measurement} probe ({granularity})",
            replace_existing=True,
        )
        return None

    # Run directly if scheduler not available
    return await run_measurement_cycle(measurement, granularity)
