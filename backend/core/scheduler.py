"""
Background task scheduler.

Uses APScheduler to clear mutes whose expiry has passed, so the dashboard
and ``users.is_muted`` reflect the platform's own timeout expiry.
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from models.config import settings
from repositories.database import SessionLocal


# Global scheduler instance
scheduler: BackgroundScheduler | None = None


def mute_expiry_job() -> int:
    """
    Scheduled job to clear expired mutes.

    Creates its own database session for isolation.

    Returns:
        Number of users whose mute was cleared.
    """
    from services.scoring_service import ScoringService

    db = SessionLocal()
    try:
        cleared = ScoringService.expire_mutes(db)
        if cleared:
            logger.info(f"Mute expiry job cleared {cleared} mute(s)")
        return cleared
    except Exception as e:
        logger.error(f"Mute expiry job failed: {e}")
        raise
    finally:
        db.close()


def setup_scheduler() -> None:
    """
    Configure and start the background scheduler.

    Schedules:
    - Mute expiry: every MUTE_EXPIRY_INTERVAL_MINUTES
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already initialized")
        return

    scheduler = BackgroundScheduler()

    scheduler.add_job(
        mute_expiry_job,
        IntervalTrigger(minutes=settings.MUTE_EXPIRY_INTERVAL_MINUTES),
        id="mute_expiry",
        name="Mute Expiry",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(
        f"Background scheduler started with mute expiry every "
        f"{settings.MUTE_EXPIRY_INTERVAL_MINUTES} minute(s)"
    )


def shutdown_scheduler() -> None:
    """Gracefully shutdown the scheduler."""
    global scheduler

    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background scheduler stopped")
    scheduler = None


def get_scheduler_status() -> dict:
    """Get current scheduler status for monitoring."""
    if scheduler is None:
        return {"running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append(
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": (
                    job.next_run_time.isoformat() if job.next_run_time else None
                ),
            }
        )

    return {"running": scheduler.running, "jobs": jobs}
