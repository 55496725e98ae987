"""
Background scheduler: runs the daily WhatsApp job inside the FastAPI process.

Jobs:
  - Daily WhatsApp reminders (DAILY_JOB_HOUR:DAILY_JOB_MINUTE UTC, default 03:30 UTC / 09:00 IST)
"""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import get_settings

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True, timezone="UTC")


def _run_daily_whatsapp_job():
    from app.infrastructure.db.session import get_session_factory
    from app.application.daily_whatsapp_job import run_daily_whatsapp_job

    Session = get_session_factory()
    db = Session()
    try:
        result = run_daily_whatsapp_job(db)
        logger.info("Daily WhatsApp job result: %s", result.to_dict())
    except Exception:
        logger.exception("Daily WhatsApp job failed")
    finally:
        db.close()


def start_scheduler():
    """Start the background scheduler with the daily job."""
    settings = get_settings()

    scheduler.add_job(
        _run_daily_whatsapp_job,
        CronTrigger(hour=settings.DAILY_JOB_HOUR, minute=settings.DAILY_JOB_MINUTE, timezone="UTC"),
        id="daily_whatsapp_job",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started: daily_whatsapp_job (%02d:%02d UTC)",
        settings.DAILY_JOB_HOUR, settings.DAILY_JOB_MINUTE,
    )


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
