"""Scheduler for automated jobs (daily due-task notifications)."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.core.config import settings
from src.services import notification_service


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone="UTC")


async def run_due_task_notifications() -> None:
    """Scan for tasks due today and announce them.

    Runs daily at the configured time. Failures are logged and the job
    simply runs again the next day.
    """
    logger.info("Running due-task notifications job")

    try:
        results = await notification_service.send_due_task_notifications()
        logger.info("Completed due-task notifications job: %d task(s) announced", sum(1 for r in results if r.success))
    except Exception as e:
        logger.error(f"Error in due-task notifications job: {e}")


def start_scheduler() -> None:
    """Start the scheduler and register all jobs.

    This should be called during FastAPI app startup.
    """
    logger.info("Starting scheduler")

    if settings.enable_due_task_notifications:
        scheduler.add_job(
            run_due_task_notifications,
            trigger=CronTrigger(
                hour=settings.due_notification_hour,
                minute=settings.due_notification_minute,
                timezone="UTC",
            ),
            id="due_task_notifications",
            name="Send Due Task Notifications",
            replace_existing=True,
        )
        logger.info(
            "Scheduled due-task notifications job: daily at %02d:%02d UTC",
            settings.due_notification_hour,
            settings.due_notification_minute,
        )
    else:
        logger.info("Due-task notifications disabled by configuration")

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    logger.info("Stopping scheduler")
    if scheduler.running:
        scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
