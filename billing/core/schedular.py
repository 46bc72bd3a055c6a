import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from billing.core.config import settings
from billing.core.database import SessionLocal
from billing.services.notifier import ExpiryNotifier

logger = logging.getLogger(__name__)


def notify_expiring_rentals():
    """
    Scheduled task: mail every account whose rentals end within the
    notifier window. Runs daily at settings.notifier_cron_hour (UTC).
    """
    db = SessionLocal()
    try:
        report = ExpiryNotifier(db).run()
        logger.info(
            f"[{datetime.now(timezone.utc)}] Expiry notification completed. "
            f"Sent {len(report.sent)}, failed {len(report.failed)}."
        )
    except Exception as e:
        logger.error(f"Error during expiry notification: {e}", exc_info=True)
    finally:
        db.close()


def start_scheduler():
    """
    Initialize and start the APScheduler for the expiry notifier.
    """
    scheduler = AsyncIOScheduler(timezone="UTC")

    scheduler.add_job(
        notify_expiring_rentals,
        trigger=CronTrigger(hour=settings.notifier_cron_hour, minute=0, timezone="UTC"),
        id="rental_expiry_notification",
        name="Notify about expiring rentals",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(
        f"Expiry notifier scheduled daily at {settings.notifier_cron_hour:02d}:00 UTC."
    )

    return scheduler


def shutdown_scheduler(scheduler: AsyncIOScheduler):
    """
    Gracefully shutdown the scheduler.
    """
    if scheduler:
        scheduler.shutdown()
        logger.info("Expiry notifier scheduler shut down.")
