"""
Scheduler for appointment reminders using APScheduler.
Sends a reminder ahead of each upcoming, non-cancelled appointment.

Supports Redis backend for horizontal scaling (multiple service instances).
"""

from datetime import timedelta
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

# Redis jobstore is optional - only import if Redis is configured
try:
    from apscheduler.jobstores.redis import RedisJobStore

    REDIS_AVAILABLE = True
except ImportError:
    REDIS_AVAILABLE = False
    RedisJobStore = None

from config import settings
from db.base import AppointmentStore
from models.appointment import Appointment
from notifications.dispatcher import NotificationDispatcher
from notifications.messages import NotificationKind
from utils.datetime_utils import tenant_now
from utils.exceptions import DatabaseError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="scheduler.log")


def _create_scheduler() -> AsyncIOScheduler:
    """
    Create scheduler with Redis backend for clustering support.

    Falls back to default in-memory scheduler if Redis is not configured.
    """
    redis_url = getattr(settings, "redis_url", None)

    if redis_url and REDIS_AVAILABLE and RedisJobStore:
        try:
            # Parse Redis URL: redis://host:port/db or redis://:password@host:port/db
            from urllib.parse import urlparse

            parsed = urlparse(redis_url)
            host = parsed.hostname or "localhost"
            port = parsed.port or 6379
            db = int(parsed.path.lstrip("/")) if parsed.path.lstrip("/") else 0

            jobstores = {
                "default": RedisJobStore(
                    host=host, port=port, db=db, password=parsed.password or None
                )
            }
            logger.info(f"Scheduler using Redis backend: {host}:{port}/{db}")
            return AsyncIOScheduler(jobstores=jobstores)
        except Exception as e:
            logger.warning(
                f"Failed to initialize Redis scheduler: {e}. Falling back to in-memory scheduler."
            )
            return AsyncIOScheduler()

    if redis_url and not REDIS_AVAILABLE:
        logger.warning(
            "Redis URL configured but RedisJobStore not available. Install redis package."
        )
    logger.info("Scheduler using in-memory backend (single instance mode)")
    return AsyncIOScheduler()


scheduler = _create_scheduler()

# Injected via setup_scheduler
_store: Optional[AppointmentStore] = None
_dispatcher: Optional[NotificationDispatcher] = None


def configure(store: AppointmentStore, dispatcher: NotificationDispatcher) -> None:
    """Set the store and dispatcher used by reminder jobs."""
    global _store, _dispatcher
    _store = store
    _dispatcher = dispatcher
    logger.info("Reminder dependencies configured")


async def send_reminder(appointment: Appointment) -> bool:
    """
    Send a reminder for one appointment and flag it as reminded.

    Returns:
        True if sent and flagged, False otherwise
    """
    if _store is None or _dispatcher is None:
        logger.error("Reminder dependencies not configured - cannot send reminder")
        return False

    try:
        sent = await _dispatcher.send(NotificationKind.REMINDER, [appointment])
        if not sent:
            return False

        updated = await _store.mark_reminder_sent(
            appointment.id, tenant_now(settings.timezone)
        )
        if updated is None:
            logger.warning(f"Failed to mark reminder as sent for appointment {appointment.id}")
            return False

        logger.info(f"Reminder sent for appointment {appointment.id}")
        return True

    except Exception as e:
        logger.error(
            f"Failed to send reminder for appointment {appointment.id}: {e}", exc_info=True
        )
        return False


async def check_and_send_reminders() -> None:
    """Find appointments entering the reminder window and remind their clients."""
    if _store is None:
        logger.error("Reminder dependencies not configured - skipping run")
        return

    try:
        now = tenant_now(settings.timezone)
        until = now + timedelta(hours=settings.reminder_hours_before)
        appointments = await _store.get_appointments_for_reminder(now, until)

        if not appointments:
            logger.debug("No appointments require reminders at this time")
            return

        logger.info(f"Processing {len(appointments)} appointments for reminders")

        sent_count = 0
        failed_count = 0
        for appointment in appointments:
            if not appointment.id:
                logger.warning(f"Appointment missing ID, skipping: {appointment}")
                failed_count += 1
                continue

            if await send_reminder(appointment):
                sent_count += 1
            else:
                failed_count += 1

        logger.info(
            f"Reminder processing complete: {sent_count} sent, {failed_count} failed"
        )

    except DatabaseError as e:
        logger.error(f"Database error checking reminders: {e}", exc_info=True)
    except Exception as e:
        logger.error(f"Unexpected error checking reminders: {e}", exc_info=True)


def setup_scheduler(
    store: Optional[AppointmentStore] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> None:
    """Setup and start the scheduler.

    Args:
        store: Appointment store to inject. If None, must be set via configure()
        dispatcher: Notification dispatcher to inject
    """
    if store is not None and dispatcher is not None:
        configure(store, dispatcher)

    # Run reminder check every hour
    scheduler.add_job(
        check_and_send_reminders,
        trigger=CronTrigger(minute=0),
        id="check_reminders",
        name="Check and send appointment reminders",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Scheduler started")


def shutdown_scheduler() -> None:
    """Shutdown the scheduler."""
    if scheduler.running:
        scheduler.shutdown()
    logger.info("Scheduler stopped")
