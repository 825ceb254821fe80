"""
Daily due-debt sweep (cron from settings.cron_schedule in settings.app_timezone), also run on
demand via POST /api/notifications/trigger. No scheduler-level locking: overlapping runs are
safe because the notification ledger skips transactions that already have a notification.
"""
import logging

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import settings
from app.core.constants import DUE_DEBTS_SWEEP_JOB_ID
from app.db.session import SessionLocal
from app.services.notification_sweep import SweepResult, process_all_users_notifications

logger = logging.getLogger(__name__)


def run_due_debts_sweep_job() -> SweepResult | None:
    db = SessionLocal()
    try:
        logger.info("Due sweep started")
        return process_all_users_notifications(db)
    except Exception as e:
        logger.exception("Due sweep failed: %s", e)
        db.rollback()
        return None
    finally:
        db.close()


def schedule_due_debts_sweep(scheduler: BaseScheduler) -> None:
    trigger = CronTrigger.from_crontab(settings.cron_schedule, timezone=settings.app_timezone)
    scheduler.add_job(
        run_due_debts_sweep_job,
        trigger,
        id=DUE_DEBTS_SWEEP_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
        misfire_grace_time=3600,
    )
    logger.info("Due sweep scheduled (%s, %s)", settings.cron_schedule, settings.app_timezone)
