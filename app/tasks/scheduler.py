import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)
scheduler = BackgroundScheduler()

JOB_ID = 'nightly_sync'


def build_trigger(schedule, timezone):
    """Parse a 5-field crontab expression in the given IANA time zone.

    Raises ValueError when either part is unusable.
    """
    schedule = (schedule or '').strip()
    timezone = (timezone or '').strip()
    if not schedule:
        raise ValueError('Cron schedule is required.')
    if not timezone:
        raise ValueError('Timezone is required.')
    try:
        tz = ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Invalid timezone: '{timezone}'.")
    try:
        return CronTrigger.from_crontab(schedule, timezone=tz)
    except ValueError as e:
        raise ValueError(f"Invalid cron schedule '{schedule}': {e}")


def get_schedule_settings(app):
    """Return ``(schedule, timezone)`` from AdminSetting, or config defaults."""
    from app.extensions import db
    from app.models import AdminSetting
    from app.models.admin_setting import CRON_SCHEDULE_KEY, CRON_TIMEZONE_KEY

    schedule = app.config.get('DEFAULT_CRON_SCHEDULE', '0 2 * * *')
    timezone = app.config.get('DEFAULT_CRON_TIMEZONE', 'Etc/UTC')
    try:
        schedule = AdminSetting.get(CRON_SCHEDULE_KEY, schedule)
        timezone = AdminSetting.get(CRON_TIMEZONE_KEY, timezone)
    except Exception as e:
        db.session.rollback()
        logger.error(f"Could not load cron settings, using defaults: {e}")
    return schedule, timezone


def run_nightly_sync(app):
    """Full Codeforces sweep followed by the inactivity reminders."""
    with app.app_context():
        from app.services.inactivity_service import InactivityService
        from app.services.sync_service import SyncService

        logger.info("Nightly sync started")
        sync_stats = SyncService().sync_all()
        try:
            reminder_stats = InactivityService().run()
        except Exception as e:
            logger.error(f"Inactivity check failed: {e}", exc_info=True)
            reminder_stats = None
        logger.info(
            f"Nightly sync completed: sync={sync_stats}, reminders={reminder_stats}"
        )
        return {'sync': sync_stats, 'reminders': reminder_stats}


def init_scheduler(app):
    """Initialize and start the scheduler with app context."""
    if not app.config.get('SCHEDULER_ENABLED', False):
        logger.info("Scheduler disabled by config")
        return

    with app.app_context():
        schedule, timezone = get_schedule_settings(app)
    try:
        trigger = build_trigger(schedule, timezone)
    except ValueError as e:
        logger.error(f"{e} Falling back to the default schedule.")
        schedule = app.config.get('DEFAULT_CRON_SCHEDULE', '0 2 * * *')
        timezone = app.config.get('DEFAULT_CRON_TIMEZONE', 'Etc/UTC')
        trigger = build_trigger(schedule, timezone)

    scheduler.add_job(
        run_nightly_sync,
        trigger,
        args=[app],
        id=JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    try:
        scheduler.start()
        logger.info(f"Scheduler started: '{schedule}' ({timezone})")
    except Exception as e:
        logger.error(f"Scheduler failed to start: {e}")


def update_schedule(app, schedule, timezone):
    """Validate, persist and apply a new nightly schedule.

    Must be called inside an app context. Raises ValueError on bad input,
    in which case nothing is saved.
    """
    from app.extensions import db
    from app.models import AdminSetting
    from app.models.admin_setting import CRON_SCHEDULE_KEY, CRON_TIMEZONE_KEY

    schedule = (schedule or '').strip()
    timezone = (timezone or '').strip()
    trigger = build_trigger(schedule, timezone)

    AdminSetting.set(CRON_SCHEDULE_KEY, schedule)
    AdminSetting.set(CRON_TIMEZONE_KEY, timezone)
    db.session.commit()

    if scheduler.get_job(JOB_ID) is not None:
        scheduler.reschedule_job(JOB_ID, trigger=trigger)
        logger.info(f"Nightly sync rescheduled: '{schedule}' ({timezone})")
    else:
        logger.info(
            f"Cron settings saved ('{schedule}' {timezone}); scheduler not running"
        )
    return {'cronSchedule': schedule, 'cronTimezone': timezone}
