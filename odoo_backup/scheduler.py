"""
APScheduler configuration for unattended backups.

Runs one cycle per SCHEDULE_CRON tick: back up every target, then enforce
retention for every target. The job runs with max_instances=1 and
coalesce=True, so cycles never overlap inside one scheduler.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.executors.pool import ThreadPoolExecutor


logger = logging.getLogger(__name__)

CYCLE_JOB_ID = 'backup_cycle'

# Global scheduler instance and Flask app reference
scheduler = None
flask_app = None


def init_scheduler(app):
    """
    Initialize and configure APScheduler.

    Args:
        app: Flask app instance with SCHEDULE_CRON set

    Raises:
        ValueError: If SCHEDULE_CRON is missing or not a valid crontab expression
    """
    global scheduler, flask_app

    if scheduler is not None:
        return scheduler

    cron = app.config.get('SCHEDULE_CRON')
    if not cron:
        raise ValueError("SCHEDULE_CRON is not configured")

    timezone = app.config.get('SCHEDULER_TIMEZONE', 'UTC')
    trigger = CronTrigger.from_crontab(cron, timezone=timezone)

    # Store Flask app reference for use in background threads
    flask_app = app

    executors = {
        'default': ThreadPoolExecutor(max_workers=1)
    }

    job_defaults = {
        'coalesce': True,  # Combine multiple pending runs into one
        'max_instances': 1,  # Only one cycle at a time
        'misfire_grace_time': 300
    }

    scheduler = BackgroundScheduler(
        executors=executors,
        job_defaults=job_defaults,
        timezone=timezone
    )

    scheduler.add_job(
        func=run_scheduled_cycle,
        trigger=trigger,
        id=CYCLE_JOB_ID,
        name='Backup and retention cycle',
        replace_existing=True
    )

    return scheduler


def start_scheduler():
    """
    Start the APScheduler.

    Should be called after the Flask app is initialized.
    """
    global scheduler

    if scheduler is None:
        raise RuntimeError("Scheduler not initialized. Call init_scheduler() first.")

    if not scheduler.running:
        scheduler.start()
        logger.info(f"APScheduler started (state={scheduler.state})")

        for job in scheduler.get_jobs():
            next_run = job.next_run_time.isoformat() if job.next_run_time else 'N/A'
            logger.info(f"  - {job.id}: {job.name} (next run: {next_run})")
    else:
        logger.info(f"Scheduler already running (state={scheduler.state})")


def stop_scheduler():
    """Stop the APScheduler."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown()
        logger.info("APScheduler stopped")


def run_scheduled_cycle() -> dict:
    """
    Back up all targets, then clean old backups for all targets.

    Errors are logged and reported in the summary; the scheduler keeps running.

    Returns:
        Dict with 'succeeded', 'failed', 'deleted' and 'errors'
    """
    global flask_app

    from odoo_backup.targets import load_targets
    from odoo_backup.backup import create_executor, RetentionManager

    summary = {
        'succeeded': 0,
        'failed': 0,
        'deleted': 0,
        'errors': []
    }

    with flask_app.app_context():
        config = flask_app.config
        try:
            targets = load_targets(config['TARGETS_FILE'], config.get('SECRET_KEY'))
        except Exception as e:
            logger.error(f"Scheduled cycle aborted, cannot load targets: {e}")
            summary['errors'].append(str(e))
            return summary

        executor = create_executor(config)
        result = executor.backup_all(targets)
        summary['succeeded'] = len(result.successes)
        summary['failed'] = len(result.failures)
        summary['errors'].extend(result.failures)

        retention = RetentionManager(executor.storage)
        for target in targets:
            try:
                summary['deleted'] += retention.cleanup(target)
            except Exception as e:
                error_msg = f"Failed to clean backups for {target.name}: {e}"
                logger.error(error_msg)
                summary['errors'].append(error_msg)

    logger.info(
        f"Scheduled cycle complete. "
        f"Backups: {summary['succeeded']} ok, {summary['failed']} failed, "
        f"Deleted: {summary['deleted']}"
    )
    return summary


def get_scheduled_jobs() -> list:
    """
    Get list of all scheduled jobs.

    Returns:
        List of dicts with job information
    """
    global scheduler

    if scheduler is None:
        return []

    return [
        {
            'id': job.id,
            'name': job.name,
            'next_run': job.next_run_time.isoformat() if job.next_run_time else None,
            'trigger': str(job.trigger)
        }
        for job in scheduler.get_jobs()
    ]
