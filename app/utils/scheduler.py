"""
Background scheduler for automated tasks.

Handles:
- Community invite expiration (hourly)
- Partnership Ads partner and auth link expiration (daily at 2 AM UTC)
- Release of settled creator wallet funds (daily at 3 AM UTC)
"""
import os
import logging

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler = None
_flask_app = None  # Store Flask app reference for context


def init_scheduler(app):
    """
    Initialize the background scheduler.

    Only runs in production or when ENABLE_SCHEDULER=true.
    Only the main gunicorn process should run the scheduler.
    """
    global _scheduler, _flask_app

    _flask_app = app

    if app.config.get('TESTING'):
        return

    if not (os.getenv('FLASK_ENV') == 'production' or os.getenv('ENABLE_SCHEDULER') == 'true'):
        logger.info('[Scheduler] Disabled (set FLASK_ENV=production or ENABLE_SCHEDULER=true)')
        return

    # Prevent multiple scheduler instances across gunicorn workers
    if os.getenv('SCHEDULER_RUNNING') == 'true':
        logger.info('[Scheduler] Already running in another process')
        return

    from apscheduler.schedulers.background import BackgroundScheduler
    from apscheduler.triggers.cron import CronTrigger

    _scheduler = BackgroundScheduler(
        timezone='UTC',
        job_defaults={
            'coalesce': True,  # Combine missed runs
            'max_instances': 1,
            'misfire_grace_time': 3600
        }
    )

    _scheduler.add_job(
        run_community_invite_expiration,
        trigger=CronTrigger(minute=15),
        id='community_invite_expiration',
        name='Expire stale community invites',
        replace_existing=True
    )

    _scheduler.add_job(
        run_partner_expiration,
        trigger=CronTrigger(hour=2, minute=0),
        id='partner_expiration',
        name='Expire ad partners and creator auth links',
        replace_existing=True
    )

    _scheduler.add_job(
        run_wallet_release,
        trigger=CronTrigger(hour=3, minute=0),
        id='wallet_release',
        name='Release settled creator funds',
        replace_existing=True
    )

    _scheduler.start()
    os.environ['SCHEDULER_RUNNING'] = 'true'
    logger.info(f'[Scheduler] Started with {len(_scheduler.get_jobs())} scheduled jobs')

    import atexit
    atexit.register(shutdown_scheduler)


def shutdown_scheduler():
    """Gracefully shutdown the scheduler."""
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info('[Scheduler] Shutdown complete')


def _run_job(name, func):
    """Run func inside the app context, logging instead of killing the scheduler thread."""
    if not _flask_app:
        logger.error('[Scheduler] Flask app not initialized')
        return None

    with _flask_app.app_context():
        try:
            result = func()
            logger.info(f'[Scheduler] {name} complete: {result}')
            return result
        except Exception as e:
            from ..extensions import db
            db.session.rollback()
            logger.exception(f'[Scheduler] {name} failed: {e}')
            return None


def run_community_invite_expiration():
    from ..services.community_service import CommunityService
    return _run_job('Community invite expiration', CommunityService.expire_invites)


def run_partner_expiration():
    from ..services.meta_ads_service import expire_partners_and_links
    return _run_job('Partner expiration', expire_partners_and_links)


def run_wallet_release():
    """Move transfer_in amounts older than the settlement window to available."""
    from ..services.wallet_service import wallet_service
    return _run_job('Wallet release', wallet_service.release_pending)
