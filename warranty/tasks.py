"""
Celery tasks for warranty housekeeping.

Tasks:
    - notify_expiring_guarantees_task: Daily sweep for guarantees about to end
      (scheduled in CELERY_BEAT_SCHEDULE)
"""
import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task
def notify_expiring_guarantees_task(days_ahead: int = None):
    """
    Warn operators about guarantees ending within ``days_ahead`` days.

    Returns:
        Dict with counts, suitable as a task result
    """
    from warranty.services import notify_expiring_guarantees

    summary = notify_expiring_guarantees(days_ahead)
    logger.info(
        f"[CELERY] Expiring guarantees: {summary['expiring']} units, "
        f"{summary['notifications_created']} notifications"
    )
    return {
        'status': 'success',
        'expiring': summary['expiring'],
        'notifications_created': summary['notifications_created'],
    }
