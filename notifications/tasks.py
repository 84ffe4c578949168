"""
Celery tasks for notification delivery.

Tasks:
    - deliver_notification: Push one recorded notification to the sink
"""
import logging

from celery import shared_task
from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


def get_sink():
    return import_string(settings.NOTIFICATION_SINK)


@shared_task(ignore_result=True)
def deliver_notification(notification_id: int):
    """
    Deliver a notification through the configured sink.

    Failures are recorded on the row and logged. The task is not retried:
    the message stays visible in the recipient's inbox either way.

    Returns:
        Dict with delivery outcome
    """
    from notifications.models import Notification

    try:
        notification = Notification.objects.select_related('recipient').get(id=notification_id)
    except Notification.DoesNotExist:
        logger.error(f"Notification #{notification_id} not found for delivery")
        return {'status': 'error', 'message': f'Notification {notification_id} not found'}

    if notification.delivery_status != Notification.DeliveryStatus.PENDING:
        return {'status': 'skipped', 'message': f'Notification {notification_id} already {notification.delivery_status}'}

    try:
        get_sink()(notification)
    except Exception as e:
        logger.exception(f"Delivery of notification #{notification_id} failed: {e}")
        Notification.objects.filter(id=notification_id).update(
            delivery_status=Notification.DeliveryStatus.FAILED,
            delivery_error=str(e)[:1000]
        )
        return {'status': 'failed', 'notification_id': notification_id}

    Notification.objects.filter(id=notification_id).update(
        delivery_status=Notification.DeliveryStatus.SENT,
        delivered_at=timezone.now()
    )
    return {'status': 'success', 'notification_id': notification_id}
