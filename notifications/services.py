"""
Notification service - best-effort messages to customers and operators.

``notify`` never raises. Rows are written in a savepoint of the caller's
transaction; delivery is queued with ``transaction.on_commit`` so a rolled
back operation sends nothing and a broken sink cannot roll anything back.
"""
import logging
from typing import Iterable, List

from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction

from .models import Notification

logger = logging.getLogger(__name__)


def operator_recipients():
    """Active staff users: shop admins and super admins."""
    return get_user_model().objects.filter(is_staff=True, is_active=True)


def notify(recipients, title: str, message: str,
           level: str = Notification.Level.INFO, invoice_number: str = '') -> List[Notification]:
    """
    Record a notification for each recipient and queue its delivery.

    ``recipients`` is a user or an iterable of users; ``None`` entries are
    skipped. Returns the created rows, or an empty list if recording failed.
    """
    if recipients is None:
        return []
    if not isinstance(recipients, Iterable):
        recipients = [recipients]
    users = [user for user in recipients if user is not None]
    if not users:
        return []

    try:
        with transaction.atomic():
            created = [
                Notification.objects.create(
                    recipient=user,
                    title=title,
                    message=message,
                    level=level,
                    invoice_number=invoice_number or ''
                )
                for user in users
            ]
    except DatabaseError as e:
        logger.error(f"Failed to record notification '{title}': {e}")
        return []

    ids = [n.id for n in created]
    transaction.on_commit(lambda: dispatch(ids))
    return created


def dispatch(notification_ids: List[int]) -> None:
    """Hand recorded notifications to the Celery worker."""
    from .tasks import deliver_notification

    for notification_id in notification_ids:
        try:
            deliver_notification.delay(notification_id)
        except Exception as e:
            # Broker down: the row stays PENDING in the inbox
            logger.error(f"Failed to queue delivery of notification #{notification_id}: {e}")


def mark_read(user, notification_id: int) -> bool:
    updated = Notification.objects.filter(
        id=notification_id, recipient=user
    ).update(is_read=True)
    return updated == 1
