"""
Notification sinks.

A sink is a callable taking a Notification and raising on failure. The
active one is named by settings.NOTIFICATION_SINK.
"""
import logging

logger = logging.getLogger(__name__)


def log_sink(notification):
    """Write the message to the application log (the in-app inbox is the real channel)."""
    logger.info(
        f"[NOTIFY] to={notification.recipient} level={notification.level} "
        f"title={notification.title!r} invoice={notification.invoice_number or '-'}: "
        f"{notification.message}"
    )
