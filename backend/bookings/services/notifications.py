import logging
from functools import partial

from django.conf import settings
from django.db import transaction
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

BOOKING_CREATED = "booking.created"
BOOKING_SELECTED = "booking.selected"
BOOKING_APPROVED = "booking.approved"
BOOKING_REJECTED = "booking.rejected"
BOOKING_CANCELLED = "booking.cancelled"


def log_notification(booking_id, event_kind):
    logger.info("Notification %s for booking %s", event_kind, booking_id)


def notify(booking_id, event_kind):
    """Hand the event to the configured handler. Failures are logged, never raised."""
    try:
        handler = import_string(settings.NOTIFICATION_HANDLER)
        handler(booking_id, event_kind)
    except Exception:  # delivery problems must not surface to the caller
        logger.exception("Notification %s for booking %s failed", event_kind, booking_id)


def notify_on_commit(booking_id, event_kind):
    transaction.on_commit(partial(notify, booking_id, event_kind))
