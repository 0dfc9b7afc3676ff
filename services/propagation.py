"""
Lab-wide confirm/cancel broadcast.

Both operations rewrite every notification of the booking, replacing
whatever each attendee answered.
"""
import logging

from models.notification import NotificationType
from services.errors import NotFoundError, StateError
from services.notification_state import sources_for

logger = logging.getLogger(__name__)


class StatusPropagator:
    def __init__(self, store):
        self.store = store

    def _booking_id_for(self, notification_id):
        notification = self.store.find_by_id(notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        if notification.booking_id is None:
            raise NotFoundError("Booking ID not found in notification")
        return notification, notification.booking_id

    def _bulk(self, booking_id, target, values):
        try:
            updated = self.store.update_by_booking_id(booking_id, values, from_types=sources_for(target))
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        return updated

    def confirm_lab(self, notification_id) -> dict:
        notification, booking_id = self._booking_id_for(notification_id)
        if self.store.count_by_booking_id(booking_id, types=(NotificationType.CANCELLATION,)):
            raise StateError("Lab session has already been cancelled")

        updated = self._bulk(booking_id, NotificationType.CONFIRMED, {
            "type": NotificationType.CONFIRMED,
            "is_lab_going_on": True,
            "is_read": False,
        })
        self.store.refresh(notification)
        logger.info("Lab for booking %s confirmed; %d notifications updated", booking_id, updated)
        return {"notification": notification, "updated_count": updated}

    def cancel_lab(self, notification_id) -> dict:
        _, booking_id = self._booking_id_for(notification_id)
        updated = self._bulk(booking_id, NotificationType.CANCELLATION, {
            "type": NotificationType.CANCELLATION,
            "is_lab_going_on": False,
            "is_read": False,
        })
        logger.info("Lab for booking %s cancelled; %d notifications updated", booking_id, updated)
        return {"updated_count": updated}
