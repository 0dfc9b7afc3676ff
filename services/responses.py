"""Per-attendee accept/reject on a single notification."""
import logging

from models.notification import NotificationType
from services.attendees import normalize_email
from services.errors import AuthorizationError, NotFoundError
from services.notification_state import ensure_transition

logger = logging.getLogger(__name__)


class ResponseTracker:
    def __init__(self, store):
        self.store = store

    def _load_owned(self, notification_id, caller_email):
        notification = self.store.find_by_id(notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        if normalize_email(caller_email) != notification.receiver_email:
            logger.warning("Response to notification %s refused for %s", notification_id, caller_email)
            raise AuthorizationError("Notification not found or access denied")
        return notification

    def _apply(self, notification, values):
        try:
            self.store.update_by_id(notification, values)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        return notification

    def accept(self, notification_id, caller_email):
        notification = self._load_owned(notification_id, caller_email)
        ensure_transition(notification.type, NotificationType.BOOKING_CONFIRMATION)
        self._apply(notification, {
            "type": NotificationType.BOOKING_CONFIRMATION,
            "is_receiver_confirm": True,
            "is_read": False,
        })
        logger.info("Notification %s accepted by %s", notification.id, notification.receiver_email)
        return notification

    def reject(self, notification_id, caller_email):
        notification = self._load_owned(notification_id, caller_email)
        ensure_transition(notification.type, NotificationType.REJECTED)
        # is_lab_going_on is intentionally left as-is
        self._apply(notification, {
            "type": NotificationType.REJECTED,
            "is_receiver_confirm": False,
            "is_read": False,
        })
        logger.info("Notification %s rejected by %s", notification.id, notification.receiver_email)
        return notification
