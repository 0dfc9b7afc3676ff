import logging
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError

from models.booking import Booking
from models.notification import Notification, NotificationType
from services.attendees import normalize_attendees, normalize_email
from services.errors import AuthorizationError, NotFoundError, StateError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationTemplate:
    booking_id: int
    sender_email: str
    lab_session_title: str
    lab_date: date
    lab_start_time: datetime
    lab_end_time: datetime
    message: str = None

    @classmethod
    def from_booking(cls, booking: Booking, sender_email: str, message: str = None) -> "NotificationTemplate":
        return cls(
            booking_id=booking.id,
            sender_email=normalize_email(sender_email),
            lab_session_title=booking.title,
            lab_date=booking.start_time.date(),
            lab_start_time=booking.start_time,
            lab_end_time=booking.end_time,
            message=message if message is not None else booking.description,
        )


class NotificationService:
    def __init__(self, store, mailer=None):
        self.store = store
        self.mailer = mailer

    def fan_out(self, attendees, template: NotificationTemplate):
        """
        Creates one REQUEST notification per attendee in a single transaction.

        Either every row is stored or none is. Attendees are lower-cased and
        de-duplicated first; a booking is fanned out at most once.
        """
        emails, errors = normalize_attendees(attendees)
        if errors:
            raise ValidationError("Validation failed", errors)
        if not emails:
            raise ValidationError("At least one attendee is required")

        if template.booking_id is not None and self.store.count_by_booking_id(template.booking_id):
            raise StateError("Notifications already sent for this booking")

        rows = [
            Notification(
                booking_id=template.booking_id,
                sender_email=template.sender_email,
                receiver_email=email,
                lab_session_title=template.lab_session_title,
                lab_date=template.lab_date,
                lab_start_time=template.lab_start_time,
                lab_end_time=template.lab_end_time,
                message=template.message,
                type=NotificationType.REQUEST,
                is_receiver_confirm=False,
                is_read=False,
                is_lab_going_on=True,
            )
            for email in emails
        ]

        try:
            self.store.create_many(rows)
            self.store.commit()
        except IntegrityError:
            self.store.rollback()
            raise StateError("Notifications already sent for this booking")
        except Exception:
            self.store.rollback()
            raise

        logger.info("Fanned out booking %s to %d attendees", template.booking_id, len(rows))
        return rows

    def deliver(self, notifications):
        if self.mailer is None:
            return []
        return self.mailer.deliver_many(notifications)

    # ---------- queries ----------

    def get(self, notification_id) -> Notification:
        notification = self.store.find_by_id(notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        return notification

    def for_receiver(self, receiver_email: str, exclude_types=()):
        return self.store.find_by_receiver(normalize_email(receiver_email), exclude_types=exclude_types)

    def for_sender(self, sender_email: str, include_types=()):
        return self.store.find_by_sender(normalize_email(sender_email), include_types=include_types)

    def for_booking(self, booking_id):
        return self.store.find_by_booking_id(booking_id)

    def attendee_statuses(self, booking_id):
        rows = self.for_booking(booking_id)
        if not rows:
            raise NotFoundError("No notifications found for the provided booking")
        return [{n.receiver_email: n.type.value} for n in rows]

    def mark_as_read(self, notification_id, user_email: str) -> Notification:
        notification = self.get(notification_id)
        email = normalize_email(user_email)
        if email not in (notification.receiver_email, notification.sender_email):
            raise AuthorizationError("Notification not found or access denied")
        try:
            self.store.update_by_id(notification, {"is_read": True})
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        return notification
