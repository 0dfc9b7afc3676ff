import enum
from datetime import datetime
from models.db import db


class NotificationType(str, enum.Enum):
    REQUEST = "request"
    BOOKING_CONFIRMATION = "booking_confirmation"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLATION = "cancellation"
    REMINDER = "reminder"


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)

    # weak reference: no FK, bookings may be deleted independently
    booking_id = db.Column(db.Integer, nullable=True, index=True)

    sender_email = db.Column(db.String(255), nullable=False, index=True)
    receiver_email = db.Column(db.String(255), nullable=False, index=True)

    lab_session_title = db.Column(db.String(200), nullable=False)
    lab_date = db.Column(db.Date, nullable=False, index=True)
    lab_start_time = db.Column(db.DateTime, nullable=False)
    lab_end_time = db.Column(db.DateTime, nullable=False)
    message = db.Column(db.Text, nullable=True)

    type = db.Column(
        db.Enum(
            NotificationType,
            native_enum=False,
            length=32,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=NotificationType.REQUEST,
        index=True,
    )

    is_receiver_confirm = db.Column(db.Boolean, default=False, nullable=False)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    is_lab_going_on = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        # One notification per attendee per booking
        db.UniqueConstraint("booking_id", "receiver_email", name="uq_notification_booking_receiver"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "sender_email": self.sender_email,
            "receiver_email": self.receiver_email,
            "lab_session_title": self.lab_session_title,
            "lab_date": self.lab_date.isoformat(),
            "lab_start_time": self.lab_start_time.isoformat(),
            "lab_end_time": self.lab_end_time.isoformat(),
            "message": self.message,
            "type": self.type.value,
            "is_receiver_confirm": self.is_receiver_confirm,
            "is_read": self.is_read,
            "is_lab_going_on": self.is_lab_going_on,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
