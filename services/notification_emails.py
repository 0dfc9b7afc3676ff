import logging
from dataclasses import dataclass

from models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)

T = NotificationType

# heading, intro line, closing line
_CONTENT = {
    T.REQUEST: (
        "Lab Booking Request",
        "You have received a lab booking request:",
        "Please log in to the system to respond to this request.",
    ),
    T.BOOKING_CONFIRMATION: (
        "Lab Booking Confirmed",
        "Your lab booking has been confirmed:",
        "Thank you for confirming your attendance.",
    ),
    T.CONFIRMED: (
        "Lab Session Confirmed",
        "The lab session has been officially confirmed:",
        "Please make sure to attend the session.",
    ),
    T.REJECTED: (
        "Lab Booking Rejected",
        "A lab booking request has been rejected:",
        "Please contact the organizer for more information.",
    ),
    T.CANCELLATION: (
        "Lab Session Cancelled",
        "The following lab session has been cancelled:",
        "We apologize for any inconvenience.",
    ),
    T.REMINDER: (
        "Lab Session Reminder",
        "This is a reminder for your lab session today:",
        "Don't forget to attend your lab session!",
    ),
}


def render_email(notification: Notification):
    """Returns (subject, body) for the notification's current type."""
    heading, intro, closing = _CONTENT[notification.type]
    label = notification.type.value.replace("_", " ").upper()
    subject = f"Lab Booking {label} - {notification.lab_session_title}"

    lines = [
        heading,
        "",
        intro,
        f"  Lab Session: {notification.lab_session_title}",
        f"  Date: {notification.lab_date.isoformat()}",
        f"  Time: {notification.lab_start_time.strftime('%H:%M')} - {notification.lab_end_time.strftime('%H:%M')}",
    ]
    if notification.type == T.REQUEST:
        lines.append(f"  From: {notification.sender_email}")
        if notification.message:
            lines.extend(["", f"Message: {notification.message}"])
    lines.extend(["", closing])
    return subject, "\n".join(lines)


@dataclass
class DeliveryResult:
    receiver_email: str
    sent: bool
    error: str = None

    def to_dict(self) -> dict:
        return {"receiver_email": self.receiver_email, "sent": self.sent, "error": self.error}


class NotificationMailer:
    """
    Best-effort e-mail delivery. Failures are reported per recipient and
    never undo the stored notifications.
    """

    def __init__(self, send, enabled=True):
        self.send = send
        self.enabled = enabled

    def deliver(self, notification: Notification) -> DeliveryResult:
        if not self.enabled:
            return DeliveryResult(notification.receiver_email, False, "Email disabled")
        subject, body = render_email(notification)
        ok, err = self.send(notification.receiver_email, subject, body)
        if not ok:
            logger.warning("Notification %s not emailed to %s: %s",
                           notification.id, notification.receiver_email, err)
        return DeliveryResult(notification.receiver_email, bool(ok), err)

    def deliver_many(self, notifications):
        return [self.deliver(n) for n in notifications]
