from models.notification import Notification, NotificationType


class NotificationStore:
    """Data access for notifications over a SQLAlchemy session."""

    def __init__(self, session):
        self.session = session

    def create_many(self, notifications):
        self.session.add_all(notifications)
        self.session.flush()
        return notifications

    def find_by_id(self, notification_id):
        if notification_id is None:
            return None
        return self.session.get(Notification, notification_id)

    def find_by_receiver(self, receiver_email: str, exclude_types=()):
        q = self.session.query(Notification).filter(Notification.receiver_email == receiver_email)
        if exclude_types:
            q = q.filter(Notification.type.notin_(list(exclude_types)))
        return q.order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    def find_by_sender(self, sender_email: str, include_types=()):
        q = self.session.query(Notification).filter(Notification.sender_email == sender_email)
        if include_types:
            q = q.filter(Notification.type.in_(list(include_types)))
        return q.order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    def find_by_booking_id(self, booking_id):
        return (
            self.session.query(Notification)
            .filter(Notification.booking_id == booking_id)
            .order_by(Notification.id.asc())
            .all()
        )

    def count_by_booking_id(self, booking_id, types=()) -> int:
        q = self.session.query(Notification).filter(Notification.booking_id == booking_id)
        if types:
            q = q.filter(Notification.type.in_(list(types)))
        return q.count()

    def update_by_id(self, notification: Notification, values: dict) -> Notification:
        for name, value in values.items():
            setattr(notification, name, value)
        self.session.flush()
        return notification

    def update_by_booking_id(self, booking_id, values: dict, from_types=()) -> int:
        """Bulk update; returns the number of rows matched."""
        q = self.session.query(Notification).filter(Notification.booking_id == booking_id)
        if from_types:
            q = q.filter(Notification.type.in_(list(from_types)))
        return q.update(values, synchronize_session="fetch")

    def update_by_date(self, lab_date, values: dict, from_types=()) -> int:
        q = self.session.query(Notification).filter(Notification.lab_date == lab_date)
        if from_types:
            q = q.filter(Notification.type.in_(list(from_types)))
        return q.update(values, synchronize_session="fetch")

    def refresh(self, notification: Notification) -> Notification:
        self.session.refresh(notification)
        return notification

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
