from sqlalchemy import and_, or_

from models.booking import Booking, BookingStatus
from models.lab import Lab


class BookingStore:
    """
    Data access for bookings over a SQLAlchemy session.

    Writes are flushed, not committed; the caller owns the transaction
    (see services.reservation.reserve_window and BookingService).
    """

    def __init__(self, session):
        self.session = session

    def create(self, booking: Booking) -> Booking:
        self.session.add(booking)
        self.session.flush()
        return booking

    def find_by_id(self, booking_id):
        if booking_id is None:
            return None
        return self.session.get(Booking, booking_id)

    def find_overlapping(self, start, end, lab_id=None, exclude_statuses=(BookingStatus.CANCELLED,),
                         exclude_booking_id=None):
        """
        Bookings whose interval intersects [start, end):
        starts inside the window, ends inside it, or fully contains it.
        """
        q = self.session.query(Booking).filter(
            or_(
                and_(Booking.start_time >= start, Booking.start_time < end),
                and_(Booking.end_time > start, Booking.end_time <= end),
                and_(Booking.start_time <= start, Booking.end_time >= end),
            )
        )
        if lab_id is not None:
            q = q.filter(Booking.lab_id == lab_id)
        if exclude_statuses:
            q = q.filter(Booking.status.notin_(list(exclude_statuses)))
        if exclude_booking_id is not None:
            q = q.filter(Booking.id != exclude_booking_id)
        return q.order_by(Booking.start_time.asc()).all()

    def update_status(self, booking: Booking, status: BookingStatus) -> Booking:
        booking.status = status
        self.session.flush()
        return booking

    def update(self, booking: Booking, fields: dict) -> Booking:
        for name, value in fields.items():
            setattr(booking, name, value)
        self.session.flush()
        return booking

    def delete(self, booking: Booking) -> None:
        self.session.delete(booking)
        self.session.flush()

    def find_by_status(self, status: BookingStatus):
        return (
            self.session.query(Booking)
            .filter(Booking.status == status)
            .order_by(Booking.start_time.asc())
            .all()
        )

    def find_all(self, include_cancelled=False):
        q = self.session.query(Booking)
        if not include_cancelled:
            q = q.filter(Booking.status != BookingStatus.CANCELLED)
        return q.order_by(Booking.start_time.asc()).all()

    def find_by_date_range(self, start, end):
        return (
            self.session.query(Booking)
            .filter(Booking.start_time >= start, Booking.end_time <= end)
            .order_by(Booking.start_time.asc())
            .all()
        )

    def find_upcoming(self, now, limit=10):
        return (
            self.session.query(Booking)
            .filter(Booking.start_time >= now, Booking.status != BookingStatus.CANCELLED)
            .order_by(Booking.start_time.asc())
            .limit(limit)
            .all()
        )

    def count(self, status: BookingStatus = None) -> int:
        q = self.session.query(Booking)
        if status is not None:
            q = q.filter(Booking.status == status)
        return q.count()

    def find_lab(self, lab_id):
        return self.session.get(Lab, lab_id)

    def lock_lab(self, lab_id):
        # Row lock on the lab for the rest of the transaction (no-op on SQLite)
        return (
            self.session.query(Lab)
            .filter(Lab.id == lab_id)
            .with_for_update()
            .first()
        )

    def refresh(self, booking: Booking) -> Booking:
        self.session.refresh(booking)
        return booking

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
