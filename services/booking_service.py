import logging

from models.booking import Booking, BookingStatus
from services.attendees import normalize_attendees
from services.availability import AvailabilityChecker
from services.errors import ConflictError, NotFoundError, StateError, ValidationError
from services.reservation import ReservationLocks, reserve_window
from services.time_window import DEFAULT_POLICY, parse_instant, utcnow, validate_window

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"title", "description", "attendees", "start_time", "end_time"})


def parse_status(value) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError:
        raise ValidationError("Invalid status. Must be one of: pending, confirmed, cancelled")


def _as_int(value, name):
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


class BookingService:
    """
    Booking lifecycle: pending -> confirmed, pending|confirmed -> cancelled.

    Every write that depends on an availability answer happens inside
    reserve_window for the booking's lab, so the check and the write are
    one transaction under the lab lock.
    """

    def __init__(self, store, locks: ReservationLocks, default_lab_id=None, policy=DEFAULT_POLICY, clock=utcnow):
        self.store = store
        self.locks = locks
        self.checker = AvailabilityChecker(store)
        self.default_lab_id = default_lab_id
        self.policy = policy
        self.clock = clock

    # ---------- lookups ----------

    def get(self, booking_id) -> Booking:
        booking = self.store.find_by_id(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    def list_all(self, include_cancelled=False):
        return self.store.find_all(include_cancelled=include_cancelled)

    def list_by_status(self, status):
        return self.store.find_by_status(parse_status(status))

    def list_by_date_range(self, start, end):
        if not start or not end:
            raise ValidationError("Start date and end date are required")
        try:
            start_dt = parse_instant(start)
            end_dt = parse_instant(end)
        except (TypeError, ValueError):
            raise ValidationError("Invalid date format")
        if start_dt >= end_dt:
            raise ValidationError("End date must be after start date")
        return self.store.find_by_date_range(start_dt, end_dt)

    def upcoming(self, limit=10):
        return self.store.find_upcoming(self.clock(), limit=limit)

    def stats(self) -> dict:
        return {
            "total": self.store.count(),
            "pending": self.store.count(BookingStatus.PENDING),
            "confirmed": self.store.count(BookingStatus.CONFIRMED),
            "cancelled": self.store.count(BookingStatus.CANCELLED),
        }

    def check_availability(self, start, end, exclude_booking_id=None, lab_id=None):
        return self.checker.check_availability(
            start,
            end,
            exclude_booking_id=_as_int(exclude_booking_id, "exclude_booking_id"),
            lab_id=self._lab_id(lab_id),
        )

    # ---------- transitions ----------

    def create(self, data: dict, created_by=None) -> Booking:
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON body")
        errors = []
        title = (data.get("title") or "").strip()
        if not title:
            errors.append("Title is required")

        attendees, attendee_errors = normalize_attendees(data.get("attendees"))
        errors.extend(attendee_errors)
        if not attendees and not attendee_errors:
            errors.append("At least one attendee is required")

        window = None
        try:
            window = validate_window(data.get("start_time"), data.get("end_time"), now=self.clock(),
                                     policy=self.policy)
        except ValidationError as exc:
            errors.extend(exc.details)

        if errors:
            raise ValidationError("Validation failed", errors)

        lab_id = self._lab_id(data.get("lab_id"))
        if lab_id is None or self.store.find_lab(lab_id) is None:
            raise NotFoundError("Lab not found")

        with reserve_window(self.store, self.locks, lab_id):
            self._ensure_available(window.start, window.end, lab_id)
            booking = self.store.create(Booking(
                lab_id=lab_id,
                title=title,
                description=(data.get("description") or "").strip() or None,
                start_time=window.start,
                end_time=window.end,
                attendees=attendees,
                status=BookingStatus.PENDING,
                created_by=created_by,
            ))

        logger.info("Booking %s created on lab %s (%s - %s)", booking.id, lab_id,
                    booking.start_time.isoformat(), booking.end_time.isoformat())
        return booking

    def update(self, booking_id, patch: dict) -> Booking:
        if not isinstance(patch, dict):
            raise ValidationError("Invalid JSON body")
        booking = self.get(booking_id)
        if booking.is_cancelled:
            raise StateError("Cannot update a cancelled booking")

        if "status" in patch:
            raise ValidationError("Status cannot be changed by update; use confirm or cancel")

        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError("Validation failed", [f"Unknown field: {name}" for name in sorted(unknown)])

        fields, errors = {}, []
        if "title" in patch:
            title = (patch.get("title") or "").strip()
            if not title:
                errors.append("Title cannot be empty")
            fields["title"] = title
        if "description" in patch:
            fields["description"] = (patch.get("description") or "").strip() or None
        if "attendees" in patch:
            attendees, attendee_errors = normalize_attendees(patch.get("attendees"))
            errors.extend(attendee_errors)
            if not attendees and not attendee_errors:
                errors.append("At least one attendee is required")
            fields["attendees"] = attendees

        time_changed = "start_time" in patch or "end_time" in patch
        window = None
        if time_changed:
            start = patch.get("start_time", booking.start_time)
            end = patch.get("end_time", booking.end_time)
            try:
                window = validate_window(start, end, now=self.clock(), policy=self.policy)
            except ValidationError as exc:
                errors.extend(exc.details)

        if errors:
            raise ValidationError("Validation failed", errors)

        if window is not None:
            fields["start_time"] = window.start
            fields["end_time"] = window.end
            with reserve_window(self.store, self.locks, booking.lab_id):
                self._ensure_available(window.start, window.end, booking.lab_id, exclude_booking_id=booking.id)
                self.store.update(booking, fields)
        else:
            try:
                self.store.update(booking, fields)
                self.store.commit()
            except Exception:
                self.store.rollback()
                raise

        logger.info("Booking %s updated (%s)", booking.id, ", ".join(sorted(fields)) or "no changes")
        return booking

    def confirm(self, booking_id) -> Booking:
        booking = self.get(booking_id)
        if booking.status == BookingStatus.CANCELLED:
            raise StateError("Cannot confirm a cancelled booking")
        if booking.status == BookingStatus.CONFIRMED:
            raise StateError("Booking is already confirmed")

        with reserve_window(self.store, self.locks, booking.lab_id):
            # Re-read under the lock: a concurrent cancel may have landed
            self.store.refresh(booking)
            if booking.status != BookingStatus.PENDING:
                raise StateError(f"Booking is {booking.status.value}")
            self._ensure_available(booking.start_time, booking.end_time, booking.lab_id,
                                   exclude_booking_id=booking.id, reason_prefix="Cannot confirm booking")
            self.store.update_status(booking, BookingStatus.CONFIRMED)

        logger.info("Booking %s confirmed", booking.id)
        return booking

    def cancel(self, booking_id) -> Booking:
        booking = self.get(booking_id)
        if booking.is_cancelled:
            raise StateError("Booking is already cancelled")

        with reserve_window(self.store, self.locks, booking.lab_id):
            # Serialised with confirm on the same lab
            self.store.refresh(booking)
            if booking.is_cancelled:
                raise StateError("Booking is already cancelled")
            self.store.update_status(booking, BookingStatus.CANCELLED)

        logger.info("Booking %s cancelled", booking.id)
        return booking

    def delete(self, booking_id) -> None:
        booking = self.get(booking_id)
        try:
            self.store.delete(booking)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        logger.info("Booking %s deleted", booking_id)

    # ---------- helpers ----------

    def _lab_id(self, lab_id):
        if lab_id is None or lab_id == "":
            return self.default_lab_id
        return _as_int(lab_id, "lab_id")

    def _ensure_available(self, start, end, lab_id, exclude_booking_id=None,
                          reason_prefix="Time slot is not available"):
        result = self.checker.check_availability(start, end, exclude_booking_id=exclude_booking_id, lab_id=lab_id)
        if result.available:
            return
        if result.conflicts:
            raise ConflictError(f"{reason_prefix}: {result.reason}", result.conflicts)
        raise ValidationError(f"{reason_prefix}: {result.reason}")
