"""Tests for the overlap conflict checker."""

from conftest import at

from models import db
from models.lab import Lab
from services.availability import AvailabilityChecker


class TestAvailabilityChecker:
    def test_confirmed_booking_blocks_overlapping_window(self, booking_store, booking_service, make_booking):
        a = make_booking(start=at(10), end=at(11), title="A")
        booking_service.confirm(a.id)

        result = AvailabilityChecker(booking_store).check_availability(at(10, 30), at(11, 30))

        assert result.available is False
        assert result.reason == "Time slot conflicts with existing bookings"
        assert len(result.conflicts) == 1
        conflict = result.conflicts[0]
        assert conflict["id"] == a.id
        assert conflict["title"] == "A"
        assert conflict["status"] == "confirmed"
        assert conflict["start_time"] == at(10).isoformat()
        assert conflict["end_time"] == at(11).isoformat()

    def test_cancelled_booking_never_blocks(self, booking_store, booking_service, make_booking):
        a = make_booking(start=at(10), end=at(11))
        booking_service.cancel(a.id)

        result = AvailabilityChecker(booking_store).check_availability(at(10), at(11))

        assert result.available is True
        assert result.conflicts == []

    def test_pending_booking_blocks(self, booking_store, make_booking):
        make_booking(start=at(10), end=at(11))
        result = AvailabilityChecker(booking_store).check_availability(at(9), at(12))
        assert result.available is False

    def test_touching_windows_are_free(self, booking_store, make_booking):
        make_booking(start=at(10), end=at(11))
        checker = AvailabilityChecker(booking_store)
        assert checker.check_availability(at(11), at(12)).available is True
        assert checker.check_availability(at(9), at(10)).available is True

    def test_window_inside_existing_booking(self, booking_store, make_booking):
        make_booking(start=at(9), end=at(13))
        result = AvailabilityChecker(booking_store).check_availability(at(10), at(11))
        assert result.available is False

    def test_exclude_self(self, booking_store, make_booking):
        a = make_booking(start=at(10), end=at(11))
        checker = AvailabilityChecker(booking_store)
        assert checker.check_availability(at(10), at(11, 30), exclude_booking_id=a.id).available is True

    def test_conflicts_are_scoped_to_lab(self, app, booking_store, make_booking):
        make_booking(start=at(10), end=at(11))
        other = Lab(name="Electronics Lab")
        db.session.add(other)
        db.session.commit()

        checker = AvailabilityChecker(booking_store)
        assert checker.check_availability(at(10), at(11), lab_id=other.id).available is True
        assert checker.check_availability(at(10), at(11), lab_id=app.extensions["default_lab_id"]).available is False

    def test_validation_failures_before_query(self, booking_store):
        checker = AvailabilityChecker(booking_store)

        missing = checker.check_availability(None, at(11))
        assert (missing.available, missing.reason) == (False, "Start time and end time are required")

        invalid = checker.check_availability("garbage", at(11))
        assert (invalid.available, invalid.reason) == (False, "Invalid date format")

        order = checker.check_availability(at(11), at(10))
        assert (order.available, order.reason) == (False, "End time must be after start time")

    def test_iso_strings_are_accepted(self, booking_store, make_booking):
        make_booking(start=at(10), end=at(11))
        result = AvailabilityChecker(booking_store).check_availability(
            "2030-01-15T10:30:00Z", "2030-01-15T11:30:00Z"
        )
        assert result.available is False

    def test_to_dict(self, booking_store):
        result = AvailabilityChecker(booking_store).check_availability(at(10), at(11))
        assert result.to_dict() == {"available": True, "reason": "Time slot is available", "conflicts": []}
