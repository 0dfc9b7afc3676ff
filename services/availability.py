"""
Interval-overlap conflict checking for the shared lab resource.

The checker only answers "is this window free"; it does not reserve
anything. Callers that write based on the answer must hold the lab's
reservation (services.reservation.reserve_window) around both steps.
"""
import logging
from dataclasses import dataclass, field

from models.booking import Booking, BookingStatus
from services.time_window import parse_instant

logger = logging.getLogger(__name__)

REASON_REQUIRED = "Start time and end time are required"
REASON_INVALID = "Invalid date format"
REASON_ORDER = "End time must be after start time"
REASON_CONFLICT = "Time slot conflicts with existing bookings"
REASON_AVAILABLE = "Time slot is available"


@dataclass
class AvailabilityResult:
    available: bool
    reason: str
    conflicts: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "available": self.available,
            "reason": self.reason,
            "conflicts": self.conflicts,
        }


def conflict_summary(booking: Booking) -> dict:
    return {
        "id": booking.id,
        "title": booking.title,
        "status": booking.status.value,
        "start_time": booking.start_time.isoformat(),
        "end_time": booking.end_time.isoformat(),
    }


class AvailabilityChecker:
    def __init__(self, booking_store):
        self.bookings = booking_store

    def check_availability(self, start, end, exclude_booking_id=None, lab_id=None) -> AvailabilityResult:
        if start is None or end is None or start == "" or end == "":
            return AvailabilityResult(False, REASON_REQUIRED)

        try:
            start_dt = parse_instant(start)
            end_dt = parse_instant(end)
        except (TypeError, ValueError):
            return AvailabilityResult(False, REASON_INVALID)

        if start_dt >= end_dt:
            return AvailabilityResult(False, REASON_ORDER)

        candidates = self.bookings.find_overlapping(
            start_dt,
            end_dt,
            lab_id=lab_id,
            exclude_statuses=(BookingStatus.CANCELLED,),
            exclude_booking_id=exclude_booking_id,
        )
        # The store already filters; keep the rule explicit for other store implementations
        conflicts = [
            b for b in candidates
            if b.id != exclude_booking_id and b.status != BookingStatus.CANCELLED
        ]

        if conflicts:
            logger.info(
                "Window %s - %s on lab %s conflicts with bookings %s",
                start_dt.isoformat(), end_dt.isoformat(), lab_id, [b.id for b in conflicts],
            )
            return AvailabilityResult(
                False,
                REASON_CONFLICT,
                [conflict_summary(b) for b in conflicts],
            )

        return AvailabilityResult(True, REASON_AVAILABLE)
