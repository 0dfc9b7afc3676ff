"""
Parsing and validation of booking time windows.

All instants are handled as naive UTC datetimes, matching what the models
store. ISO-8601 strings with an offset (or a trailing ``Z``) are converted to
UTC before the offset is dropped.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from services.errors import ValidationError


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "TimeWindow") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)


@dataclass(frozen=True)
class TimeWindowPolicy:
    min_duration: timedelta = timedelta(minutes=30)
    max_duration: timedelta = timedelta(hours=8)

    @classmethod
    def from_config(cls, config) -> "TimeWindowPolicy":
        return cls(
            min_duration=timedelta(minutes=config.get("BOOKING_MIN_DURATION_MINUTES", 30)),
            max_duration=timedelta(hours=config.get("BOOKING_MAX_DURATION_HOURS", 8)),
        )


DEFAULT_POLICY = TimeWindowPolicy()


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # Half-open intervals: touching endpoints do not overlap
    return not (a_end <= b_start or a_start >= b_end)


def parse_instant(value) -> datetime:
    """
    Returns a naive UTC datetime for a datetime or ISO-8601 string.
    Raises ValueError/TypeError for anything else.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise TypeError(f"Unsupported datetime value: {value!r}")

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _hours(delta: timedelta) -> str:
    hours = delta.total_seconds() / 3600
    return f"{hours:g} hours"


def _minutes(delta: timedelta) -> str:
    return f"{int(delta.total_seconds() // 60)} minutes"


def validate_window(start, end, now=None, policy: TimeWindowPolicy = DEFAULT_POLICY) -> TimeWindow:
    """
    Validates a proposed (start, end) booking window.

    Collects every failed rule and raises a single ValidationError whose
    ``details`` list holds one message per rule:

    - start and end are present and parseable
    - start < end
    - start is not in the past (relative to ``now``)
    - policy.min_duration <= end - start <= policy.max_duration
    """
    errors = []
    if start is None or start == "":
        errors.append("Start time is required")
    if end is None or end == "":
        errors.append("End time is required")
    if errors:
        raise ValidationError("Validation failed", errors)

    try:
        start_dt = parse_instant(start)
        end_dt = parse_instant(end)
    except (TypeError, ValueError):
        raise ValidationError("Validation failed", ["Invalid date format for start time or end time"])

    now = now or utcnow()

    if start_dt >= end_dt:
        errors.append("End time must be after start time")
    if start_dt < now:
        errors.append("Start time cannot be in the past")

    duration = end_dt - start_dt
    if duration > policy.max_duration:
        errors.append(f"Booking duration cannot exceed {_hours(policy.max_duration)}")
    if start_dt < end_dt and duration < policy.min_duration:
        errors.append(f"Booking duration must be at least {_minutes(policy.min_duration)}")

    if errors:
        raise ValidationError("Validation failed", errors)

    return TimeWindow(start=start_dt, end=end_dt)
