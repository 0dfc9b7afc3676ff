"""Pytest fixtures for the lab booking tests."""

import logging
from datetime import date, datetime, timedelta

import pytest

from app import create_app
from config import TestingConfig
from models import db
from models.user import Role, User
from repositories import BookingStore, NotificationStore
from security.password import hash_password
from services.booking_service import BookingService
from services.notification_service import NotificationService, NotificationTemplate
from services.reservation import ReservationLocks

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Fixed "current time" for service-level tests
NOW = datetime(2030, 1, 15, 8, 0, 0)
LAB_DAY = date(2030, 1, 15)


def at(hour, minute=0, day=LAB_DAY):
    return datetime(day.year, day.month, day.day, hour, minute)


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def booking_store(app):
    return BookingStore(db.session)


@pytest.fixture
def notification_store(app):
    return NotificationStore(db.session)


@pytest.fixture
def booking_service(app, booking_store):
    return BookingService(
        booking_store,
        ReservationLocks(),
        default_lab_id=app.extensions["default_lab_id"],
        clock=lambda: NOW,
    )


@pytest.fixture
def notification_service(notification_store):
    return NotificationService(notification_store)


@pytest.fixture
def make_booking(booking_service):
    """Create a pending booking on the default lab."""
    def _make(start=None, end=None, title="Digital Circuits Lab", attendees=None, **extra):
        data = {
            "title": title,
            "start_time": (start or at(10)).isoformat(),
            "end_time": (end or at(11)).isoformat(),
            "attendees": attendees or ["x@e.com", "y@e.com"],
        }
        data.update(extra)
        return booking_service.create(data)
    return _make


@pytest.fixture
def fanned_out(make_booking, notification_service):
    """A booking with three request notifications; returns (booking, notifications)."""
    booking = make_booking(attendees=["a@e.com", "b@e.com", "c@e.com"])
    template = NotificationTemplate.from_booking(booking, "lecturer@e.com")
    rows = notification_service.fan_out(booking.attendees, template)
    return booking, rows


def _create_user(email, password, *role_names):
    user = User(email=email, password_hash=hash_password(password, rounds=4))
    for name in role_names:
        user.roles.append(Role.query.filter_by(name=name).first())
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def users(app):
    return {
        "lecturer": _create_user("lecturer@e.com", "lecturer-pass", "LECTURER"),
        "x": _create_user("x@e.com", "student-pass", "STUDENT"),
        "y": _create_user("y@e.com", "student-pass", "STUDENT"),
    }


def login(app, email, password):
    """Returns (client, csrf_headers) for a logged-in user."""
    client = app.test_client()
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    token = client.get_cookie("csrf_token").value
    return client, {"X-CSRF-Token": token}


def future_slot(hour, days_ahead=3, minutes=60):
    day = datetime.utcnow().date() + timedelta(days=days_ahead)
    start = datetime(day.year, day.month, day.day, hour)
    return start, start + timedelta(minutes=minutes)
