"""Tests for the notification transition table."""

import pytest

from models.notification import NotificationType as T
from services.errors import StateError
from services.notification_state import TRANSITIONS, can_transition, ensure_transition, sources_for


def test_table_covers_every_type():
    assert set(TRANSITIONS) == set(T)


def test_cancellation_is_terminal():
    for target in T:
        assert not can_transition(T.CANCELLATION, target)


def test_attendee_may_change_answer_before_lab_is_settled():
    assert can_transition(T.REQUEST, T.BOOKING_CONFIRMATION)
    assert can_transition(T.BOOKING_CONFIRMATION, T.REJECTED)
    assert can_transition(T.REJECTED, T.BOOKING_CONFIRMATION)


def test_attendee_cannot_answer_after_lab_is_settled():
    for settled in (T.CONFIRMED, T.REMINDER, T.CANCELLATION):
        with pytest.raises(StateError):
            ensure_transition(settled, T.BOOKING_CONFIRMATION)
        with pytest.raises(StateError):
            ensure_transition(settled, T.REJECTED)


def test_bulk_sources():
    assert sources_for(T.CANCELLATION) == frozenset(set(T) - {T.CANCELLATION})
    assert sources_for(T.REMINDER) == frozenset(set(T) - {T.CANCELLATION})
    assert sources_for(T.CONFIRMED) == frozenset(set(T) - {T.CANCELLATION})
