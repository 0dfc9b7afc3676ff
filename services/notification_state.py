"""
Transition table for notification types.

A notification starts as REQUEST. The receiver answers with
BOOKING_CONFIRMATION (accept) or REJECTED (reject) and may change their
answer until an authority settles the lab. CONFIRMED and REMINDER are
lab-wide states written in bulk; CANCELLATION is terminal.
"""
from models.notification import NotificationType
from services.errors import StateError

T = NotificationType

TRANSITIONS = {
    T.REQUEST: frozenset({T.BOOKING_CONFIRMATION, T.REJECTED, T.CONFIRMED, T.CANCELLATION, T.REMINDER}),
    T.BOOKING_CONFIRMATION: frozenset({T.REJECTED, T.CONFIRMED, T.CANCELLATION, T.REMINDER}),
    T.REJECTED: frozenset({T.BOOKING_CONFIRMATION, T.CONFIRMED, T.CANCELLATION, T.REMINDER}),
    T.CONFIRMED: frozenset({T.CONFIRMED, T.CANCELLATION, T.REMINDER}),
    T.REMINDER: frozenset({T.CONFIRMED, T.CANCELLATION, T.REMINDER}),
    T.CANCELLATION: frozenset(),
}


def can_transition(current: NotificationType, target: NotificationType) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(current: NotificationType, target: NotificationType) -> None:
    if not can_transition(current, target):
        raise StateError(f"Cannot change notification from {current.value} to {target.value}")


def sources_for(target: NotificationType) -> frozenset:
    """Every type that may move to ``target``; used to scope bulk updates."""
    return frozenset(src for src, targets in TRANSITIONS.items() if target in targets)
