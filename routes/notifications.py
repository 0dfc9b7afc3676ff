from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.notification import NotificationType
from repositories import NotificationStore
from routes.booking import booking_service
from security.rbac import BOOKING_MANAGERS, require_roles
from services.errors import StateError, ValidationError
from services.notification_emails import NotificationMailer
from services.notification_service import NotificationService, NotificationTemplate
from services.propagation import StatusPropagator
from services.responses import ResponseTracker
from utils.audit import log_event
from utils.auth_context import login_required
from utils.request_body import json_body
from utils.emailer import send_email

notification_bp = Blueprint("notifications", __name__, url_prefix="/notifications")


def notification_service() -> NotificationService:
    mailer = NotificationMailer(send_email, enabled=current_app.config.get("NOTIFICATION_EMAIL_ENABLED", False))
    return NotificationService(NotificationStore(db.session), mailer=mailer)


def _parse_types(raw, default):
    if raw is None:
        return list(default)
    types = []
    for name in (part.strip() for part in raw.split(",")):
        if not name:
            continue
        try:
            types.append(NotificationType(name))
        except ValueError:
            raise ValidationError(f"Unknown notification type: {name}")
    return types


# ---------- STAFF: fan out a booking to its attendees ----------
@notification_bp.post("")
@require_roles(*BOOKING_MANAGERS)
def create_notifications():
    data = json_body()
    if data.get("booking_id") is None:
        raise ValidationError("booking_id is required")

    booking = booking_service().get(data.get("booking_id"))
    if booking.is_cancelled:
        raise StateError("Cannot notify attendees of a cancelled booking")

    attendees = data.get("attendees") or booking.attendees
    template = NotificationTemplate.from_booking(booking, g.user.email, message=data.get("message"))

    svc = notification_service()
    rows = svc.fan_out(attendees, template)
    deliveries = svc.deliver(rows)

    log_event("NOTIFICATION_FAN_OUT", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"count": len(rows)})
    return jsonify(
        notifications=[n.to_dict() for n in rows],
        deliveries=[d.to_dict() for d in deliveries],
    ), 201


# ---------- inbox / outbox ----------
@notification_bp.get("")
@login_required
def received_notifications():
    # The receiver's own accepted answers are hidden unless asked for
    exclude = _parse_types(request.args.get("exclude_types"), [NotificationType.BOOKING_CONFIRMATION])
    rows = notification_service().for_receiver(g.user.email, exclude_types=exclude)
    return jsonify([n.to_dict() for n in rows]), 200


@notification_bp.get("/sent")
@login_required
def sent_notifications():
    include = _parse_types(
        request.args.get("include_types"),
        [NotificationType.BOOKING_CONFIRMATION, NotificationType.REJECTED],
    )
    rows = notification_service().for_sender(g.user.email, include_types=include)
    return jsonify([n.to_dict() for n in rows]), 200


@notification_bp.get("/booking/<int:booking_id>/attendees")
@login_required
def attendees_by_booking(booking_id: int):
    return jsonify(notification_service().attendee_statuses(booking_id)), 200


@notification_bp.post("/<int:notification_id>/read")
@login_required
def mark_as_read(notification_id: int):
    notification = notification_service().mark_as_read(notification_id, g.user.email)
    return jsonify(notification.to_dict()), 200


# ---------- ATTENDEES: respond ----------
@notification_bp.post("/<int:notification_id>/accept")
@login_required
def accept_notification(notification_id: int):
    notification = ResponseTracker(NotificationStore(db.session)).accept(notification_id, g.user.email)
    log_event("NOTIFICATION_ACCEPT", user_id=g.user.id, entity="notification", entity_id=notification.id)
    return jsonify(message="Notification accepted successfully", notification=notification.to_dict()), 200


@notification_bp.post("/<int:notification_id>/reject")
@login_required
def reject_notification(notification_id: int):
    notification = ResponseTracker(NotificationStore(db.session)).reject(notification_id, g.user.email)
    log_event("NOTIFICATION_REJECT", user_id=g.user.id, entity="notification", entity_id=notification.id)
    return jsonify(message="Notification rejected successfully", notification=notification.to_dict()), 200


# ---------- STAFF: settle the lab for every attendee ----------
@notification_bp.post("/<int:notification_id>/confirm-lab")
@require_roles(*BOOKING_MANAGERS)
def confirm_lab(notification_id: int):
    result = StatusPropagator(NotificationStore(db.session)).confirm_lab(notification_id)
    notification = result["notification"]
    log_event("LAB_CONFIRM", user_id=g.user.id, entity="booking", entity_id=notification.booking_id,
              metadata={"updated": result["updated_count"]})
    return jsonify(
        message="Lab confirmed successfully",
        updated_notifications=result["updated_count"],
        notification=notification.to_dict(),
    ), 200


@notification_bp.post("/<int:notification_id>/cancel-lab")
@require_roles(*BOOKING_MANAGERS)
def cancel_lab(notification_id: int):
    result = StatusPropagator(NotificationStore(db.session)).cancel_lab(notification_id)
    log_event("LAB_CANCEL", user_id=g.user.id, entity="notification", entity_id=notification_id,
              metadata={"updated": result["updated_count"]})
    return jsonify(message="Lab cancelled successfully", updated_notifications=result["updated_count"]), 200
