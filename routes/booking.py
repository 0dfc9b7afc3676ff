from flask import Blueprint, request, jsonify, current_app, g

from models import db
from repositories import BookingStore
from security.rbac import BOOKING_MANAGERS, require_roles
from services.booking_service import BookingService
from services.errors import ValidationError
from services.time_window import TimeWindowPolicy
from utils.audit import log_event
from utils.auth_context import login_required
from utils.request_body import json_body

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")


def booking_service() -> BookingService:
    return BookingService(
        BookingStore(db.session),
        current_app.extensions["reservation_locks"],
        default_lab_id=current_app.extensions.get("default_lab_id"),
        policy=TimeWindowPolicy.from_config(current_app.config),
    )


def _truthy(value) -> bool:
    return (value or "").lower() in ("1", "true", "yes")


# ---------- availability ----------
@booking_bp.post("/availability")
@login_required
def check_availability():
    data = json_body()
    result = booking_service().check_availability(
        data.get("start_time"),
        data.get("end_time"),
        exclude_booking_id=data.get("exclude_booking_id"),
        lab_id=data.get("lab_id"),
    )
    if result.available:
        return jsonify(result.to_dict()), 200
    status = 409 if result.conflicts else 400
    return jsonify(result.to_dict()), status


# ---------- STAFF: create ----------
@booking_bp.post("")
@require_roles(*BOOKING_MANAGERS)
def create_booking():
    data = json_body()
    booking = booking_service().create(data, created_by=g.user.id)

    log_event("BOOKING_CREATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"start_time": booking.start_time, "end_time": booking.end_time})
    return jsonify(booking.to_dict()), 201


# ---------- list / lookups ----------
@booking_bp.get("")
@login_required
def list_bookings():
    svc = booking_service()
    status = request.args.get("status")
    start = request.args.get("start")
    end = request.args.get("end")

    if status:
        rows = svc.list_by_status(status)
    elif start or end:
        rows = svc.list_by_date_range(start, end)
    else:
        rows = svc.list_all(include_cancelled=_truthy(request.args.get("include_cancelled")))
    return jsonify([b.to_dict() for b in rows]), 200


@booking_bp.get("/stats")
@require_roles(*BOOKING_MANAGERS)
def booking_stats():
    return jsonify(booking_service().stats()), 200


@booking_bp.get("/upcoming")
@login_required
def upcoming_bookings():
    limit = request.args.get("limit", default=10, type=int)
    if limit <= 0 or limit > 100:
        raise ValidationError("limit must be between 1 and 100")
    return jsonify([b.to_dict() for b in booking_service().upcoming(limit=limit)]), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    return jsonify(booking_service().get(booking_id).to_dict()), 200


# ---------- STAFF: transitions ----------
@booking_bp.patch("/<int:booking_id>")
@require_roles(*BOOKING_MANAGERS)
def update_booking(booking_id: int):
    data = json_body()
    booking = booking_service().update(booking_id, data)

    log_event("BOOKING_UPDATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"fields": sorted(data)})
    return jsonify(booking.to_dict()), 200


@booking_bp.post("/<int:booking_id>/confirm")
@require_roles(*BOOKING_MANAGERS)
def confirm_booking(booking_id: int):
    booking = booking_service().confirm(booking_id)
    log_event("BOOKING_CONFIRM", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(booking.to_dict()), 200


@booking_bp.post("/<int:booking_id>/cancel")
@require_roles(*BOOKING_MANAGERS)
def cancel_booking(booking_id: int):
    data = json_body()
    reason = (data.get("reason") or "").strip() or None

    booking = booking_service().cancel(booking_id)
    log_event("BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"reason": reason})
    return jsonify(booking.to_dict()), 200


@booking_bp.delete("/<int:booking_id>")
@require_roles("ADMIN")
def delete_booking(booking_id: int):
    booking_service().delete(booking_id)
    log_event("BOOKING_DELETE", user_id=g.user.id, entity="booking", entity_id=booking_id)
    return jsonify(message="Booking deleted"), 200
