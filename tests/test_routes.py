"""End-to-end tests through the Flask test client."""

from datetime import datetime, timedelta

from conftest import future_slot, login

import app as app_module
from models.audit_log import AuditLog
from models.session import Session


def _create_booking(client, headers, hour=10, attendees=("x@e.com", "y@e.com"), title="Digital Circuits Lab"):
    start, end = future_slot(hour)
    return client.post(
        "/bookings",
        json={
            "title": title,
            "start_time": start.isoformat(),
            "end_time": end.isoformat(),
            "attendees": list(attendees),
        },
        headers=headers,
    )


def test_health(app):
    resp = app.test_client().get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_register_login_and_me(app):
    client = app.test_client()
    resp = client.post("/auth/register", json={"email": "New@E.com", "password": "long-enough", "role": "lecturer"})
    assert resp.status_code == 201

    again = client.post("/auth/register", json={"email": "new@e.com", "password": "long-enough"})
    assert again.status_code == 409

    bad_role = client.post("/auth/register", json={"email": "boss@e.com", "password": "long-enough", "role": "ADMIN"})
    assert bad_role.status_code == 400

    client, _ = login(app, "new@e.com", "long-enough")
    me = client.get("/auth/me").get_json()
    assert me["email"] == "new@e.com"
    assert me["roles"] == ["LECTURER"]


def test_wrong_password(app, users):
    resp = app.test_client().post("/auth/login", json={"email": "x@e.com", "password": "nope"})
    assert resp.status_code == 401


def test_anonymous_and_students_cannot_book(app, users):
    assert app.test_client().get("/bookings").status_code == 401

    client, headers = login(app, "x@e.com", "student-pass")
    assert _create_booking(client, headers).status_code == 403


def test_state_changes_need_csrf_header(app, users):
    client, _ = login(app, "lecturer@e.com", "lecturer-pass")
    resp = _create_booking(client, {})
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "CSRF validation failed"


def test_create_validation_errors_are_listed(app, users):
    client, headers = login(app, "lecturer@e.com", "lecturer-pass")
    resp = client.post("/bookings", json={"title": "Lab", "attendees": ["x@e.com"]}, headers=headers)
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "Validation failed"
    assert "Start time is required" in body["details"]


def test_non_object_json_body_is_rejected(app, users):
    client, headers = login(app, "lecturer@e.com", "lecturer-pass")
    for path in ("/bookings", "/bookings/availability", "/notifications"):
        resp = client.post(path, json=["x@e.com"], headers=headers)
        assert resp.status_code == 400, path
        assert resp.get_json()["error"] == "Invalid JSON body"


def test_patch_booking(app, users):
    client, headers = login(app, "lecturer@e.com", "lecturer-pass")
    booking = _create_booking(client, headers).get_json()
    start, end = future_slot(14)

    resp = client.patch(f"/bookings/{booking['id']}",
                        json={"title": "Moved lab", "start_time": start.isoformat(), "end_time": end.isoformat()},
                        headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["title"] == "Moved lab"
    assert body["start_time"] == start.isoformat()

    unknown = client.patch(f"/bookings/{booking['id']}", json={"lab": 2}, headers=headers)
    assert unknown.status_code == 400


def test_booking_conflicts_and_availability(app, users):
    client, headers = login(app, "lecturer@e.com", "lecturer-pass")
    first = _create_booking(client, headers, hour=10)
    assert first.status_code == 201
    booking = first.get_json()
    assert booking["status"] == "pending"

    clash = _create_booking(client, headers, hour=10, title="Other")
    assert clash.status_code == 409
    assert [c["id"] for c in clash.get_json()["conflicts"]] == [booking["id"]]

    start, end = future_slot(10, minutes=30)
    busy = client.post("/bookings/availability", json={"start_time": start.isoformat(), "end_time": end.isoformat()},
                       headers=headers)
    assert busy.status_code == 409
    assert busy.get_json()["available"] is False

    start, end = future_slot(11)
    free = client.post("/bookings/availability", json={"start_time": start.isoformat(), "end_time": end.isoformat()},
                       headers=headers)
    assert free.status_code == 200
    assert free.get_json() == {"available": True, "reason": "Time slot is available", "conflicts": []}

    missing = client.post("/bookings/availability", json={}, headers=headers)
    assert missing.status_code == 400


def test_booking_lifecycle_over_http(app, users):
    client, headers = login(app, "lecturer@e.com", "lecturer-pass")
    booking = _create_booking(client, headers).get_json()

    confirmed = client.post(f"/bookings/{booking['id']}/confirm", headers=headers)
    assert confirmed.get_json()["status"] == "confirmed"
    assert client.post(f"/bookings/{booking['id']}/confirm", headers=headers).status_code == 400

    stats = client.get("/bookings/stats").get_json()
    assert stats == {"total": 1, "pending": 0, "confirmed": 1, "cancelled": 0}

    cancelled = client.post(f"/bookings/{booking['id']}/cancel", json={"reason": "room flooded"}, headers=headers)
    assert cancelled.get_json()["status"] == "cancelled"
    assert client.get("/bookings").get_json() == []
    assert len(client.get("/bookings?include_cancelled=true").get_json()) == 1

    # only admins delete
    assert client.delete(f"/bookings/{booking['id']}", headers=headers).status_code == 403
    assert client.get("/bookings/999").status_code == 404


def test_notification_workflow(app, users):
    lecturer, lecturer_headers = login(app, "lecturer@e.com", "lecturer-pass")
    booking = _create_booking(lecturer, lecturer_headers).get_json()

    resp = lecturer.post("/notifications", json={"booking_id": booking["id"], "message": "Bring kits"},
                         headers=lecturer_headers)
    assert resp.status_code == 201
    body = resp.get_json()
    by_receiver = {n["receiver_email"]: n for n in body["notifications"]}
    assert set(by_receiver) == {"x@e.com", "y@e.com"}
    assert all(d["sent"] is False for d in body["deliveries"])

    again = lecturer.post("/notifications", json={"booking_id": booking["id"]}, headers=lecturer_headers)
    assert again.status_code == 400

    student_x, x_headers = login(app, "x@e.com", "student-pass")
    inbox = student_x.get("/notifications").get_json()
    assert [n["type"] for n in inbox] == ["request"]

    # y cannot answer x's notification
    student_y, y_headers = login(app, "y@e.com", "student-pass")
    x_id = by_receiver["x@e.com"]["id"]
    assert student_y.post(f"/notifications/{x_id}/accept", headers=y_headers).status_code == 403

    accepted = student_x.post(f"/notifications/{x_id}/accept", headers=x_headers)
    assert accepted.status_code == 200
    assert accepted.get_json()["notification"]["type"] == "booking_confirmation"
    # accepted answers drop out of the default inbox
    assert student_x.get("/notifications").get_json() == []

    y_id = by_receiver["y@e.com"]["id"]
    assert student_y.post(f"/notifications/{y_id}/reject", headers=y_headers).status_code == 200

    sent = lecturer.get("/notifications/sent").get_json()
    assert sorted(n["type"] for n in sent) == ["booking_confirmation", "rejected"]

    statuses = lecturer.get(f"/notifications/booking/{booking['id']}/attendees").get_json()
    assert {"x@e.com": "booking_confirmation"} in statuses
    assert {"y@e.com": "rejected"} in statuses

    # students cannot settle the lab
    assert student_x.post(f"/notifications/{x_id}/confirm-lab", headers=x_headers).status_code == 403

    settled = lecturer.post(f"/notifications/{x_id}/confirm-lab", headers=lecturer_headers)
    assert settled.status_code == 200
    assert settled.get_json()["updated_notifications"] == 2
    assert settled.get_json()["notification"]["type"] == "confirmed"

    read = student_y.post(f"/notifications/{y_id}/read", headers=y_headers)
    assert read.get_json()["is_read"] is True

    dropped = lecturer.post(f"/notifications/{y_id}/cancel-lab", headers=lecturer_headers)
    assert dropped.get_json()["updated_notifications"] == 2
    assert lecturer.post(f"/notifications/{y_id}/confirm-lab", headers=lecturer_headers).status_code == 400

    actions = {row.action for row in AuditLog.query.all()}
    assert {"BOOKING_CREATE", "NOTIFICATION_FAN_OUT", "NOTIFICATION_ACCEPT", "LAB_CONFIRM", "LAB_CANCEL"} <= actions


def test_notify_cancelled_booking_is_refused(app, users):
    client, headers = login(app, "lecturer@e.com", "lecturer-pass")
    booking = _create_booking(client, headers).get_json()
    client.post(f"/bookings/{booking['id']}/cancel", headers=headers)

    resp = client.post("/notifications", json={"booking_id": booking["id"]}, headers=headers)
    assert resp.status_code == 400


def test_unknown_notification_type_filter(app, users):
    client, _ = login(app, "x@e.com", "student-pass")
    assert client.get("/notifications?exclude_types=bogus").status_code == 400


def test_send_reminders_command(app, users):
    client, headers = login(app, "lecturer@e.com", "lecturer-pass")
    booking = _create_booking(client, headers).get_json()
    client.post("/notifications", json={"booking_id": booking["id"]}, headers=headers)

    lab_day = booking["start_time"][:10]
    result = app.test_cli_runner().invoke(args=["send-reminders", "--date", lab_day])
    assert result.exit_code == 0
    assert f"2 notifications moved to reminder for {lab_day}" in result.output

    bad = app.test_cli_runner().invoke(args=["send-reminders", "--date", "tomorrow"])
    assert bad.exit_code != 0


def test_send_reminders_defaults_to_the_utc_day(app, users, monkeypatch):
    client, headers = login(app, "lecturer@e.com", "lecturer-pass")
    booking = _create_booking(client, headers).get_json()
    client.post("/notifications", json={"booking_id": booking["id"]}, headers=headers)

    # late evening UTC on the lab day; hosts east of UTC are already on the next day
    lab_day = booking["start_time"][:10]
    late = datetime.fromisoformat(booking["start_time"]).replace(hour=23, minute=30)
    monkeypatch.setattr(app_module, "utcnow", lambda: late)

    result = app.test_cli_runner().invoke(args=["send-reminders"])
    assert result.exit_code == 0
    assert f"2 notifications moved to reminder for {lab_day}" in result.output


def test_logout_revokes_session(app, users):
    client, headers = login(app, "x@e.com", "student-pass")
    assert client.post("/auth/logout", headers=headers).status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_session_liveness():
    now = datetime(2030, 1, 15, 8, 0)
    sess = Session(created_at=now - timedelta(hours=1), last_seen_at=now - timedelta(minutes=5),
                   expires_at=now + timedelta(hours=1), revoked=False)
    assert sess.is_live(now, idle_seconds=600)
    assert not sess.is_live(now, idle_seconds=60)
    assert not sess.is_live(now + timedelta(hours=2), idle_seconds=10 ** 6)
    sess.revoked = True
    assert not sess.is_live(now, idle_seconds=600)
