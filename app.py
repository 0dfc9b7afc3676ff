import logging
from datetime import date

import click
from flask import Flask, request, g, jsonify
from flask_migrate import Migrate

from config import Config
from models import db
from models.user import User, Role
from repositories import NotificationStore
from routes import health_bp, auth_bp, booking_bp, notification_bp
from security.csrf import require_csrf
from services.errors import BookingError
from services.reminders import ReminderScheduler
from services.reservation import ReservationLocks
from services.time_window import utcnow
from utils.auth_context import load_current_user
from utils.seed import seed_roles, seed_default_lab

logger = logging.getLogger(__name__)

CSRF_EXEMPT_PATHS = {
    "/auth/login",
    "/auth/register",
    "/health",
}


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(notification_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # One lock registry per process; see services.reservation
    app.extensions["reservation_locks"] = ReservationLocks()

    with app.app_context():
        if app.config.get("TESTING"):
            db.create_all()
        # Seed roles and the default lab at startup (idempotent)
        seed_roles()
        app.extensions["default_lab_id"] = seed_default_lab(app.config["DEFAULT_LAB_NAME"])

    @app.before_request
    def _load_user():
        load_current_user()

    @app.before_request
    def _csrf_protect():
        # Only state-changing requests from cookie-authenticated users
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.path in CSRF_EXEMPT_PATHS:
                return None
            if getattr(g, "user", None) is not None:
                failure = require_csrf()
                if failure:
                    return failure

    @app.errorhandler(BookingError)
    def _booking_error(exc):
        db.session.rollback()
        logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.path, exc.reason)
        return jsonify(exc.to_dict()), exc.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        admin_role = Role.query.filter_by(name="ADMIN").first()
        if not admin_role:
            admin_role = Role(name="ADMIN")
            db.session.add(admin_role)
            db.session.commit()

        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("send-reminders")
    @click.option("--date", "day", default=None, help="Lab date as YYYY-MM-DD (defaults to today in UTC).")
    def send_reminders(day):
        """Move today's notifications to the reminder state (run daily from cron)."""
        try:
            target = date.fromisoformat(day) if day else utcnow().date()
        except ValueError:
            raise click.BadParameter("Use YYYY-MM-DD", param_hint="--date")

        updated = ReminderScheduler(NotificationStore(db.session)).run_reminder_pass(target)
        click.echo(f"{updated} notifications moved to reminder for {target.isoformat()}")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
