from .health import health_bp
from .auth import auth_bp
from .booking import booking_bp
from .notifications import notification_bp
