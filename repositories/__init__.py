from .booking_store import BookingStore
from .notification_store import NotificationStore
