import logging
from datetime import date

from models.notification import NotificationType
from services.notification_state import sources_for

logger = logging.getLogger(__name__)


class ReminderScheduler:
    def __init__(self, store):
        self.store = store

    def run_reminder_pass(self, today: date) -> int:
        """Moves every non-cancelled notification for ``today`` to REMINDER."""
        try:
            updated = self.store.update_by_date(
                today,
                {"type": NotificationType.REMINDER},
                from_types=sources_for(NotificationType.REMINDER),
            )
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        logger.info("Reminder pass for %s updated %d notifications", today.isoformat(), updated)
        return updated
