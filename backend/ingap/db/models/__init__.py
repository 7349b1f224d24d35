"""ORM models exposed for metadata discovery."""
from ingap.db.models.quota_state import QuotaStateRecord
from ingap.db.models.saved_schedule import SavedSchedule, SavedSession

__all__ = [
    "QuotaStateRecord",
    "SavedSchedule",
    "SavedSession",
]
