import logging
from typing import Any, Dict, List, Optional

from ..config import LAST_SENT_BRAND_PROPERTY
from ..core.dates import DateLike, format_display_datetime, utc_day_window
from ..core.exceptions import PersistenceFailure
from ..core.hubspot_client import HubSpotClient
from ..database.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


class ListAdminService:
    """Read and maintain created-list audit rows."""

    def __init__(
        self,
        db_client: Optional[SupabaseClient] = None,
        hubspot_client: Optional[HubSpotClient] = None,
    ):
        self.db = db_client or SupabaseClient()
        self._hubspot = hubspot_client

    @property
    def hubspot(self) -> HubSpotClient:
        if self._hubspot is None:
            self._hubspot = HubSpotClient()
        return self._hubspot

    def created_lists_for_day(self, day: Optional[DateLike] = None) -> List[Dict[str, Any]]:
        """Lists created during one UTC day (today by default), newest first."""
        start, end = utc_day_window(day)
        return self.db.get_created_lists_between(start, end)

    def list_manager(self, show_all: bool = False) -> List[Dict[str, Any]]:
        """All created lists (or only live ones) with a display date."""
        rows = self.db.list_created_lists(include_deleted=show_all)
        formatted = []
        for row in rows:
            entry = dict(row)
            created = row.get("created_date")
            entry["formatted_date"] = format_display_datetime(created) if created else None
            formatted.append(entry)
        return formatted

    def mark_deleted(self, list_id: str) -> Dict[str, Any]:
        try:
            updated = self.db.mark_list_deleted(list_id)
        except PersistenceFailure as e:
            return {"success": False, "error": str(e)}
        if not updated:
            return {"success": False, "error": "list_not_found"}
        return {"success": True, "list_id": str(list_id)}

    def brand_options(self, property_name: str = LAST_SENT_BRAND_PROPERTY) -> Dict[str, Any]:
        """Options of the contact brand property, as label/value pairs."""
        try:
            options = self.hubspot.get_contact_property_options(property_name)
        except Exception as e:
            logger.error(f"Error fetching HubSpot brand options: {e}")
            return {"success": False, "error": "Failed to fetch brand options from HubSpot"}
        return {"success": True, "options": options}
