import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

import requests

from ..core.dates import DateLike, parse_iso_datetime, utc_day_window
from ..core.exceptions import PersistenceFailure
from ..core.hubspot_client import HubSpotClient
from ..core.models import CloneStatus
from ..core.scheduling import to_epoch_ms
from ..database.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


def _http_status(exc: Exception) -> Optional[int]:
    response = getattr(exc, "response", None)
    return getattr(response, "status_code", None)


def _http_detail(exc: Exception) -> Any:
    response = getattr(exc, "response", None)
    if response is None:
        return str(exc)
    try:
        return response.json()
    except ValueError:
        return response.text or str(exc)


def describe_include_error(exc: Exception, email_id: str, list_id: str) -> str:
    status = _http_status(exc)
    detail = _http_detail(exc)
    api_message = detail.get("message") if isinstance(detail, dict) else None
    if status == 404:
        return f"Email {email_id} or list {list_id} not found in HubSpot"
    if status == 401:
        return "HubSpot authentication failed - check access token"
    if status == 400:
        return f"Invalid request - {api_message or 'check email and list IDs'}"
    if status == 403:
        return "Permission denied - this email may be locked or require manual configuration"
    return api_message or "Failed to include list in email"


def _parse_schedule_time(value: Union[str, datetime]) -> datetime:
    if isinstance(value, str):
        value = parse_iso_datetime(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class EmailAdminService:
    """Recipient-list edits, publishing and housekeeping for cloned emails."""

    def __init__(
        self,
        db_client: Optional[SupabaseClient] = None,
        hubspot_client: Optional[HubSpotClient] = None,
    ):
        self.db = db_client or SupabaseClient()
        self.hubspot = hubspot_client or HubSpotClient()

    def include_list_in_email(self, email_id: str, list_id: str) -> Dict[str, Any]:
        """
        Add a contact list to a draft email's included recipients.

        Only DRAFT emails can be edited. List IDs are sent as strings and the
        existing exclusions are preserved.
        """
        try:
            current = self.hubspot.get_email_v1(email_id)
            state = current.get("state")
            if state and state != "DRAFT":
                logger.warning(f"Email {email_id} is in {state} state; only DRAFT emails can be updated")
                return {
                    "success": False,
                    "message": (
                        f"Email is in {state} state. Only DRAFT emails can have their lists updated. "
                        "Please ensure the email is in DRAFT state in HubSpot."
                    ),
                    "data": current,
                }

            included = list(dict.fromkeys(str(i) for i in current.get("mailingListsIncluded") or []))
            excluded = [str(i) for i in current.get("mailingListsExcluded") or []]
            list_id_str = str(list_id)

            if list_id_str in included:
                logger.info(f"List {list_id} is already included in email {email_id}")
                return {
                    "success": True,
                    "message": "List is already included in this email",
                    "email_id": email_id,
                    "list_id": list_id,
                }

            updated_included = list(dict.fromkeys(included + [list_id_str]))
            payload: Dict[str, Any] = {"mailingListsIncluded": updated_included}
            if excluded:
                payload["mailingListsExcluded"] = excluded

            self.hubspot.update_email_v1(email_id, payload)
            logger.info(f"Included list {list_id} in email {email_id}")
            return {
                "success": True,
                "message": "List successfully added to email",
                "email_id": email_id,
                "list_id": list_id,
                "updated_included_lists": updated_included,
                "updated_excluded_lists": excluded,
            }
        except requests.RequestException as e:
            logger.error(f"HubSpot API error including list {list_id} in email {email_id}: {e}")
            return {
                "success": False,
                "status": _http_status(e) or 500,
                "message": describe_include_error(e, email_id, list_id),
                "details": _http_detail(e),
            }

    def list_cloned_emails(self, day: Optional[DateLike] = None) -> Dict[str, Any]:
        """Cloned email records, optionally only those scheduled on one UTC day."""
        try:
            if day is None:
                rows = self.db.get_cloned_emails()
            else:
                start, end = utc_day_window(day)
                rows = self.db.get_cloned_emails(start, end)
        except PersistenceFailure as e:
            return {"success": False, "message": "Failed to fetch cloned emails.", "error": str(e)}
        return {"success": True, "data": rows}

    def delete_cloned_email(self, record_id: str) -> Dict[str, Any]:
        """Delete the HubSpot email (best effort) and always drop the local record."""
        try:
            record = self.db.get_cloned_email(record_id)
        except PersistenceFailure as e:
            return {"success": False, "message": "Failed to delete cloned email.", "error": str(e)}
        if not record:
            return {"success": False, "status": 404, "message": "Cloned email not found"}

        hubspot_deleted = False
        hubspot_error = None
        cloned_email_id = record.get("cloned_email_id")
        if cloned_email_id:
            try:
                self.hubspot.delete_email(cloned_email_id)
                hubspot_deleted = True
                logger.info(f"Deleted email {cloned_email_id} from HubSpot")
            except requests.RequestException as e:
                detail = _http_detail(e)
                hubspot_error = detail.get("message") if isinstance(detail, dict) and detail.get("message") else str(e)
                logger.error(f"Failed to delete email {cloned_email_id} from HubSpot: {hubspot_error}")

        try:
            self.db.delete_cloned_email(record_id)
        except PersistenceFailure as e:
            return {
                "success": False,
                "message": "Failed to delete cloned email.",
                "error": str(e),
                "hubspot_deleted": hubspot_deleted,
            }

        if hubspot_deleted:
            message = "Cloned email deleted successfully from both database and HubSpot"
        elif hubspot_error:
            message = f"Cloned email deleted from database, but failed to delete from HubSpot: {hubspot_error}"
        else:
            message = "Cloned email deleted from database (no HubSpot ID found)"

        return {
            "success": True,
            "message": message,
            "hubspot_deleted": hubspot_deleted,
            "hubspot_error": hubspot_error,
        }

    def publish_email(
        self,
        email_id: str,
        schedule_time: Optional[Union[str, datetime]] = None,
    ) -> Dict[str, Any]:
        """Publish now, or schedule for `schedule_time`, then mark the local record published."""
        try:
            scheduled = _parse_schedule_time(schedule_time) if schedule_time else None
        except ValueError as e:
            logger.error(f"Invalid schedule time {schedule_time!r} for email {email_id}: {e}")
            return {
                "success": False,
                "message": f"Invalid schedule time: {schedule_time}",
                "error": str(e),
            }

        try:
            data = self.hubspot.publish_email(email_id, to_epoch_ms(scheduled) if scheduled else None)
        except requests.RequestException as e:
            detail = _http_detail(e)
            logger.error(f"Failed to publish email {email_id}: {detail}")
            return {
                "success": False,
                "message": (detail.get("message") if isinstance(detail, dict) else None) or "Failed to publish email",
                "error": detail,
            }

        try:
            record = self.db.find_cloned_email_by_remote_id(email_id)
            if record:
                patch: Dict[str, Any] = {
                    "status": CloneStatus.PUBLISHED.value,
                    "published_at": datetime.now(timezone.utc).isoformat(),
                }
                if scheduled:
                    patch["scheduled_time"] = scheduled.isoformat()
                self.db.update_cloned_email(record["id"], patch)
        except PersistenceFailure as e:
            logger.warning(f"Database update error (non-critical): {e}")

        return {
            "success": True,
            "message": "Email scheduled successfully" if scheduled else "Email published immediately",
            "data": data,
        }

    def debug_email(self, email_id: str) -> Dict[str, Any]:
        """Raw payload plus the custom properties as the cloner will see them."""
        try:
            email = self.hubspot.get_email(email_id)
        except requests.RequestException as e:
            return {"success": False, "message": "Failed to debug email.", "error": str(e)}
        return {
            "success": True,
            "data": email.raw,
            "properties": email.raw.get("properties"),
            "custom_properties": email.custom_properties,
        }
