"""
HubSpot API client for contact lists, contact properties and marketing emails.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import (
    EMAIL_CUSTOM_PROPERTIES,
    HUBSPOT_ACCESS_TOKEN,
    HUBSPOT_API_URL,
    HUBSPOT_EMAILS_URL,
    HUBSPOT_REQUEST_TIMEOUT,
    MAX_RETRIES,
    RETRIEVAL_BATCH_SIZE,
)
from .models import ContactPage, EmailObject, Identifier

logger = logging.getLogger(__name__)


def normalize_email(
    raw: Mapping[str, Any],
    property_map: Optional[Mapping[str, str]] = None,
) -> EmailObject:
    """
    Map a marketing email payload to an ``EmailObject``.

    HubSpot returns custom properties in one of three places depending on the
    endpoint and portal: a top-level field, ``properties[<internal name>]`` or
    ``properties[<display label>]``. Later locations win when several are
    populated, and empty nested values are ignored.
    """
    property_map = EMAIL_CUSTOM_PROPERTIES if property_map is None else property_map
    nested = raw.get("properties") or {}
    if not isinstance(nested, Mapping):
        nested = {}

    custom: Dict[str, Any] = {}
    for key, label in property_map.items():
        value = None
        if raw.get(key) is not None:
            value = raw[key]
        if nested.get(key):
            value = nested[key]
        if label and nested.get(label):
            value = nested[label]
        if value is not None:
            custom[key] = value

    return EmailObject(
        id=str(raw.get("id", "")),
        name=raw.get("name") or "",
        state=raw.get("state"),
        custom_properties=custom,
        raw=dict(raw),
    )


class HubSpotClient:
    """Client for interacting with the HubSpot REST API."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        api_url: Optional[str] = None,
        emails_url: Optional[str] = None,
    ):
        """
        Initialize HubSpot client.

        Args:
            access_token: Private app token. If not provided, uses environment variable.
            api_url: API root (default https://api.hubapi.com)
            emails_url: Marketing email endpoint used for clone/search/update
        """
        self.access_token = access_token or HUBSPOT_ACCESS_TOKEN
        if not self.access_token:
            raise ValueError("HubSpot access token is required. Set HUBSPOT_ACCESS_TOKEN in environment.")

        self.api_url = (api_url or HUBSPOT_API_URL).rstrip("/")
        self.emails_url = (emails_url or HUBSPOT_EMAILS_URL).rstrip("/")
        self.headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

        # Set up session with retry strategy
        self.session = requests.Session()
        retry_strategy = Retry(
            total=MAX_RETRIES,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict] = None,
        json: Optional[Any] = None,
    ) -> Dict:
        """
        Send a request and return the decoded JSON body.

        Raises:
            requests.RequestException: If the request fails or returns an error status
        """
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=self.headers,
                timeout=HUBSPOT_REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            if not response.content:
                return {}
            return response.json()
        except requests.RequestException as e:
            detail = getattr(getattr(e, "response", None), "text", None) or str(e)
            logger.error(f"HubSpot {method} {url} failed: {detail}")
            raise

    # Contact lists

    def get_list_contacts_page(
        self,
        list_id: str,
        count: int = RETRIEVAL_BATCH_SIZE,
        vid_offset: Optional[Identifier] = None,
    ) -> ContactPage:
        """
        Get one page of contacts belonging to a list.

        Args:
            list_id: HubSpot list ID
            count: Page size requested
            vid_offset: Continuation cursor from the previous page

        Returns:
            ContactPage with contact vids, has-more flag and next cursor
        """
        params: Dict[str, Any] = {"count": count}
        if vid_offset is not None:
            params["vidOffset"] = vid_offset

        data = self._request(
            "GET",
            f"{self.api_url}/contacts/v1/lists/{list_id}/contacts/all",
            params=params,
        )
        contacts = data.get("contacts") or []
        return ContactPage(
            contacts=[c["vid"] for c in contacts if c.get("vid") is not None],
            has_more=bool(data.get("has-more")),
            vid_offset=data.get("vid-offset"),
        )

    def create_static_list(self, name: str) -> Dict[str, Any]:
        """Create a static (non-dynamic) contact list and return its id."""
        logger.info(f"Creating list: {name}")
        data = self._request(
            "POST",
            f"{self.api_url}/contacts/v1/lists",
            json={"name": name, "dynamic": False},
        )
        return {
            "list_id": str(data.get("listId")),
            "deleted": bool(data.get("deleted", False)),
            "raw": data,
        }

    def add_contacts_to_list(self, list_id: str, vids: List[Identifier]) -> Dict:
        return self._request(
            "POST",
            f"{self.api_url}/contacts/v1/lists/{list_id}/add",
            json={"vids": list(vids)},
        )

    # Contact properties

    def batch_update_contacts(self, inputs: List[Dict[str, Any]]) -> Dict:
        """Update properties on up to 100 contacts in one call."""
        return self._request(
            "POST",
            f"{self.api_url}/crm/v3/objects/contacts/batch/update",
            json={"inputs": inputs},
        )

    def get_contact_property_options(self, property_name: str) -> List[Dict[str, Any]]:
        data = self._request(
            "GET",
            f"{self.api_url}/crm/v3/properties/contacts/{property_name}",
        )
        return [
            {"label": opt.get("label"), "value": opt.get("value")}
            for opt in data.get("options") or []
        ]

    # Marketing emails

    def get_email(
        self,
        email_id: str,
        properties: Optional[Iterable[str]] = None,
    ) -> EmailObject:
        """
        Fetch a marketing email including its custom properties.

        Args:
            email_id: HubSpot email ID
            properties: Extra property names to request (default: configured custom properties)
        """
        names = ["name"] + list(properties if properties is not None else EMAIL_CUSTOM_PROPERTIES)
        data = self._request(
            "GET",
            f"{self.emails_url}/{email_id}",
            params={"properties": ",".join(names)},
        )
        return normalize_email(data)

    def clone_email(self, email_id: str) -> Dict[str, Any]:
        return self._request("POST", f"{self.emails_url}/{email_id}/clone", json={})

    def update_email(self, email_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"{self.emails_url}/{email_id}", json=fields)

    def delete_email(self, email_id: str) -> None:
        self._request("DELETE", f"{self.emails_url}/{email_id}")

    def search_emails_by_name(self, name: str, limit: int = 1) -> Dict[str, Any]:
        data = self._request("GET", self.emails_url, params={"name": name, "limit": limit})
        return {
            "total": data.get("total") or 0,
            "results": data.get("results") or [],
        }

    def email_exists(self, name: str) -> bool:
        """Return True when HubSpot already has an email with this exact name."""
        found = self.search_emails_by_name(name, limit=1)
        exists = found["total"] > 0 or len(found["results"]) > 0
        logger.debug(f"Email {name!r} exists in HubSpot: {exists}")
        return exists

    def publish_email(self, email_id: str, send_at_ms: Optional[int] = None) -> Dict[str, Any]:
        body = {"sendAt": send_at_ms} if send_at_ms is not None else {}
        return self._request(
            "POST",
            f"{self.api_url}/marketing/v3/emails/{email_id}/publish",
            json=body,
        )

    def get_email_v1(self, email_id: str) -> Dict[str, Any]:
        return self._request("GET", f"{self.api_url}/marketing-emails/v1/emails/{email_id}")

    def update_email_v1(self, email_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request(
            "PUT",
            f"{self.api_url}/marketing-emails/v1/emails/{email_id}",
            json=payload,
        )
