"""
Exception types raised by the CRMFlow pipelines.
"""

from typing import Optional


class CRMFlowError(Exception):
    """Base class for CRMFlow errors."""


class TransientFetchError(CRMFlowError):
    """A single page or request failed and may be retried."""

    def __init__(self, message: str, attempt: int = 0):
        super().__init__(message)
        self.attempt = attempt


class FetchExhausted(CRMFlowError):
    """Retry limit reached before any contact was collected."""

    def __init__(self, list_id: str, last_error: Optional[str] = None):
        self.list_id = str(list_id)
        self.last_error = last_error
        super().__init__(f"Failed to fetch contacts from list {list_id}: {last_error}")


class PersistenceFailure(CRMFlowError):
    """An audit record could not be written to Supabase."""

    def __init__(self, table: str, detail: str):
        self.table = table
        self.detail = detail
        super().__init__(f"Failed to write to {table}: {detail}")


class InvalidFilterError(CRMFlowError, ValueError):
    """A days/mode filter value is not recognised."""

    def __init__(self, kind: str, received: Optional[str], valid: list):
        self.kind = kind
        self.received = received
        self.valid = list(valid)
        super().__init__(
            f"Invalid {kind} filter {received!r}. Valid values are: {', '.join(self.valid)}"
        )


class NoCampaignsFound(CRMFlowError):
    """No campaign configuration matched the selected filters."""
