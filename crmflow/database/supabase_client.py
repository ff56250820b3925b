from typing import Any, Dict, Iterable, List, Optional, Set
from datetime import datetime
import logging
from supabase import create_client, Client

from ..config import (
    CLONED_EMAILS_TABLE,
    CREATED_LISTS_TABLE,
    SEGMENTATION_TABLE,
    SUPABASE_SERVICE_KEY,
    SUPABASE_URL,
)
from ..core.exceptions import PersistenceFailure
from ..core.models import ClonedEmailRecord, CreatedListRecord

logger = logging.getLogger(__name__)

NAME_LOOKUP_BATCH = 100


class SupabaseClient:
    """Supabase client for campaign configs and audit records"""

    def __init__(self, client: Optional[Client] = None):
        """Initialize Supabase client"""
        if client is not None:
            self.client = client
            return

        self.url = SUPABASE_URL
        self.key = SUPABASE_SERVICE_KEY  # Use service key for admin operations

        if not self.url or not self.key:
            raise ValueError("Supabase URL and key must be set in environment variables")

        self.client: Client = create_client(self.url, self.key)
        logger.info("Supabase client initialized")

    # Campaign configuration

    def get_campaign_configs(self, filter_date: Optional[str] = None) -> List[Dict]:
        """Get segmentation rows, optionally for one send date, ordered by `order`"""
        try:
            query = self.client.table(SEGMENTATION_TABLE).select('*')
            if filter_date:
                query = query.eq('date', filter_date)
            result = query.order('order').execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to load campaign configs: {e}")
            return []

    # Created lists

    def insert_created_list(self, record: CreatedListRecord) -> Dict:
        """Insert a created-list audit row"""
        try:
            result = self.client.table(CREATED_LISTS_TABLE).insert(record.to_row()).execute()
            return (result.data or [{}])[0]
        except Exception as e:
            logger.error(f"Failed to insert created list {record.name}: {e}")
            raise PersistenceFailure(CREATED_LISTS_TABLE, str(e)) from e

    def get_created_lists_between(self, start: datetime, end: datetime) -> List[Dict]:
        """Created lists with created_date in [start, end), newest first"""
        try:
            result = self.client.table(CREATED_LISTS_TABLE)\
                .select('*')\
                .gte('created_date', start.isoformat())\
                .lt('created_date', end.isoformat())\
                .order('created_date', desc=True)\
                .execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to fetch created lists: {e}")
            return []

    def list_created_lists(self, include_deleted: bool = False) -> List[Dict]:
        try:
            query = self.client.table(CREATED_LISTS_TABLE).select('*')
            if not include_deleted:
                query = query.or_('deleted.is.null,deleted.eq.false')
            result = query.order('created_date', desc=True).execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to list created lists: {e}")
            return []

    def mark_list_deleted(self, list_id: str) -> bool:
        try:
            result = self.client.table(CREATED_LISTS_TABLE)\
                .update({'deleted': True})\
                .eq('list_id', str(list_id))\
                .execute()
            return bool(result.data)
        except Exception as e:
            logger.error(f"Failed to mark list {list_id} deleted: {e}")
            raise PersistenceFailure(CREATED_LISTS_TABLE, str(e)) from e

    # Cloned emails

    def find_existing_clone_names(self, names: Iterable[str]) -> Set[str]:
        """Return the subset of `names` already recorded as cloned emails"""
        pending = sorted({n for n in names if n})
        found: Set[str] = set()
        for i in range(0, len(pending), NAME_LOOKUP_BATCH):
            batch = pending[i:i + NAME_LOOKUP_BATCH]
            try:
                result = self.client.table(CLONED_EMAILS_TABLE)\
                    .select('cloned_email_name')\
                    .in_('cloned_email_name', batch)\
                    .execute()
                for row in result.data or []:
                    if row.get('cloned_email_name'):
                        found.add(row['cloned_email_name'])
            except Exception as e:
                logger.error(f"Failed to check cloned email names (batch {i // NAME_LOOKUP_BATCH + 1}): {e}")
        return found

    def insert_cloned_email(self, record: ClonedEmailRecord) -> Dict:
        try:
            result = self.client.table(CLONED_EMAILS_TABLE).insert(record.to_row()).execute()
            return (result.data or [{}])[0]
        except Exception as e:
            logger.error(f"Failed to save cloned email {record.cloned_email_name}: {e}")
            raise PersistenceFailure(CLONED_EMAILS_TABLE, str(e)) from e

    def get_cloned_emails(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Dict]:
        """Cloned emails newest first, optionally with scheduled_time in [start, end)"""
        try:
            query = self.client.table(CLONED_EMAILS_TABLE).select('*')
            if start is not None:
                query = query.gte('scheduled_time', start.isoformat())
            if end is not None:
                query = query.lt('scheduled_time', end.isoformat())
            result = query.order('created_at', desc=True).execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to fetch cloned emails: {e}")
            raise PersistenceFailure(CLONED_EMAILS_TABLE, str(e)) from e

    def get_cloned_email(self, record_id: str) -> Optional[Dict]:
        return self._first(CLONED_EMAILS_TABLE, 'id', record_id)

    def find_cloned_email_by_remote_id(self, cloned_email_id: str) -> Optional[Dict]:
        return self._first(CLONED_EMAILS_TABLE, 'cloned_email_id', cloned_email_id)

    def update_cloned_email(self, record_id: str, patch: Dict[str, Any]) -> Dict:
        try:
            result = self.client.table(CLONED_EMAILS_TABLE)\
                .update(patch)\
                .eq('id', record_id)\
                .execute()
            return (result.data or [{}])[0]
        except Exception as e:
            logger.error(f"Failed to update cloned email {record_id}: {e}")
            raise PersistenceFailure(CLONED_EMAILS_TABLE, str(e)) from e

    def delete_cloned_email(self, record_id: str) -> None:
        try:
            self.client.table(CLONED_EMAILS_TABLE)\
                .delete()\
                .eq('id', record_id)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to delete cloned email {record_id}: {e}")
            raise PersistenceFailure(CLONED_EMAILS_TABLE, str(e)) from e

    def _first(self, table: str, column: str, value: Any) -> Optional[Dict]:
        try:
            result = self.client.table(table)\
                .select('*')\
                .eq(column, str(value))\
                .limit(1)\
                .execute()
            return (result.data or [None])[0]
        except Exception as e:
            logger.error(f"Failed to read {table} where {column}={value}: {e}")
            raise PersistenceFailure(table, str(e)) from e
