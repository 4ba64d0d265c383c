"""Shared Supabase client plus row conversion helpers for the store adapters."""

from typing import Any, Optional
from pydantic_core import to_jsonable_python
from supabase import create_client, Client
from supabase.client import ClientOptions
from designdesk.utils.config import StoreConfig
from designdesk.utils.errors import StoreError
import logging

logger = logging.getLogger(__name__)

_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Return the process-wide client, creating it with the service role key on first use."""
    global _client

    if _client is not None:
        return _client

    if not (StoreConfig.SUPABASE_URL and StoreConfig.SUPABASE_SERVICE_ROLE_KEY):
        raise StoreError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

    # Server-side use only; no user session to keep alive
    _client = create_client(
        StoreConfig.SUPABASE_URL,
        StoreConfig.SUPABASE_SERVICE_ROLE_KEY,
        ClientOptions(auto_refresh_token=False, persist_session=False),
    )
    logger.info("Supabase client initialized", extra={"url": StoreConfig.SUPABASE_URL})
    return _client


def reset_supabase_client() -> None:
    """Forget the cached client so the next call rebuilds it from config."""
    global _client
    _client = None


class SupabaseClient:
    """Async context manager handing out the shared client.

    Errors raised inside the block are logged and re-raised.
    """

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


def to_row(values: dict[str, Any]) -> dict[str, Any]:
    """Convert model values (datetimes, enums, nested models) to JSON-safe row data."""
    return to_jsonable_python(values)


def apply_filters(query, filters: dict[str, Any]):
    """Add equality filters to a PostgREST query; None matches SQL NULL."""
    for column, value in to_row(filters).items():
        if value is None:
            query = query.is_(column, "null")
        elif isinstance(value, bool):
            query = query.is_(column, str(value).lower())
        else:
            query = query.eq(column, value)
    return query
