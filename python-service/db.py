"""
Supabase Database Client

Thin store wrapper over the hosted Postgres tables:
- bid_requests, bids, vendor_profiles
- projects, tasks, project_members
- user_preferences

Row-level security lives in Supabase; this service uses the service role key.
"""

import asyncio
import os
from typing import Any, Dict, Iterable, List, Optional, Tuple

from supabase import Client, create_client

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")

_client: Optional[Client] = None


def get_supabase() -> Client:
    """Get Supabase client with service role key"""
    global _client
    if _client is None:
        url = SUPABASE_URL or os.getenv("SUPABASE_URL")
        key = SUPABASE_SERVICE_KEY or os.getenv("SUPABASE_SERVICE_KEY")
        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
        _client = create_client(url, key)
    return _client


# ═══════════════════════════════════════════════════════════════
# STORE
# ═══════════════════════════════════════════════════════════════

Filters = Dict[str, Any]
Order = Iterable[Tuple[str, bool]]


class SupabaseStore:
    """
    query / get / insert / update / delete over Supabase tables.

    Filters map column -> value:
    - scalar: eq
    - list/tuple/set: in_
    - None: is null
    Order is a list of (column, descending) pairs applied in sequence.
    """

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase()
        return self._client

    async def query(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order: Optional[Order] = None,
        columns: str = "*",
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        builder = self.client.table(table).select(columns)

        for column, value in (filters or {}).items():
            if isinstance(value, (list, tuple, set)):
                builder = builder.in_(column, list(value))
            elif value is None:
                builder = builder.is_(column, "null")
            else:
                builder = builder.eq(column, value)

        for column, descending in order or []:
            builder = builder.order(column, desc=descending)

        if limit:
            builder = builder.limit(limit)

        result = await asyncio.to_thread(builder.execute)
        return result.data or []

    async def get(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        """Single row by primary key, None if absent"""
        rows = await self.query(table, {"id": row_id}, limit=1)
        return rows[0] if rows else None

    async def insert(self, table: str, row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        builder = self.client.table(table).insert(row)
        result = await asyncio.to_thread(builder.execute)
        return result.data[0] if result.data else None

    async def update(
        self, table: str, row_id: str, patch: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        builder = self.client.table(table).update(patch).eq("id", row_id)
        result = await asyncio.to_thread(builder.execute)
        return result.data[0] if result.data else None

    async def delete(self, table: str, row_id: str) -> None:
        builder = self.client.table(table).delete().eq("id", row_id)
        await asyncio.to_thread(builder.execute)
