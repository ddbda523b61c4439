"""
Supabase Auth lookups

- get_current_user(token): user behind a bearer JWT
- get_user_by_id(user_id): admin lookup used to resolve notification recipients
"""

import asyncio
from typing import Optional

from pydantic import BaseModel
from supabase import Client

from db import get_supabase


class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None


class SupabaseAuth:
    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase()
        return self._client

    async def get_current_user(self, token: Optional[str]) -> Optional[AuthUser]:
        if not token:
            return None
        try:
            response = await asyncio.to_thread(self.client.auth.get_user, token)
        except Exception as e:
            print(f"[AUTH] Token rejected: {e}")
            return None

        user = getattr(response, "user", None)
        if not user:
            return None
        return AuthUser(id=str(user.id), email=user.email)

    async def get_user_by_id(self, user_id: str) -> Optional[AuthUser]:
        try:
            response = await asyncio.to_thread(
                self.client.auth.admin.get_user_by_id, user_id
            )
        except Exception as e:
            print(f"[AUTH] Failed to get user {user_id}: {e}")
            return None

        user = getattr(response, "user", None)
        if not user:
            return None
        return AuthUser(id=str(user.id), email=user.email)
