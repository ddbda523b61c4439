"""In-memory stand-ins for the Supabase store, auth and mailers"""

import asyncio
import itertools
from typing import Any, Dict, List, Optional

from auth import AuthUser
from mailer import MailerError


# --- In-memory store ---
class FakeStore:
    """
    Same interface as db.SupabaseStore, backed by dicts.
    Every call is recorded in .calls as (method, table).
    """

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.calls = []
        self._ids = itertools.count(1)

    def _rows(self, table):
        return self.tables.setdefault(table, [])

    @staticmethod
    def _matches(row, filters):
        for column, value in (filters or {}).items():
            if isinstance(value, (list, tuple, set)):
                if row.get(column) not in value:
                    return False
            elif row.get(column) != value:
                return False
        return True

    async def query(self, table, filters=None, order=None, columns="*", limit=None):
        self.calls.append(("query", table))
        rows = [dict(r) for r in self._rows(table) if self._matches(r, filters)]
        for column, descending in reversed(list(order or [])):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=descending)
        if limit:
            rows = rows[:limit]
        return rows

    async def get(self, table, row_id):
        self.calls.append(("get", table))
        for row in self._rows(table):
            if row.get("id") == row_id:
                return dict(row)
        return None

    async def insert(self, table, row):
        self.calls.append(("insert", table))
        created = {"id": f"{table}-{next(self._ids)}", **row}
        created.setdefault("created_at", f"2025-01-01T00:00:{len(self._rows(table)):02d}")
        self._rows(table).append(created)
        return dict(created)

    async def update(self, table, row_id, patch):
        self.calls.append(("update", table))
        for row in self._rows(table):
            if row.get("id") == row_id:
                row.update(patch)
                return dict(row)
        return None

    async def delete(self, table, row_id):
        self.calls.append(("delete", table))
        self.tables[table] = [r for r in self._rows(table) if r.get("id") != row_id]

    def touched(self, table):
        return [c for c in self.calls if c[1] == table]


class FakeAuth:
    def __init__(self, users: Optional[Dict[str, Optional[str]]] = None, tokens=None):
        self.users = users or {}
        self.tokens = tokens or {}

    async def get_user_by_id(self, user_id):
        if user_id not in self.users:
            return None
        return AuthUser(id=user_id, email=self.users[user_id])

    async def get_current_user(self, token):
        user_id = self.tokens.get(token)
        if user_id is None:
            return None
        return AuthUser(id=user_id, email=self.users.get(user_id))


# --- Mailers ---
class RecordingMailer:
    def __init__(self):
        self.sent = []

    async def send(self, to, subject, html):
        self.sent.append({"to": to, "subject": subject, "html": html})


class FailingMailer(RecordingMailer):
    async def send(self, to, subject, html):
        raise MailerError("Resend API error: 500 - boom")


class SlowMailer(RecordingMailer):
    async def send(self, to, subject, html):
        await asyncio.sleep(5)


# --- Fixture ids ---
OWNER_ID = "user-owner"
VENDOR_USER_ID = "user-vendor"
ASSIGNEE_ID = "user-assignee"
