"""
Notification Dispatch

Turns a database change event into an email:

    Received -> RecipientResolved -> PreferenceChecked -> Rendered -> Delivered
    (any step may end in Skipped)

Handled events:
- bids INSERT                                  -> bid_received (request owner)
- tasks INSERT with assigned_to                -> task_assigned (assignee)
- tasks UPDATE where assigned_to changed       -> task_reassigned (new assignee)
- project_members INSERT                       -> project_member_added (member)

Notifications are best-effort. dispatch() never raises: the row write that
triggered it has already committed, so every failure ends as a skip.
Nothing is retried.
"""

import asyncio
import os
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

from mailer import get_mailer
from preferences import get_or_create_preferences, is_email_enabled
from templates import (
    BidReceivedData,
    EventKind,
    EventPayload,
    ProjectMemberAddedData,
    TaskAssignedData,
    TaskReassignedData,
    render_template,
)

APP_URL = os.getenv("APP_URL") or (os.getenv("SUPABASE_URL") or "").replace(
    ".supabase.co", ""
)
MAIL_TIMEOUT_SECONDS = float(os.getenv("MAIL_TIMEOUT_SECONDS", "10"))

DELIVERED = "delivered"
SKIPPED = "skipped"


class ChangeEvent(BaseModel):
    """Supabase database webhook payload"""

    type: str
    table: str
    record: Dict[str, Any] = {}
    old_record: Optional[Dict[str, Any]] = None

    model_config = {"extra": "ignore"}


class NotificationEvent(BaseModel):
    kind: EventKind
    recipient_user_id: Optional[str] = None
    payload: EventPayload


class DispatchOutcome(BaseModel):
    status: str
    reason: Optional[str] = None
    event_type: Optional[str] = None
    recipient: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.status == DELIVERED

    @property
    def skipped(self) -> bool:
        return self.status == SKIPPED


def _skip(reason: str, kind: Optional[EventKind] = None, recipient: Optional[str] = None):
    print(f"[DISPATCH] Skipped: {reason}")
    return DispatchOutcome(
        status=SKIPPED,
        reason=reason,
        event_type=kind.value if kind else None,
        recipient=recipient,
    )


def classify_change(change: ChangeEvent) -> Optional[EventKind]:
    """Map (table, type, record, old_record) to an event kind, None if unhandled"""
    record = change.record or {}
    op = change.type.upper()

    if change.table == "bids" and op == "INSERT":
        return EventKind.BID_RECEIVED

    if change.table == "tasks" and op == "INSERT" and record.get("assigned_to"):
        return EventKind.TASK_ASSIGNED

    if change.table == "tasks" and op == "UPDATE":
        old = change.old_record or {}
        assignee = record.get("assigned_to")
        if assignee and assignee != old.get("assigned_to"):
            return EventKind.TASK_REASSIGNED

    if change.table == "project_members" and op == "INSERT":
        return EventKind.PROJECT_MEMBER_ADDED

    return None


class NotificationDispatcher:
    def __init__(
        self,
        store,
        auth,
        mailer=None,
        app_url: str = APP_URL,
        timeout: float = MAIL_TIMEOUT_SECONDS,
    ):
        self.store = store
        self.auth = auth
        self.mailer = mailer or get_mailer()
        self.app_url = app_url.rstrip("/")
        self.timeout = timeout

    def project_url(self, project_id: Optional[str]) -> str:
        if project_id:
            return f"{self.app_url}/project/{project_id}"
        return f"{self.app_url}/marketplace"

    async def dispatch(self, change: Union[ChangeEvent, Dict[str, Any]]) -> DispatchOutcome:
        kind = None
        try:
            if not isinstance(change, ChangeEvent):
                change = ChangeEvent.model_validate(change)
            print(f"[DISPATCH] Processing {change.type} event on {change.table} table")

            # Received
            kind = classify_change(change)
            if kind is None:
                return _skip("event not handled")
            return await self._dispatch(kind, change)
        except Exception as e:
            print(f"[DISPATCH] ERROR: {e}")
            return _skip(f"dispatch error: {e}", kind)

    async def _dispatch(self, kind: EventKind, change: ChangeEvent) -> DispatchOutcome:
        # RecipientResolved
        event = await self.build_event(kind, change)
        if isinstance(event, str):
            return _skip(event, kind)

        if not event.recipient_user_id:
            return _skip("recipient not found", kind)

        recipient = await self.auth.get_user_by_id(event.recipient_user_id)
        if not recipient:
            return _skip("recipient not found", kind)
        if not recipient.email:
            return _skip("no email", kind)

        # PreferenceChecked
        preferences = await get_or_create_preferences(self.store, recipient.id)
        if not is_email_enabled(preferences, kind):
            return _skip("notifications disabled", kind, recipient.email)

        # Rendered
        content = render_template(kind, event.payload)

        # Delivered
        try:
            await asyncio.wait_for(
                self.mailer.send(recipient.email, content.subject, content.html),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return _skip(
                f"delivery failed: timed out after {self.timeout}s", kind, recipient.email
            )
        except Exception as e:
            return _skip(f"delivery failed: {e}", kind, recipient.email)

        print(f"[DISPATCH] Delivered {kind.value} to {recipient.email}")
        return DispatchOutcome(
            status=DELIVERED, event_type=kind.value, recipient=recipient.email
        )

    # ═══════════════════════════════════════════════════════════════
    # EVENT ASSEMBLY
    # ═══════════════════════════════════════════════════════════════

    async def build_event(
        self, kind: EventKind, change: ChangeEvent
    ) -> Union[NotificationEvent, str]:
        """Load the rows each template needs. Returns a skip reason on failure."""
        record = change.record or {}

        if kind == EventKind.BID_RECEIVED:
            bid_request = None
            if record.get("bid_request_id"):
                bid_request = await self.store.get("bid_requests", record["bid_request_id"])
            if not bid_request:
                return "bid request not found"

            vendor = None
            if record.get("vendor_id"):
                vendor = await self.store.get("vendor_profiles", record["vendor_id"])
            payload = BidReceivedData(
                bid_request_title=bid_request.get("title") or "",
                vendor_name=(vendor or {}).get("company_name") or "Unknown Vendor",
                price=record.get("price"),
                delivery_time_days=record.get("delivery_time_days"),
                notes=record.get("notes"),
                project_url=self.project_url(bid_request.get("project_id")),
            )
            return NotificationEvent(
                kind=kind, recipient_user_id=bid_request.get("user_id"), payload=payload
            )

        project = None
        if record.get("project_id"):
            project = await self.store.get("projects", record["project_id"])
        project = project or {}
        project_url = self.project_url(record.get("project_id"))

        if kind == EventKind.TASK_ASSIGNED:
            payload = TaskAssignedData(
                task_title=record.get("title") or "",
                task_description=record.get("description"),
                priority=record.get("priority") or "medium",
                due_date=record.get("due_date"),
                project_name=project.get("name") or "Unknown Project",
                assigned_by_name=await self._owner_name(project),
                project_url=project_url,
            )
            return NotificationEvent(
                kind=kind, recipient_user_id=record.get("assigned_to"), payload=payload
            )

        if kind == EventKind.TASK_REASSIGNED:
            payload = TaskReassignedData(
                task_title=record.get("title") or "",
                task_description=record.get("description"),
                priority=record.get("priority") or "medium",
                due_date=record.get("due_date"),
                project_name=project.get("name") or "Unknown Project",
                project_url=project_url,
            )
            return NotificationEvent(
                kind=kind, recipient_user_id=record.get("assigned_to"), payload=payload
            )

        payload = ProjectMemberAddedData(
            project_name=project.get("name") or "Unknown Project",
            project_type=project.get("type") or "Unknown",
            project_status=project.get("status") or "Unknown",
            owner_name=await self._owner_name(project),
            member_role=record.get("role") or "member",
            project_url=project_url,
        )
        return NotificationEvent(
            kind=kind, recipient_user_id=record.get("user_id"), payload=payload
        )

    async def _owner_name(self, project: Dict[str, Any]) -> str:
        owner_id = project.get("owner_id")
        if not owner_id:
            return "Project Owner"
        owner = await self.auth.get_user_by_id(owner_id)
        return (owner.email if owner else None) or "Project Owner"
