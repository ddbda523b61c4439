"""
Table enums and typed rows shared across modules.
Rows coming back from Supabase stay plain dicts except where noted.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class BidCategory(str, Enum):
    CEMENT = "cement"
    STEEL = "steel"
    BRICKS = "bricks"
    PAINT = "paint"
    FLOORING = "flooring"
    PLUMBING = "plumbing"
    ELECTRICAL = "electrical"
    OTHER = "other"


class BidRequestStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    AWARDED = "awarded"
    CANCELLED = "cancelled"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MemberRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"
    VIEWER = "viewer"


BID_STATUS_SUBMITTED = "submitted"
VENDOR_STATUS_PENDING = "pending"


class UserPreferences(BaseModel):
    """user_preferences row. Null flags in the table count as enabled."""

    id: Optional[str] = None
    user_id: str
    email_notifications: Optional[bool] = True
    email_bidding_updates: Optional[bool] = True
    email_task_updates: Optional[bool] = True
    email_project_updates: Optional[bool] = True
    realtime_notifications: Optional[str] = None
    sound_enabled: Optional[bool] = True

    model_config = {"extra": "ignore"}
