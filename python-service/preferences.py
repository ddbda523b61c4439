"""
User notification preferences (user_preferences table)
"""

from typing import Any, Dict

from models import UserPreferences
from templates import EventKind

DEFAULT_FLAGS = {
    "email_notifications": True,
    "email_bidding_updates": True,
    "email_task_updates": True,
    "email_project_updates": True,
    "sound_enabled": True,
}

CATEGORY_FLAGS = {
    EventKind.BID_RECEIVED: "email_bidding_updates",
    EventKind.TASK_ASSIGNED: "email_task_updates",
    EventKind.TASK_REASSIGNED: "email_task_updates",
    EventKind.PROJECT_MEMBER_ADDED: "email_project_updates",
}

EDITABLE_FIELDS = set(DEFAULT_FLAGS) | {"realtime_notifications"}


async def get_or_create_preferences(store, user_id: str) -> UserPreferences:
    """Load preferences, inserting an all-enabled row if the user has none"""
    rows = await store.query("user_preferences", {"user_id": user_id}, limit=1)
    if rows:
        return UserPreferences.model_validate(rows[0])

    print(f"[PREFS] Creating default preferences for {user_id}")
    try:
        created = await store.insert(
            "user_preferences", {"user_id": user_id, **DEFAULT_FLAGS}
        )
    except Exception as e:
        print(f"[PREFS] Could not create default preferences for {user_id}: {e}")
        return UserPreferences(user_id=user_id, **DEFAULT_FLAGS)
    if created:
        return UserPreferences.model_validate(created)
    return UserPreferences(user_id=user_id, **DEFAULT_FLAGS)


def is_email_enabled(preferences: UserPreferences, kind: EventKind) -> bool:
    """Master switch AND the event's category flag; null counts as enabled"""
    master = preferences.email_notifications
    category = getattr(preferences, CATEGORY_FLAGS[kind])
    return master is not False and category is not False


async def update_preferences(
    store, user_id: str, patch: Dict[str, Any]
) -> UserPreferences:
    """Apply a partial update to the caller's preferences"""
    current = await get_or_create_preferences(store, user_id)
    changes = {k: v for k, v in patch.items() if k in EDITABLE_FIELDS}
    if not changes or not current.id:
        return current.model_copy(update=changes)

    updated = await store.update("user_preferences", current.id, changes)
    if updated:
        return UserPreferences.model_validate(updated)
    return current.model_copy(update=changes)
