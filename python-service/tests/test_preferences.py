import pytest

from models import UserPreferences
from preferences import get_or_create_preferences, is_email_enabled, update_preferences
from templates import EventKind
from tests.fakes import FakeStore


@pytest.mark.asyncio
async def test_get_or_create_inserts_once():
    store = FakeStore()

    first = await get_or_create_preferences(store, "user-1")
    second = await get_or_create_preferences(store, "user-1")

    assert first.id == second.id
    assert len(store.tables["user_preferences"]) == 1
    assert store.touched("user_preferences").count(("insert", "user_preferences")) == 1


@pytest.mark.asyncio
async def test_default_row_enables_sound():
    store = FakeStore()

    prefs = await get_or_create_preferences(store, "user-1")

    row = store.tables["user_preferences"][0]
    assert row["sound_enabled"] is True
    assert row["email_notifications"] is True
    assert prefs.sound_enabled is True


@pytest.mark.asyncio
async def test_failed_default_insert_falls_back_to_enabled(mocker):
    store = FakeStore()
    mocker.patch.object(
        store,
        "insert",
        mocker.AsyncMock(side_effect=Exception("duplicate key value violates unique constraint")),
    )

    prefs = await get_or_create_preferences(store, "user-1")

    assert prefs.user_id == "user-1"
    assert prefs.id is None
    assert is_email_enabled(prefs, EventKind.BID_RECEIVED) is True


@pytest.mark.parametrize(
    "flags,kind,expected",
    [
        ({}, EventKind.BID_RECEIVED, True),
        ({"email_notifications": False}, EventKind.TASK_ASSIGNED, False),
        ({"email_bidding_updates": False}, EventKind.BID_RECEIVED, False),
        ({"email_bidding_updates": False}, EventKind.TASK_ASSIGNED, True),
        ({"email_task_updates": False}, EventKind.TASK_REASSIGNED, False),
        ({"email_project_updates": False}, EventKind.PROJECT_MEMBER_ADDED, False),
        ({"email_notifications": None, "email_project_updates": None}, EventKind.PROJECT_MEMBER_ADDED, True),
    ],
)
def test_is_email_enabled(flags, kind, expected):
    prefs = UserPreferences(user_id="user-1", **flags)

    assert is_email_enabled(prefs, kind) is expected


@pytest.mark.asyncio
async def test_update_ignores_unknown_fields():
    store = FakeStore()

    updated = await update_preferences(
        store, "user-1", {"email_task_updates": False, "user_id": "someone-else"}
    )

    assert updated.email_task_updates is False
    assert updated.user_id == "user-1"
    row = store.tables["user_preferences"][0]
    assert row["email_task_updates"] is False
    assert row["user_id"] == "user-1"
