import pytest

from notifications import ChangeEvent, NotificationDispatcher, classify_change
from templates import EventKind
from tests.fakes import ASSIGNEE_ID, OWNER_ID, FailingMailer, SlowMailer


def bid_insert(**record):
    return {
        "type": "INSERT",
        "table": "bids",
        "record": {
            "id": "bid-9",
            "bid_request_id": "req-1",
            "vendor_id": "vendor-1",
            "price": 1200,
            "delivery_time_days": 5,
            **record,
        },
        "old_record": None,
    }


def task_change(op, assigned_to, old_assigned_to=None, **record):
    return {
        "type": op,
        "table": "tasks",
        "record": {
            "id": "task-1",
            "project_id": "proj-1",
            "title": "Pour slab",
            "assigned_to": assigned_to,
            **record,
        },
        "old_record": {"id": "task-1", "assigned_to": old_assigned_to} if op == "UPDATE" else None,
    }


@pytest.fixture
def dispatcher(store, auth, mailer):
    return NotificationDispatcher(store, auth, mailer=mailer, app_url="https://app.example.com/")


# ═══════════════════════════════════════════════════════════════
# CLASSIFICATION
# ═══════════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    "change,kind",
    [
        (bid_insert(), EventKind.BID_RECEIVED),
        (task_change("INSERT", ASSIGNEE_ID), EventKind.TASK_ASSIGNED),
        (task_change("INSERT", None), None),
        (task_change("UPDATE", ASSIGNEE_ID, OWNER_ID), EventKind.TASK_REASSIGNED),
        (task_change("UPDATE", ASSIGNEE_ID, ASSIGNEE_ID), None),
        (task_change("UPDATE", None, ASSIGNEE_ID), None),
        ({"type": "INSERT", "table": "project_members", "record": {}}, EventKind.PROJECT_MEMBER_ADDED),
        ({"type": "DELETE", "table": "bids", "record": {}}, None),
        ({"type": "INSERT", "table": "projects", "record": {}}, None),
    ],
)
def test_classify_change(change, kind):
    assert classify_change(ChangeEvent.model_validate(change)) == kind


# ═══════════════════════════════════════════════════════════════
# DISPATCH
# ═══════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_unchanged_assignee_is_not_handled(dispatcher, store, mailer):
    outcome = await dispatcher.dispatch(task_change("UPDATE", ASSIGNEE_ID, ASSIGNEE_ID))

    assert outcome.skipped
    assert outcome.reason == "event not handled"
    assert store.touched("user_preferences") == []
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_bid_received_delivered_to_request_owner(dispatcher, store, mailer):
    outcome = await dispatcher.dispatch(bid_insert())

    assert outcome.delivered
    assert outcome.event_type == "bid_received"
    assert outcome.recipient == "owner@example.com"
    assert len(mailer.sent) == 1
    assert mailer.sent[0]["subject"] == "New Bid Received: 500 bags of cement"
    assert "https://app.example.com/marketplace" in mailer.sent[0]["html"]


@pytest.mark.asyncio
async def test_missing_preferences_are_created_enabled(dispatcher, store, mailer):
    assert store.tables.get("user_preferences", []) == []

    outcome = await dispatcher.dispatch(bid_insert())

    rows = store.tables["user_preferences"]
    assert len(rows) == 1
    assert rows[0]["user_id"] == OWNER_ID
    assert rows[0]["email_notifications"] is True
    assert rows[0]["email_bidding_updates"] is True
    assert rows[0]["email_task_updates"] is True
    assert rows[0]["email_project_updates"] is True
    assert rows[0]["sound_enabled"] is True
    assert outcome.delivered


@pytest.mark.asyncio
async def test_preference_insert_race_still_delivers(dispatcher, store, mailer, mocker):
    mocker.patch.object(
        store,
        "insert",
        mocker.AsyncMock(side_effect=Exception("duplicate key value violates unique constraint")),
    )

    outcome = await dispatcher.dispatch(bid_insert())

    assert outcome.delivered
    assert outcome.recipient == "owner@example.com"
    assert len(mailer.sent) == 1


@pytest.mark.asyncio
async def test_master_switch_off_wins_over_category(dispatcher, store, mailer):
    store.tables["user_preferences"] = [
        {"id": "pref-1", "user_id": OWNER_ID, "email_notifications": False, "email_bidding_updates": True}
    ]

    outcome = await dispatcher.dispatch(bid_insert())

    assert outcome.skipped
    assert outcome.reason == "notifications disabled"
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_category_switch_off(dispatcher, store, mailer):
    store.tables["user_preferences"] = [
        {"id": "pref-1", "user_id": ASSIGNEE_ID, "email_notifications": True, "email_task_updates": False}
    ]

    outcome = await dispatcher.dispatch(task_change("INSERT", ASSIGNEE_ID))

    assert outcome.reason == "notifications disabled"
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_null_flags_count_as_enabled(dispatcher, store, mailer):
    store.tables["user_preferences"] = [
        {"id": "pref-1", "user_id": OWNER_ID, "email_notifications": None, "email_bidding_updates": None}
    ]

    outcome = await dispatcher.dispatch(bid_insert())

    assert outcome.delivered
    assert len(store.tables["user_preferences"]) == 1


@pytest.mark.asyncio
async def test_bid_request_not_found(dispatcher, mailer):
    outcome = await dispatcher.dispatch(bid_insert(bid_request_id="missing"))

    assert outcome.reason == "bid request not found"
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_recipient_not_found(dispatcher, mailer):
    outcome = await dispatcher.dispatch(task_change("INSERT", "ghost-user"))

    assert outcome.reason == "recipient not found"
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_recipient_without_email(dispatcher, mailer):
    outcome = await dispatcher.dispatch(task_change("INSERT", "user-no-email"))

    assert outcome.reason == "no email"
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_task_assigned_uses_project_and_owner(dispatcher, mailer):
    outcome = await dispatcher.dispatch(task_change("INSERT", ASSIGNEE_ID, priority="high"))

    assert outcome.delivered
    sent = mailer.sent[0]
    assert sent["to"] == "assignee@example.com"
    assert sent["subject"] == "Task Assigned: Pour slab"
    assert "Lakeside Villa" in sent["html"]
    assert "owner@example.com" in sent["html"]
    assert "https://app.example.com/project/proj-1" in sent["html"]


@pytest.mark.asyncio
async def test_task_reassigned_goes_to_new_assignee(dispatcher, mailer):
    outcome = await dispatcher.dispatch(task_change("UPDATE", ASSIGNEE_ID, OWNER_ID))

    assert outcome.delivered
    assert mailer.sent[0]["to"] == "assignee@example.com"
    assert mailer.sent[0]["subject"] == "Task Reassigned: Pour slab"


@pytest.mark.asyncio
async def test_project_member_added(dispatcher, mailer):
    outcome = await dispatcher.dispatch(
        {
            "type": "INSERT",
            "table": "project_members",
            "record": {"project_id": "proj-1", "user_id": ASSIGNEE_ID, "role": "editor"},
        }
    )

    assert outcome.delivered
    sent = mailer.sent[0]
    assert sent["subject"] == "Added to Project: Lakeside Villa"
    assert "editor" in sent["html"]
    assert "residential" in sent["html"]


@pytest.mark.asyncio
async def test_delivery_failure_is_a_skip(store, auth):
    dispatcher = NotificationDispatcher(store, auth, mailer=FailingMailer())

    outcome = await dispatcher.dispatch(bid_insert())

    assert outcome.skipped
    assert outcome.reason.startswith("delivery failed")
    assert "boom" in outcome.reason


@pytest.mark.asyncio
async def test_delivery_timeout_is_a_skip(store, auth):
    dispatcher = NotificationDispatcher(store, auth, mailer=SlowMailer(), timeout=0.01)

    outcome = await dispatcher.dispatch(bid_insert())

    assert outcome.skipped
    assert outcome.reason == "delivery failed: timed out after 0.01s"


@pytest.mark.asyncio
async def test_store_errors_never_escape(auth, mailer, mocker):
    store = mocker.Mock()
    store.get = mocker.AsyncMock(side_effect=RuntimeError("connection reset"))
    dispatcher = NotificationDispatcher(store, auth, mailer=mailer)

    outcome = await dispatcher.dispatch(bid_insert())

    assert outcome.skipped
    assert outcome.reason == "dispatch error: connection reset"
    assert outcome.event_type == "bid_received"


@pytest.mark.asyncio
async def test_malformed_event_is_a_skip(dispatcher):
    outcome = await dispatcher.dispatch({"record": {}})

    assert outcome.skipped
    assert outcome.reason.startswith("dispatch error")
    assert outcome.event_type is None
