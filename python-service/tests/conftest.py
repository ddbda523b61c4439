# tests/conftest.py

import pytest

from tests.fakes import ASSIGNEE_ID, OWNER_ID, VENDOR_USER_ID, FakeAuth, FakeStore, RecordingMailer


# --- Fixtures ---
@pytest.fixture
def seeded_tables():
    return {
        "bid_requests": [
            {
                "id": "req-1",
                "user_id": OWNER_ID,
                "title": "500 bags of cement",
                "category": "cement",
                "quantity": 500,
                "unit": "bags",
                "description": "OPC 53 grade",
                "delivery_location": "Site A",
                "status": "open",
                "project_id": None,
                "created_at": "2025-01-01T10:00:00",
            },
            {
                "id": "req-2",
                "user_id": OWNER_ID,
                "title": "2 tons of rebar",
                "category": "steel",
                "quantity": 2,
                "unit": "tons",
                "description": "Fe500",
                "delivery_location": "Site B",
                "status": "open",
                "project_id": "proj-1",
                "created_at": "2025-01-02T10:00:00",
            },
        ],
        "vendor_profiles": [
            {"id": "vendor-1", "user_id": VENDOR_USER_ID, "company_name": "Acme Supplies", "rating": 4.5},
            {"id": "vendor-2", "user_id": "user-other", "company_name": "Brick & Co", "rating": 3.9},
        ],
        "projects": [
            {"id": "proj-1", "name": "Lakeside Villa", "type": "residential", "status": "active", "owner_id": OWNER_ID},
        ],
    }


@pytest.fixture
def store(seeded_tables):
    return FakeStore(seeded_tables)


@pytest.fixture
def auth():
    return FakeAuth(
        users={
            OWNER_ID: "owner@example.com",
            VENDOR_USER_ID: "vendor@example.com",
            ASSIGNEE_ID: "assignee@example.com",
            "user-no-email": None,
        },
        tokens={
            "owner-token": OWNER_ID,
            "vendor-token": VENDOR_USER_ID,
            "assignee-token": ASSIGNEE_ID,
        },
    )


@pytest.fixture
def mailer():
    return RecordingMailer()
