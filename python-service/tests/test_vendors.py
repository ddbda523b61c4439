import pytest

from auth import AuthUser
from errors import AuthRequiredError, ValidationError
from tests.fakes import FakeStore
from vendors import create_vendor_profile, get_vendor_for_user

FORM = {
    "company_name": "Acme Supplies",
    "contact_email": "sales@acme.test",
    "contact_phone": "555-0100",
    "address": "1 Quarry Rd",
    "city": "Springfield",
    "state": "IL",
    "zip_code": "62701",
}


@pytest.mark.asyncio
async def test_application_starts_pending():
    store = FakeStore()

    vendor = await create_vendor_profile(store, AuthUser(id="user-1"), {**FORM, "tax_id": " "})

    assert vendor["verification_status"] == "pending"
    assert vendor["rating"] == 0
    assert vendor["total_reviews"] == 0
    assert vendor["tax_id"] is None
    assert (await get_vendor_for_user(store, "user-1"))["id"] == vendor["id"]


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["company_name", "contact_phone", "city", "zip_code"])
async def test_required_fields(field):
    store = FakeStore()

    with pytest.raises(ValidationError) as exc:
        await create_vendor_profile(store, AuthUser(id="user-1"), {**FORM, field: ""})

    assert exc.value.field == field
    assert store.calls == []


@pytest.mark.asyncio
async def test_email_must_look_like_email():
    with pytest.raises(ValidationError) as exc:
        await create_vendor_profile(FakeStore(), AuthUser(id="user-1"), {**FORM, "contact_email": "acme"})

    assert exc.value.field == "contact_email"


@pytest.mark.asyncio
async def test_sign_in_required():
    store = FakeStore()

    with pytest.raises(AuthRequiredError):
        await create_vendor_profile(store, None, FORM)

    assert store.calls == []


@pytest.mark.asyncio
async def test_no_vendor_profile():
    assert await get_vendor_for_user(FakeStore(), "user-1") is None
