"""
Vendor onboarding (vendor_profiles table)
"""

from typing import Any, Dict, Optional

from errors import AuthRequiredError, ValidationError
from models import VENDOR_STATUS_PENDING

# Step 1: company + contact, step 2: address
CONTACT_FIELDS = ["company_name", "contact_email", "contact_phone"]
ADDRESS_FIELDS = ["address", "city", "state", "zip_code"]
OPTIONAL_FIELDS = ["business_license", "tax_id", "description", "logo_url"]


def validate_vendor(form: Dict[str, Any]) -> Dict[str, Any]:
    data = {}
    for field in CONTACT_FIELDS + ADDRESS_FIELDS:
        value = form.get(field)
        if value is None or not str(value).strip():
            raise ValidationError(field)
        data[field] = str(value).strip()

    if "@" not in data["contact_email"]:
        raise ValidationError("contact_email", "contact_email must be an email address")

    for field in OPTIONAL_FIELDS:
        value = form.get(field)
        data[field] = str(value).strip() if value and str(value).strip() else None

    return data


async def create_vendor_profile(store, user, form: Dict[str, Any]) -> Dict[str, Any]:
    """Submit a vendor application; it starts as pending review."""
    data = validate_vendor(form)
    if user is None:
        raise AuthRequiredError("Please sign in to become a vendor.")

    row = {
        **data,
        "user_id": user.id,
        "verification_status": VENDOR_STATUS_PENDING,
        "rating": 0,
        "total_reviews": 0,
    }
    created = await store.insert("vendor_profiles", row)
    print(f"[VENDOR] Application submitted: {data['company_name']}")
    return created


async def get_vendor_for_user(store, user_id: str) -> Optional[Dict[str, Any]]:
    rows = await store.query("vendor_profiles", {"user_id": user_id}, limit=1)
    return rows[0] if rows else None
