"""
Live Bidding

- list_open_requests_with_stats: open bid requests + bid_count / lowest_bid
- list_bids_for_request: bids for one request, cheapest first
- create_bid_request / submit_bid: validated writes
- update_bid_request_status: owner closes / awards / cancels

Stats are computed on every read and never stored.
"""

from typing import Any, Dict, List, Optional

from errors import AuthRequiredError, ForbiddenError, NotFoundError, ValidationError
from models import BID_STATUS_SUBMITTED, BidCategory, BidRequestStatus
from validation import is_blank, parse_choice, parse_date, parse_number, require

REQUIRED_REQUEST_FIELDS = [
    "title",
    "category",
    "quantity",
    "unit",
    "description",
    "delivery_location",
]


def compute_stats(bids: List[Dict[str, Any]]) -> Dict[str, Any]:
    """bid_count over all rows, lowest_bid over priced rows (None when there are none)"""
    prices = [float(b["price"]) for b in bids if b.get("price") is not None]
    return {
        "bid_count": len(bids),
        "lowest_bid": min(prices) if prices else None,
    }


# ═══════════════════════════════════════════════════════════════
# READS
# ═══════════════════════════════════════════════════════════════


async def list_open_requests_with_stats(
    store, limit: Optional[int] = None
) -> List[Dict[str, Any]]:
    """
    All open bid requests, newest first, each with bid_count and lowest_bid.
    Bid prices are fetched in one query for the whole page.
    """
    if limit is not None and limit < 1:
        raise ValidationError("limit", "limit must be at least 1")

    requests = await store.query(
        "bid_requests",
        {"status": BidRequestStatus.OPEN.value},
        order=[("created_at", True)],
        limit=limit,
    )
    if not requests:
        return []

    request_ids = [r["id"] for r in requests]
    bids = await store.query(
        "bids", {"bid_request_id": request_ids}, columns="id, bid_request_id, price"
    )

    by_request: Dict[str, List[Dict[str, Any]]] = {rid: [] for rid in request_ids}
    for bid in bids:
        by_request.setdefault(bid["bid_request_id"], []).append(bid)

    results = []
    for request in requests:
        results.append({**request, **compute_stats(by_request[request["id"]])})

    print(f"[BIDS] Listed {len(results)} open requests")
    return results


async def get_bid_request(store, request_id: str) -> Dict[str, Any]:
    bid_request = await store.get("bid_requests", request_id)
    if not bid_request:
        raise NotFoundError("Bid request", request_id)
    return bid_request


async def list_bids_for_request(store, request_id: str) -> List[Dict[str, Any]]:
    """
    Bids on a request sorted by price ascending (ties: oldest first),
    joined to vendor company_name and rating. The first bid is marked
    is_lowest. Unknown requests return an empty list.
    """
    bids = await store.query(
        "bids",
        {"bid_request_id": request_id},
        order=[("price", False), ("created_at", False)],
    )
    if not bids:
        return []

    vendor_ids = sorted({b["vendor_id"] for b in bids if b.get("vendor_id")})
    vendors = {}
    if vendor_ids:
        rows = await store.query(
            "vendor_profiles", {"id": vendor_ids}, columns="id, company_name, rating"
        )
        vendors = {v["id"]: v for v in rows}

    results = []
    for index, bid in enumerate(bids):
        vendor = vendors.get(bid.get("vendor_id"), {})
        results.append(
            {
                **bid,
                "vendor_company_name": vendor.get("company_name"),
                "vendor_rating": vendor.get("rating"),
                "is_lowest": index == 0,
            }
        )
    return results


# ═══════════════════════════════════════════════════════════════
# WRITES
# ═══════════════════════════════════════════════════════════════


def validate_bid_request(form: Dict[str, Any]) -> Dict[str, Any]:
    """Check required fields and parse numbers/dates. Raises ValidationError."""
    require(form, REQUIRED_REQUEST_FIELDS)
    category = parse_choice("category", form["category"], BidCategory)

    quantity = parse_number("quantity", form["quantity"])
    if quantity <= 0:
        raise ValidationError("quantity", "quantity must be greater than 0")

    budget = None
    if not is_blank(form.get("budget")):
        budget = parse_number("budget", form["budget"])
        if budget < 0:
            raise ValidationError("budget", "budget cannot be negative")

    return {
        "title": str(form["title"]).strip(),
        "description": str(form["description"]).strip(),
        "category": category,
        "quantity": quantity,
        "unit": str(form["unit"]).strip(),
        "budget": budget,
        "delivery_location": str(form["delivery_location"]).strip(),
        "delivery_deadline": parse_date("delivery_deadline", form.get("delivery_deadline")),
    }


async def create_bid_request(store, user, form: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate and insert a bid request owned by the current user.

    Raises ValidationError / AuthRequiredError before touching the store.
    """
    data = validate_bid_request(form)

    if user is None:
        raise AuthRequiredError("Please sign in to create a bid request.")

    row = {
        **data,
        "user_id": user.id,
        "status": BidRequestStatus.OPEN.value,
    }
    if not is_blank(form.get("project_id")):
        row["project_id"] = form["project_id"]

    created = await store.insert("bid_requests", row)
    print(f"[BIDS] Created bid request {created.get('id') if created else '?'}: {data['title']}")
    return created


def validate_bid(form: Dict[str, Any]) -> Dict[str, Any]:
    if is_blank(form.get("price")):
        raise ValidationError("price")
    price = parse_number("price", form["price"])
    if price <= 0:
        raise ValidationError("price", "price must be greater than 0")

    if is_blank(form.get("delivery_time_days")):
        raise ValidationError("delivery_time_days")
    days = parse_number("delivery_time_days", form["delivery_time_days"])
    if days <= 0 or not days.is_integer():
        raise ValidationError(
            "delivery_time_days", "delivery_time_days must be a positive whole number"
        )

    notes = form.get("notes")
    return {
        "price": price,
        "delivery_time_days": int(days),
        "notes": notes.strip() if isinstance(notes, str) and notes.strip() else None,
    }


async def submit_bid(
    store,
    request_id: str,
    vendor_id: str,
    form: Dict[str, Any],
    dispatcher=None,
) -> Dict[str, Any]:
    """
    Insert a vendor's bid and notify the request owner.

    The notification runs after the insert and its outcome is only
    logged; a failed email never fails the bid.
    """
    data = validate_bid(form)
    if is_blank(vendor_id):
        raise ValidationError("vendor_id")

    await get_bid_request(store, request_id)

    bid = await store.insert(
        "bids",
        {
            **data,
            "bid_request_id": request_id,
            "vendor_id": vendor_id,
            "status": BID_STATUS_SUBMITTED,
        },
    )
    print(f"[BIDS] Vendor {vendor_id} bid {data['price']} on request {request_id}")

    if dispatcher is not None and bid:
        outcome = await dispatcher.dispatch(
            {"type": "INSERT", "table": "bids", "record": bid, "old_record": None}
        )
        print(f"[BIDS] Notification {outcome.status}: {outcome.reason or outcome.recipient}")

    return bid


async def update_bid_request_status(
    store, user, request_id: str, status: str
) -> Dict[str, Any]:
    """Owner sets any status; there are no transition rules."""
    if user is None:
        raise AuthRequiredError()
    try:
        new_status = BidRequestStatus(status)
    except ValueError:
        raise ValidationError("status", f"Unknown status: {status}")

    bid_request = await get_bid_request(store, request_id)
    if bid_request.get("user_id") != user.id:
        raise ForbiddenError("Only the request owner can change its status")

    updated = await store.update(
        "bid_requests", request_id, {"status": new_status.value}
    )
    print(f"[BIDS] Request {request_id} -> {new_status.value}")
    return updated or {**bid_request, "status": new_status.value}
