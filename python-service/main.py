"""
Build Plan Quantify Python Service

Endpoints:
- GET  /bid-requests - Open bid requests with bid_count / lowest_bid
- POST /bid-requests - Create a bid request
- GET  /bid-requests/{id}/bids - Bids on a request, cheapest first
- POST /bid-requests/{id}/bids - Submit a bid (notifies the request owner)
- POST /webhooks/notify - Database webhook -> notification email
- GET/PUT /preferences - Notification preferences
- POST /vendors, /calculator, /ai/chat, /floor-plans
"""

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

# Load environment variables (check both python-service/.env and parent .env)
load_dotenv()  # python-service/.env
load_dotenv(dotenv_path="../.env")  # parent .env


# Also check for VITE_ prefixed vars (from frontend .env)
def get_env(key: str) -> str:
    return os.getenv(key) or os.getenv(f"VITE_{key}") or ""


# Set normalized env vars
if not os.getenv("SUPABASE_URL"):
    os.environ["SUPABASE_URL"] = get_env("SUPABASE_URL")
if not os.getenv("SUPABASE_SERVICE_KEY"):
    os.environ["SUPABASE_SERVICE_KEY"] = get_env("SUPABASE_SERVICE_KEY") or get_env(
        "SUPABASE_ANON_KEY"
    )
if not os.getenv("GEMINI_API_KEY"):
    os.environ["GEMINI_API_KEY"] = get_env("GEMINI_API_KEY")
if not os.getenv("APP_URL"):
    os.environ["APP_URL"] = get_env("APP_URL")

# Import our modules
import ai
import bidding
import projects
from auth import AuthUser, SupabaseAuth
from calculator import calculate_materials
from db import SupabaseStore
from errors import AuthRequiredError, ForbiddenError, NotFoundError, ValidationError
from notifications import ChangeEvent, DispatchOutcome, NotificationDispatcher
from preferences import get_or_create_preferences, update_preferences
from templates import format_number
from vendors import create_vendor_profile, get_vendor_for_user

# ═══════════════════════════════════════════════════════════════
# APP SETUP
# ═══════════════════════════════════════════════════════════════

app = FastAPI(
    title="Build Plan Quantify API",
    description="Construction bidding, notifications and AI tools",
    version="1.0.0",
)

# CORS - allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,  # Must be False when allow_origins=["*"]
    allow_methods=["*"],
    allow_headers=["*"],
)

print("[BOOT] Build Plan Quantify Service v1.0")
print(f"[BOOT] SUPABASE_URL: {'OK' if os.getenv('SUPABASE_URL') else 'MISSING'}")
print(
    f"[BOOT] SUPABASE_SERVICE_KEY: {'OK' if os.getenv('SUPABASE_SERVICE_KEY') else 'MISSING'}"
)
print(f"[BOOT] RESEND_API_KEY: {'OK' if os.getenv('RESEND_API_KEY') else 'MISSING (logging emails)'}")
print(f"[BOOT] GEMINI_API_KEY: {'OK' if os.getenv('GEMINI_API_KEY') else 'MISSING'}")
print(f"[BOOT] LOVABLE_API_KEY: {'OK' if os.getenv('LOVABLE_API_KEY') else 'MISSING'}")


# ═══════════════════════════════════════════════════════════════
# DEPENDENCIES
# ═══════════════════════════════════════════════════════════════

store = SupabaseStore()
supabase_auth = SupabaseAuth()
bearer = HTTPBearer(auto_error=False)


def get_store():
    return store


def get_auth():
    return supabase_auth


def get_dispatcher(
    store=Depends(get_store), auth=Depends(get_auth)
) -> NotificationDispatcher:
    return NotificationDispatcher(store, auth)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    auth=Depends(get_auth),
) -> Optional[AuthUser]:
    if credentials is None:
        return None
    return await auth.get_current_user(credentials.credentials)


def to_http_exception(tag: str, e: Exception) -> HTTPException:
    """Domain error -> HTTP status"""
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=e.message)
    if isinstance(e, AuthRequiredError):
        return HTTPException(status_code=401, detail=e.message)
    if isinstance(e, ForbiddenError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ai.ProviderError):
        status = {
            ai.ProviderErrorKind.RATE_LIMITED: 429,
            ai.ProviderErrorKind.PAYMENT_REQUIRED: 402,
        }.get(e.kind, 502)
        return HTTPException(status_code=status, detail=e.message)

    print(f"[{tag}] ERROR: {e}")
    return HTTPException(status_code=500, detail=str(e))


# ═══════════════════════════════════════════════════════════════
# REQUEST/RESPONSE MODELS
# ═══════════════════════════════════════════════════════════════


class BidRequestCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    budget: Optional[float] = None
    delivery_location: Optional[str] = None
    delivery_deadline: Optional[str] = None
    project_id: Optional[str] = None


class BidCreate(BaseModel):
    price: Optional[float] = None
    delivery_time_days: Optional[float] = None
    notes: Optional[str] = None


class StatusUpdate(BaseModel):
    status: str


class TaskCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    due_date: Optional[str] = None
    assigned_to: Optional[str] = None


class TaskAssign(BaseModel):
    assigned_to: Optional[str] = None


class MemberCreate(BaseModel):
    user_id: Optional[str] = None
    role: Optional[str] = None


class RoleUpdate(BaseModel):
    role: str


class PreferencesUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    email_bidding_updates: Optional[bool] = None
    email_task_updates: Optional[bool] = None
    email_project_updates: Optional[bool] = None
    realtime_notifications: Optional[str] = None
    sound_enabled: Optional[bool] = None


class VendorCreate(BaseModel):
    company_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    business_license: Optional[str] = None
    tax_id: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None


class CalculatorRequest(BaseModel):
    material_type: str = "concrete"
    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    thickness: Optional[float] = None
    mix_ratio: str = "1:2:4"


class ChatRequest(BaseModel):
    message: Optional[str] = None


class ChatResponse(BaseModel):
    response: str


class FloorPlanRequest(BaseModel):
    prompt: Optional[str] = None
    rooms: Optional[int] = None
    sqft: Optional[int] = None
    style: Optional[str] = None


class FloorPlanResponse(BaseModel):
    image_url: str
    specs: Dict[str, Any]


# ═══════════════════════════════════════════════════════════════
# HEALTH CHECK
# ═══════════════════════════════════════════════════════════════


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": "1.0.0",
        "services": {
            "supabase": bool(os.getenv("SUPABASE_URL")),
            "resend": bool(os.getenv("RESEND_API_KEY")),
            "gemini": bool(os.getenv("GEMINI_API_KEY")),
            "lovable": bool(os.getenv("LOVABLE_API_KEY")),
        },
    }


# ═══════════════════════════════════════════════════════════════
# BID REQUESTS
# ═══════════════════════════════════════════════════════════════


def _with_label(request: Dict[str, Any]) -> Dict[str, Any]:
    if request["bid_count"] == 0:
        label = "No bids yet"
    else:
        label = f"${format_number(request['lowest_bid'])}"
    return {**request, "lowest_bid_label": label}


@app.get("/bid-requests")
async def list_bid_requests(limit: Optional[int] = None, store=Depends(get_store)):
    """Open bid requests, newest first, with live bid stats"""
    try:
        requests = await bidding.list_open_requests_with_stats(store, limit=limit)
    except Exception as e:
        raise to_http_exception("BIDS", e)
    return [_with_label(r) for r in requests]


@app.post("/bid-requests", status_code=201)
async def create_bid_request(
    request: BidRequestCreate,
    store=Depends(get_store),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    try:
        return await bidding.create_bid_request(
            store, user, request.model_dump(exclude_none=True)
        )
    except Exception as e:
        raise to_http_exception("BIDS", e)


@app.get("/bid-requests/{request_id}")
async def get_bid_request(request_id: str, store=Depends(get_store)):
    try:
        return await bidding.get_bid_request(store, request_id)
    except Exception as e:
        raise to_http_exception("BIDS", e)


@app.patch("/bid-requests/{request_id}/status")
async def update_bid_request_status(
    request_id: str,
    request: StatusUpdate,
    store=Depends(get_store),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    try:
        return await bidding.update_bid_request_status(
            store, user, request_id, request.status
        )
    except Exception as e:
        raise to_http_exception("BIDS", e)


# ═══════════════════════════════════════════════════════════════
# BIDS
# ═══════════════════════════════════════════════════════════════


@app.get("/bid-requests/{request_id}/bids")
async def list_bids(request_id: str, store=Depends(get_store)):
    """Bids sorted by price ascending; the first one is marked is_lowest"""
    try:
        return await bidding.list_bids_for_request(store, request_id)
    except Exception as e:
        raise to_http_exception("BIDS", e)


@app.post("/bid-requests/{request_id}/bids", status_code=201)
async def submit_bid(
    request_id: str,
    request: BidCreate,
    store=Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    """
    Submit a bid as the caller's vendor profile.

    - Requires a signed-in user with a vendor profile
    - The request owner is emailed; delivery problems never fail the bid
    """
    try:
        if user is None:
            raise AuthRequiredError("Please sign in to submit a bid.")
        vendor = await get_vendor_for_user(store, user.id)
        if not vendor:
            raise ForbiddenError("Only registered vendors can submit bids")

        return await bidding.submit_bid(
            store,
            request_id,
            vendor["id"],
            request.model_dump(exclude_none=True),
            dispatcher=dispatcher,
        )
    except Exception as e:
        raise to_http_exception("BIDS", e)


# ═══════════════════════════════════════════════════════════════
# PROJECTS / TASKS / MEMBERS
# ═══════════════════════════════════════════════════════════════


@app.get("/projects")
async def list_projects(
    store=Depends(get_store), user: Optional[AuthUser] = Depends(get_current_user)
):
    """Projects the caller owns or is a member of"""
    try:
        return await projects.list_projects(store, user)
    except Exception as e:
        raise to_http_exception("PROJECTS", e)


@app.get("/projects/{project_id}")
async def get_project(
    project_id: str,
    store=Depends(get_store),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    try:
        return await projects.get_project(store, user, project_id)
    except Exception as e:
        raise to_http_exception("PROJECTS", e)


@app.get("/projects/{project_id}/tasks")
async def list_tasks(
    project_id: str,
    store=Depends(get_store),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    try:
        return await projects.list_tasks(store, user, project_id)
    except Exception as e:
        raise to_http_exception("PROJECTS", e)


@app.post("/projects/{project_id}/tasks", status_code=201)
async def create_task(
    project_id: str,
    request: TaskCreate,
    store=Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    """Create a task; if it is assigned, the assignee is emailed"""
    try:
        return await projects.create_task(
            store, user, project_id, request.model_dump(exclude_none=True), dispatcher
        )
    except Exception as e:
        raise to_http_exception("PROJECTS", e)


@app.patch("/tasks/{task_id}/assignee")
async def assign_task(
    task_id: str,
    request: TaskAssign,
    store=Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    """Set or clear the assignee; a new assignee is emailed"""
    try:
        return await projects.assign_task(
            store, user, task_id, request.assigned_to, dispatcher
        )
    except Exception as e:
        raise to_http_exception("PROJECTS", e)


@app.patch("/tasks/{task_id}/status")
async def update_task_status(
    task_id: str,
    request: StatusUpdate,
    store=Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    try:
        return await projects.update_task_status(
            store, user, task_id, request.status, dispatcher
        )
    except Exception as e:
        raise to_http_exception("PROJECTS", e)


@app.get("/projects/{project_id}/members")
async def list_members(
    project_id: str,
    store=Depends(get_store),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    try:
        return await projects.list_members(store, user, project_id)
    except Exception as e:
        raise to_http_exception("PROJECTS", e)


@app.post("/projects/{project_id}/members", status_code=201)
async def add_member(
    project_id: str,
    request: MemberCreate,
    store=Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    """Owner only. The new member is emailed."""
    try:
        return await projects.add_member(
            store, user, project_id, request.user_id, request.role, dispatcher
        )
    except Exception as e:
        raise to_http_exception("PROJECTS", e)


@app.patch("/members/{member_id}/role")
async def update_member_role(
    member_id: str,
    request: RoleUpdate,
    store=Depends(get_store),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    try:
        return await projects.update_member_role(store, user, member_id, request.role)
    except Exception as e:
        raise to_http_exception("PROJECTS", e)


@app.delete("/members/{member_id}", status_code=204)
async def remove_member(
    member_id: str,
    store=Depends(get_store),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    try:
        await projects.remove_member(store, user, member_id)
    except Exception as e:
        raise to_http_exception("PROJECTS", e)


# ═══════════════════════════════════════════════════════════════
# POST /webhooks/notify
# ═══════════════════════════════════════════════════════════════


@app.post("/webhooks/notify", response_model=DispatchOutcome)
async def notify_webhook(
    change: ChangeEvent,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """
    Database webhook for bids / tasks / project_members changes.

    Always 200: the outcome says whether an email was delivered or why
    it was skipped.
    """
    return await dispatcher.dispatch(change)


# ═══════════════════════════════════════════════════════════════
# PREFERENCES
# ═══════════════════════════════════════════════════════════════


@app.get("/preferences")
async def get_preferences(
    store=Depends(get_store),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    try:
        if user is None:
            raise AuthRequiredError()
        return await get_or_create_preferences(store, user.id)
    except Exception as e:
        raise to_http_exception("PREFS", e)


@app.put("/preferences")
async def put_preferences(
    request: PreferencesUpdate,
    store=Depends(get_store),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    try:
        if user is None:
            raise AuthRequiredError()
        return await update_preferences(
            store, user.id, request.model_dump(exclude_unset=True)
        )
    except Exception as e:
        raise to_http_exception("PREFS", e)


# ═══════════════════════════════════════════════════════════════
# POST /vendors
# ═══════════════════════════════════════════════════════════════


@app.post("/vendors", status_code=201)
async def become_vendor(
    request: VendorCreate,
    store=Depends(get_store),
    user: Optional[AuthUser] = Depends(get_current_user),
):
    try:
        return await create_vendor_profile(store, user, request.model_dump())
    except Exception as e:
        raise to_http_exception("VENDOR", e)


# ═══════════════════════════════════════════════════════════════
# POST /calculator
# ═══════════════════════════════════════════════════════════════


@app.post("/calculator")
async def calculator(request: CalculatorRequest) -> Dict[str, float]:
    try:
        return calculate_materials(
            request.material_type,
            request.length,
            request.width,
            request.height,
            thickness=request.thickness,
            mix_ratio=request.mix_ratio,
        )
    except Exception as e:
        raise to_http_exception("CALC", e)


# ═══════════════════════════════════════════════════════════════
# AI
# ═══════════════════════════════════════════════════════════════


@app.post("/ai/chat", response_model=ChatResponse)
async def ai_chat(request: ChatRequest):
    try:
        return ChatResponse(response=await ai.chat(request.message or ""))
    except Exception as e:
        raise to_http_exception("AI", e)


@app.post("/floor-plans", response_model=FloorPlanResponse)
async def floor_plan(request: FloorPlanRequest):
    try:
        image_url = await ai.generate_floor_plan(
            prompt=request.prompt,
            rooms=request.rooms,
            sqft=request.sqft,
            style=request.style,
        )
    except Exception as e:
        raise to_http_exception("AI", e)

    return FloorPlanResponse(image_url=image_url, specs=request.model_dump())


# ═══════════════════════════════════════════════════════════════
# RUN SERVER
# ═══════════════════════════════════════════════════════════════

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
