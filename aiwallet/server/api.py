"""
AIWallet API server (the Durable Backend).

JSON endpoints over the snapshot file. Business failures are answered with
HTTP 200 and `{success: false, message, error}` so the client can tell a
definitive "no" (returned to the user) from an unreachable server (which
sends the client to its local mirror). Only genuine server faults produce
a non-2xx status.
"""

from pathlib import Path
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from aiwallet.config import Settings, get_settings
from aiwallet.models.results import HealthStatus
from aiwallet.services.accounts import AccountService
from aiwallet.services.storage import JsonFileSnapshotStore, SnapshotStore


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["accounts"])


# DTOs. Every field is optional so that missing values reach the account
# rules and get their own message instead of a framework 422.
class CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class RegisterRequest(CamelRequest):
    email: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(CamelRequest):
    email_or_username: Optional[str] = None
    password: Optional[str] = None


class SubscriptionRequest(CamelRequest):
    user_plan: Optional[str] = None
    plan_purchase_date: Optional[str] = None


class PlanCreateRequest(CamelRequest):
    name: Optional[str] = None
    description: Optional[str] = None
    content: Any = None


class ShareRequest(CamelRequest):
    owner_id: Optional[str] = None
    target_email: Optional[str] = None
    access_level: Optional[str] = "view"


def get_accounts(request: Request) -> AccountService:
    return request.app.state.accounts


# =============================================================================
# HEALTH
# =============================================================================

@router.get("/health")
def health():
    return HealthStatus(status="ok", server="available").model_dump()


# =============================================================================
# USERS
# =============================================================================

@router.post("/register")
def register(payload: Optional[RegisterRequest] = None, accounts: AccountService = Depends(get_accounts)):
    payload = payload or RegisterRequest()
    return accounts.register(payload.email, payload.username, payload.password).to_wire()


@router.post("/login")
def login(payload: Optional[LoginRequest] = None, accounts: AccountService = Depends(get_accounts)):
    payload = payload or LoginRequest()
    return accounts.login(payload.email_or_username, payload.password).to_wire()


@router.get("/user/{user_id}")
def get_user(user_id: str, accounts: AccountService = Depends(get_accounts)):
    return accounts.get_user(user_id).to_wire()


@router.post("/user/{user_id}/subscription")
def update_subscription(
    user_id: str,
    payload: Optional[SubscriptionRequest] = None,
    accounts: AccountService = Depends(get_accounts),
):
    payload = payload or SubscriptionRequest()
    return accounts.update_subscription(user_id, payload.user_plan, payload.plan_purchase_date).to_wire()


@router.delete("/user/{user_id}/subscription")
def cancel_subscription(user_id: str, accounts: AccountService = Depends(get_accounts)):
    return accounts.cancel_subscription(user_id).to_wire()


@router.delete("/user/{user_id}")
def delete_account(user_id: str, accounts: AccountService = Depends(get_accounts)):
    return accounts.delete_account(user_id).to_wire()


# =============================================================================
# PLANS
# =============================================================================

@router.post("/user/{user_id}/plans")
def create_plan(
    user_id: str,
    payload: Optional[PlanCreateRequest] = None,
    accounts: AccountService = Depends(get_accounts),
):
    payload = payload or PlanCreateRequest()
    return accounts.create_plan(user_id, payload.name, payload.description, payload.content).to_wire()


@router.get("/user/{user_id}/plans")
def list_plans(user_id: str, accounts: AccountService = Depends(get_accounts)):
    return accounts.list_plans(user_id).to_wire()


@router.get("/user/{user_id}/shared-plans")
def list_shared_plans(user_id: str, accounts: AccountService = Depends(get_accounts)):
    return accounts.list_shared_plans(user_id).to_wire()


@router.get("/plans/public")
def list_public_plans(accounts: AccountService = Depends(get_accounts)):
    return accounts.list_public_plans().to_wire()


@router.get("/plans/{plan_id}")
def get_plan(plan_id: str, accounts: AccountService = Depends(get_accounts)):
    return accounts.get_plan(plan_id).to_wire()


@router.patch("/plans/{plan_id}")
def update_plan(
    plan_id: str,
    updates: Optional[dict[str, Any]] = None,
    accounts: AccountService = Depends(get_accounts),
):
    return accounts.update_plan(plan_id, updates or {}).to_wire()


@router.delete("/plans/{plan_id}")
def delete_plan(plan_id: str, accounts: AccountService = Depends(get_accounts)):
    return accounts.delete_plan(plan_id).to_wire()


@router.post("/plans/{plan_id}/shares")
def share_plan(
    plan_id: str,
    payload: Optional[ShareRequest] = None,
    accounts: AccountService = Depends(get_accounts),
):
    payload = payload or ShareRequest()
    return accounts.share_plan(
        plan_id, payload.owner_id, payload.target_email, payload.access_level
    ).to_wire()


@router.delete("/plans/{plan_id}/shares/{target_user_id}")
def unshare_plan(plan_id: str, target_user_id: str, accounts: AccountService = Depends(get_accounts)):
    return accounts.unshare_plan(plan_id, target_user_id).to_wire()


# =============================================================================
# APPLICATION
# =============================================================================

async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("request_failed", path=request.url.path, method=request.method, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"},
    )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[SnapshotStore] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Configuration (defaults to get_settings())
        store: Snapshot store (defaults to the configured JSON file)
    """
    settings = settings or get_settings()
    server = settings.server
    store = store or JsonFileSnapshotStore(server.data_file)

    app = FastAPI(title="AIWallet API")
    app.state.accounts = AccountService(
        store, min_password_length=settings.app.min_password_length
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=server.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(Exception, unhandled_error)
    app.include_router(router)

    # Static pages are co-hosted under the API, after the API routes
    if server.static_dir and Path(server.static_dir).is_dir():
        app.mount("/", StaticFiles(directory=server.static_dir, html=True), name="static")

    logger.info(
        "api_configured",
        data_file=str(getattr(store, "path", "")),
        static_dir=server.static_dir,
    )
    return app
