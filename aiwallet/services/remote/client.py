"""
Durable Backend HTTP client.

Thin wrapper over the AIWallet JSON API. Every method makes exactly one
request bounded by a timeout and returns the typed result parsed from the
response body.

A definitive answer from the server (`success: false` included) is
returned as a result. Anything that means "the server could not be
consulted" raises BackendUnavailableError instead:
- connection errors, DNS failures, timeouts
- non-2xx HTTP status
- a body that is not a JSON object of the expected shape
"""

from typing import Any, Optional
from urllib.parse import quote

import requests
import structlog
from pydantic import ValidationError

from aiwallet.models.results import (
    DeleteResult,
    HealthStatus,
    LoginResult,
    OperationResult,
    PlanListResult,
    PlanResult,
    RegisterResult,
    ShareResult,
    SubscriptionResult,
    UserResult,
)
from aiwallet.services.storage.interface import BackendUnavailableError


logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_MS = 3000


def _seg(value: str) -> str:
    """Quote a path segment (user and plan ids come from callers)."""
    return quote(str(value), safe="")


class RemoteAccountClient:
    """
    Client for the AIWallet API server.

    Args:
        base_url: Server root, e.g. "http://localhost:3000"
        timeout_ms: Bound for every data operation
        session: Optional requests.Session (shared connection pool, tests)
    """

    def __init__(
        self,
        base_url: str,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_ms = timeout_ms
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/json")

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
        timeout_ms: Optional[int] = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        timeout = (timeout_ms or self.timeout_ms) / 1000.0

        try:
            response = self.session.request(method, url, json=body, timeout=timeout)
        except requests.RequestException as e:
            raise BackendUnavailableError(f"{method} {path} failed: {e}")

        if not response.ok:
            raise BackendUnavailableError(
                f"{method} {path} returned HTTP {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise BackendUnavailableError(f"{method} {path} returned invalid JSON: {e}")

        if not isinstance(data, dict):
            raise BackendUnavailableError(f"{method} {path} returned a non-object body")
        return data

    def _call(self, result_cls: type[OperationResult], method: str, path: str, body=None):
        data = self._request(method, path, body)
        try:
            return result_cls.model_validate(data)
        except ValidationError as e:
            raise BackendUnavailableError(f"{method} {path} returned an unexpected body: {e}")

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    def health(self, timeout_ms: Optional[int] = None) -> HealthStatus:
        data = self._request("GET", "/api/health", timeout_ms=timeout_ms)
        try:
            return HealthStatus.model_validate(data)
        except ValidationError as e:
            raise BackendUnavailableError(f"Unexpected health body: {e}")

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def register(self, email: str, username: str, password: str) -> RegisterResult:
        return self._call(RegisterResult, "POST", "/api/register", {
            "email": email,
            "username": username,
            "password": password,
        })

    def login(self, email_or_username: str, password: str) -> LoginResult:
        return self._call(LoginResult, "POST", "/api/login", {
            "emailOrUsername": email_or_username,
            "password": password,
        })

    def get_user(self, user_id: str) -> UserResult:
        return self._call(UserResult, "GET", f"/api/user/{_seg(user_id)}")

    def update_subscription(
        self,
        user_id: str,
        user_plan: Optional[str],
        plan_purchase_date: Optional[str],
    ) -> SubscriptionResult:
        return self._call(SubscriptionResult, "POST", f"/api/user/{_seg(user_id)}/subscription", {
            "userPlan": user_plan or None,
            "planPurchaseDate": plan_purchase_date or None,
        })

    def cancel_subscription(self, user_id: str) -> SubscriptionResult:
        return self._call(SubscriptionResult, "DELETE", f"/api/user/{_seg(user_id)}/subscription")

    def delete_account(self, user_id: str) -> DeleteResult:
        return self._call(DeleteResult, "DELETE", f"/api/user/{_seg(user_id)}")

    # -------------------------------------------------------------------------
    # Plans
    # -------------------------------------------------------------------------

    def create_plan(self, user_id: str, name: str, description: Optional[str], content: Any) -> PlanResult:
        return self._call(PlanResult, "POST", f"/api/user/{_seg(user_id)}/plans", {
            "name": name,
            "description": description,
            "content": content,
        })

    def list_plans(self, user_id: str) -> PlanListResult:
        return self._call(PlanListResult, "GET", f"/api/user/{_seg(user_id)}/plans")

    def list_shared_plans(self, user_id: str) -> PlanListResult:
        return self._call(PlanListResult, "GET", f"/api/user/{_seg(user_id)}/shared-plans")

    def get_plan(self, plan_id: str) -> PlanResult:
        return self._call(PlanResult, "GET", f"/api/plans/{_seg(plan_id)}")

    def update_plan(self, plan_id: str, updates: dict[str, Any]) -> PlanResult:
        return self._call(PlanResult, "PATCH", f"/api/plans/{_seg(plan_id)}", updates)

    def delete_plan(self, plan_id: str) -> DeleteResult:
        return self._call(DeleteResult, "DELETE", f"/api/plans/{_seg(plan_id)}")

    def share_plan(self, plan_id: str, owner_id: str, target_email: str, access_level: str) -> ShareResult:
        return self._call(ShareResult, "POST", f"/api/plans/{_seg(plan_id)}/shares", {
            "ownerId": owner_id,
            "targetEmail": target_email,
            "accessLevel": access_level,
        })

    def unshare_plan(self, plan_id: str, target_user_id: str) -> ShareResult:
        return self._call(
            ShareResult, "DELETE", f"/api/plans/{_seg(plan_id)}/shares/{_seg(target_user_id)}"
        )
