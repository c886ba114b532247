"""
Operation Result Models

Every account operation, whichever store served it, returns one of these.
On the wire they render as the `{success, message, ...}` objects the web
pages expect, so the UI can print `message` directly.

DESIGN DECISION: Failures are values, not exceptions. The `error` tag lets
Python callers branch on the kind of failure without parsing messages.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ErrorKind(str, Enum):
    """Why an operation failed."""
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INVALID_CREDENTIAL = "invalid_credential"
    FORBIDDEN = "forbidden"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    STORAGE_UNAVAILABLE = "storage_unavailable"


class OperationResult(BaseModel):
    """Common shape of every result."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    success: bool
    message: Optional[str] = None
    error: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, message: Optional[str] = None, **payload: Any):
        return cls(success=True, message=message, **payload)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str):
        return cls(success=False, error=kind, message=message)

    def to_wire(self) -> dict[str, Any]:
        """
        Render the JSON body.

        Failures carry only `success`, `message` and `error`; successes
        carry their full payload (nulls included) and no `error`.
        """
        data = self.model_dump(by_alias=True, mode="json")
        if not self.success:
            return {"success": False, "message": data["message"], "error": data["error"]}
        data.pop("error", None)
        if data.get("message") is None:
            data.pop("message", None)
        return data


class RegisterResult(OperationResult):
    user_id: Optional[str] = None


class LoginResult(OperationResult):
    user_id: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    user_plan: Optional[str] = None
    plan_purchase_date: Optional[str] = None


class UserResult(OperationResult):
    user: Optional[dict[str, Any]] = None


class SubscriptionResult(OperationResult):
    pass


class DeleteResult(OperationResult):
    pass


class PlanResult(OperationResult):
    plan_id: Optional[str] = None
    plan: Optional[dict[str, Any]] = None


class PlanListResult(OperationResult):
    plans: list[dict[str, Any]] = []


class ShareResult(OperationResult):
    share_id: Optional[str] = None
    plan: Optional[dict[str, Any]] = None


class HealthStatus(BaseModel):
    """Body of GET /api/health. Only an explicit `status: "ok"` means alive."""
    status: str
    server: Optional[str] = None
