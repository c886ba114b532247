"""
Account Data Models for AIWallet

These models define the records held by both stores (the Durable Backend's
snapshot file and the client's local mirror). They serialize to the
camelCase layout the AIWallet web pages write to `users.json` and to
localStorage, so existing data files load unchanged.

DESIGN DECISION: Timestamps are kept as ISO-8601 strings rather than
datetime objects. Records are copied between stores verbatim and a GetUser
payload must come back byte-identical, which a datetime round-trip would
not guarantee for values written by other clients.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    """Current UTC time in the `2024-01-31T12:00:00.000Z` form."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_user_id() -> str:
    return uuid4().hex


def new_plan_id() -> str:
    return f"plan_{uuid4().hex}"


def new_share_id() -> str:
    return f"share_{uuid4().hex}"


class AccessLevel(str, Enum):
    """Access granted to the target of a plan share."""
    VIEW = "view"
    EDIT = "edit"


class WireModel(BaseModel):
    """Base for records stored as camelCase JSON."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# USER
# =============================================================================

class UserRecord(WireModel):
    """
    A registered user.

    `password` holds the base64 credential (see aiwallet.security). It is
    optional because the mirror may learn about a user from a payload that
    never carried one (e.g. a GetUser response).
    """

    id: str = Field(default_factory=new_user_id)
    email: str
    username: str
    password: Optional[str] = None
    created_at: str = Field(default_factory=utc_now_iso)
    user_plan: Optional[str] = None
    plan_purchase_date: Optional[str] = None
    plans: list[str] = Field(default_factory=list)
    shared_plans: list[str] = Field(default_factory=list)

    def public_dict(self) -> dict[str, Any]:
        """Wire form without the credential."""
        data = self.to_wire()
        data.pop("password", None)
        return data


# =============================================================================
# PLANS AND SHARING
# =============================================================================

class ShareTarget(WireModel):
    """Entry of a plan's `sharedWith` list."""

    user_id: str
    email: str
    access_level: AccessLevel = AccessLevel.VIEW
    shared_at: str = Field(default_factory=utc_now_iso)


class PlanRecord(WireModel):
    """A financial plan owned by one user."""

    id: str = Field(default_factory=new_plan_id)
    user_id: str
    name: str
    description: Optional[str] = None
    content: Any = None
    created_at: str = Field(default_factory=utc_now_iso)
    is_public: bool = False
    shared_with: list[ShareTarget] = Field(default_factory=list)


class ShareGrant(WireModel):
    """A (plan, target user) access grant."""

    id: str = Field(default_factory=new_share_id)
    plan_id: str
    owner_id: str
    owner_username: Optional[str] = None
    shared_with_user_id: str
    shared_with_email: str
    access_level: AccessLevel = AccessLevel.VIEW
    shared_at: str = Field(default_factory=utc_now_iso)


# =============================================================================
# SNAPSHOT AND SESSION
# =============================================================================

class AccountSnapshot(WireModel):
    """
    The whole document a store reads and writes in one transaction.

    Mirrors the layout of `users.json` / `database.json`:
    {"users": [...], "plans": [...], "sharedPlans": [...], ...}
    """

    users: list[UserRecord] = Field(default_factory=list)
    plans: list[PlanRecord] = Field(default_factory=list)
    shared_plans: list[ShareGrant] = Field(default_factory=list)
    api_version: str = "1.0"
    last_updated: Optional[str] = None

    _dirty: bool = PrivateAttr(default=False)

    def find_user(self, user_id: str) -> Optional[UserRecord]:
        return next((u for u in self.users if u.id == user_id), None)

    def find_user_by_login(self, email_or_username: str) -> Optional[UserRecord]:
        return next(
            (u for u in self.users
             if u.email == email_or_username or u.username == email_or_username),
            None,
        )

    def find_plan(self, plan_id: str) -> Optional[PlanRecord]:
        return next((p for p in self.plans if p.id == plan_id), None)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def touch(self) -> None:
        """Mark the snapshot as changed so the enclosing transaction saves it."""
        self.last_updated = utc_now_iso()
        self._dirty = True


class Session(WireModel):
    """Convenience scalar keys describing the signed-in user."""

    user_id: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    user_plan: Optional[str] = None
    plan_purchase_date: Optional[str] = None

    @property
    def is_logged_in(self) -> bool:
        return bool(self.user_id and self.username)
