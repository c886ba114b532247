"""
Account Service

The account rules of AIWallet, written once and run against any
SnapshotStore. The Durable Backend runs it over the JSON file; the Local
Mirror runs it over the client's key/value storage. Both therefore enforce
identical validation and return identical result shapes.

Rules:
- email and username are unique across a store
- passwords shorter than `min_password_length` are rejected
- login matches either the email or the username field
- a user's plans and share grants are removed with the user
"""

from functools import wraps
from typing import Any, Callable, Optional

import structlog

from aiwallet.models.account import (
    AccessLevel,
    AccountSnapshot,
    PlanRecord,
    ShareGrant,
    ShareTarget,
    UserRecord,
)
from aiwallet.models.results import (
    DeleteResult,
    ErrorKind,
    LoginResult,
    PlanListResult,
    PlanResult,
    RegisterResult,
    ShareResult,
    SubscriptionResult,
    UserResult,
)
from aiwallet.security import credential_matches, encode_credential
from aiwallet.services.storage.interface import SnapshotStore, StorageUnavailableError


logger = structlog.get_logger(__name__)

DEFAULT_MIN_PASSWORD_LENGTH = 8

# Plan fields a caller may change through update_plan, by wire and attribute name
UPDATABLE_PLAN_FIELDS = {
    "name": "name",
    "description": "description",
    "content": "content",
    "isPublic": "is_public",
    "is_public": "is_public",
}


def storage_guarded(result_cls):
    """Turn a StorageUnavailableError into a `storage_unavailable` result."""
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except StorageUnavailableError as e:
                logger.error("storage_unavailable", operation=func.__name__, error=str(e))
                return result_cls.fail(ErrorKind.STORAGE_UNAVAILABLE, str(e))
        return wrapper
    return decorator


class AccountService:
    """
    Register/login/subscription/plan operations over one snapshot store.
    """

    def __init__(
        self,
        store: SnapshotStore,
        min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH,
    ):
        self.store = store
        self.min_password_length = min_password_length

    # =========================================================================
    # USERS
    # =========================================================================

    @storage_guarded(RegisterResult)
    def register(self, email: Optional[str], username: Optional[str], password: Optional[str]) -> RegisterResult:
        if not email or not username or not password:
            return RegisterResult.fail(ErrorKind.VALIDATION, "All fields are required")

        with self.store.transaction() as snapshot:
            if any(u.email == email or u.username == username for u in snapshot.users):
                return RegisterResult.fail(ErrorKind.CONFLICT, "User already exists")

            if len(password) < self.min_password_length:
                return RegisterResult.fail(
                    ErrorKind.VALIDATION,
                    f"Password must be at least {self.min_password_length} characters",
                )

            user = UserRecord(
                email=email,
                username=username,
                password=encode_credential(password),
            )
            snapshot.users.append(user)
            snapshot.touch()

        return RegisterResult.ok("Registration successful", user_id=user.id)

    @storage_guarded(LoginResult)
    def login(self, email_or_username: Optional[str], password: Optional[str]) -> LoginResult:
        if not email_or_username or not password:
            return LoginResult.fail(
                ErrorKind.VALIDATION, "Email/Username and password are required"
            )

        user = self.store.read().find_user_by_login(email_or_username)
        if user is None:
            return LoginResult.fail(ErrorKind.NOT_FOUND, "User not found")

        if not credential_matches(user.password, password):
            return LoginResult.fail(ErrorKind.INVALID_CREDENTIAL, "Invalid password")

        return LoginResult.ok(
            "Login successful",
            user_id=user.id,
            username=user.username,
            email=user.email,
            user_plan=user.user_plan or None,
            plan_purchase_date=user.plan_purchase_date or None,
        )

    @storage_guarded(UserResult)
    def get_user(self, user_id: str) -> UserResult:
        user = self.store.read().find_user(user_id)
        if user is None:
            return UserResult.fail(ErrorKind.NOT_FOUND, "User not found")
        return UserResult.ok(user=user.public_dict())

    @storage_guarded(SubscriptionResult)
    def update_subscription(
        self,
        user_id: str,
        user_plan: Optional[str],
        plan_purchase_date: Optional[str],
    ) -> SubscriptionResult:
        with self.store.transaction() as snapshot:
            user = snapshot.find_user(user_id)
            if user is None:
                return SubscriptionResult.fail(ErrorKind.NOT_FOUND, "User not found")
            user.user_plan = user_plan or None
            user.plan_purchase_date = plan_purchase_date or None
            snapshot.touch()
        return SubscriptionResult.ok("Subscription updated")

    @storage_guarded(SubscriptionResult)
    def cancel_subscription(self, user_id: str) -> SubscriptionResult:
        with self.store.transaction() as snapshot:
            user = snapshot.find_user(user_id)
            if user is None:
                return SubscriptionResult.fail(ErrorKind.NOT_FOUND, "User not found")
            user.user_plan = None
            user.plan_purchase_date = None
            snapshot.touch()
        return SubscriptionResult.ok("Subscription cancelled")

    @storage_guarded(DeleteResult)
    def delete_account(self, user_id: str) -> DeleteResult:
        """
        Delete a user together with the plans they own and every share
        grant that involves them (as owner or as target).
        """
        with self.store.transaction() as snapshot:
            user = snapshot.find_user(user_id)
            if user is None:
                return DeleteResult.fail(ErrorKind.NOT_FOUND, "User not found")
            remove_user_cascade(snapshot, user_id)
            snapshot.touch()
        return DeleteResult.ok("Account deleted")

    # =========================================================================
    # PLANS
    # =========================================================================

    @storage_guarded(PlanResult)
    def create_plan(
        self,
        user_id: str,
        name: Optional[str],
        description: Optional[str] = None,
        content: Any = None,
    ) -> PlanResult:
        if not name:
            return PlanResult.fail(ErrorKind.VALIDATION, "Plan name is required")

        with self.store.transaction() as snapshot:
            user = snapshot.find_user(user_id)
            if user is None:
                return PlanResult.fail(ErrorKind.NOT_FOUND, "User not found")
            plan = PlanRecord(user_id=user_id, name=name, description=description, content=content)
            snapshot.plans.append(plan)
            user.plans.append(plan.id)
            snapshot.touch()

        return PlanResult.ok("Plan created", plan_id=plan.id, plan=plan.to_wire())

    @storage_guarded(PlanResult)
    def get_plan(self, plan_id: str) -> PlanResult:
        plan = self.store.read().find_plan(plan_id)
        if plan is None:
            return PlanResult.fail(ErrorKind.NOT_FOUND, "Plan not found")
        return PlanResult.ok(plan_id=plan.id, plan=plan.to_wire())

    @storage_guarded(PlanListResult)
    def list_plans(self, user_id: str) -> PlanListResult:
        snapshot = self.store.read()
        return PlanListResult.ok(
            plans=[p.to_wire() for p in snapshot.plans if p.user_id == user_id]
        )

    @storage_guarded(PlanListResult)
    def list_public_plans(self) -> PlanListResult:
        snapshot = self.store.read()
        return PlanListResult.ok(plans=[p.to_wire() for p in snapshot.plans if p.is_public])

    @storage_guarded(PlanResult)
    def update_plan(self, plan_id: str, updates: dict[str, Any]) -> PlanResult:
        with self.store.transaction() as snapshot:
            plan = snapshot.find_plan(plan_id)
            if plan is None:
                return PlanResult.fail(ErrorKind.NOT_FOUND, "Plan not found")
            for key, value in (updates or {}).items():
                attr = UPDATABLE_PLAN_FIELDS.get(key)
                if attr is None:
                    continue
                if attr == "name" and not value:
                    return PlanResult.fail(ErrorKind.VALIDATION, "Plan name is required")
                setattr(plan, attr, bool(value) if attr == "is_public" else value)
            snapshot.touch()
        return PlanResult.ok("Plan updated", plan_id=plan.id, plan=plan.to_wire())

    @storage_guarded(DeleteResult)
    def delete_plan(self, plan_id: str) -> DeleteResult:
        with self.store.transaction() as snapshot:
            plan = snapshot.find_plan(plan_id)
            if plan is None:
                return DeleteResult.fail(ErrorKind.NOT_FOUND, "Plan not found")
            remove_plan_cascade(snapshot, plan_id)
            snapshot.touch()
        return DeleteResult.ok("Plan deleted")

    # =========================================================================
    # SHARING
    # =========================================================================

    @storage_guarded(ShareResult)
    def share_plan(
        self,
        plan_id: str,
        owner_id: str,
        target_email: Optional[str],
        access_level: str = AccessLevel.VIEW.value,
    ) -> ShareResult:
        try:
            level = AccessLevel(access_level or AccessLevel.VIEW.value)
        except ValueError:
            return ShareResult.fail(ErrorKind.VALIDATION, f"Unknown access level: {access_level}")

        with self.store.transaction() as snapshot:
            plan = snapshot.find_plan(plan_id)
            if plan is None:
                return ShareResult.fail(ErrorKind.NOT_FOUND, "Plan not found")

            target = next((u for u in snapshot.users if u.email == target_email), None)
            if target is None:
                return ShareResult.fail(ErrorKind.NOT_FOUND, "User with this email not found")

            if plan.user_id != owner_id:
                return ShareResult.fail(ErrorKind.FORBIDDEN, "You do not own this plan")

            if any(s.user_id == target.id for s in plan.shared_with):
                return ShareResult.fail(ErrorKind.CONFLICT, "Plan already shared with this user")

            owner = snapshot.find_user(owner_id)
            grant = ShareGrant(
                plan_id=plan_id,
                owner_id=owner_id,
                owner_username=owner.username if owner else None,
                shared_with_user_id=target.id,
                shared_with_email=target.email,
                access_level=level,
            )
            snapshot.shared_plans.append(grant)
            plan.shared_with.append(ShareTarget(
                user_id=target.id,
                email=target.email,
                access_level=level,
                shared_at=grant.shared_at,
            ))
            target.shared_plans.append(grant.id)
            snapshot.touch()

        return ShareResult.ok("Plan shared", share_id=grant.id, plan=plan.to_wire())

    @storage_guarded(ShareResult)
    def unshare_plan(self, plan_id: str, target_user_id: str) -> ShareResult:
        with self.store.transaction() as snapshot:
            plan = snapshot.find_plan(plan_id)
            if plan is None:
                return ShareResult.fail(ErrorKind.NOT_FOUND, "Plan not found")

            plan.shared_with = [s for s in plan.shared_with if s.user_id != target_user_id]
            removed = {
                g.id for g in snapshot.shared_plans
                if g.plan_id == plan_id and g.shared_with_user_id == target_user_id
            }
            _drop_grants(snapshot, removed)
            snapshot.touch()

        return ShareResult.ok("Plan unshared", plan=plan.to_wire())

    @storage_guarded(PlanListResult)
    def list_shared_plans(self, user_id: str) -> PlanListResult:
        """Plans other users have shared with `user_id`, with grant details."""
        snapshot = self.store.read()
        shared = []
        for grant in snapshot.shared_plans:
            if grant.shared_with_user_id != user_id:
                continue
            plan = snapshot.find_plan(grant.plan_id)
            if plan is None:
                continue
            shared.append({
                **plan.to_wire(),
                "sharedBy": grant.owner_username,
                "sharedAt": grant.shared_at,
                "accessLevel": grant.access_level.value,
                "shareId": grant.id,
            })
        return PlanListResult.ok(plans=shared)


# =============================================================================
# CASCADE HELPERS (also used by the local mirror)
# =============================================================================

def _drop_grants(snapshot: AccountSnapshot, grant_ids: set[str]) -> None:
    if not grant_ids:
        return
    snapshot.shared_plans = [g for g in snapshot.shared_plans if g.id not in grant_ids]
    for user in snapshot.users:
        user.shared_plans = [sid for sid in user.shared_plans if sid not in grant_ids]


def remove_plan_cascade(snapshot: AccountSnapshot, plan_id: str) -> None:
    """Remove a plan, its share grants and its owner's back-reference."""
    plan = snapshot.find_plan(plan_id)
    if plan is None:
        return
    owner = snapshot.find_user(plan.user_id)
    if owner is not None:
        owner.plans = [pid for pid in owner.plans if pid != plan_id]
    _drop_grants(snapshot, {g.id for g in snapshot.shared_plans if g.plan_id == plan_id})
    snapshot.plans = [p for p in snapshot.plans if p.id != plan_id]


def remove_user_cascade(snapshot: AccountSnapshot, user_id: str) -> None:
    """Remove a user, their plans, and every grant they own or receive."""
    for plan_id in [p.id for p in snapshot.plans if p.user_id == user_id]:
        remove_plan_cascade(snapshot, plan_id)

    _drop_grants(snapshot, {
        g.id for g in snapshot.shared_plans
        if g.owner_id == user_id or g.shared_with_user_id == user_id
    })
    for plan in snapshot.plans:
        plan.shared_with = [s for s in plan.shared_with if s.user_id != user_id]

    snapshot.users = [u for u in snapshot.users if u.id != user_id]
