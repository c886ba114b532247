"""
Local Mirror

The client-resident copy of the account data. It answers every operation
on its own when the Durable Backend cannot be reached, and absorbs the
backend's successful responses so the two stores converge.

Beyond the shared account rules it adds:
- subscription writes that always succeed locally
- upserts of record fragments received from the backend
- the session scalar keys (`userId`, `username`, `email`, `userPlan`,
  `planPurchaseDate`) the web pages read to decide what to show
"""

from typing import Any, Optional

import structlog
from pydantic import ValidationError

from aiwallet.models.account import PlanRecord, Session, UserRecord
from aiwallet.models.results import (
    DeleteResult,
    ErrorKind,
    LoginResult,
    SubscriptionResult,
)
from aiwallet.security import encode_credential
from aiwallet.services.accounts import (
    DEFAULT_MIN_PASSWORD_LENGTH,
    AccountService,
    remove_plan_cascade,
)
from aiwallet.services.storage import LocalStorage, MirrorSnapshotStore, StorageUnavailableError


logger = structlog.get_logger(__name__)

# Session attribute -> localStorage key
SESSION_KEYS = {
    "user_id": "userId",
    "username": "username",
    "email": "email",
    "user_plan": "userPlan",
    "plan_purchase_date": "planPurchaseDate",
}

# Wire keys of a user fragment the mirror accepts from the backend
MERGEABLE_USER_KEYS = (
    "email", "username", "createdAt", "userPlan", "planPurchaseDate", "plans", "sharedPlans",
)

# Keys where a null from the backend clears the local value; nulls elsewhere are ignored
NULLABLE_USER_KEYS = ("userPlan", "planPurchaseDate")


class LocalMirror:
    """
    Account store over a LocalStorage, plus sync and session helpers.

    Read and validation operations (register, login, get_user, plans) are
    the shared AccountService rules, exposed through `accounts`.
    """

    def __init__(
        self,
        storage: LocalStorage,
        min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH,
    ):
        self.storage = storage
        self.store = MirrorSnapshotStore(storage)
        self.accounts = AccountService(self.store, min_password_length=min_password_length)

    # =========================================================================
    # ACCOUNT OPERATIONS
    # =========================================================================

    def register(self, email, username, password):
        return self.accounts.register(email, username, password)

    def login(self, email_or_username, password):
        return self.accounts.login(email_or_username, password)

    def get_user(self, user_id):
        return self.accounts.get_user(user_id)

    def update_subscription(
        self,
        user_id: str,
        user_plan: Optional[str],
        plan_purchase_date: Optional[str],
    ) -> SubscriptionResult:
        """
        Record the subscription locally.

        Succeeds even if the user is not in the mirror; only a storage
        failure produces an error.
        """
        try:
            with self.store.transaction() as snapshot:
                user = snapshot.find_user(user_id)
                if user is not None:
                    user.user_plan = user_plan or None
                    user.plan_purchase_date = plan_purchase_date or None
                    snapshot.touch()
            self._sync_session_subscription(user_id, user_plan, plan_purchase_date)
        except StorageUnavailableError as e:
            return SubscriptionResult.fail(ErrorKind.STORAGE_UNAVAILABLE, str(e))
        return SubscriptionResult.ok("Subscription updated")

    def cancel_subscription(self, user_id: str) -> SubscriptionResult:
        try:
            with self.store.transaction() as snapshot:
                user = snapshot.find_user(user_id)
                if user is not None:
                    user.user_plan = None
                    user.plan_purchase_date = None
                    snapshot.touch()
            self._sync_session_subscription(user_id, None, None)
        except StorageUnavailableError as e:
            return SubscriptionResult.fail(ErrorKind.STORAGE_UNAVAILABLE, str(e))
        return SubscriptionResult.ok("Subscription cancelled")

    def delete_account(self, user_id: str) -> DeleteResult:
        result = self.accounts.delete_account(user_id)
        if result.success and self.session().user_id == user_id:
            try:
                self.clear_session()
            except StorageUnavailableError as e:
                return DeleteResult.fail(ErrorKind.STORAGE_UNAVAILABLE, str(e))
        return result

    # =========================================================================
    # SYNC FROM THE BACKEND
    # =========================================================================

    def upsert_user(self, fragment: dict[str, Any], password: Optional[str] = None) -> Optional[UserRecord]:
        """
        Merge a user fragment received from the backend.

        Matches on `id` (or `userId`). An unknown id creates a record, a
        known one has every key present in the fragment overwritten. A null
        only clears the subscription keys; missing or null identity fields
        keep their mirrored value. The credential is never taken from the
        fragment; pass `password` when the caller knows it (register, login).

        Mirror records using the same email or username under another id
        are dropped, since the backend decides identity.

        Raises:
            StorageUnavailableError: If the mirror cannot be written
        """
        user_id = fragment.get("id") or fragment.get("userId")
        if not user_id:
            logger.warning("mirror_upsert_skipped", reason="fragment has no id")
            return None

        updates = {
            k: fragment[k] for k in MERGEABLE_USER_KEYS
            if k in fragment and (fragment[k] is not None or k in NULLABLE_USER_KEYS)
        }

        with self.store.transaction() as snapshot:
            existing = snapshot.find_user(user_id)
            if existing is None:
                if not updates.get("email") or not updates.get("username"):
                    logger.warning("mirror_upsert_skipped", user_id=user_id, reason="incomplete fragment")
                    return None
                merged = {"id": user_id, **updates}
            else:
                merged = {**existing.to_wire(), **updates}

            if password:
                merged["password"] = encode_credential(password)

            record = UserRecord.model_validate(merged)
            snapshot.users = [
                u for u in snapshot.users
                if u.id != user_id and u.email != record.email and u.username != record.username
            ]
            snapshot.users.append(record)
            snapshot.touch()

        return record

    def upsert_plan(self, plan: dict[str, Any]) -> Optional[PlanRecord]:
        """Store a plan received from the backend if its owner is mirrored."""
        try:
            record = PlanRecord.model_validate(plan)
        except ValidationError as e:
            logger.warning("mirror_upsert_skipped", plan_id=plan.get("id"), reason=str(e))
            return None
        with self.store.transaction() as snapshot:
            owner = snapshot.find_user(record.user_id)
            if owner is None:
                return None
            snapshot.plans = [p for p in snapshot.plans if p.id != record.id]
            snapshot.plans.append(record)
            if record.id not in owner.plans:
                owner.plans.append(record.id)
            snapshot.touch()
        return record

    def remove_plan(self, plan_id: str) -> None:
        with self.store.transaction() as snapshot:
            if snapshot.find_plan(plan_id) is not None:
                remove_plan_cascade(snapshot, plan_id)
                snapshot.touch()

    # =========================================================================
    # SESSION
    # =========================================================================

    def session(self) -> Session:
        return Session(**{
            attr: self.storage.get_item(key) for attr, key in SESSION_KEYS.items()
        })

    def save_session(self, login: LoginResult) -> Session:
        """Write the session keys from a successful login."""
        session = Session(
            user_id=login.user_id,
            username=login.username,
            email=login.email,
            user_plan=login.user_plan,
            plan_purchase_date=login.plan_purchase_date,
        )
        self._write_session(session)
        return session

    def clear_session(self) -> None:
        self.storage.remove_items(SESSION_KEYS.values())

    def _write_session(self, session: Session) -> None:
        values = {}
        missing = []
        for attr, key in SESSION_KEYS.items():
            value = getattr(session, attr)
            if value:
                values[key] = str(value)
            else:
                missing.append(key)
        self.storage.set_items(values)
        self.storage.remove_items(missing)

    def _sync_session_subscription(
        self,
        user_id: str,
        user_plan: Optional[str],
        plan_purchase_date: Optional[str],
    ) -> None:
        session = self.session()
        if session.user_id != user_id:
            return
        session.user_plan = user_plan or None
        session.plan_purchase_date = plan_purchase_date or None
        self._write_session(session)
