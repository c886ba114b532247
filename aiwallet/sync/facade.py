"""
Sync Facade

The one operation surface the UI layer calls. Each call routes between the
Durable Backend and the Local Mirror and returns the same result shape
whichever store answered.

Two routing patterns:

1. AUTHORITATIVE READ WITH LOCAL FALLBACK (register, login, get_user, plans)
   - backend plausibly reachable -> call it under its timeout
   - backend says success        -> copy the payload into the mirror, return it
   - backend says failure        -> return it as is (no fallback: a "user
                                    exists" from the source of truth must not
                                    be overridden by a stale local answer)
   - backend unreachable         -> answer from the mirror

2. BEST-EFFORT DUAL WRITE (update/cancel subscription, delete account)
   - write the mirror first, unconditionally
   - then try the backend; a reachable backend's answer is returned,
     otherwise the local result is

Each call suspends once, at the network request. No state is carried
between calls apart from what the stores themselves persist.
"""

import asyncio
from functools import partial
from typing import Any, Callable, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from aiwallet.audit import AuditLogger, create_correlation_id
from aiwallet.config import Settings, get_settings
from aiwallet.models.audit import AuditEventBuilder
from aiwallet.models.account import Session
from aiwallet.models.results import (
    DeleteResult,
    ErrorKind,
    LoginResult,
    OperationResult,
    PlanListResult,
    PlanResult,
    RegisterResult,
    ShareResult,
    SubscriptionResult,
    UserResult,
)
from aiwallet.services.availability import AvailabilityProber
from aiwallet.services.remote import RemoteAccountClient
from aiwallet.services.storage import BackendUnavailableError, LocalStorage, StorageUnavailableError
from aiwallet.sync.mirror import LocalMirror


logger = structlog.get_logger(__name__)


class SyncFacade:
    """
    Register, login, user lookup, subscriptions and plans over two stores.

    Args:
        remote: Client for the Durable Backend
        mirror: The client-resident Local Mirror
        prober: Decides per call whether the backend is worth attempting
        audit_logger: Receives one event per routing decision
        probe_before_call: Also run the liveness probe before each remote call
    """

    def __init__(
        self,
        remote: RemoteAccountClient,
        mirror: LocalMirror,
        prober: AvailabilityProber,
        audit_logger: Optional[AuditLogger] = None,
        probe_before_call: bool = False,
    ):
        self.remote = remote
        self.mirror = mirror
        self.prober = prober
        self.audit_logger = audit_logger or AuditLogger()
        self.probe_before_call = probe_before_call

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SyncFacade":
        """Wire a facade from configuration."""
        settings = settings or get_settings()
        backend = settings.backend
        mirror_settings = settings.mirror

        remote = RemoteAccountClient(backend.base_url, timeout_ms=backend.request_timeout_ms)
        storage = LocalStorage(mirror_settings.storage_path, quota_bytes=mirror_settings.quota_bytes)
        mirror = LocalMirror(storage, min_password_length=settings.app.min_password_length)
        prober = AvailabilityProber.from_settings(remote, backend)
        return cls(remote, mirror, prober, probe_before_call=backend.probe_before_call)

    # =========================================================================
    # ROUTING
    # =========================================================================

    async def _remote_available(self) -> bool:
        if not self.prober.is_likely_available():
            return False
        if self.probe_before_call:
            return await asyncio.to_thread(self.prober.probe_liveness)
        return True

    async def _authoritative(
        self,
        operation: str,
        remote_call: Callable[[], OperationResult],
        local_call: Callable[[], OperationResult],
        sync: Optional[Callable[[Any], Any]] = None,
    ):
        correlation_id = create_correlation_id()

        if await self._remote_available():
            try:
                result = await asyncio.to_thread(remote_call)
            except BackendUnavailableError as e:
                self.audit_logger.log(
                    AuditEventBuilder.remote_call_failed(operation, str(e), correlation_id)
                )
                reason = "backend_unavailable"
            else:
                if result.success and sync is not None:
                    self._mirror_response(operation, sync, result, correlation_id)
                self._record(operation, "remote", result, correlation_id)
                return result
        else:
            reason = "backend_not_expected"

        self.audit_logger.log(
            AuditEventBuilder.local_fallback_used(operation, reason, correlation_id)
        )
        result = local_call()
        self._record(operation, "local", result, correlation_id)
        return result

    async def _dual_write(
        self,
        operation: str,
        local_call: Callable[[], OperationResult],
        remote_call: Callable[[], OperationResult],
    ):
        correlation_id = create_correlation_id()

        local_result = local_call()
        if local_result.error == ErrorKind.STORAGE_UNAVAILABLE:
            self._record(operation, "local", local_result, correlation_id)
            return local_result

        if await self._remote_available():
            try:
                result = await asyncio.to_thread(remote_call)
            except BackendUnavailableError as e:
                self.audit_logger.log(
                    AuditEventBuilder.remote_call_failed(operation, str(e), correlation_id)
                )
            else:
                self._record(operation, "remote", result, correlation_id)
                return result

        self._record(operation, "local", local_result, correlation_id)
        return local_result

    def _mirror_response(self, operation: str, sync, result, correlation_id: UUID) -> None:
        """Copy a backend payload into the mirror; a failure here is only logged."""
        try:
            sync(result)
        except (StorageUnavailableError, ValidationError) as e:
            self.audit_logger.log(
                AuditEventBuilder.mirror_sync_failed(operation, str(e), correlation_id)
            )
        else:
            entity_id = getattr(result, "user_id", None) or getattr(result, "plan_id", None)
            self.audit_logger.log(
                AuditEventBuilder.mirror_synced(operation, entity_id, correlation_id)
            )

    def _record(self, operation: str, source: str, result: OperationResult, correlation_id: UUID) -> None:
        if result.success:
            event = AuditEventBuilder.operation_completed(
                operation, source, getattr(result, "user_id", None), correlation_id
            )
        elif result.error == ErrorKind.STORAGE_UNAVAILABLE:
            event = AuditEventBuilder.storage_unavailable(operation, result.message or "", correlation_id)
        else:
            event = AuditEventBuilder.operation_rejected(
                operation,
                source,
                result.error.value if result.error else None,
                result.message,
                correlation_id,
            )
        self.audit_logger.log(event)

    # =========================================================================
    # ACCOUNT OPERATIONS
    # =========================================================================

    async def register(self, email: str, username: str, password: str) -> RegisterResult:
        def sync(result: RegisterResult):
            self.mirror.upsert_user(
                {"id": result.user_id, "email": email, "username": username},
                password=password,
            )

        return await self._authoritative(
            "register",
            partial(self.remote.register, email, username, password),
            partial(self.mirror.register, email, username, password),
            sync,
        )

    async def login(self, email_or_username: str, password: str) -> LoginResult:
        def sync(result: LoginResult):
            self.mirror.upsert_user(
                {
                    "id": result.user_id,
                    "email": result.email,
                    "username": result.username,
                    "userPlan": result.user_plan,
                    "planPurchaseDate": result.plan_purchase_date,
                },
                password=password,
            )

        result = await self._authoritative(
            "login",
            partial(self.remote.login, email_or_username, password),
            partial(self.mirror.login, email_or_username, password),
            sync,
        )
        if result.success:
            try:
                self.mirror.save_session(result)
            except StorageUnavailableError as e:
                self.audit_logger.log(AuditEventBuilder.storage_unavailable("login", str(e)))
                return LoginResult.fail(ErrorKind.STORAGE_UNAVAILABLE, str(e))
        return result

    async def get_user(self, user_id: str) -> UserResult:
        def sync(result: UserResult):
            if result.user:
                self.mirror.upsert_user(result.user)

        return await self._authoritative(
            "get_user",
            partial(self.remote.get_user, user_id),
            partial(self.mirror.get_user, user_id),
            sync,
        )

    async def update_subscription(
        self,
        user_id: str,
        user_plan: Optional[str],
        plan_purchase_date: Optional[str],
    ) -> SubscriptionResult:
        return await self._dual_write(
            "update_subscription",
            partial(self.mirror.update_subscription, user_id, user_plan, plan_purchase_date),
            partial(self.remote.update_subscription, user_id, user_plan, plan_purchase_date),
        )

    async def cancel_subscription(self, user_id: str) -> SubscriptionResult:
        return await self._dual_write(
            "cancel_subscription",
            partial(self.mirror.cancel_subscription, user_id),
            partial(self.remote.cancel_subscription, user_id),
        )

    async def delete_account(self, user_id: str) -> DeleteResult:
        """Delete the account (and its plans and shares) from both stores."""
        result = await self._dual_write(
            "delete_account",
            partial(self.mirror.delete_account, user_id),
            partial(self.remote.delete_account, user_id),
        )
        if result.success and self.mirror.session().user_id == user_id:
            try:
                self.mirror.clear_session()
            except StorageUnavailableError as e:
                return DeleteResult.fail(ErrorKind.STORAGE_UNAVAILABLE, str(e))
        return result

    # =========================================================================
    # PLANS
    # =========================================================================

    def _sync_plan(self, result) -> None:
        if result.plan:
            self.mirror.upsert_plan(result.plan)

    def _sync_plan_list(self, result: PlanListResult) -> None:
        for plan in result.plans:
            self.mirror.upsert_plan(plan)

    async def create_plan(
        self,
        user_id: str,
        name: str,
        description: Optional[str] = None,
        content: Any = None,
    ) -> PlanResult:
        return await self._authoritative(
            "create_plan",
            partial(self.remote.create_plan, user_id, name, description, content),
            partial(self.mirror.accounts.create_plan, user_id, name, description, content),
            self._sync_plan,
        )

    async def get_plan(self, plan_id: str) -> PlanResult:
        return await self._authoritative(
            "get_plan",
            partial(self.remote.get_plan, plan_id),
            partial(self.mirror.accounts.get_plan, plan_id),
            self._sync_plan,
        )

    async def list_plans(self, user_id: str) -> PlanListResult:
        return await self._authoritative(
            "list_plans",
            partial(self.remote.list_plans, user_id),
            partial(self.mirror.accounts.list_plans, user_id),
            self._sync_plan_list,
        )

    async def update_plan(self, plan_id: str, updates: dict[str, Any]) -> PlanResult:
        return await self._authoritative(
            "update_plan",
            partial(self.remote.update_plan, plan_id, updates),
            partial(self.mirror.accounts.update_plan, plan_id, updates),
            self._sync_plan,
        )

    async def delete_plan(self, plan_id: str) -> DeleteResult:
        return await self._authoritative(
            "delete_plan",
            partial(self.remote.delete_plan, plan_id),
            partial(self.mirror.accounts.delete_plan, plan_id),
            lambda result: self.mirror.remove_plan(plan_id),
        )

    async def share_plan(
        self,
        plan_id: str,
        owner_id: str,
        target_email: str,
        access_level: str = "view",
    ) -> ShareResult:
        return await self._authoritative(
            "share_plan",
            partial(self.remote.share_plan, plan_id, owner_id, target_email, access_level),
            partial(self.mirror.accounts.share_plan, plan_id, owner_id, target_email, access_level),
            self._sync_plan,
        )

    async def unshare_plan(self, plan_id: str, target_user_id: str) -> ShareResult:
        return await self._authoritative(
            "unshare_plan",
            partial(self.remote.unshare_plan, plan_id, target_user_id),
            partial(self.mirror.accounts.unshare_plan, plan_id, target_user_id),
            self._sync_plan,
        )

    async def list_shared_plans(self, user_id: str) -> PlanListResult:
        return await self._authoritative(
            "list_shared_plans",
            partial(self.remote.list_shared_plans, user_id),
            partial(self.mirror.accounts.list_shared_plans, user_id),
        )

    # =========================================================================
    # SESSION AND AVAILABILITY
    # =========================================================================

    async def check_server_availability(self) -> bool:
        """Run the liveness probe regardless of the host heuristic."""
        return await asyncio.to_thread(self.prober.probe_liveness)

    def session(self) -> Session:
        return self.mirror.session()

    def logout(self) -> None:
        user_id = self.mirror.session().user_id
        self.mirror.clear_session()
        self.audit_logger.log(AuditEventBuilder.user_logged_out(user_id))
