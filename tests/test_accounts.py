"""
Tests for the account rules shared by the server and the local mirror.
"""

import json
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from aiwallet.models.results import ErrorKind
from aiwallet.services.accounts import AccountService
from aiwallet.services.storage import LocalStorage, MirrorSnapshotStore


class TestRegister:
    """Tests for registration."""

    def test_register_then_login(self, accounts):
        """Test the basic account lifecycle."""
        registered = accounts.register("a@x.com", "alice", "password1")
        assert registered.success
        assert registered.message == "Registration successful"
        assert registered.user_id

        login = accounts.login("a@x.com", "password1")
        assert login.success
        assert login.message == "Login successful"
        assert login.user_id == registered.user_id
        assert login.username == "alice"
        assert login.email == "a@x.com"
        assert login.user_plan is None

    @pytest.mark.parametrize("email,username,password", [
        (None, "alice", "password1"),
        ("a@x.com", "", "password1"),
        ("a@x.com", "alice", None),
    ])
    def test_missing_fields(self, accounts, email, username, password):
        result = accounts.register(email, username, password)
        assert not result.success
        assert result.error == ErrorKind.VALIDATION
        assert result.message == "All fields are required"

    def test_password_length_boundary(self, accounts):
        """Test seven characters are rejected and eight accepted."""
        short = accounts.register("a@x.com", "alice", "1234567")
        assert not short.success
        assert short.message == "Password must be at least 8 characters"

        exact = accounts.register("a@x.com", "alice", "12345678")
        assert exact.success

    def test_duplicate_email_or_username(self, accounts, json_store, registered_alice):
        """Test a conflict on either field leaves the store unchanged."""
        for email, username in [("a@x.com", "other"), ("other@x.com", "alice")]:
            result = accounts.register(email, username, "password2")
            assert not result.success
            assert result.error == ErrorKind.CONFLICT
            assert result.message == "User already exists"
        assert len(json_store.read().users) == 1

    def test_uniqueness_checked_before_password_length(self, accounts, registered_alice):
        result = accounts.register("a@x.com", "alice", "short")
        assert result.message == "User already exists"

    def test_min_password_length_is_configurable(self, json_store):
        accounts = AccountService(json_store, min_password_length=4)
        assert accounts.register("a@x.com", "alice", "abcd").success

    def test_password_is_stored_encoded(self, accounts, json_store, registered_alice):
        """Test the file holds base64, never the plain password."""
        raw = json_store.path.read_text(encoding="utf-8")
        assert "password1" not in raw
        assert json.loads(raw)["users"][0]["password"] == "cGFzc3dvcmQx"


class TestLogin:
    """Tests for login."""

    def test_login_by_username(self, accounts, registered_alice):
        result = accounts.login("alice", "password1")
        assert result.success
        assert result.user_id == registered_alice

    def test_unknown_user(self, accounts):
        result = accounts.login("nobody", "password1")
        assert result.error == ErrorKind.NOT_FOUND
        assert result.message == "User not found"

    def test_wrong_password(self, accounts, registered_alice):
        result = accounts.login("alice", "wrongpass")
        assert result.error == ErrorKind.INVALID_CREDENTIAL
        assert result.message == "Invalid password"

    def test_missing_credentials(self, accounts):
        result = accounts.login("", "password1")
        assert result.message == "Email/Username and password are required"

    def test_login_is_idempotent(self, accounts, json_store, registered_alice):
        """Test repeated logins return the same payload and write nothing."""
        before = json_store.path.read_text(encoding="utf-8")
        first = accounts.login("alice", "password1")
        second = accounts.login("alice", "password1")
        assert first.to_wire() == second.to_wire()
        assert json_store.path.read_text(encoding="utf-8") == before


class TestSubscriptions:
    """Tests for subscription updates."""

    def test_subscription_round_trip(self, accounts, registered_alice):
        """Test an updated plan shows up on the next login."""
        updated = accounts.update_subscription(registered_alice, "premium", "2024-05-01T00:00:00.000Z")
        assert updated.success
        assert updated.message == "Subscription updated"

        login = accounts.login("alice", "password1")
        assert login.user_plan == "premium"
        assert login.plan_purchase_date == "2024-05-01T00:00:00.000Z"

    def test_cancel_clears_plan(self, accounts, registered_alice):
        accounts.update_subscription(registered_alice, "premium", "2024-05-01T00:00:00.000Z")
        cancelled = accounts.cancel_subscription(registered_alice)
        assert cancelled.message == "Subscription cancelled"

        user = accounts.get_user(registered_alice).user
        assert user["userPlan"] is None
        assert user["planPurchaseDate"] is None

    def test_unknown_user(self, accounts):
        assert accounts.update_subscription("missing", "pro", None).error == ErrorKind.NOT_FOUND
        assert accounts.cancel_subscription("missing").error == ErrorKind.NOT_FOUND

    def test_get_user_hides_password(self, accounts, registered_alice):
        user = accounts.get_user(registered_alice).user
        assert user["username"] == "alice"
        assert "password" not in user


class TestPlansAndSharing:
    """Tests for plans and share grants."""

    @pytest.fixture
    def bob(self, accounts):
        return accounts.register("b@x.com", "bob", "password2").user_id

    @pytest.fixture
    def plan_id(self, accounts, registered_alice):
        result = accounts.create_plan(registered_alice, "Budget", "Monthly", {"rent": 900})
        assert result.success
        return result.plan_id

    def test_create_and_list(self, accounts, registered_alice, plan_id):
        plans = accounts.list_plans(registered_alice).plans
        assert [p["id"] for p in plans] == [plan_id]
        assert plans[0]["content"] == {"rent": 900}
        assert accounts.get_user(registered_alice).user["plans"] == [plan_id]

    def test_create_requires_name(self, accounts, registered_alice):
        result = accounts.create_plan(registered_alice, "")
        assert result.message == "Plan name is required"

    def test_create_for_unknown_user(self, accounts):
        assert accounts.create_plan("missing", "Budget").error == ErrorKind.NOT_FOUND

    def test_update_plan(self, accounts, plan_id):
        result = accounts.update_plan(plan_id, {"name": "Savings", "isPublic": True, "userId": "x"})
        assert result.success
        assert result.plan["name"] == "Savings"
        assert result.plan["isPublic"] is True
        assert result.plan["userId"] != "x"
        assert [p["id"] for p in accounts.list_public_plans().plans] == [plan_id]

    def test_update_rejects_empty_name(self, accounts, plan_id):
        assert accounts.update_plan(plan_id, {"name": ""}).error == ErrorKind.VALIDATION
        assert accounts.get_plan(plan_id).plan["name"] == "Budget"

    def test_share_and_list_shared(self, accounts, registered_alice, bob, plan_id):
        shared = accounts.share_plan(plan_id, registered_alice, "b@x.com", "edit")
        assert shared.success
        assert shared.share_id.startswith("share_")

        plans = accounts.list_shared_plans(bob).plans
        assert len(plans) == 1
        assert plans[0]["sharedBy"] == "alice"
        assert plans[0]["accessLevel"] == "edit"

    def test_share_failures(self, accounts, registered_alice, bob, plan_id):
        assert accounts.share_plan(plan_id, registered_alice, "b@x.com", "admin").error == ErrorKind.VALIDATION
        assert accounts.share_plan("missing", registered_alice, "b@x.com").error == ErrorKind.NOT_FOUND
        assert accounts.share_plan(plan_id, registered_alice, "c@x.com").message == "User with this email not found"
        assert accounts.share_plan(plan_id, bob, "a@x.com").error == ErrorKind.FORBIDDEN

        accounts.share_plan(plan_id, registered_alice, "b@x.com")
        again = accounts.share_plan(plan_id, registered_alice, "b@x.com")
        assert again.error == ErrorKind.CONFLICT

    def test_unshare(self, accounts, registered_alice, bob, plan_id):
        accounts.share_plan(plan_id, registered_alice, "b@x.com")
        result = accounts.unshare_plan(plan_id, bob)
        assert result.success
        assert result.plan["sharedWith"] == []
        assert accounts.list_shared_plans(bob).plans == []
        assert accounts.get_user(bob).user["sharedPlans"] == []

    def test_delete_plan_removes_grants(self, accounts, json_store, registered_alice, bob, plan_id):
        accounts.share_plan(plan_id, registered_alice, "b@x.com")
        assert accounts.delete_plan(plan_id).message == "Plan deleted"

        snapshot = json_store.read()
        assert snapshot.plans == []
        assert snapshot.shared_plans == []
        assert accounts.get_plan(plan_id).message == "Plan not found"

    def test_delete_account_cascades(self, accounts, json_store, registered_alice, bob, plan_id):
        """Test deleting a user removes their plans and every grant involving them."""
        bob_plan = accounts.create_plan(bob, "Bob plan").plan_id
        accounts.share_plan(plan_id, registered_alice, "b@x.com")
        accounts.share_plan(bob_plan, bob, "a@x.com")

        assert accounts.delete_account(registered_alice).success

        snapshot = json_store.read()
        assert [u.username for u in snapshot.users] == ["bob"]
        assert [p.id for p in snapshot.plans] == [bob_plan]
        assert snapshot.shared_plans == []
        assert snapshot.plans[0].shared_with == []
        assert snapshot.users[0].shared_plans == []

    def test_delete_unknown_account(self, accounts):
        assert accounts.delete_account("missing").error == ErrorKind.NOT_FOUND


class TestScenario:
    """End-to-end walk through the account rules."""

    def test_register_login_conflict(self, accounts):
        registered = accounts.register("a@x.com", "alice", "password1")
        assert registered.success

        assert accounts.login("alice", "password1").user_id == registered.user_id
        assert accounts.login("alice", "wrong").message == "Invalid password"
        assert accounts.register("a@x.com", "alice2", "password1").message == "User already exists"

    def test_get_user_is_stable(self, accounts, registered_alice):
        assert accounts.get_user(registered_alice).to_wire() == accounts.get_user(registered_alice).to_wire()


class TestConcurrency:
    """Tests for transactions racing on one store."""

    def test_concurrent_duplicate_registration(self, accounts, json_store):
        """Test only one of several simultaneous identical registrations lands."""
        workers = 8
        barrier = threading.Barrier(workers)

        def register():
            barrier.wait()
            return accounts.register("a@x.com", "alice", "password1")

        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda _: register(), range(workers)))

        assert sum(r.success for r in results) == 1
        assert [r.error for r in results if not r.success] == [ErrorKind.CONFLICT] * (workers - 1)
        assert len(json.loads(json_store.path.read_text(encoding="utf-8"))["users"]) == 1


class TestStorageFailure:
    """Tests for write failures surfacing as results."""

    def test_register_reports_storage_unavailable(self):
        accounts = AccountService(MirrorSnapshotStore(LocalStorage(quota_bytes=10)))
        result = accounts.register("a@x.com", "alice", "password1")
        assert not result.success
        assert result.error == ErrorKind.STORAGE_UNAVAILABLE
