"""
Tests for AIWallet models

Test strategy:
1. Unit tests for models, credentials and account rules
2. Integration tests for the facade (with a fake backend) and the API
3. No real network calls in tests
"""

import pytest

from aiwallet.models.account import (
    AccessLevel,
    AccountSnapshot,
    PlanRecord,
    Session,
    UserRecord,
)
from aiwallet.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from aiwallet.models.results import (
    ErrorKind,
    LoginResult,
    RegisterResult,
    UserResult,
)
from aiwallet.security import credential_matches, decode_credential, encode_credential


class TestAccountModels:
    """Tests for account record models."""

    def test_user_record_reads_express_layout(self):
        """Test a record written by the Express server loads."""
        user = UserRecord.model_validate({
            "id": "1700000000000",
            "email": "a@x.com",
            "username": "alice",
            "password": "cGFzc3dvcmQx",
            "createdAt": "2024-01-01T00:00:00.000Z",
        })
        assert user.id == "1700000000000"
        assert user.created_at == "2024-01-01T00:00:00.000Z"
        assert user.user_plan is None

    def test_user_record_wire_is_camel_case(self):
        """Test serialization uses the file/wire key names."""
        user = UserRecord(email="a@x.com", username="alice", user_plan="pro")
        wire = user.to_wire()
        assert wire["userPlan"] == "pro"
        assert "planPurchaseDate" in wire
        assert "createdAt" in wire

    def test_public_dict_has_no_credential(self):
        """Test the public form drops the password."""
        user = UserRecord(email="a@x.com", username="alice", password="eA==")
        assert "password" not in user.public_dict()

    def test_unknown_fields_are_preserved(self):
        """Test extra keys (e.g. an avatar) survive a round trip."""
        user = UserRecord.model_validate({
            "email": "a@x.com", "username": "alice", "userAvatar": "cat.png",
        })
        assert user.to_wire()["userAvatar"] == "cat.png"

    def test_generated_ids_are_unique(self):
        """Test two records never share a generated id."""
        a = UserRecord(email="a@x.com", username="a")
        b = UserRecord(email="b@x.com", username="b")
        assert a.id != b.id

    def test_plan_ids_are_prefixed(self):
        plan = PlanRecord(user_id="u1", name="Budget")
        assert plan.id.startswith("plan_")
        assert plan.to_wire()["sharedWith"] == []

    def test_snapshot_lookup_by_email_or_username(self):
        """Test login lookup matches either field."""
        snapshot = AccountSnapshot(users=[UserRecord(email="a@x.com", username="alice")])
        assert snapshot.find_user_by_login("a@x.com").username == "alice"
        assert snapshot.find_user_by_login("alice").email == "a@x.com"
        assert snapshot.find_user_by_login("bob") is None

    def test_snapshot_touch_marks_dirty(self):
        snapshot = AccountSnapshot()
        assert snapshot.is_dirty is False
        snapshot.touch()
        assert snapshot.is_dirty is True
        assert snapshot.last_updated is not None

    def test_session_logged_in_needs_id_and_username(self):
        assert Session(user_id="1", username="alice").is_logged_in
        assert not Session(user_id="1").is_logged_in
        assert not Session().is_logged_in

    def test_access_level_values(self):
        assert AccessLevel("view") == AccessLevel.VIEW
        with pytest.raises(ValueError):
            AccessLevel("admin")


class TestResultModels:
    """Tests for tagged operation results."""

    def test_failure_wire_shape(self):
        """Test failures render only success, message and error."""
        result = RegisterResult.fail(ErrorKind.CONFLICT, "User already exists")
        assert result.to_wire() == {
            "success": False,
            "message": "User already exists",
            "error": "conflict",
        }

    def test_login_success_keeps_null_plan(self):
        """Test a successful login carries userPlan even when null."""
        result = LoginResult.ok("Login successful", user_id="1", username="alice", email="a@x.com")
        wire = result.to_wire()
        assert wire["userId"] == "1"
        assert wire["userPlan"] is None
        assert "error" not in wire

    def test_user_result_without_message(self):
        wire = UserResult.ok(user={"id": "1"}).to_wire()
        assert wire == {"success": True, "user": {"id": "1"}}

    def test_parse_from_wire(self):
        """Test results parse from the server's camelCase body."""
        result = LoginResult.model_validate({
            "success": True,
            "message": "Login successful",
            "userId": "1",
            "username": "alice",
            "email": "a@x.com",
            "userPlan": "pro",
            "planPurchaseDate": None,
        })
        assert result.user_plan == "pro"
        assert result.error is None

    def test_parse_failure_without_error_tag(self):
        """Test a body from a server that sends no error tag still parses."""
        result = RegisterResult.model_validate({"success": False, "message": "User already exists"})
        assert result.success is False
        assert result.error is None


class TestCredentials:
    """Tests for the base64 credential helpers."""

    def test_encoding_matches_web_client_format(self):
        """Test encoding is plain base64 of UTF-8, as the web client stores it."""
        assert encode_credential("password1") == "cGFzc3dvcmQx"

    def test_credential_matches(self):
        stored = encode_credential("pässword")
        assert credential_matches(stored, "pässword")
        assert not credential_matches(stored, "password")

    def test_invalid_stored_credential_never_matches(self):
        assert decode_credential("not base64!") is None
        assert not credential_matches("not base64!", "not base64!")
        assert not credential_matches(None, "anything")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_to_log_dict(self):
        event = AuditEvent(
            event_type=AuditEventType.LOCAL_FALLBACK_USED,
            operation="login",
            source="local",
            description="login served by local mirror",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "local_fallback_used"
        assert log_dict["severity"] == "info"
        assert log_dict["correlation_id"] is None

    def test_remote_call_failed_is_warning(self):
        event = AuditEventBuilder.remote_call_failed("register", "timeout")
        assert event.event_type == AuditEventType.REMOTE_CALL_FAILED
        assert event.severity == AuditSeverity.WARNING
        assert event.error_message == "timeout"

    def test_operation_completed_maps_event_type(self):
        event = AuditEventBuilder.operation_completed("register", "remote", "1")
        assert event.event_type == AuditEventType.USER_REGISTERED
        assert event.user_id == "1"

    def test_reads_map_to_generic_completion(self):
        event = AuditEventBuilder.operation_completed("get_user", "local", "1")
        assert event.event_type == AuditEventType.OPERATION_COMPLETED


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
