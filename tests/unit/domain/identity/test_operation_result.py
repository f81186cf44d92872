"""Unit tests for OperationResult and identity error codes."""

import pytest

from domain.identity.core.exceptions.identity_errors import (
    AccountStateError,
    AuthenticationError,
    ConflictError,
    NotFoundError,
    RegistrationClosedError,
)
from domain.shared.result import OperationResult


class TestOperationResult:
    """Test success / failure envelopes."""

    def test_success(self):
        result = OperationResult.success(42)

        assert result.ok is True
        assert result.value == 42
        assert result.error is None
        assert result.error_code is None
        assert result.unwrap() == 42

    def test_failure(self):
        result = OperationResult.failure(NotFoundError("u-1"))

        assert result.ok is False
        assert result.value is None
        assert result.error_code == "not_found"
        assert "u-1" in result.message

    def test_unwrap_failure_reraises(self):
        result = OperationResult.failure(ConflictError("email_exists"))

        with pytest.raises(ConflictError):
            result.unwrap()


class TestErrorMessages:
    """Test user-facing error messages."""

    def test_authentication_default_message(self):
        assert AuthenticationError().message == "Invalid email or password"

    def test_conflict_messages(self):
        assert ConflictError("superadmin_exists").message == "A superadmin account already exists"
        assert ConflictError("email_exists").reason == "email_exists"

    def test_account_state_unknown_reason(self):
        assert "frozen" in AccountStateError("frozen").message

    def test_registration_closed(self):
        error = RegistrationClosedError("closed")

        assert error.code == "registration_closed"
        assert error.policy == "closed"
