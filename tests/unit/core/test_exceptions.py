#!/usr/bin/env python3
"""
Unit Tests for Custom Exceptions
Tests for chartshare/core/exceptions.py
"""

from chartshare.core.exceptions import (
    AppException,
    AuthenticationException,
    AuthorizationException,
    ConflictException,
    FailurePolicy,
    GoneException,
    NotFoundException,
    RateLimitException,
    StoreUnavailableException,
    ValidationException,
)


class TestAppException:
    """Test base AppException"""

    def test_default_values(self):
        """Test exception with default values"""
        exc = AppException("Test error")
        assert exc.message == "Test error"
        assert exc.code == "app_error"
        assert exc.status_code == 500
        assert exc.details == {}
        assert exc.timestamp

    def test_with_details(self):
        """Test exception with details dict"""
        exc = AppException("Test error", details={"key": "value"})
        assert exc.details == {"key": "value"}


class TestStatusCodes:
    """Test each subclass maps to its HTTP status"""

    def test_validation(self):
        assert ValidationException("bad").status_code == 400

    def test_authentication_default_message(self):
        exc = AuthenticationException()
        assert exc.status_code == 401
        assert exc.message == "Authentication required"

    def test_authorization(self):
        assert AuthorizationException().status_code == 403

    def test_not_found_resource_message(self):
        """Test message is derived from the resource name"""
        exc = NotFoundException("Chart")
        assert exc.status_code == 404
        assert exc.message == "Chart not found"

    def test_not_found_message_override(self):
        """Test an explicit message replaces the derived one"""
        exc = NotFoundException(message="Access request not found")
        assert exc.message == "Access request not found"

    def test_conflict(self):
        assert ConflictException("already reviewed").status_code == 409

    def test_gone(self):
        exc = GoneException("This share link has been revoked")
        assert exc.status_code == 410
        assert exc.code == "gone"


class TestRateLimitException:
    """Test rate limit exception"""

    def test_retry_after_in_details(self):
        """Test retry_after is kept on the exception and in details"""
        exc = RateLimitException("Rate limit exceeded", retry_after=42)
        assert exc.status_code == 429
        assert exc.retry_after == 42
        assert exc.details["retry_after"] == 42

    def test_without_retry_after(self):
        exc = RateLimitException()
        assert exc.retry_after is None
        assert "retry_after" not in exc.details


class TestStoreUnavailableException:
    """Test store fault exception"""

    def test_operation_in_details(self):
        exc = StoreUnavailableException(operation="get_role")
        assert exc.status_code == 503
        assert exc.details["operation"] == "get_role"


class TestFailurePolicy:
    """Test failure policy values"""

    def test_values(self):
        assert FailurePolicy.FAIL_OPEN.value == "fail_open"
        assert FailurePolicy.FAIL_CLOSED.value == "fail_closed"
