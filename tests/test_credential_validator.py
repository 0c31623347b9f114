"""Tests for local credential validation."""

import pytest

from app.core.exceptions import CredentialValidationException
from app.schemas.auth import ValidationFailure
from app.services.credential_validator import (
    require_valid_email,
    validate_credentials,
    validate_email,
    validate_password,
)


@pytest.mark.parametrize("email", ["patient", "patient.cancare.test", "  no-at-sign  ", "a.b"])
def test_email_without_at_sign_is_malformed(email):
    """Test emails without '@' are rejected as malformed."""
    assert validate_email(email) == ValidationFailure.MALFORMED_EMAIL

    check = validate_credentials(email, "long-enough")
    assert check.field == "email"
    assert check.failure == ValidationFailure.MALFORMED_EMAIL
    assert not check.is_valid


@pytest.mark.parametrize("email", ["", "   ", "\t\n"])
def test_blank_email_is_empty(email):
    """Test blank emails fail as empty fields."""
    check = validate_credentials(email, "long-enough")
    assert check.field == "email"
    assert check.failure == ValidationFailure.EMPTY_FIELD
    assert check.message == "Please enter your email address."


def test_weak_email_check_accepts_anything_with_at_sign():
    """Test that only the presence of '@' is checked."""
    assert validate_email("a@") is None
    assert validate_email("@b") is None


def test_email_is_trimmed():
    """Test surrounding whitespace is removed from the email."""
    check = validate_credentials("  nurse@cancare.test \n", "secret1")
    assert check.is_valid
    assert check.email == "nurse@cancare.test"


def test_empty_password():
    """Test an empty password fails as an empty field."""
    check = validate_credentials("nurse@cancare.test", "")
    assert check.field == "password"
    assert check.failure == ValidationFailure.EMPTY_FIELD


@pytest.mark.parametrize("password", ["a", "ab", "abc", "abcd", "abcde", "     "])
def test_short_password(password):
    """Test passwords under six characters are too short."""
    assert validate_password(password) == ValidationFailure.TOO_SHORT

    check = validate_credentials("nurse@cancare.test", password)
    assert check.field == "password"
    assert check.failure == ValidationFailure.TOO_SHORT
    assert check.message == "Password must be at least 6 characters."


@pytest.mark.parametrize("password", ["abcdef", "      ", "123456"])
def test_six_character_password_is_valid(password):
    """Test exactly six characters is accepted."""
    assert validate_password(password) is None
    assert validate_credentials("nurse@cancare.test", password).is_valid


def test_email_failure_reported_before_password_failure():
    """Test the email is checked first."""
    check = validate_credentials("", "")
    assert check.field == "email"
    assert check.failure == ValidationFailure.EMPTY_FIELD


def test_raise_for_failure():
    """Test a failed check raises a 422 validation exception."""
    check = validate_credentials("nurse@cancare.test", "abc")

    with pytest.raises(CredentialValidationException) as exc_info:
        check.raise_for_failure()

    exc = exc_info.value
    assert exc.status_code == 422
    assert exc.field == "password"
    assert exc.failure == ValidationFailure.TOO_SHORT
    assert exc.details == {"field": "password", "kind": "too_short"}


def test_raise_for_failure_is_noop_when_valid():
    """Test a valid check does not raise."""
    validate_credentials("nurse@cancare.test", "abcdef").raise_for_failure()


def test_require_valid_email():
    """Test standalone email validation."""
    assert require_valid_email(" doctor@cancare.test ") == "doctor@cancare.test"

    with pytest.raises(CredentialValidationException) as exc_info:
        require_valid_email("doctor")
    assert exc_info.value.failure == ValidationFailure.MALFORMED_EMAIL
