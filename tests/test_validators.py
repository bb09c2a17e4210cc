"""Tests for input shape rules (phone, code, email, password, name)."""
import pytest

from stackingup.validators import (
    is_strong_password,
    is_valid_code,
    is_valid_email,
    is_valid_name,
    normalize_phone,
    valid_phone,
)


# =============================================================================
# Phone
# =============================================================================


@pytest.mark.parametrize("raw, expected", [
    ("+34 777 77 77 77", "+34777777777"),
    ("+34612345678", "+34612345678"),
    ("+34\t6 1 2 3 4 5 6 7 8", "+34612345678"),
])
def test_valid_phone_normalizes(raw, expected):
    assert valid_phone(raw) == expected


@pytest.mark.parametrize("raw", [
    "+34 678 83 83 536",     # 10 digits after prefix
    "678 45 72 56",          # no prefix
    "+34 912 34 56 78",      # landline, not 6 or 7
    "+34 6a2 34 56 78",      # alphabetic content
    "+33 612 34 56 78",      # wrong country
    "+34 612 34 56 7",       # too short
    "",
    None,
])
def test_invalid_phone_rejected(raw):
    assert valid_phone(raw) is None


def test_normalize_phone_strips_all_whitespace():
    assert normalize_phone(" +34 777\n77 77 77 ") == "+34777777777"


# =============================================================================
# Code
# =============================================================================


def test_seven_digit_code_is_valid():
    assert is_valid_code("1234567")


@pytest.mark.parametrize("code", ["123456", "12345678", "123er67", "", None, "1234567\n", "١٢٣٤٥٦٧"])
def test_other_codes_are_invalid(code):
    assert not is_valid_code(code)


# =============================================================================
# Email
# =============================================================================


@pytest.mark.parametrize("email", [
    "t@test.com",
    "first.last@example.es",
    "first-last@mail.example.org",
    "USER@Example.COM",
])
def test_valid_emails(email):
    assert is_valid_email(email)


@pytest.mark.parametrize("email", [
    "userinvalid",
    "user@",
    "@test.com",
    "user@test",
    "user@test.comm",
    "user..name@test.com",
    "",
    None,
])
def test_invalid_emails(email):
    assert not is_valid_email(email)


def test_email_check_is_fast_on_long_invalid_input():
    assert not is_valid_email("a" * 5000 + "!")


# =============================================================================
# Password / name
# =============================================================================


def test_strong_password():
    assert is_strong_password("Testing123")


@pytest.mark.parametrize("password", [
    "Test123",        # too short
    "testing123",     # no uppercase
    "TESTING123",     # no lowercase
    "Testingabc",     # no digit
    "",
    None,
])
def test_weak_passwords(password):
    assert not is_strong_password(password)


def test_name_length():
    assert is_valid_name("Ana")
    assert not is_valid_name("Al")
    assert not is_valid_name("  Al  ")
    assert not is_valid_name(None)
