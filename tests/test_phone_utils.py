import re

import pytest

from sms_gateway.utils import (
    alias_email_for,
    compose_message,
    generate_otp,
    generate_password,
    mask_code,
    mask_phone,
    national_digits,
    normalize_phone,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("9876543210", "+919876543210"),
        ("98765 43210", "+919876543210"),
        ("919876543210", "+919876543210"),
        ("+91 98765-43210", "+919876543210"),
        ("09876543210", "+919876543210"),
        ("+15551234567", "+15551234567"),
    ],
)
def test_normalize_phone_common_shapes(raw, expected):
    assert normalize_phone(raw, country_code="91") == expected


@pytest.mark.parametrize("raw", ["9876543210", "+919876543210", "09876543210", "+15551234567", "12345"])
def test_normalize_phone_is_idempotent(raw):
    once = normalize_phone(raw, country_code="91")
    assert normalize_phone(once, country_code="91") == once


@pytest.mark.parametrize("raw", [None, "", "   ", "abc", "+-()"])
def test_normalize_phone_without_digits_is_empty(raw):
    assert normalize_phone(raw) == ""


def test_normalized_phone_is_plus_and_digits():
    assert re.fullmatch(r"\+\d+", normalize_phone("(987) 654-3210", country_code="91"))


def test_normalize_phone_uses_given_country_code():
    assert normalize_phone("5551234567", country_code="1") == "+15551234567"


def test_national_digits_and_alias_email():
    assert national_digits("+919876543210") == "9876543210"
    assert alias_email_for("+919876543210", "mobile.local") == "agent.919876543210@mobile.local"
    assert alias_email_for("+19876543210", "mobile.local") == "agent.19876543210@mobile.local"


def test_mask_phone_keeps_last_four():
    assert mask_phone("+919876543210") == "*********3210"
    assert mask_phone("") == ""


def test_generate_otp_is_six_digits():
    for _ in range(50):
        code = generate_otp(6)
        assert len(code) == 6 and code.isdigit()


def test_mask_code_and_compose_message():
    assert mask_code("123456") == "****56"
    assert compose_message("Code {otp} for login", "****56") == "Code ****56 for login"
    assert compose_message("", "1234") == "Your OTP is 1234."


def test_generate_password_covers_all_classes():
    for _ in range(20):
        pw = generate_password(14)
        assert len(pw) == 14
        assert any(c.isupper() for c in pw)
        assert any(c.islower() for c in pw)
        assert any(c.isdigit() for c in pw)
        assert any(not c.isalnum() for c in pw)


def test_generate_password_enforces_minimum_length():
    assert len(generate_password(4)) == 12
