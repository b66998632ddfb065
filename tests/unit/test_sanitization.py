"""
Tests for input sanitization: every function is total and strips dangerous content.
"""

import math

import pytest

from shuttle.security.sanitization import (
    neutralize_csv_cell,
    parse_number,
    sanitize_address,
    sanitize_email,
    sanitize_name,
    sanitize_number,
    sanitize_payment_method,
    sanitize_payment_status,
    sanitize_phone,
    sanitize_text,
)

MALICIOUS_INPUTS = [
    "<script>alert('xss')</script>",
    "javascript:alert(1)",
    "JaVaScRiPt:alert(document.cookie)",
    "javajavascript:script:alert(1)",
    "Robert'); DROP TABLE users; --",
    "admin' /* comment */ OR 1=1",
    "<img src=x onerror=alert(1)>",
    "name -- comment",
    "drop    TABLE routes",
]

TEXT_SANITIZERS = [sanitize_name, sanitize_address, sanitize_text]


@pytest.mark.parametrize("sanitize", TEXT_SANITIZERS)
@pytest.mark.parametrize("payload", MALICIOUS_INPUTS)
def test_text_sanitizers_remove_dangerous_content(sanitize, payload):
    cleaned = sanitize(payload).lower()

    for marker in ("<script", "<", ">", "javascript:", "drop table", "--", "/*", "*/", "onerror="):
        assert marker not in cleaned
    assert "'" not in cleaned
    assert '"' not in cleaned


@pytest.mark.parametrize("payload", MALICIOUS_INPUTS)
def test_email_and_phone_outputs_exclude_injection(payload):
    for cleaned in (sanitize_email(payload), sanitize_phone(payload)):
        lowered = cleaned.lower()
        assert "<" not in lowered
        assert "javascript:" not in lowered
        assert "drop table" not in lowered
        assert "--" not in lowered
        assert "/*" not in lowered


@pytest.mark.parametrize("value", [None, 42, 3.5, True, ["a"], {"k": "v"}, object()])
def test_sanitizers_never_raise_on_odd_types(value):
    assert isinstance(sanitize_name(value), str)
    assert isinstance(sanitize_address(value), str)
    assert isinstance(sanitize_email(value), str)
    assert isinstance(sanitize_phone(value), str)
    assert math.isfinite(sanitize_number(value, 0, 10000))


def test_sanitize_name_trims_and_collapses_whitespace():
    assert sanitize_name("  Ana   Maria \t Pop  ") == "Ana Maria Pop"


def test_sanitize_name_strips_markup_characters():
    assert sanitize_name('Tom & "Jerry" <b>') == "Tom Jerry b"


def test_sanitize_name_caps_length():
    assert len(sanitize_name("a" * 300)) == 100
    assert len(sanitize_name("a" * 300, 60)) == 60


def test_sanitize_email_lowercases():
    assert sanitize_email("USER@EXAMPLE.COM") == "user@example.com"


def test_sanitize_email_keeps_only_whitelisted_characters():
    assert sanitize_email(" john.doe <at> @example.com ") == "john.doeat@example.com"


def test_sanitize_email_caps_length():
    assert len(sanitize_email("a" * 300 + "@example.com")) == 254


def test_sanitize_phone_keeps_leading_plus_only():
    assert sanitize_phone("+40 (712) 345-678") == "+40 (712) 345-678"
    assert sanitize_phone("40+712+345") == "40712345"
    assert sanitize_phone("+40abc712") == "+40712"


def test_sanitize_phone_caps_length():
    assert len(sanitize_phone("+" + "1" * 40)) == 20


def test_sanitize_number_edge_values():
    assert sanitize_number(math.inf, 0, 10000) == 10000
    assert sanitize_number(-math.inf, 0, 10000) == 0
    assert sanitize_number(math.nan, 0, 10000) == 0
    assert sanitize_number("abc", 0, 10000) == 0
    assert sanitize_number("12500", 0, 10000) == 10000
    assert sanitize_number("-3", 0, 10000) == 0
    assert sanitize_number("59.99", 0, 10000) == 59.99


def test_parse_number_handles_strings():
    assert parse_number(" 60 ") == 60.0
    assert parse_number("€75.50") == 75.5
    assert math.isnan(parse_number(""))
    assert math.isnan(parse_number("1.2.3"))
    assert math.isnan(parse_number(None))


def test_payment_method_accepts_exact_values_only():
    assert sanitize_payment_method("cash") == "cash"
    assert sanitize_payment_method("card") == "card"
    assert sanitize_payment_method("CARD") is None
    assert sanitize_payment_method(" cash") is None
    assert sanitize_payment_method("bitcoin") is None
    assert sanitize_payment_method(None) is None


def test_payment_status_accepts_known_values_only():
    assert sanitize_payment_status("not_required") == "not_required"
    assert sanitize_payment_status("refunded") is None


def test_sanitizers_do_not_mutate_input():
    payload = {"name": "  <b>Ana</b> "}
    sanitize_name(payload["name"])
    assert payload == {"name": "  <b>Ana</b> "}


@pytest.mark.parametrize(
    "value,expected",
    [
        ("=SUM(A1:A2)", "'=SUM(A1:A2)"),
        ("+40712", "'+40712"),
        ("-1", "'-1"),
        ("@cmd", "'@cmd"),
        ("Vienna", "Vienna"),
        (60.0, 60.0),
    ],
)
def test_neutralize_csv_cell(value, expected):
    assert neutralize_csv_cell(value) == expected
