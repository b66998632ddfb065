"""
Input sanitization for untrusted request fields.

Every function here is total: it accepts any value (including ``None`` and non-strings),
never raises, and never mutates its input. The output of a text sanitizer is guaranteed
free of markup delimiters, script protocols, inline event handlers and SQL comment or
statement markers. Sanitizing says nothing about whether a value is *well formed*;
that judgement belongs to ``shuttle.security.validation``.
"""

import math
import re
from decimal import Decimal
from typing import Any, Optional

NAME_MAX_LENGTH = 100
BOOKING_NAME_MAX_LENGTH = 60
EMAIL_MAX_LENGTH = 254
PHONE_MAX_LENGTH = 20
ADDRESS_MAX_LENGTH = 200
PICKUP_ADDRESS_MAX_LENGTH = 90

PAYMENT_METHODS = ("cash", "card")
PAYMENT_STATUSES = ("paid", "pending", "failed", "not_required")

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_WHITESPACE_RUN = re.compile(r"\s+")
_NAME_FORBIDDEN = re.compile(r"[<>'\"&;]")
_ADDRESS_FORBIDDEN = re.compile(r"[<>'\";]")
_EMAIL_FORBIDDEN = re.compile(r"[^A-Za-z0-9_@.\-]")
_PHONE_FORBIDDEN = re.compile(r"[^\d+\-\s()]")
_NUMBER_FORBIDDEN = re.compile(r"[^\d.\-]")

# Stripped until the text stops changing; nested payloads such as "javajavascript:script:"
# must not reassemble after one pass.
_INJECTION_MARKERS = re.compile(
    r"javascript:|vbscript:|data:|on\w+\s*=|style\s*=|drop\s+table|--|/\*|\*/",
    re.IGNORECASE,
)


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return ""


def _strip_markers(text: str) -> str:
    previous = None
    while previous != text:
        previous = text
        text = _INJECTION_MARKERS.sub("", text)
    return text


def _cap(text: str, max_length: Optional[int]) -> str:
    if max_length is not None and len(text) > max_length:
        text = text[:max_length]
    return text.strip()


def sanitize_text(value: Any, max_length: Optional[int] = ADDRESS_MAX_LENGTH) -> str:
    """Generic free text: control characters, markup and injection markers removed."""
    text = _CONTROL_CHARS.sub("", _as_text(value))
    text = _ADDRESS_FORBIDDEN.sub("", text)
    text = _strip_markers(text)
    text = _WHITESPACE_RUN.sub(" ", text).strip()
    return _cap(text, max_length)


def sanitize_name(value: Any, max_length: int = NAME_MAX_LENGTH) -> str:
    """Person, company or provider name."""
    text = _CONTROL_CHARS.sub("", _as_text(value))
    text = _NAME_FORBIDDEN.sub("", text)
    text = _strip_markers(text)
    text = _WHITESPACE_RUN.sub(" ", text).strip()
    return _cap(text, max_length)


def sanitize_address(value: Any, max_length: int = ADDRESS_MAX_LENGTH) -> str:
    """Addresses and place names (pickup point, departure, arrival)."""
    return sanitize_text(value, max_length)


def sanitize_email(value: Any) -> str:
    """Lowercase and keep only ``[A-Za-z0-9_@.-]``; syntax is checked by the validator."""
    text = _as_text(value).strip().lower()
    text = _EMAIL_FORBIDDEN.sub("", text)
    text = re.sub(r"-{2,}", "-", text)
    text = re.sub(r"\.{2,}", ".", text)
    return text[:EMAIL_MAX_LENGTH]


def sanitize_phone(value: Any) -> str:
    """Digits, a leading ``+``, dashes, spaces and parentheses only."""
    text = _PHONE_FORBIDDEN.sub("", _as_text(value).strip())
    leading_plus = text.startswith("+")
    text = text.replace("+", "")
    if leading_plus:
        text = "+" + text
    text = re.sub(r"-{2,}", "-", text)
    text = _WHITESPACE_RUN.sub(" ", text).strip()
    return text[:PHONE_MAX_LENGTH].strip()


def parse_number(value: Any) -> float:
    """Parse a user supplied number; anything unparseable becomes NaN."""
    if isinstance(value, bool) or value is None:
        return math.nan
    if isinstance(value, (int, float, Decimal)):
        try:
            return float(value)
        except (OverflowError, ValueError):
            return math.nan
    if isinstance(value, str):
        cleaned = _NUMBER_FORBIDDEN.sub("", value.strip())
        try:
            return float(cleaned)
        except ValueError:
            return math.nan
    return math.nan


def sanitize_number(value: Any, minimum: float, maximum: float) -> float:
    """Parse and clamp into ``[minimum, maximum]``; never returns NaN or infinity."""
    number = parse_number(value)
    if math.isnan(number):
        return float(minimum)
    if number < minimum:
        return float(minimum)
    if number > maximum:
        return float(maximum)
    return number


def sanitize_payment_method(value: Any) -> Optional[str]:
    """Exactly ``"cash"`` or ``"card"``; anything else is dropped."""
    return value if isinstance(value, str) and value in PAYMENT_METHODS else None


def sanitize_payment_status(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value in PAYMENT_STATUSES else None


_FORMULA_PREFIXES = ("=", "+", "-", "@")


def neutralize_csv_cell(value: Any) -> Any:
    """Prefix text cells that a spreadsheet would evaluate as a formula."""
    if isinstance(value, str) and value.startswith(_FORMULA_PREFIXES):
        return "'" + value
    return value
