"""
Per-endpoint validation rules.

Each ``validate_*`` function sanitizes the raw fields it knows about, checks them against
the domain rules and returns a ``ValidationResult`` listing *every* violated rule, in field
order, together with the cleaned values. The caller's mapping is never modified.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from shuttle.exceptions import ValidationError
from shuttle.security.sanitization import (
    BOOKING_NAME_MAX_LENGTH, NAME_MAX_LENGTH, PICKUP_ADDRESS_MAX_LENGTH,
    parse_number, sanitize_address, sanitize_email, sanitize_name,
    sanitize_number, sanitize_payment_method, sanitize_phone,
)

EMAIL_PATTERN = re.compile(r"^[\w.+-]+@[\w.-]+\.[A-Za-z]{2,}$")
PHONE_PATTERN = re.compile(r"^\+\d{8,15}$")
CURRENCY_PATTERN = re.compile(r"^[a-z]{3}$")
ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")

NAME_MIN_LENGTH = 2
USERNAME_MIN_LENGTH = 3
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128
PRICE_MIN, PRICE_MAX = 0, 10000
SEATS_MIN, SEATS_MAX = 1, 100

ROUTE_REQUIRED_FIELDS = ("departure", "arrival", "departure_time", "arrival_time", "price", "provider")

# CSV headers and JSON bodies use camelCase; services use the snake_case names
ROUTE_FIELD_LABELS = {
    "provider": "provider",
    "departure": "departure",
    "arrival": "arrival",
    "departure_time": "departureTime",
    "arrival_time": "arrivalTime",
    "price": "price",
    "seats": "seats",
    "vehicle_type": "vehicleType",
    "company_id": "companyId",
}


@dataclass
class ValidationResult:
    """Outcome of a validation pass. ``valid`` is true exactly when ``errors`` is empty."""

    errors: List[str] = field(default_factory=list)
    cleaned: Dict[str, Any] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> Dict[str, Any]:
        if self.errors:
            raise ValidationError(self.errors)
        return self.cleaned


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return False


def _check_email(raw: Any, errors: List[str]) -> str:
    email = sanitize_email(raw)
    if not email:
        errors.append("Email is required")
    elif not EMAIL_PATTERN.match(email):
        errors.append("Enter a valid email address")
    return email


def _check_phone(raw: Any, errors: List[str], required: bool) -> str:
    phone = sanitize_phone(raw)
    if not phone:
        if required:
            errors.append("Phone number is required")
    elif not PHONE_PATTERN.match(phone):
        errors.append("Enter a valid international phone number (e.g. +40712345678)")
    return phone


def _check_name(raw: Any, errors: List[str], max_length: int) -> str:
    name = sanitize_name(raw)
    if not name:
        errors.append("Name is required")
    elif len(name) < NAME_MIN_LENGTH:
        errors.append(f"Name must be at least {NAME_MIN_LENGTH} characters")
    elif len(name) > max_length:
        errors.append(f"Name must be at most {max_length} characters")
    return name


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp; ``None`` when the value is not one.

    Relative keywords ("now", "today") and bare numbers are not dates here.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if _is_blank(value) or not isinstance(value, str):
        return None
    text = value.strip()
    if not ISO_DATE_PREFIX.match(text):
        return None
    try:
        parsed = pd.to_datetime(text, format="ISO8601")
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert("UTC").tz_localize(None)
    return parsed.to_pydatetime()


def validate_password(password: Any) -> List[str]:
    """Password strength rules (passwords are checked, never sanitized)."""
    if not isinstance(password, str) or not password:
        return ["Password is required"]

    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append(f"Password must be less than {PASSWORD_MAX_LENGTH} characters")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    return errors


def validate_route_reference(raw: Any, errors: List[str]) -> Optional[Dict[str, Any]]:
    """The ``route`` object of a booking: an id, or enough fields to find or create one."""
    if not isinstance(raw, Mapping):
        errors.append("Route is required")
        return None

    route_id = raw.get("id")
    if route_id is not None and not _is_blank(route_id):
        number = parse_number(route_id)
        if not math.isfinite(number) or number < 1 or number != int(number):
            errors.append("Route id must be a positive integer")
            route_id = None
        else:
            route_id = int(number)
    else:
        route_id = None

    departure = sanitize_address(raw.get("departure") or raw.get("origin"))
    arrival = sanitize_address(raw.get("arrival") or raw.get("destination"))
    if route_id is None and not (departure and arrival):
        errors.append("Route must include an id or both departure and arrival")

    reference = {
        "id": route_id,
        "provider": sanitize_name(raw.get("provider")),
        "departure": departure,
        "arrival": arrival,
        "departure_time": parse_datetime(raw.get("departure_time")),
        "arrival_time": parse_datetime(raw.get("arrival_time")),
        "price": None,
        "vehicle_type": sanitize_name(raw.get("vehicle_type"), 50),
        "seats": None,
    }
    if not _is_blank(raw.get("price")):
        price = parse_number(raw.get("price"))
        if not math.isfinite(price) or not PRICE_MIN <= price <= PRICE_MAX:
            errors.append("Invalid route price")
        else:
            reference["price"] = round(price, 2)
    if not _is_blank(raw.get("seats")):
        reference["seats"] = int(sanitize_number(raw.get("seats"), SEATS_MIN, SEATS_MAX))
    return reference


def validate_booking_request(data: Mapping[str, Any]) -> ValidationResult:
    """Booking creation: name, email, phone, pickup address, payment method, route."""
    errors: List[str] = []

    name = _check_name(data.get("name"), errors, BOOKING_NAME_MAX_LENGTH)
    email = _check_email(data.get("email"), errors)
    phone = _check_phone(data.get("phone"), errors, required=True)

    pickup_address = sanitize_address(data.get("pickup_address"))
    if not pickup_address:
        errors.append("Pickup address is required")
    elif len(pickup_address) > PICKUP_ADDRESS_MAX_LENGTH:
        errors.append(f"Pickup address must be at most {PICKUP_ADDRESS_MAX_LENGTH} characters")

    payment_method = sanitize_payment_method(data.get("payment_method"))
    if payment_method is None:
        errors.append("Payment method must be 'cash' or 'card'")

    route = validate_route_reference(data.get("route"), errors)

    return ValidationResult(errors, {
        "name": name,
        "email": email,
        "phone": phone,
        "pickup_address": pickup_address,
        "payment_method": payment_method,
        "route": route,
    })


def validate_registration(data: Mapping[str, Any]) -> ValidationResult:
    """Account registration: name, email, password and an optional phone."""
    errors: List[str] = []

    name = _check_name(data.get("name"), errors, NAME_MAX_LENGTH)
    email = _check_email(data.get("email"), errors)
    password = data.get("password")
    errors.extend(validate_password(password))
    phone = _check_phone(data.get("phone"), errors, required=False)

    return ValidationResult(errors, {
        "name": name,
        "email": email,
        "password": password,
        "phone": phone,
    })


def validate_admin_credentials(data: Mapping[str, Any]) -> ValidationResult:
    errors: List[str] = []
    username = sanitize_name(data.get("username"))
    password = data.get("password")
    if not username or not isinstance(password, str) or not password:
        errors.append("Username and password are required")
    return ValidationResult(errors, {"username": username, "password": password})


def validate_login(data: Mapping[str, Any]) -> ValidationResult:
    errors: List[str] = []
    email = sanitize_email(data.get("email"))
    password = data.get("password")
    if not email or not isinstance(password, str) or not password:
        errors.append("Email and password are required")
    return ValidationResult(errors, {"email": email, "password": password})


def validate_profile_update(data: Mapping[str, Any]) -> ValidationResult:
    """Profile edits: a required name and an optional phone (blank clears it)."""
    errors: List[str] = []
    name = _check_name(data.get("name"), errors, NAME_MAX_LENGTH)
    phone = _check_phone(data.get("phone"), errors, required=False)
    return ValidationResult(errors, {"name": name, "phone": phone})


def validate_route_fields(data: Mapping[str, Any], partial: bool = False) -> ValidationResult:
    """Route fields for admin CRUD and CSV rows.

    With ``partial=True`` only the fields present (non-blank) are checked and returned, so an
    update leaves every other column untouched. Numbers out of range are rejected, not clamped.
    """
    errors: List[str] = []
    cleaned: Dict[str, Any] = {}

    if not partial:
        missing = [ROUTE_FIELD_LABELS[f] for f in ROUTE_REQUIRED_FIELDS if _is_blank(data.get(f))]
        if missing:
            errors.append(f"Missing fields: {', '.join(missing)}")

    for text_field in ("provider", "departure", "arrival"):
        if not _is_blank(data.get(text_field)):
            sanitize = sanitize_name if text_field == "provider" else sanitize_address
            value = sanitize(data.get(text_field))
            if not value:
                errors.append(f"Invalid {ROUTE_FIELD_LABELS[text_field]}")
            cleaned[text_field] = value

    if not _is_blank(data.get("vehicle_type")):
        cleaned["vehicle_type"] = sanitize_name(data.get("vehicle_type"), 50)

    invalid_date = False
    for time_field in ("departure_time", "arrival_time"):
        if not _is_blank(data.get(time_field)):
            parsed = parse_datetime(data.get(time_field))
            if parsed is None:
                invalid_date = True
            else:
                cleaned[time_field] = parsed
    if invalid_date:
        errors.append("Invalid date format")

    if not _is_blank(data.get("price")):
        price = parse_number(data.get("price"))
        if not math.isfinite(price) or not PRICE_MIN <= price <= PRICE_MAX:
            errors.append("Invalid price")
        else:
            cleaned["price"] = round(price, 2)

    if not _is_blank(data.get("seats")):
        seats = parse_number(data.get("seats"))
        if not math.isfinite(seats) or seats != int(seats) or not SEATS_MIN <= seats <= SEATS_MAX:
            errors.append("Invalid seats")
        else:
            cleaned["seats"] = int(seats)

    if not _is_blank(data.get("company_id")):
        company_id = parse_number(data.get("company_id"))
        if not math.isfinite(company_id) or company_id < 1 or company_id != int(company_id):
            errors.append("Invalid companyId")
        else:
            cleaned["company_id"] = int(company_id)

    return ValidationResult(errors, cleaned)


def validate_admin_setup(data: Mapping[str, Any]) -> ValidationResult:
    """First-admin creation: username, email and password (setup key checked by the caller)."""
    errors: List[str] = []

    username = sanitize_name(data.get("username"))
    if len(username) < USERNAME_MIN_LENGTH:
        errors.append(f"Username must be at least {USERNAME_MIN_LENGTH} characters")
    email = _check_email(data.get("email"), errors)
    password = data.get("password")
    errors.extend(validate_password(password))

    return ValidationResult(errors, {"username": username, "email": email, "password": password})


def validate_company(data: Mapping[str, Any], partial: bool = False) -> ValidationResult:
    errors: List[str] = []
    cleaned: Dict[str, Any] = {}

    if not partial or "name" in data:
        name = sanitize_name(data.get("name"))
        if not name:
            errors.append("Company name is required")
        cleaned["name"] = name

    if not _is_blank(data.get("phone")):
        cleaned["phone"] = _check_phone(data.get("phone"), errors, required=False)

    return ValidationResult(errors, cleaned)


def validate_payment_intent(data: Mapping[str, Any], default_currency: str) -> ValidationResult:
    """Payment intent creation: an amount in major units and an optional ISO currency code."""
    errors: List[str] = []

    amount = 0.0
    if _is_blank(data.get("amount")):
        errors.append("Amount is required")
    else:
        amount = round(sanitize_number(data.get("amount"), PRICE_MIN, PRICE_MAX), 2)
        if amount <= 0:
            errors.append("Amount must be greater than 0")

    currency = default_currency
    if not _is_blank(data.get("currency")):
        currency = str(data.get("currency")).strip().lower()
        if not CURRENCY_PATTERN.match(currency):
            errors.append("Currency must be a three-letter code")

    return ValidationResult(errors, {"amount": amount, "currency": currency})
