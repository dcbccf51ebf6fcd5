"""
Input normalization for lead and partner submissions - email format,
US state codes, phone numbers.
"""
import re
from typing import Optional

from pydantic import ValidationError

# RFC 5322 simplified - covers 99%+ of valid emails
EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9]"
    r"(?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(?:\.[a-zA-Z0-9]"
    r"(?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*\.[a-zA-Z]{2,}$"
)

_DIGITS_ONLY = re.compile(r"\D")

US_STATE_CODES = frozenset({
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "DC", "FL", "GA", "HI",
    "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD", "MA", "MI", "MN",
    "MS", "MO", "MT", "NE", "NV", "NH", "NJ", "NM", "NY", "NC", "ND", "OH",
    "OK", "OR", "PA", "RI", "SC", "SD", "TN", "TX", "UT", "VT", "VA", "WA",
    "WV", "WI", "WY", "PR",
})


def is_valid_email_format(email: Optional[str]) -> bool:
    """Check if email matches a valid format (RFC 5322 simplified)."""
    if not email or len(email) > 254:
        return False
    return bool(EMAIL_REGEX.match(email.strip()))


def normalize_state_code(state: Optional[str]) -> Optional[str]:
    """Upper-case a two-letter state code. Returns None for unknown codes."""
    if not state:
        return None
    code = state.strip().upper()
    return code if code in US_STATE_CODES else None


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a US phone number to E.164 (+1XXXXXXXXXX).

    Handles:
    - (555) 123-4567 -> +15551234567
    - 555.123.4567   -> +15551234567
    - 1-555-123-4567 -> +15551234567

    Returns None if the number cannot be normalized.
    """
    if not phone or not phone.strip():
        return None
    digits = _DIGITS_ONLY.sub("", phone)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) != 10 or digits[0] in "01":
        return None
    return f"+1{digits}"


def describe_validation_error(error: ValidationError) -> str:
    """Flatten a pydantic ValidationError into 'field: message; ...' for 400 responses."""
    parts = []
    for err in error.errors():
        field = ".".join(str(loc) for loc in err.get("loc", ()))
        parts.append(f"{field}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


def missing_fields(error: ValidationError) -> list[str]:
    """Field names a ValidationError reports as absent."""
    return [
        ".".join(str(loc) for loc in err.get("loc", ()))
        for err in error.errors()
        if err.get("type") == "missing"
    ]
