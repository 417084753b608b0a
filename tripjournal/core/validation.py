"""
Input validation utilities applied at the service boundary
"""
import re
from typing import Optional

from tripjournal.core.exceptions import ValidationError

RATING_MIN = 1
RATING_MAX = 5
TEXT_MAX_LENGTH = 500
NOTE_MAX_LENGTH = 5000


def validate_rating_value(value: Optional[int]) -> Optional[int]:
    """
    Validate a rating value

    Args:
        value: Integer rating or None for "not yet rated"

    Returns:
        The validated value

    Raises:
        ValidationError: If value is not an integer between 1 and 5
    """
    if value is None:
        return None

    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"Rating must be an integer, got {type(value).__name__}",
            details={"value": repr(value)},
        )

    if not RATING_MIN <= value <= RATING_MAX:
        raise ValidationError(
            f"Rating {value} out of range (must be {RATING_MIN} to {RATING_MAX})",
            details={"value": value},
        )

    return value


def validate_text_length(text: str, field_name: str = "text", max_length: int = TEXT_MAX_LENGTH) -> str:
    """
    Validate and trim free text

    Args:
        text: Text to validate
        field_name: Name used in error messages
        max_length: Maximum allowed length after trimming

    Returns:
        Trimmed text

    Raises:
        ValidationError: If text is empty or too long
    """
    if text is None or not text.strip():
        raise ValidationError(f"{field_name} cannot be empty", details={"field": field_name})

    text = text.strip()
    if len(text) > max_length:
        raise ValidationError(
            f"{field_name} too long (max {max_length} characters)",
            details={"field": field_name, "length": len(text)},
        )

    return text


def validate_optional_text(text: Optional[str], field_name: str = "text", max_length: int = TEXT_MAX_LENGTH) -> Optional[str]:
    """Trim optional text, collapsing blank strings to None."""
    if text is None or not text.strip():
        return None
    return validate_text_length(text, field_name, max_length)


def validate_phone_number(phone: str) -> str:
    """
    Validate a contact phone number

    Allows digits, spaces, dashes, dots, parentheses and a leading plus sign.
    """
    phone = (phone or "").strip()

    if not re.match(r'^\+?[0-9 ().-]{3,32}$', phone):
        raise ValidationError("Invalid phone number format", details={"phone": phone})

    if sum(c.isdigit() for c in phone) < 3:
        raise ValidationError("Phone number must contain at least 3 digits", details={"phone": phone})

    return phone
