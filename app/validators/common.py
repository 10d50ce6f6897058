"""
Common validators for user input.

Each validator returns a tuple of (is_valid, parsed_value, error_message).
"""

import re
import uuid
from decimal import Decimal, InvalidOperation

from app.utils.datetime_utils import parse_iso_datetime, utc_now


UPI_ID_PATTERN = re.compile(r"[a-zA-Z0-9._-]+@[a-zA-Z0-9]+")
CARD_LAST_FOUR_PATTERN = re.compile(r"[0-9]{4}")


def validate_uuid(value: object) -> tuple[bool, uuid.UUID | None, str | None]:
    """
    Validate an entity id.

    Examples:
        >>> validate_uuid("not-a-uuid")
        (False, None, 'Invalid id')
    """
    if isinstance(value, uuid.UUID):
        return True, value, None
    if not value or not isinstance(value, str):
        return False, None, "Invalid id"
    try:
        return True, uuid.UUID(value.strip()), None
    except ValueError:
        return False, None, "Invalid id"


def validate_amount(
    value: object,
    min_amount: Decimal = Decimal("0"),
    max_amount: Decimal | None = None,
) -> tuple[bool, Decimal | None, str | None]:
    """
    Validate a rupee amount (at most 2 decimal places).

    Args:
        value: String or number to validate
        min_amount: Minimum allowed amount (inclusive)
        max_amount: Maximum allowed amount (inclusive)

    Returns:
        Tuple of (is_valid, parsed_amount, error_message)

    Examples:
        >>> validate_amount("100.50")
        (True, Decimal('100.50'), None)
        >>> validate_amount("abc")
        (False, None, 'Amount must be a valid number')
    """
    if value is None or isinstance(value, bool):
        return False, None, "Amount is required"

    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return False, None, "Amount must be a valid number"

    if not amount.is_finite():
        return False, None, "Amount must be a valid number"

    if amount.as_tuple().exponent < -2:
        return False, None, "Amount can have at most 2 decimal places"

    if amount < min_amount:
        return False, None, f"Amount must be at least {min_amount}"

    if max_amount is not None and amount > max_amount:
        return False, None, f"Amount must not exceed {max_amount}"

    return True, amount, None


def validate_upi_id(value: object) -> tuple[bool, str | None, str | None]:
    """
    Validate and normalize a UPI id (``name@provider``).

    Examples:
        >>> validate_upi_id(" John.Doe@OkAxis ")
        (True, 'john.doe@okaxis', None)
        >>> validate_upi_id("johndoe")
        (False, None, 'Invalid UPI ID format. Expected format: yourname@upi')
    """
    error = "Invalid UPI ID format. Expected format: yourname@upi"
    if not value or not isinstance(value, str):
        return False, None, error

    normalized = value.strip().lower()
    if not UPI_ID_PATTERN.fullmatch(normalized):
        return False, None, error

    return True, normalized, None


def validate_card_last_four(value: object) -> tuple[bool, str | None, str | None]:
    if not isinstance(value, str) or not CARD_LAST_FOUR_PATTERN.fullmatch(value):
        return False, None, "Invalid card last 4 digits"
    return True, value, None


def validate_name(
    value: object, min_length: int = 2, field: str = "Name"
) -> tuple[bool, str | None, str | None]:
    """Trimmed free-text name of at least min_length characters."""
    if not isinstance(value, str) or len(value.strip()) < min_length:
        return False, None, f"Invalid {field.lower()}"
    return True, value.strip(), None


def validate_text(
    value: object,
    max_length: int,
    field: str = "Text",
    required: bool = True,
) -> tuple[bool, str | None, str | None]:
    """
    Validate free text length.

    Examples:
        >>> validate_text("  hi  ", max_length=10)
        (True, 'hi', None)
        >>> validate_text("", max_length=10, field="Message")
        (False, None, 'Message cannot be empty')
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            return False, None, f"{field} cannot be empty"
        return True, None, None

    if not isinstance(value, str):
        return False, None, f"{field} must be text"

    text = value.strip()
    if len(text) > max_length:
        return False, None, f"{field} must be at most {max_length} characters"

    return True, text, None


def validate_positive_int(
    value: object, field: str = "Value"
) -> tuple[bool, int | None, str | None]:
    if value is None:
        return True, None, None
    if isinstance(value, bool):
        return False, None, f"{field} must be a positive integer"
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return False, None, f"{field} must be a positive integer"
    if parsed <= 0:
        return False, None, f"{field} must be a positive integer"
    return True, parsed, None


def validate_deadline(value: object):
    """
    Validate a project deadline (ISO-8601, in the future).

    Returns:
        Tuple of (is_valid, parsed_datetime, error_message)
    """
    if not value or not isinstance(value, str):
        return False, None, "Deadline is required"
    try:
        deadline = parse_iso_datetime(value)
    except ValueError:
        return False, None, "Deadline must be an ISO-8601 timestamp"
    if deadline <= utc_now():
        return False, None, "Deadline must be in the future"
    return True, deadline, None
