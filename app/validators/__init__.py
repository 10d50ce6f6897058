"""
Validators package.

Provides common validation functions for user input.
"""

from app.validators.common import (
    validate_amount,
    validate_card_last_four,
    validate_deadline,
    validate_name,
    validate_positive_int,
    validate_text,
    validate_upi_id,
    validate_uuid,
)


__all__ = [
    "validate_amount",
    "validate_card_last_four",
    "validate_deadline",
    "validate_name",
    "validate_positive_int",
    "validate_text",
    "validate_upi_id",
    "validate_uuid",
]
