"""
Security utilities for masking sensitive data in logs.

Provides functions to safely mask:
- Card numbers and tokens
- UPI ids and e-mail addresses
- Gateway ids and secrets
"""


def mask_sensitive(value: str | None, show_chars: int = 4) -> str:
    """
    Mask sensitive string (keys, tokens, gateway ids).

    Examples:
        >>> mask_sensitive("order_ABCDEFGH12345678", show_chars=4)
        'orde...5678'
        >>> mask_sensitive("short")
        '***'
        >>> mask_sensitive(None)
        '***'
    """
    if not value or len(value) <= show_chars * 2:
        return "***"
    return f"{value[:show_chars]}...{value[-show_chars:]}"


def mask_card(last_four: str | None) -> str:
    """
    Card display form: **** **** **** 4242

    Examples:
        >>> mask_card("4242")
        '**** **** **** 4242'
        >>> mask_card(None)
        '***'
    """
    if not last_four:
        return "***"
    return f"**** **** **** {last_four[-4:]}"


def mask_upi(upi_id: str | None) -> str:
    """
    Mask a UPI id, keeping the provider.

    Examples:
        >>> mask_upi("johndoe@okaxis")
        'jo***@okaxis'
        >>> mask_upi("ab@ybl")
        '***@ybl'
    """
    if not upi_id or "@" not in upi_id:
        return "***"
    name, provider = upi_id.split("@", 1)
    if len(name) <= 2:
        return f"***@{provider}"
    return f"{name[:2]}***@{provider}"


def mask_email(email: str | None) -> str:
    """
    Examples:
        >>> mask_email("student@example.com")
        's***@example.com'
    """
    if not email or "@" not in email:
        return "***"
    name, domain = email.split("@", 1)
    return f"{name[:1]}***@{domain}"
