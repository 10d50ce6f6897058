"""
Formatters utility.

Money helpers shared by pricing, wallet and gateway code.
"""

from decimal import ROUND_HALF_UP, Decimal


TWO_PLACES = Decimal("0.01")


def quantize_money(value: Decimal | int | str) -> Decimal:
    """
    Round to 2 decimal places, half-up.

    Examples:
        >>> quantize_money(Decimal("10.005"))
        Decimal('10.01')
    """
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_paise(amount: Decimal) -> int:
    """
    Convert rupees to the gateway's integer minor unit.

    Examples:
        >>> to_paise(Decimal("499.99"))
        49999
    """
    return int(quantize_money(amount) * 100)


def from_paise(paise: int) -> Decimal:
    return quantize_money(Decimal(paise) / 100)


def format_inr(amount: Decimal | None) -> str:
    """
    Human-readable rupee amount.

    Examples:
        >>> format_inr(Decimal("1500"))
        '₹1,500.00'
    """
    if amount is None:
        return "₹0.00"
    return f"₹{quantize_money(amount):,.2f}"
