"""
Quote pricing.

Pure Decimal arithmetic; every amount is rounded half-up to 2 places.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from app.config.constants import (
    COMPLEXITY_MULTIPLIERS,
    GST_PERCENT,
    MINIMUM_BASE_PRICE,
    PLATFORM_PERCENT,
    PRICE_PER_PAGE,
    PRICE_PER_WORD,
    SUPERVISOR_PERCENT,
    URGENCY_MULTIPLIERS,
)
from app.utils.datetime_utils import hours_until
from app.utils.exceptions import ValidationError
from app.utils.formatters import quantize_money


HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PriceBreakdown:
    """Quote amounts. ``user_amount`` is what the client pays."""

    base_price: Decimal
    urgency_fee: Decimal
    complexity_fee: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    user_amount: Decimal
    doer_amount: Decimal
    supervisor_amount: Decimal
    platform_amount: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.user_amount - self.tax_amount

    def as_quote_fields(self) -> dict[str, Decimal]:
        return {
            "base_price": self.base_price,
            "urgency_fee": self.urgency_fee,
            "complexity_fee": self.complexity_fee,
            "discount_amount": self.discount_amount,
            "tax_amount": self.tax_amount,
            "user_amount": self.user_amount,
            "doer_amount": self.doer_amount,
            "supervisor_amount": self.supervisor_amount,
            "platform_amount": self.platform_amount,
        }


def base_price_for(word_count: int | None, page_count: int | None) -> Decimal:
    """
    Volume price: the larger of the word and page rates, at least 500.

    Examples:
        >>> base_price_for(2000, None)
        Decimal('1000.00')
        >>> base_price_for(None, 2)
        Decimal('500.00')
    """
    by_words = PRICE_PER_WORD * (word_count or 0)
    by_pages = PRICE_PER_PAGE * (page_count or 0)
    return quantize_money(max(by_words, by_pages, MINIMUM_BASE_PRICE))


def urgency_multiplier(deadline: datetime, now: datetime | None = None) -> Decimal:
    """x1.5 within 24h, x1.3 within 48h, x1.15 within 72h, else x1."""
    hours_left = hours_until(deadline, now)
    for max_hours, multiplier in URGENCY_MULTIPLIERS:
        if hours_left <= max_hours:
            return multiplier
    return Decimal("1")


def complexity_multiplier(complexity: str) -> Decimal:
    try:
        return COMPLEXITY_MULTIPLIERS[complexity]
    except KeyError:
        raise ValidationError(
            f"Unknown complexity '{complexity}'",
            allowed=sorted(COMPLEXITY_MULTIPLIERS),
        ) from None


def calculate_quote(
    word_count: int | None,
    page_count: int | None,
    complexity: str,
    deadline: datetime,
    discount: Decimal = Decimal("0"),
    now: datetime | None = None,
) -> PriceBreakdown:
    """
    Price a project.

    Urgency and complexity fees are surcharges on the base price. GST is
    charged on the subtotal after discount; the supervisor and platform
    shares are taken from the pre-tax subtotal and the doer gets the rest.

    Args:
        word_count: Words requested
        page_count: Pages requested
        complexity: easy, medium or hard
        deadline: Delivery deadline
        discount: Flat rupee discount on the subtotal
        now: Reference time for urgency

    Returns:
        PriceBreakdown
    """
    base = base_price_for(word_count, page_count)
    urgency_fee = quantize_money(base * (urgency_multiplier(deadline, now) - 1))
    complexity_fee = quantize_money(base * (complexity_multiplier(complexity) - 1))

    gross = base + urgency_fee + complexity_fee
    discount_amount = quantize_money(discount)
    if discount_amount < 0 or discount_amount >= gross:
        raise ValidationError(
            "Discount must be non-negative and below the quoted price",
            discount=str(discount_amount),
        )

    subtotal = gross - discount_amount
    tax = quantize_money(subtotal * GST_PERCENT / HUNDRED)
    supervisor = quantize_money(subtotal * SUPERVISOR_PERCENT / HUNDRED)
    platform = quantize_money(subtotal * PLATFORM_PERCENT / HUNDRED)

    return PriceBreakdown(
        base_price=base,
        urgency_fee=urgency_fee,
        complexity_fee=complexity_fee,
        discount_amount=discount_amount,
        tax_amount=tax,
        user_amount=subtotal + tax,
        doer_amount=subtotal - supervisor - platform,
        supervisor_amount=supervisor,
        platform_amount=platform,
    )
