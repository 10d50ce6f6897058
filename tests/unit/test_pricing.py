"""Unit tests for quote pricing."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from app.services.project import PriceBreakdown, calculate_quote
from app.services.project.pricing import base_price_for, urgency_multiplier
from app.utils.exceptions import ValidationError


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def in_hours(hours: float) -> datetime:
    return NOW + timedelta(hours=hours)


class TestBasePrice:
    @pytest.mark.parametrize(
        "words, pages, expected",
        [
            (2000, None, "1000.00"),
            (None, 2, "500.00"),
            (None, 10, "1500.00"),
            (100, None, "500.00"),
            (None, None, "500.00"),
            (3000, 12, "1800.00"),
            (1001, None, "500.50"),
        ],
    )
    def test_larger_rate_with_minimum(self, words, pages, expected):
        assert base_price_for(words, pages) == Decimal(expected)


class TestUrgency:
    @pytest.mark.parametrize(
        "hours, multiplier",
        [(12, "1.5"), (24, "1.5"), (30, "1.3"), (48, "1.3"),
         (60, "1.15"), (72, "1.15"), (100, "1")],
    )
    def test_multiplier_by_hours_left(self, hours, multiplier):
        assert urgency_multiplier(in_hours(hours), NOW) == Decimal(multiplier)

    def test_naive_deadline_is_treated_as_utc(self):
        deadline = in_hours(12).replace(tzinfo=None)
        assert urgency_multiplier(deadline, NOW) == Decimal("1.5")


class TestCalculateQuote:
    """Tests for the full breakdown."""

    def test_medium_complexity_without_urgency(self):
        quote = calculate_quote(2000, None, "medium", in_hours(100), now=NOW)

        assert quote.base_price == Decimal("1000.00")
        assert quote.urgency_fee == Decimal("0.00")
        assert quote.complexity_fee == Decimal("200.00")
        assert quote.discount_amount == Decimal("0.00")
        assert quote.tax_amount == Decimal("216.00")
        assert quote.user_amount == Decimal("1416.00")
        assert quote.supervisor_amount == Decimal("180.00")
        assert quote.platform_amount == Decimal("240.00")
        assert quote.doer_amount == Decimal("780.00")

    def test_urgent_hard_project_with_discount(self):
        quote = calculate_quote(
            2000, None, "hard", in_hours(12), discount=Decimal("100"), now=NOW
        )

        assert quote.urgency_fee == Decimal("500.00")
        assert quote.complexity_fee == Decimal("500.00")
        assert quote.subtotal == Decimal("1900.00")
        assert quote.tax_amount == Decimal("342.00")
        assert quote.user_amount == Decimal("2242.00")
        assert quote.doer_amount == Decimal("1235.00")

    def test_half_up_rounding(self):
        quote = calculate_quote(1001, None, "medium", in_hours(100), now=NOW)

        assert quote.complexity_fee == Decimal("100.10")
        assert quote.tax_amount == Decimal("108.11")
        assert quote.user_amount == Decimal("708.71")

    @pytest.mark.parametrize("complexity", ["easy", "medium", "hard"])
    @pytest.mark.parametrize("hours", [6, 40, 70, 200])
    def test_shares_add_up_to_subtotal(self, complexity, hours):
        quote = calculate_quote(1234, 3, complexity, in_hours(hours), now=NOW)

        assert (
            quote.doer_amount + quote.supervisor_amount + quote.platform_amount
            == quote.subtotal
        )
        assert quote.user_amount == quote.subtotal + quote.tax_amount
        assert quote.doer_amount > 0

    def test_unknown_complexity(self):
        with pytest.raises(ValidationError):
            calculate_quote(1000, None, "extreme", in_hours(100), now=NOW)

    @pytest.mark.parametrize("discount", ["-1", "500", "9999"])
    def test_discount_bounds(self, discount):
        with pytest.raises(ValidationError):
            calculate_quote(
                None, None, "easy", in_hours(100),
                discount=Decimal(discount), now=NOW,
            )

    def test_quote_fields_match_model_columns(self):
        quote = calculate_quote(2000, None, "easy", in_hours(100), now=NOW)
        fields = quote.as_quote_fields()

        assert isinstance(quote, PriceBreakdown)
        assert set(fields) == {
            "base_price", "urgency_fee", "complexity_fee", "discount_amount",
            "tax_amount", "user_amount", "doer_amount", "supervisor_amount",
            "platform_amount",
        }
