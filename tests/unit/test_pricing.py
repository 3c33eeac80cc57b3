"""
Unit Tests - Price Resolution
"""
from decimal import Decimal
from types import SimpleNamespace

import pytest

from partshop.commerce.pricing import line_total, resolve_price, summarize, to_money


class TestResolvePrice:
    """Tests for resolve_price precedence"""

    def test_sale_price_without_discount(self):
        """Sale price applies when there is no personal discount"""
        assert resolve_price(180, 144, 0) == Decimal("144.00")

    def test_discount_beats_sale_price(self):
        """A personal discount wins even when the sale price is lower"""
        assert resolve_price(180, 144, 10) == Decimal("162.00")

    def test_discount_equal_to_sale_price(self):
        assert resolve_price(180, 144, 20) == Decimal("144.00")

    def test_base_price_when_nothing_applies(self):
        assert resolve_price(Decimal("42.50"), None, 0) == Decimal("42.50")

    @pytest.mark.parametrize("sale", [0, Decimal("0.00"), 180, 200])
    def test_sale_price_outside_range_is_ignored(self, sale):
        """Zero, equal or higher sale prices fall back to the base price"""
        assert resolve_price(180, sale, 0) == Decimal("180.00")

    def test_discount_truncates_to_cents(self):
        # 19.99 * 0.85 = 16.9915
        assert resolve_price(Decimal("19.99"), None, 15) == Decimal("16.99")
        # 10.01 * 0.67 = 6.7067
        assert resolve_price(Decimal("10.01"), None, 33) == Decimal("6.70")

    def test_discount_applies_to_unrounded_base(self):
        """The base price is not rounded to cents before the discount"""
        # 0.015 * 0.5 = 0.0075
        assert resolve_price(Decimal("0.015"), None, 50) == Decimal("0.00")
        assert resolve_price(Decimal("0.015"), None, 0) == Decimal("0.02")

    def test_discount_is_clamped(self):
        assert resolve_price(180, None, 150) == Decimal("0.00")
        assert resolve_price(180, 144, -5) == Decimal("144.00")

    def test_float_inputs_are_exact(self):
        assert resolve_price(0.1, None, 0) + resolve_price(0.2, None, 0) == Decimal("0.30")


class TestLineTotals:
    """Tests for line_total and summarize"""

    def test_line_total(self):
        assert line_total(Decimal("144.00"), 2) == Decimal("288.00")
        assert line_total("19.99", 3) == Decimal("59.97")

    def test_to_money_none(self):
        assert to_money(None) == Decimal("0.00")

    def test_summarize(self):
        lines = [
            SimpleNamespace(quantity=2, total_price=Decimal("360.00"), total_sale_price=Decimal("288.00")),
            SimpleNamespace(quantity=1, total_price=Decimal("42.50"), total_sale_price=Decimal("42.50")),
        ]

        summary = summarize(lines)

        assert summary.total_items == 3
        assert summary.total_price == Decimal("402.50")
        assert summary.total_sale_price == Decimal("330.50")
        assert summary.savings == Decimal("72.00")

    def test_savings_never_negative(self):
        lines = [SimpleNamespace(quantity=1, total_price=Decimal("10.00"), total_sale_price=Decimal("12.00"))]
        assert summarize(lines).savings == Decimal("0.00")

    def test_summarize_empty(self):
        summary = summarize([])
        assert summary.total_items == 0
        assert summary.total_price == Decimal("0.00")
