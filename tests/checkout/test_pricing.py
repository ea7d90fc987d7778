"""Tests for PricingEngine."""

import logging
from decimal import Decimal

import pytest

from checkout.discounts import BogoPolicy, CompositeDiscount, DiscountPolicy, PercentageDiscount
from checkout.errors import InvalidInputError
from checkout.money import Money
from checkout.pricing import PricingEngine

from conftest import APPLE, BREAD, MILK, make_bill, make_line


class _NegativeDiscount(DiscountPolicy):
    code = "NEGATIVE"

    def compute_discount(self, bill):
        return Money.of("-5.00")


@pytest.fixture
def bill():
    return make_bill(make_line(APPLE, 5, batch_id=1), make_line(BREAD, 4, batch_id=3))


class TestFinalize:

    def test_no_policy_no_tax(self, bill):
        breakdown = PricingEngine().finalize(bill)
        assert breakdown.subtotal == Money.of("60.00")
        assert breakdown.discount == Money.ZERO
        assert breakdown.total == Money.of("60.00")
        assert breakdown.discount_code is None

    def test_writes_all_totals_onto_bill(self, bill):
        PricingEngine(tax_percent=10).finalize(bill, BogoPolicy())
        assert bill.subtotal == Money.of("60.00")
        assert bill.discount == Money.of("25.00")
        assert bill.tax == Money.of("3.50")
        assert bill.total == Money.of("38.50")
        assert bill.discount_code == "BOGO"

    def test_tax_on_discounted_amount_rounded_once(self):
        bill = make_bill(make_line(MILK, 1, batch_id=4))
        breakdown = PricingEngine(tax_percent=Decimal("8.25")).finalize(bill)
        # 12.34 * 0.0825 = 1.01805
        assert breakdown.tax == Money.of("1.02")
        assert breakdown.total == Money.of("13.36")

    def test_idempotent(self, bill):
        engine = PricingEngine(tax_percent=5)
        first = engine.finalize(bill, PercentageDiscount(10))
        second = engine.finalize(bill, PercentageDiscount(10))
        assert first == second

    def test_preview_leaves_bill_alone(self, bill):
        breakdown = PricingEngine().preview(bill, BogoPolicy())
        assert breakdown.total == Money.of("35.00")
        assert bill.total == Money.ZERO


class TestDiscountBounds:

    def test_full_percentage_gives_zero_total(self):
        bill = make_bill(make_line(MILK, 1, batch_id=4))
        breakdown = PricingEngine().finalize(bill, PercentageDiscount(100))
        assert breakdown.discount == breakdown.subtotal == Money.of("12.34")
        assert breakdown.total == Money.of("0.00")

    def test_oversized_composite_capped_at_subtotal(self, bill, caplog):
        policy = CompositeDiscount([PercentageDiscount(100), BogoPolicy()])
        with caplog.at_level(logging.INFO, logger="checkout.pricing"):
            breakdown = PricingEngine(tax_percent=10).finalize(bill, policy)
        assert breakdown.discount == Money.of("60.00")
        assert breakdown.total == Money.ZERO
        assert not breakdown.total.is_negative()
        assert "capping" in caplog.text

    def test_negative_discount_treated_as_zero(self, bill):
        breakdown = PricingEngine().finalize(bill, _NegativeDiscount())
        assert breakdown.discount == Money.ZERO
        assert breakdown.total == Money.of("60.00")


class TestConstruction:

    def test_negative_tax_rejected(self):
        with pytest.raises(InvalidInputError):
            PricingEngine(tax_percent=-1)

    def test_accepts_string_rate(self):
        assert PricingEngine(tax_percent="7.5").tax_percent == Decimal("7.5")
