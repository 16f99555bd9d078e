"""Tests for the per-unit pricing rules."""
from datetime import datetime
from decimal import Decimal

import pytest

from core import Book
from errors import CatalogIntegrityError
from pricing import effective_unit_price, sale_active

NOW = datetime(2025, 5, 10, 12, 0, 0)


def book(**kwargs):
    fields = {"id": 1, "title": "T", "author": "A", "price": Decimal("20.00"), "is_on_sale": False}
    fields.update(kwargs)
    return Book(**fields)


class TestEffectiveUnitPrice:
    def test_not_on_sale_charges_list_price(self):
        assert effective_unit_price(book(discount_percent=Decimal("50")), NOW) == Decimal("20.00")

    def test_on_sale_without_window(self):
        b = book(is_on_sale=True, discount_percent=Decimal("25"))
        assert effective_unit_price(b, NOW) == Decimal("15.00")

    def test_on_sale_inside_window(self):
        b = book(
            is_on_sale=True,
            discount_percent=Decimal("10"),
            discount_start=datetime(2025, 5, 1),
            discount_end=datetime(2025, 5, 31),
        )
        assert effective_unit_price(b, NOW) == Decimal("18.00")

    def test_window_bounds_are_inclusive(self):
        start, end = datetime(2025, 5, 1), datetime(2025, 5, 31)
        b = book(is_on_sale=True, discount_percent=Decimal("10"), discount_start=start, discount_end=end)
        assert effective_unit_price(b, start) == Decimal("18.00")
        assert effective_unit_price(b, end) == Decimal("18.00")

    def test_outside_window_charges_list_price(self):
        b = book(
            is_on_sale=True,
            discount_percent=Decimal("10"),
            discount_start=datetime(2025, 6, 1),
            discount_end=datetime(2025, 6, 30),
        )
        assert effective_unit_price(b, NOW) == Decimal("20.00")
        assert effective_unit_price(b, datetime(2025, 7, 1)) == Decimal("20.00")

    def test_open_ended_window(self):
        b = book(is_on_sale=True, discount_percent=Decimal("10"), discount_start=datetime(2025, 5, 1))
        assert effective_unit_price(b, NOW) == Decimal("18.00")
        assert effective_unit_price(b, datetime(2025, 4, 30)) == Decimal("20.00")

    def test_rounds_to_cents(self):
        b = book(price=Decimal("9.99"), is_on_sale=True, discount_percent=Decimal("15"))
        assert effective_unit_price(b, NOW) == Decimal("8.49")

    def test_full_discount_is_free(self):
        b = book(is_on_sale=True, discount_percent=Decimal("100"))
        assert effective_unit_price(b, NOW) == Decimal("0.00")

    @pytest.mark.parametrize("percent", [Decimal("-5"), Decimal("120")])
    def test_out_of_range_percent_is_surfaced(self, percent):
        b = book(is_on_sale=True, discount_percent=percent)
        with pytest.raises(CatalogIntegrityError) as exc_info:
            effective_unit_price(b, NOW)
        assert exc_info.value.book_id == 1


def test_sale_active_requires_flag():
    assert not sale_active(book(discount_percent=Decimal("10")), NOW)
    assert sale_active(book(is_on_sale=True, discount_percent=Decimal("10")), NOW)
