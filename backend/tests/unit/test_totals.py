from types import SimpleNamespace

import pytest

from invoicedesk.services.totals import (
    deposit_split,
    invoice_subtotal,
    line_total,
    portfolio_stats,
)


@pytest.mark.unit
def test_line_total_is_unrounded_product():
    assert line_total(3, 0.1) == pytest.approx(0.3)
    assert line_total(2, 10.125) == 20.25


@pytest.mark.unit
def test_subtotal_accepts_dicts_and_objects():
    items = [
        {"quantity": 2, "unit_price": 10.5},
        SimpleNamespace(quantity=1, unit_price=4.0),
    ]
    assert invoice_subtotal(items) == 25.0


@pytest.mark.unit
def test_subtotal_of_no_items_is_zero():
    assert invoice_subtotal([]) == 0.0


@pytest.mark.unit
def test_deposit_split_halves_total():
    assert deposit_split(21.125) == (10.5625, 10.5625)


@pytest.mark.unit
def test_portfolio_stats_splits_advance_between_buckets():
    stats = portfolio_stats([("Paid", 100), ("Unpaid", 200), ("Advance", 50)])
    assert stats.total_revenue == 125
    assert stats.outstanding_amount == 225
    assert stats.unpaid_count == 2


@pytest.mark.unit
def test_portfolio_stats_ignores_unknown_status_and_null_subtotal():
    stats = portfolio_stats([("Draft", 999), ("Unpaid", None), (None, 10)])
    assert stats.as_dict() == {"total_revenue": 0.0, "outstanding_amount": 0.0, "unpaid_count": 1}


@pytest.mark.unit
def test_portfolio_stats_empty():
    assert portfolio_stats([]).as_dict() == {
        "total_revenue": 0.0, "outstanding_amount": 0.0, "unpaid_count": 0,
    }
