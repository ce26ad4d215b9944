from datetime import date, timedelta

import pytest

from invoicedesk.models.database import Invoice
from invoicedesk.services.invoice_service import format_invoice_number, next_invoice_number

DAY = date(2025, 3, 7)


@pytest.mark.unit
@pytest.mark.parametrize("count,expected", [
    (0, "Invoice-250307A"),
    (1, "Invoice-250307B"),
    (25, "Invoice-250307Z"),
])
def test_letter_follows_existing_count(count, expected):
    assert format_invoice_number(DAY, count) == expected


@pytest.mark.unit
@pytest.mark.parametrize("count", [26, 27, 100])
def test_letter_saturates_at_z(count):
    assert format_invoice_number(DAY, count) == "Invoice-250307Z"


@pytest.mark.unit
def test_date_part_is_two_digit_year_month_day():
    assert format_invoice_number(date(2009, 1, 2), 0) == "Invoice-090102A"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_next_number_counts_only_invoices_dated_today(db_session):
    db_session.add_all([
        Invoice(invoice_number="Invoice-250307A", invoice_date=DAY, subtotal=0),
        Invoice(invoice_number="Invoice-250307B", invoice_date=DAY, subtotal=0),
        Invoice(invoice_number="Invoice-250306A", invoice_date=DAY - timedelta(days=1), subtotal=0),
    ])
    await db_session.commit()

    assert await next_invoice_number(db_session, DAY) == "Invoice-250307C"
    assert await next_invoice_number(db_session, DAY + timedelta(days=1)) == "Invoice-250308A"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_deleting_an_invoice_can_reissue_a_label(db_session):
    first = Invoice(invoice_number="Invoice-250307A", invoice_date=DAY, subtotal=0)
    second = Invoice(invoice_number="Invoice-250307B", invoice_date=DAY, subtotal=0)
    db_session.add_all([first, second])
    await db_session.commit()
    await db_session.delete(first)
    await db_session.commit()

    # One invoice left today, so the next label repeats 'B'
    assert await next_invoice_number(db_session, DAY) == "Invoice-250307B"
