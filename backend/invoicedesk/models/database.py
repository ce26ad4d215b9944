"""
Database models for the invoicing backend.
"""

from datetime import datetime, UTC
from enum import Enum

from sqlalchemy import (
    Column, Date, DateTime, Float, Integer, JSON, String, Text, Index, CheckConstraint
)
from sqlalchemy.dialects.sqlite import DATETIME as SQLiteDateTime
from sqlalchemy.orm import declarative_base


Base = declarative_base()


class InvoiceStatus(str, Enum):
    """Invoice payment status enumeration."""
    UNPAID = "Unpaid"
    PAID = "Paid"
    ADVANCE = "Advance"


# Reads both "YYYY-MM-DD HH:MM:SS.ffffff" and the ISO "YYYY-MM-DDTHH:MM:SS.fffZ"
# strings written by earlier releases of the app.
Timestamp = DateTime().with_variant(
    SQLiteDateTime(regexp=r"(\d+)-(\d+)-(\d+)[T ](\d+):(\d+):(\d+)(?:\.(\d{6}))?"), "sqlite")


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite stores datetimes without an offset."""
    return datetime.now(UTC).replace(tzinfo=None)


class AppSetting(Base):
    """Key/value configuration entries (company profile lives under 'company')."""
    __tablename__ = 'app_settings'

    key = Column(String(64), primary_key=True)
    value = Column(JSON, nullable=False, default=dict)
    updated_at = Column(Timestamp, default=utcnow,
                        onupdate=utcnow, nullable=False)


class Client(Base):
    """Client model for the people and businesses being invoiced."""
    __tablename__ = 'clients'

    id = Column(Integer, primary_key=True, autoincrement=True)
    contact_person = Column(Text)
    email = Column(Text)
    phone = Column(Text)
    address = Column(Text)


class Invoice(Base):
    """Invoice header. `subtotal` caches the sum of its item totals."""
    __tablename__ = 'invoices'

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_number = Column(Text, index=True)
    # Plain integer reference; clients may be deleted while invoices remain.
    client_id = Column(Integer, index=True)
    project = Column(Text)
    status = Column(String(20), default=InvoiceStatus.UNPAID.value)
    invoice_date = Column(Date, index=True)
    subtotal = Column(Float, default=0.0)
    notes = Column(Text)
    created_at = Column(Timestamp)
    paid_at = Column(Timestamp)
    advance_paid_at = Column(Timestamp)

    __table_args__ = (
        Index('idx_invoice_date_status', 'invoice_date', 'status'),
    )


class InvoiceItem(Base):
    """Line item owned by exactly one invoice."""
    __tablename__ = 'invoice_items'

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(Integer, nullable=False, index=True)
    title = Column(Text)
    description = Column(Text)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    total = Column(Float, nullable=False)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_item_quantity_positive'),
        CheckConstraint('unit_price >= 0', name='check_item_unit_price_non_negative'),
    )


__all__ = ["Base", "InvoiceStatus", "AppSetting", "Client", "Invoice", "InvoiceItem"]
