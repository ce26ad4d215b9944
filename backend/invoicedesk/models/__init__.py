"""Models package marker.

Exposes Base and the ORM classes for simplified imports.
"""
from .database import Base, AppSetting, Client, Invoice, InvoiceItem, InvoiceStatus  # noqa: F401
