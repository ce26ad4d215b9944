"""API routers package."""

from . import clients, company, database_admin, invoices, metrics, rates, system

__all__ = [
    "clients",
    "company",
    "database_admin",
    "invoices",
    "metrics",
    "rates",
    "system",
]
