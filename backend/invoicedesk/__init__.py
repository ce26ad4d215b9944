"""invoicedesk: local invoicing backend (FastAPI + SQLite)."""

__version__ = "1.0.0"
