"""Service layer package."""

__all__ = [
    "backup_service",
    "client_service",
    "company_service",
    "document_service",
    "invoice_service",
    "pdf_service",
    "rate_service",
    "totals",
]
