"""Centralized error response helpers and exception utilities.

Every user-visible failure uses the same envelope:
``{"status": "error", "error": {"code", "message"[, "details"]}, "timestamp"[, "path"]}``.
"""
from __future__ import annotations
from fastapi import HTTPException
from typing import Any, Dict
import time

ERROR_CODES = {
    "validation": "VALIDATION_ERROR",
    "not_found": "NOT_FOUND",
    "invoice_not_found": "INVOICE_NOT_FOUND",
    "client_not_found": "CLIENT_NOT_FOUND",
    "backup_not_found": "BACKUP_NOT_FOUND",
    "pdf_failed": "PDF_RENDER_FAILED",
    "rates_failed": "RATE_LOOKUP_FAILED",
    "db_busy": "DB_BUSY",
    "db": "DB_ERROR",
    "internal": "INTERNAL_SERVER_ERROR",
}


def error_payload(code: str, message: str, details: Any | None = None, path: str | None = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "status": "error",
        "error": {
            "code": code,
            "message": message,
        },
        "timestamp": time.time(),
    }
    if details is not None:
        payload["error"]["details"] = details
    if path:
        payload["path"] = path
    return payload


class DomainError(Exception):
    """Base domain error storing standardized fields."""

    code = ERROR_CODES["internal"]
    status_code = 500

    def __init__(self, message: str, details: Any | None = None):  # noqa: D401
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DomainError):
    """Raised when a payload passes schema checks but violates a business rule."""
    code = ERROR_CODES["validation"]
    status_code = 400


class InvoiceNotFound(DomainError):
    code = ERROR_CODES["invoice_not_found"]
    status_code = 404


class ClientNotFound(DomainError):
    code = ERROR_CODES["client_not_found"]
    status_code = 404


class BackupNotFound(DomainError):
    code = ERROR_CODES["backup_not_found"]
    status_code = 404


class PdfRenderError(DomainError):
    """Browser could not be located, launched, or finished in time."""
    code = ERROR_CODES["pdf_failed"]
    status_code = 502


class RateLookupError(DomainError):
    code = ERROR_CODES["rates_failed"]
    status_code = 502


class DatabaseBusy(DomainError):
    """Another connection replacement is already in progress."""
    code = ERROR_CODES["db_busy"]
    status_code = 503


def to_http_exception(exc: DomainError) -> HTTPException:
    """Translate a domain error into an HTTPException the global handler understands."""
    http_exc = HTTPException(status_code=exc.status_code, detail=exc.message)
    setattr(http_exc, "code", exc.code)
    if exc.details is not None:
        setattr(http_exc, "details", exc.details)
    return http_exc


__all__ = [
    "ERROR_CODES",
    "error_payload",
    "DomainError",
    "ValidationError",
    "InvoiceNotFound",
    "ClientNotFound",
    "BackupNotFound",
    "PdfRenderError",
    "RateLookupError",
    "DatabaseBusy",
    "to_http_exception",
]
