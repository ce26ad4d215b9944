"""Prometheus instrumentation for the invoicing backend.

Native prometheus_client collectors keep metric exposure deterministic; the
/metrics router serves them in text exposition format.
"""
from __future__ import annotations

import time
from contextlib import contextmanager

import structlog
from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNT = Counter(
    "invoicedesk_requests_total",
    "Total HTTP requests processed",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "invoicedesk_request_duration_seconds",
    "Request latency in seconds",
    ["method", "path", "status"],
)
UPTIME_SECONDS = Gauge(
    "invoicedesk_uptime_seconds",
    "Application uptime in seconds",
)
INVOICE_OPERATIONS = Counter(
    "invoicedesk_invoice_operations_total",
    "Invoice domain operations",
    ["operation"],
)
PDF_RENDER_SECONDS = Histogram(
    "invoicedesk_pdf_render_seconds",
    "Time spent converting invoice previews to PDF",
    ["outcome"],
)

_START_TIME = time.time()

logger = structlog.get_logger(__name__)


def record_request(method: str, path: str, status: int, duration_s: float) -> None:
    REQUEST_COUNT.labels(method, path, str(status)).inc()
    REQUEST_LATENCY.labels(method, path, str(status)).observe(duration_s)
    UPTIME_SECONDS.set(time.time() - _START_TIME)


def record_invoice_operation(operation: str) -> None:
    INVOICE_OPERATIONS.labels(operation).inc()


@contextmanager
def time_pdf_render():
    """Observe PDF render duration, labelled by outcome.

    Callers may set the yielded dict's "value" to name a failure (e.g. "timeout").
    """
    start = time.perf_counter()
    outcome = {"value": "error"}
    ok = False
    try:
        yield outcome
        ok = True
    finally:
        label = "ok" if ok else outcome["value"]
        elapsed = time.perf_counter() - start
        PDF_RENDER_SECONDS.labels(label).observe(elapsed)
        if not ok:
            logger.warning("pdf_render_failed", outcome=label, duration_s=round(elapsed, 3))


def uptime_seconds() -> float:
    return time.time() - _START_TIME


__all__ = [
    "record_request",
    "record_invoice_operation",
    "time_pdf_render",
    "uptime_seconds",
]
