"""
Prometheus metrics for the Case Intake service.

Counters and histograms cover pipeline runs, OCR work and HTTP requests. The
``record_*`` helpers keep label names in one place.
"""

import structlog
from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response

logger = structlog.get_logger(__name__)

SERVICE_INFO = Gauge(
    "case_intake_service_info",
    "Running Case Intake version and environment",
    ["version", "environment"],
)

# Document processing metrics
DOCUMENTS_PROCESSED = Counter(
    "case_intake_documents_processed_total",
    "Total number of documents run through the ingestion pipeline",
    ["document_type"],
)
FIELDS_AUTO_FILLED = Histogram(
    "case_intake_fields_auto_filled",
    "Number of case record fields auto-filled per document",
    buckets=(0, 1, 2, 4, 6, 8, 12, 16, 24),
)

# OCR metrics
OCR_WORKER_STARTS = Counter(
    "case_intake_ocr_worker_starts_total",
    "Total number of OCR worker constructions",
    ["status"],
)
OCR_PAGES = Counter(
    "case_intake_ocr_pages_total",
    "Total number of images sent to the OCR engine",
    ["status"],
)
OCR_PAGE_TIME = Histogram(
    "case_intake_ocr_page_time_seconds",
    "OCR recognition time per image in seconds",
)

# API metrics
API_REQUESTS = Counter(
    "case_intake_api_requests_total",
    "Total number of API requests",
    ["method", "endpoint", "status"],
)
API_REQUEST_TIME = Histogram(
    "case_intake_api_request_time_seconds",
    "API request time in seconds",
    ["method", "endpoint"],
)


def setup_metrics_endpoint(app: FastAPI, version: str, environment: str) -> None:
    """Mount ``/metrics`` on the app and publish the service info gauge."""
    SERVICE_INFO.labels(version=version, environment=environment).set(1)

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)

    logger.debug("Metrics endpoint mounted", path="/metrics")


def record_document_processed(document_type: str, auto_filled_count: int) -> None:
    """
    Record a pipeline run.

    Args:
        document_type: Classified document type
        auto_filled_count: Number of fields the pipeline populated
    """
    DOCUMENTS_PROCESSED.labels(document_type=document_type).inc()
    FIELDS_AUTO_FILLED.observe(auto_filled_count)


def record_ocr_page(status: str, duration: float) -> None:
    """
    Record one OCR recognition.

    Args:
        status: "success" or "error"
        duration: Recognition time in seconds
    """
    OCR_PAGES.labels(status=status).inc()
    OCR_PAGE_TIME.observe(duration)


def record_worker_start(status: str) -> None:
    """
    Record an OCR worker construction attempt.

    Args:
        status: "success" or "error"
    """
    OCR_WORKER_STARTS.labels(status=status).inc()
