"""
Prometheus metrics collection for the file exchange pipeline

This module provides metrics instrumentation for monitoring file
processing, data quality, broker traffic and ingestion.
"""
import os

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    start_http_server,
)

# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# PIPELINE METRICS
# =======================

# Files processed, by terminal disposition
files_processed_total = Counter(
    name="pipeline_files_processed_total",
    documentation="Total number of file-arrival messages processed",
    labelnames=["vendor_id", "disposition"],  # disposition: ack, requeue, dead_letter
    registry=REGISTRY,
)

# Processing duration histogram
processing_duration_seconds = Histogram(
    name="pipeline_processing_duration_seconds",
    documentation="Time spent processing one file in seconds",
    labelnames=["vendor_id"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
    registry=REGISTRY,
)

# Records parsed counter
records_parsed_total = Counter(
    name="pipeline_records_parsed_total",
    documentation="Total number of records parsed from vendor files",
    labelnames=["vendor_id", "file_format"],
    registry=REGISTRY,
)

# =======================
# DATA QUALITY METRICS
# =======================

discrepancies_total = Counter(
    name="pipeline_discrepancies_total",
    documentation="Total number of rule violations found",
    labelnames=["vendor_id", "rule_kind"],
    registry=REGISTRY,
)

files_invalid_total = Counter(
    name="pipeline_files_invalid_total",
    documentation="Total number of files that failed validation",
    labelnames=["vendor_id"],
    registry=REGISTRY,
)

# =======================
# BROKER METRICS
# =======================

messages_published_total = Counter(
    name="pipeline_messages_published_total",
    documentation="Total number of messages published",
    labelnames=["queue"],
    registry=REGISTRY,
)

broker_reconnects_total = Counter(
    name="pipeline_broker_reconnects_total",
    documentation="Total number of broker (re)connections established",
    labelnames=["host"],
    registry=REGISTRY,
)

broker_connected = Gauge(
    name="pipeline_broker_connected",
    documentation="Whether the broker connection is open (1) or not (0)",
    labelnames=["host"],
    registry=REGISTRY,
)

# =======================
# INGESTION METRICS
# =======================

files_discovered_total = Counter(
    name="pipeline_files_discovered_total",
    documentation="Total number of files discovered at vendor drop points",
    labelnames=["vendor_id"],
    registry=REGISTRY,
)

issues_reported_total = Counter(
    name="pipeline_issues_reported_total",
    documentation="Total number of third-party issue reports published",
    labelnames=["vendor_id"],
    registry=REGISTRY,
)

# =======================
# ARCHIVE METRICS
# =======================

archive_writes_total = Counter(
    name="pipeline_archive_writes_total",
    documentation="Total number of archive writes",
    labelnames=["vendor_id", "status"],  # status: success, failure
    registry=REGISTRY,
)

archive_write_duration_seconds = Histogram(
    name="pipeline_archive_write_duration_seconds",
    documentation="Time spent writing archive copies in seconds",
    labelnames=["vendor_id"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
    registry=REGISTRY,
)

# =======================
# ERROR METRICS
# =======================

errors_total = Counter(
    name="pipeline_errors_total",
    documentation="Total number of errors",
    labelnames=["vendor_id", "error_type", "component"],
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def start_metrics_server(port: int | None = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


class track_duration:
    """
    Context manager for tracking operation duration

    Usage:
        with track_duration(processing_duration_seconds, vendor_id="acme"):
            # do work
            pass
    """

    def __init__(self, histogram: Histogram, **labels):
        self.histogram = histogram
        self.labels = labels
        self.timer = None

    def __enter__(self):
        self.timer = self.histogram.labels(**self.labels).time()
        self.timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.timer.__exit__(exc_type, exc_val, exc_tb)
        return False


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric

    Args:
        counter: Prometheus Counter metric
        value: Amount to increment (default: 1.0)
        **labels: Label values for the metric
    """
    counter.labels(**labels).inc(value)


def set_gauge(gauge: Gauge, value: float, **labels) -> None:
    """Set a gauge metric value."""
    gauge.labels(**labels).set(value)


def record_validation_outcome(vendor_id: str, counts_by_kind: dict[str, int]) -> None:
    """
    Record the discrepancies of one validated file.

    Args:
        vendor_id: Vendor the file belongs to
        counts_by_kind: Discrepancy count per rule kind (empty when valid)
    """
    for rule_kind, count in counts_by_kind.items():
        increment_counter(discrepancies_total, count, vendor_id=vendor_id, rule_kind=rule_kind)
    if counts_by_kind:
        increment_counter(files_invalid_total, 1, vendor_id=vendor_id)
