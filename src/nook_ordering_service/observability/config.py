"""Logging, tracing and metrics setup for the ordering API."""

import logging
import os
from typing import Any

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from pythonjsonlogger import jsonlogger
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


def get_service_resource() -> Resource:
    """Create the OpenTelemetry resource identifying this service.

    Returns:
        Resource carrying the service name and deployment environment
    """
    service_name = os.getenv("OTEL_SERVICE_NAME", "nook-api")
    environment = os.getenv("ENVIRONMENT", "development")

    return Resource.create(
        {
            "service.name": service_name,
            "deployment.environment": environment,
        }
    )


def _otlp_endpoint() -> str:
    return os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318").rstrip("/")


def setup_tracing(resource: Resource) -> None:
    """Export spans over OTLP/HTTP in batches.

    Args:
        resource: Service resource attached to every span
    """
    endpoint = _otlp_endpoint()

    # Batch spans before shipping them to the collector
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces")))

    trace.set_tracer_provider(provider)

    logger.info(f"OpenTelemetry tracing configured with endpoint: {endpoint}")


def setup_metrics(resource: Resource) -> None:
    """Export metrics over OTLP/HTTP once a minute.

    Args:
        resource: Service resource attached to every metric
    """
    endpoint = _otlp_endpoint()

    # Collected by a periodic reader every 60 seconds
    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=f"{endpoint}/v1/metrics"), export_interval_millis=60000
    )
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[reader]))

    logger.info(f"OpenTelemetry metrics configured with endpoint: {endpoint}")


def setup_auto_instrumentation(engine: Engine | None = None) -> None:
    """Instrument outbound mail API calls and, if given, the database engine.

    Args:
        engine: SQLAlchemy engine whose statements should produce spans
    """
    # Mail API requests go through httpx
    HTTPXClientInstrumentor().instrument()

    # Database statements
    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine)

    logger.info("Auto-instrumentation enabled for httpx and SQLAlchemy")


def setup_observability(
    app: Any = None, engine: Engine | None = None, enable_exporters: bool = True
) -> None:
    """Initialize tracing, metrics and auto-instrumentation.

    Args:
        app: Optional FastAPI application to instrument
        engine: Optional SQLAlchemy engine to instrument
        enable_exporters: Whether to export over OTLP (always off when ENVIRONMENT=test)
    """
    # Tests never talk to a collector
    if os.getenv("ENVIRONMENT", "development") == "test":
        enable_exporters = False

    resource = get_service_resource()

    if enable_exporters:
        setup_tracing(resource)
        setup_metrics(resource)
    else:
        # Providers without exporters, so spans and instruments still work in-process
        trace.set_tracer_provider(TracerProvider(resource=resource))
        metrics.set_meter_provider(MeterProvider(resource=resource))

    setup_auto_instrumentation(engine)

    # Request spans for every route
    if app is not None:
        FastAPIInstrumentor.instrument_app(app)
        logger.info("FastAPI application instrumented")

    logger.info("OpenTelemetry observability fully configured")


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured JSON logging on the root logger.

    ``LOG_LEVEL`` from the environment takes precedence over ``log_level``.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level_str = os.getenv("LOG_LEVEL", log_level).upper()
    level = getattr(logging, level_str, logging.INFO)

    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        timestamp=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Replace any handlers installed earlier (uvicorn, Lambda runtime)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logger.info(f"Structured JSON logging configured at {level_str} level")
