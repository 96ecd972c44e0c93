"""
Observability and monitoring setup for the behavioral authentication engine.
"""

import logging
import sys
from functools import wraps
from typing import Any, Callable, Dict, Optional

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from .config import Settings

logger = structlog.get_logger()

# Global tracer and meter
tracer: Optional[trace.Tracer] = None
meter: Optional[metrics.Meter] = None

# Metrics instruments
enrollment_counter: Optional[metrics.Counter] = None
authentication_counter: Optional[metrics.Counter] = None
voice_verification_counter: Optional[metrics.Counter] = None
operation_duration: Optional[metrics.Histogram] = None
reconstruction_error_histogram: Optional[metrics.Histogram] = None
voice_similarity_histogram: Optional[metrics.Histogram] = None


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure stdlib logging and structlog.

    Service modules log through ``logging.getLogger(__name__)``; this routes
    them and structlog loggers through the same handler at the configured level.
    """
    settings = settings or Settings()
    level = getattr(logging, settings.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)

    renderer = (
        structlog.processors.JSONRenderer() if settings.log_json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def setup_observability(
    service_name: str = "behavioral-auth",
    service_version: str = "1.0.0",
    otlp_endpoint: Optional[str] = None,
    enable_console_export: bool = False
) -> None:
    """
    Set up OpenTelemetry tracing and metrics.

    Args:
        service_name: Name of the service for tracing
        service_version: Version of the service
        otlp_endpoint: OTLP endpoint for trace/metric export
        enable_console_export: Whether to enable console export for development
    """
    global tracer, meter
    global enrollment_counter, authentication_counter, voice_verification_counter
    global operation_duration, reconstruction_error_histogram, voice_similarity_histogram

    logger.info(
        "Setting up observability",
        service_name=service_name,
        service_version=service_version,
        otlp_endpoint=otlp_endpoint
    )

    resource = Resource.create({
        "service.name": service_name,
        "service.version": service_version,
    })

    # Set up tracing
    trace_provider = TracerProvider(resource=resource)

    if otlp_endpoint:
        trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))

    if enable_console_export:
        trace_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(trace_provider)
    tracer = trace.get_tracer(__name__)

    # Set up metrics
    metric_readers = []

    if otlp_endpoint:
        metric_readers.append(
            PeriodicExportingMetricReader(
                exporter=OTLPMetricExporter(endpoint=otlp_endpoint),
                export_interval_millis=30000  # 30 seconds
            )
        )

    if enable_console_export:
        metric_readers.append(
            PeriodicExportingMetricReader(
                exporter=ConsoleMetricExporter(),
                export_interval_millis=60000  # 60 seconds
            )
        )

    meter_provider = MeterProvider(resource=resource, metric_readers=metric_readers)
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter(__name__)

    enrollment_counter = meter.create_counter(
        name="keystroke_enrollments_total",
        description="Total number of keystroke model trainings",
        unit="1"
    )

    authentication_counter = meter.create_counter(
        name="keystroke_authentications_total",
        description="Total number of keystroke authentication attempts",
        unit="1"
    )

    voice_verification_counter = meter.create_counter(
        name="voice_verifications_total",
        description="Total number of voice verifications",
        unit="1"
    )

    operation_duration = meter.create_histogram(
        name="operation_duration_seconds",
        description="Engine operation duration in seconds",
        unit="s"
    )

    reconstruction_error_histogram = meter.create_histogram(
        name="keystroke_reconstruction_error",
        description="Reconstruction errors of keystroke authentication attempts",
        unit="1"
    )

    voice_similarity_histogram = meter.create_histogram(
        name="voice_similarity_score",
        description="Overall voice similarity scores",
        unit="1"
    )

    logger.info("Observability setup completed")


def trace_function(operation_name: Optional[str] = None):
    """
    Decorator to trace function execution.

    A no-op until ``setup_observability`` has installed a tracer.

    Args:
        operation_name: Optional custom operation name for the span
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            if tracer is None:
                return func(*args, **kwargs)

            span_name = operation_name or f"{func.__module__}.{func.__name__}"

            with tracer.start_as_current_span(span_name) as span:
                span.set_attribute("function.name", func.__name__)
                span.set_attribute("function.module", func.__module__)
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    span.record_exception(e)
                    span.set_attribute("success", False)
                    span.set_attribute("error.type", type(e).__name__)
                    span.set_attribute("error.message", str(e))
                    raise

                span.set_attribute("success", True)
                return result

        return wrapper

    return decorator


def record_training_metrics(success: bool, processing_time: float, identity: str) -> None:
    """
    Record metrics for model training.

    Args:
        success: Whether a model was produced
        processing_time: Time taken for training in seconds
        identity: Identity that was enrolled
    """
    if enrollment_counter is None or operation_duration is None:
        return

    attributes = {
        "operation": "training",
        "success": str(success).lower(),
        "identity": identity
    }

    enrollment_counter.add(1, attributes)
    operation_duration.record(processing_time, attributes)

    logger.info(
        "Training metrics recorded",
        success=success,
        processing_time=processing_time,
        identity=identity
    )


def record_authentication_metrics(
    accepted: bool,
    processing_time: float,
    reconstruction_error: Optional[float],
    identity: str
) -> None:
    """
    Record metrics for keystroke authentication attempts.

    Args:
        accepted: Whether the attempt was accepted
        processing_time: Time taken in seconds
        reconstruction_error: Error of the attempt (if one was computed)
        identity: Identity being verified
    """
    if authentication_counter is None or operation_duration is None:
        return

    attributes = {
        "operation": "authentication",
        "success": str(accepted).lower(),
        "identity": identity
    }

    authentication_counter.add(1, attributes)
    operation_duration.record(processing_time, attributes)

    if reconstruction_error is not None and reconstruction_error_histogram is not None:
        reconstruction_error_histogram.record(reconstruction_error, {"success": str(accepted).lower()})

    logger.info(
        "Authentication metrics recorded",
        accepted=accepted,
        processing_time=processing_time,
        reconstruction_error=reconstruction_error,
        identity=identity
    )


def record_verification_metrics(
    success: bool,
    processing_time: float,
    similarity_score: Optional[float],
    identity: str
) -> None:
    """
    Record metrics for voice verification operations.

    Args:
        success: Whether verification was successful
        processing_time: Time taken for verification in seconds
        similarity_score: Overall voice similarity (if available)
        identity: Identity being verified
    """
    if voice_verification_counter is None or operation_duration is None:
        return

    attributes = {
        "operation": "voice_verification",
        "success": str(success).lower(),
        "identity": identity
    }

    voice_verification_counter.add(1, attributes)
    operation_duration.record(processing_time, attributes)

    if similarity_score is not None and voice_similarity_histogram is not None:
        voice_similarity_histogram.record(similarity_score, {"success": str(success).lower()})

    logger.info(
        "Verification metrics recorded",
        success=success,
        processing_time=processing_time,
        similarity_score=similarity_score,
        identity=identity
    )


def get_trace_context() -> Dict[str, Any]:
    """
    Get current trace context information.

    Returns:
        Dict with trace ID and span ID if available
    """
    current_span = trace.get_current_span()
    if current_span is None or not current_span.is_recording():
        return {}

    span_context = current_span.get_span_context()
    return {
        "trace_id": f"{span_context.trace_id:032x}",
        "span_id": f"{span_context.span_id:016x}",
    }
