"""OpenTelemetry tracing setup.

Every task invocation runs inside a span. Spans are exported over OTLP
only when an exporter endpoint is configured; otherwise the tracer API is
a no-op.
"""

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from dbjob import __version__
from dbjob.infrastructure.config import Settings, get_settings

logger = logging.getLogger(__name__)


def setup_tracing(settings: Settings | None = None) -> TracerProvider | None:
    """Setup OpenTelemetry tracing with OTLP exporter.

    Args:
        settings: Settings to read the exporter endpoint and sampling from

    Returns:
        TracerProvider instance, or None when no exporter endpoint is set
    """
    settings = settings or get_settings()
    otel_config = settings.observability

    if not otel_config.exporter_otlp_endpoint:
        logger.debug("No OTLP endpoint configured, tracing export disabled")
        return None

    resource = Resource.create(
        {
            "service.name": otel_config.service_name,
            "service.version": __version__,
        }
    )
    sampler = TraceIdRatioBased(otel_config.trace_sample_rate)
    provider = TracerProvider(resource=resource, sampler=sampler)

    try:
        otlp_exporter = OTLPSpanExporter(
            endpoint=otel_config.exporter_otlp_endpoint,
            insecure=True,  # Use False in production with TLS
        )
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

        logger.info(
            "OpenTelemetry tracing configured",
            extra={
                "service_name": otel_config.service_name,
                "otlp_endpoint": otel_config.exporter_otlp_endpoint,
                "sample_rate": otel_config.trace_sample_rate,
            },
        )
    except Exception as e:
        logger.warning(
            "Failed to configure OTLP exporter, tracing will be disabled",
            extra={"error": str(e)},
        )

    trace.set_tracer_provider(provider)
    return provider


def get_tracer(name: str) -> trace.Tracer:
    """Get OpenTelemetry tracer for manual instrumentation.

    Args:
        name: Tracer name (typically __name__)

    Returns:
        Tracer instance for creating spans
    """
    return trace.get_tracer(name)
