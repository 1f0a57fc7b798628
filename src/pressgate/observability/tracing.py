"""OpenTelemetry tracing for Pressgate.

Outbound fetch attempts open one span each; the OTLP exporter is wired
when an endpoint is configured.

Usage:
    from pressgate.observability.tracing import get_tracer

    tracer = get_tracer(__name__)

    with tracer.start_as_current_span("fetch.wordpress") as span:
        span.set_attribute("fetch.attempt", 1)
"""

from __future__ import annotations

import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from pressgate.config import Settings, settings

logger = logging.getLogger(__name__)

_tracer_provider: TracerProvider | None = None


def setup_tracing(config: Settings | None = None) -> None:
    """Install the global tracer provider when tracing is enabled."""
    global _tracer_provider

    config = config or settings
    if _tracer_provider is not None:
        return
    if not config.enable_tracing:
        logger.info("Tracing is disabled")
        return

    resource = Resource.create(
        {
            "service.name": config.app_name,
            "service.instance.id": config.instance_id,
            "deployment.environment": config.env,
        }
    )
    _tracer_provider = TracerProvider(resource=resource)

    if config.otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        _tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=config.otlp_endpoint))
        )
        logger.info(f"OTLP tracing enabled: {config.otlp_endpoint}")

    trace.set_tracer_provider(_tracer_provider)
    logger.info("OpenTelemetry tracing initialized")


def shutdown_tracing() -> None:
    """Flush and shut down the tracer provider."""
    global _tracer_provider
    if _tracer_provider is not None:
        _tracer_provider.shutdown()
        _tracer_provider = None


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer for the given module name.

    Without an installed provider the API hands back non-recording spans.
    """
    return trace.get_tracer(name)
