"""OpenTelemetry initialization for convmem.

Library code only creates spans through the opentelemetry API; without
init_telemetry() those spans are no-ops. Services that want traces call
init_telemetry() once at start-up.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .config import TelemetryConfig

logger = logging.getLogger(__name__)

_initialized = False


def init_telemetry(config: Optional[TelemetryConfig] = None) -> bool:
    """Initialize OpenTelemetry tracing with an OTLP exporter.

    Args:
        config: Telemetry settings. service_name falls back to OTEL_SERVICE_NAME,
                otlp_endpoint to OTEL_EXPORTER_OTLP_ENDPOINT or http://localhost:4317

    Returns:
        True if tracing was initialized by this call
    """
    global _initialized
    if _initialized:
        return False

    config = config or TelemetryConfig(enabled=True)
    if not config.enabled:
        return False

    service_name = os.getenv("OTEL_SERVICE_NAME") or config.service_name
    otlp_endpoint = config.otlp_endpoint or os.getenv(
        "OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317"
    )

    resource = Resource.create(
        {
            "service.name": service_name,
            "deployment.environment": os.getenv("DEPLOYMENT_ENV", "development"),
        }
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True),
            schedule_delay_millis=1000,
        )
    )
    trace.set_tracer_provider(provider)

    _initialized = True
    logger.info("OpenTelemetry initialized: service=%s, endpoint=%s", service_name, otlp_endpoint)
    return True


def shutdown_telemetry() -> None:
    """Shutdown OpenTelemetry gracefully, flushing pending spans."""
    global _initialized
    if not _initialized:
        return

    provider = trace.get_tracer_provider()
    if hasattr(provider, "shutdown"):
        provider.shutdown()

    _initialized = False
    logger.info("OpenTelemetry shutdown complete")


__all__ = ["init_telemetry", "shutdown_telemetry"]
