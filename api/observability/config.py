# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
OpenTelemetry Configuration

Sets up distributed tracing and logging for the civic reports API.
"""

import os
import logging
from typing import Optional
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

SERVICE_NAME = 'civic-reports-api'

logger = logging.getLogger(__name__)

_configured = False


def setup_observability(environment: Optional[str] = None, enabled: Optional[bool] = None) -> bool:
    """
    Initialize OpenTelemetry tracing based on environment configuration.

    Safe to call more than once; only the first enabled call installs a
    tracer provider.

    Returns:
        True if a tracer provider is installed
    """
    global _configured

    environment = environment or os.getenv('ENVIRONMENT', 'development')
    if enabled is None:
        enabled = os.getenv('OTEL_ENABLED', 'true').lower() == 'true'

    setup_structured_logging(environment)

    if not enabled:
        return False
    if _configured:
        return True

    # Environment-specific sampling
    if environment == 'production':
        sampler = TraceIdRatioBased(0.1)
    elif environment == 'staging':
        sampler = TraceIdRatioBased(0.5)
    else:
        sampler = TraceIdRatioBased(1.0)

    resource = Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": os.getenv('SERVICE_VERSION', '1.0.0'),
        "deployment.environment": environment
    })

    tracer_provider = TracerProvider(sampler=sampler, resource=resource)

    otlp_endpoint = os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
    if otlp_endpoint:
        headers = {}
        if os.getenv('OTEL_API_KEY'):
            headers["Authorization"] = f"Bearer {os.getenv('OTEL_API_KEY')}"
        tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, headers=headers), max_export_batch_size=512)
        )
    elif environment == 'development' and os.getenv('OTEL_CONSOLE_EXPORT', 'false').lower() == 'true':
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(tracer_provider)
    _configured = True

    logger.info(
        "Tracing configured",
        extra={"environment": environment, "otlp_endpoint": otlp_endpoint}
    )
    return True


def setup_structured_logging(environment: str):
    """Configure root logging with per-environment levels."""
    log_level = {
        'production': logging.WARNING,
        'staging': logging.INFO,
        'development': logging.INFO,
        'test': logging.WARNING
    }.get(environment, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
        handlers=[logging.StreamHandler()]
    )

    if environment == 'production':
        logging.getLogger('pymongo').setLevel(logging.WARNING)
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
    elif environment == 'development':
        logging.getLogger('domain').setLevel(logging.DEBUG)
        logging.getLogger('services').setLevel(logging.DEBUG)
