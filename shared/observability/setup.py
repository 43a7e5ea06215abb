import logging

import structlog
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_fastapi_instrumentator import Instrumentator

from shared.config.settings import LOG_LEVEL, OTEL_ENABLED, OTLP_ENDPOINT

# Probes and scrapes would drown the request metrics and traces
_QUIET_PATHS = [r".*/health$", r"^/metrics$"]


def add_otel_ids(logger, log_method, event_dict):
    """Stamp the active trace/span ids on every event so logs join up with traces."""
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = trace.format_trace_id(ctx.trace_id)
        event_dict["span_id"] = trace.format_span_id(ctx.span_id)
    return event_dict


def configure_logging(service_name: str = "marketplace"):
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_otel_ids,
            structlog.processors.CallsiteParameterAdder([structlog.processors.CallsiteParameter.MODULE]),
            lambda logger, method, event_dict: {**event_dict, "service": service_name},
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, LOG_LEVEL, logging.INFO)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_tracing(app: FastAPI, service_name: str):
    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=OTLP_ENDPOINT, insecure=True)))
    trace.set_tracer_provider(provider)

    # Instrumenting the root app covers every mounted service
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health,metrics")


def configure_metrics(app: FastAPI):
    Instrumentator(excluded_handlers=_QUIET_PATHS).instrument(app).expose(app, include_in_schema=False)


def setup_observability(app: FastAPI, service_name: str):
    """
    Logging, tracing and metrics for the cluster. Call once, on the root app:
    the business counters in ``metrics.py`` share its ``/metrics`` endpoint.
    """
    configure_logging(service_name)
    if OTEL_ENABLED:
        configure_tracing(app, service_name)
    configure_metrics(app)
