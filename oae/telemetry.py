import logging
import os

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor, ConsoleSpanExporter, SpanExporter

logger = logging.getLogger(__name__)

_TRACER_INITIALIZED = False


def init_telemetry(service_name: str = "open-async-emitter", exporter: SpanExporter = None):
    """
    Install a tracer provider so dispatch spans are exported.

    Every emit() / emit_serial() that reaches at least one listener opens
    an "emitter.emit" or "emitter.emit_serial" span carrying the event
    name, listener count and dispatch mode; listener coroutines inherit
    it as their parent span.

    The exporter is, in order: the one passed in, OTLP when
    OTEL_EXPORTER_OTLP_ENDPOINT is set, or the console. Only the first
    call has an effect.
    """
    global _TRACER_INITIALIZED
    if _TRACER_INITIALIZED:
        return

    provider = TracerProvider()

    if exporter is not None:
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        logger.info(f"Dispatch spans of {service_name} go to {type(exporter).__name__}")
    else:
        provider.add_span_processor(_default_processor(service_name))

    trace.set_tracer_provider(provider)
    _TRACER_INITIALIZED = True


def _default_processor(service_name: str):
    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if not otlp_endpoint:
        logger.info(f"Dispatch spans of {service_name} printed to console (OTEL_EXPORTER_OTLP_ENDPOINT not set)")
        return SimpleSpanProcessor(ConsoleSpanExporter())

    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError:
        logger.warning(
            "OTLP exporter not installed (open-async-emitter[otlp]); dispatch spans printed to console"
        )
        return SimpleSpanProcessor(ConsoleSpanExporter())

    logger.info(f"Dispatch spans of {service_name} exported to {otlp_endpoint}")
    return BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))


def get_tracer(name: str):
    return trace.get_tracer(name)
