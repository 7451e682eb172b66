"""OpenTelemetry tracing for the tool servers.

Dispatch, JSON-RPC routing and both transports open spans through
``get_tracer()``. Until the SDK is configured every span is a no-op.

Usage::

    from opsmcp.utils.telemetry import get_tracer

    _tracer = get_tracer(__name__)

    with _tracer.start_as_current_span("opsmcp.tool.call") as span:
        span.set_attribute(ATTR_TOOL_NAME, "search_logs")

``opsmcp serve --telemetry`` calls :func:`configure_for_server` once at
startup (requires the ``otel`` extra: ``pip install opsmcp[otel]``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from opentelemetry import trace

if TYPE_CHECKING:
    from opsmcp.config import ServerSettings

# ---------------------------------------------------------------------------
# Semantic attribute keys used throughout opsmcp instrumentation
# ---------------------------------------------------------------------------

ATTR_SERVER_NAME = "opsmcp.server.name"
ATTR_TOOL_NAME = "opsmcp.tool.name"
ATTR_TOOL_IS_ERROR = "opsmcp.tool.is_error"
ATTR_RPC_METHOD = "opsmcp.rpc.method"
ATTR_TRANSPORT_KIND = "opsmcp.transport.kind"
ATTR_SESSION_ID = "opsmcp.session.id"

_INSTRUMENTATION_NAME = "opsmcp"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return a :class:`~opentelemetry.trace.Tracer` for *name*.

    If the OpenTelemetry SDK has not been configured the returned tracer
    is a no-op.
    """
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def configure_telemetry(
    *,
    service_name: str = "opsmcp",
    export_to_console: bool = True,
    otlp_endpoint: str | None = None,
) -> None:
    """Install a tracer provider for one server process (requires ``opsmcp[otel]``).

    Parameters
    ----------
    service_name:
        The ``service.name`` resource attribute, normally the server name
        (``mcp-logs`` or ``mcp-slack``).
    export_to_console:
        If ``True``, print finished spans as JSON to stdout.
    otlp_endpoint:
        If set, batch spans to this OTLP/gRPC collector.

    Raises
    ------
    ImportError
        If the SDK or a requested exporter is not installed.
    """
    try:
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
    except ImportError as exc:
        msg = (
            "opentelemetry-sdk is required for configure_telemetry(). "
            "Install it with: pip install opsmcp[otel]"
        )
        raise ImportError(msg) from exc

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    for processor in _span_processors(export_to_console, otlp_endpoint):
        provider.add_span_processor(processor)
    trace.set_tracer_provider(provider)


def configure_for_server(settings: ServerSettings) -> bool:
    """Apply ``settings.telemetry`` for the server named in *settings*.

    Console export is used when no collector endpoint is configured.
    Returns whether tracing was configured.
    """
    if not settings.telemetry.enabled:
        return False
    endpoint = settings.telemetry.otlp_endpoint
    configure_telemetry(
        service_name=settings.name,
        export_to_console=endpoint is None,
        otlp_endpoint=endpoint,
    )
    return True


def _span_processors(export_to_console: bool, otlp_endpoint: str | None) -> list[Any]:
    from opentelemetry.sdk.trace.export import (
        BatchSpanProcessor,
        ConsoleSpanExporter,
        SimpleSpanProcessor,
    )

    processors: list[Any] = []
    if export_to_console:
        processors.append(SimpleSpanProcessor(ConsoleSpanExporter()))
    if otlp_endpoint:
        try:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        except ImportError as exc:
            msg = (
                "opentelemetry-exporter-otlp is required for OTLP export. "
                "Install it with: pip install opsmcp[otel]"
            )
            raise ImportError(msg) from exc
        processors.append(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))
    return processors
