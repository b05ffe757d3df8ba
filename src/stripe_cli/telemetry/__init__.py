"""Telemetry module for anonymous usage analytics."""

from .cancellation import CancellationToken
from .commands import (
    CommandDescriptor,
    bind_command,
    descriptor_from_click,
    generated_command,
)
from .config import (
    TelemetrySettings,
    get_telemetry_status,
    is_telemetry_enabled,
    telemetry_opted_out,
)
from .context import EventContext, get_event_context, initialize_event_context
from .decorators import flush_events, track_command
from .errors import (
    EndpointConfigError,
    EventCancelledError,
    RequestBuildError,
    TelemetryConfigError,
    TelemetryError,
    TransportError,
)
from .identity import assign_invocation_id, new_identifier
from .sender import EventSender, SendOutcome, SendResult, send_event
from .transport import InstrumentedTransport, build_telemetry_client, enable_verbose_logging

__all__ = [
    "CancellationToken",
    "CommandDescriptor",
    "EndpointConfigError",
    "EventCancelledError",
    "EventContext",
    "EventSender",
    "InstrumentedTransport",
    "RequestBuildError",
    "SendOutcome",
    "SendResult",
    "TelemetryConfigError",
    "TelemetryError",
    "TelemetrySettings",
    "TransportError",
    "assign_invocation_id",
    "bind_command",
    "build_telemetry_client",
    "enable_verbose_logging",
    "descriptor_from_click",
    "flush_events",
    "generated_command",
    "get_event_context",
    "get_telemetry_status",
    "initialize_event_context",
    "is_telemetry_enabled",
    "new_identifier",
    "send_event",
    "telemetry_opted_out",
    "track_command",
]
