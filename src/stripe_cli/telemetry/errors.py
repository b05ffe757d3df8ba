"""Exceptions raised and returned by the telemetry pipeline."""

from __future__ import annotations


class TelemetryError(Exception):
    """Base exception for telemetry errors."""

    pass


class TelemetryConfigError(TelemetryError):
    """Telemetry settings from the environment are invalid."""

    pass


class EndpointConfigError(TelemetryError):
    """The analytics endpoint URL could not be parsed."""

    pass


class RequestBuildError(TelemetryError):
    """The outbound event request could not be constructed."""

    pass


class TransportError(TelemetryError):
    """The network call failed (DNS, connect, TLS, timeout)."""

    pass


class EventCancelledError(TransportError):
    """The caller cancelled the send or its deadline passed."""

    pass
