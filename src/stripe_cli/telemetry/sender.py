"""Sending telemetry events to the Stripe analytics service.

Each call sends at most one event, best-effort: no retries, no queueing.
Delivery problems are returned in the SendResult instead of being raised, so
callers can decide whether to tell the user and never fail a command because
of telemetry.
"""

from __future__ import annotations

import logging
import time
import urllib.parse
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import httpx

from stripe_cli.telemetry.cancellation import CancellationToken
from stripe_cli.telemetry.config import CLIENT_ID, TelemetrySettings
from stripe_cli.telemetry.context import EventContext, get_event_context
from stripe_cli.telemetry.errors import (
    EndpointConfigError,
    EventCancelledError,
    RequestBuildError,
    TelemetryError,
    TransportError,
)
from stripe_cli.telemetry.identity import new_identifier
from stripe_cli.telemetry.transport import (
    CANCELLATION_EXTENSION,
    CONNECT_TIMEOUT,
    build_telemetry_client,
)

logger = logging.getLogger(__name__)

ORIGIN = "stripe-cli"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class SendOutcome(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class SendResult:
    """Outcome of one send_event call.

    - skipped: telemetry is opted out, nothing left the process
    - sent: the endpoint answered (any status code); response is set
    - failed: the event was not delivered; error is set
    """

    outcome: SendOutcome
    response: Optional[httpx.Response] = None
    error: Optional[TelemetryError] = None

    @classmethod
    def skipped_result(cls) -> "SendResult":
        return cls(outcome=SendOutcome.SKIPPED)

    @classmethod
    def sent_result(cls, response: httpx.Response) -> "SendResult":
        return cls(outcome=SendOutcome.SENT, response=response)

    @classmethod
    def failed_result(cls, error: TelemetryError) -> "SendResult":
        return cls(outcome=SendOutcome.FAILED, error=error)

    @property
    def sent(self) -> bool:
        return self.outcome is SendOutcome.SENT

    @property
    def skipped(self) -> bool:
        return self.outcome is SendOutcome.SKIPPED

    @property
    def failed(self) -> bool:
        return self.outcome is SendOutcome.FAILED


def _validate_endpoint(endpoint: str) -> str:
    try:
        parts = urllib.parse.urlsplit(endpoint)
    except ValueError as e:
        raise EndpointConfigError(f"Invalid analytics endpoint {endpoint!r}: {e}") from e

    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise EndpointConfigError(f"Invalid analytics endpoint {endpoint!r}")
    return urllib.parse.urlunsplit(parts)


def build_event_form(
    context: EventContext,
    event_name: str,
    event_value: str,
    created: Optional[int] = None,
) -> str:
    """URL-encode the context fields plus the per-event keys.

    Args:
        context: Event context whose fields are reported
        event_name: Name of the event (e.g., "purchase")
        event_value: Value of the event
        created: Unix timestamp, defaults to now

    Returns:
        application/x-www-form-urlencoded body
    """
    pairs = context.to_form()
    pairs.extend(
        [
            ("client_id", CLIENT_ID),
            ("event_id", new_identifier()),
            ("event_name", event_name),
            ("event_value", event_value),
            ("created", str(int(time.time()) if created is None else created)),
        ]
    )
    return urllib.parse.urlencode(sorted(pairs))


class EventSender:
    """Builds and delivers telemetry events for an EventContext.

    Usage:
        sender = EventSender()
        result = sender.send_event("purchase", "42")
        if result.failed:
            logger.debug(f"telemetry not delivered: {result.error}")
    """

    def __init__(
        self,
        context: Optional[EventContext] = None,
        settings: Optional[TelemetrySettings] = None,
        client: Optional[httpx.Client] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """
        Initialize the sender.

        Args:
            context: Context to report. Defaults to the process-wide context.
            settings: Settings to use. Defaults to TelemetrySettings.from_env()
                at each send, so opt-out changes are picked up.
            client: httpx client. Defaults to build_telemetry_client().
            sleep: Pre-send delay hook, called with the delay in seconds.
                Defaults to time.sleep (or the cancellation token's wait).
        """
        self.context = context
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self._client_key: Optional[tuple[bool, str]] = None
        self._sleep = sleep

    @property
    def settings(self) -> TelemetrySettings:
        if self._settings is not None:
            return self._settings
        return TelemetrySettings.from_env()

    def _get_client(self, settings: TelemetrySettings) -> httpx.Client:
        if not self._owns_client:
            return self._client

        # Verbose mode and proxy resolution are fixed when the client is built
        key = (settings.verbose, settings.endpoint)
        if self._client is not None and key != self._client_key:
            self._client.close()
            self._client = None
        if self._client is None:
            self._client = build_telemetry_client(
                verbose=settings.verbose, endpoint=settings.endpoint
            )
            self._client_key = key
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._client_key = None
        self._owns_client = True

    def __enter__(self) -> "EventSender":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _pre_send_delay(self, delay: float, cancel: Optional[CancellationToken]) -> None:
        if delay <= 0:
            return
        if self._sleep is not None:
            self._sleep(delay)
        elif cancel is not None:
            cancel.wait(delay)
        else:
            time.sleep(delay)

    def send_event(
        self,
        event_name: str,
        event_value: str,
        cancel: Optional[CancellationToken] = None,
    ) -> SendResult:
        """Send one telemetry event.

        Args:
            event_name: Name of the event
            event_value: Value of the event
            cancel: Token that aborts the send when cancelled or past its deadline

        Returns:
            SendResult with outcome sent, skipped or failed
        """
        try:
            settings = self.settings
        except TelemetryError as e:
            return SendResult.failed_result(e)

        self._pre_send_delay(settings.pre_send_delay, cancel)

        if settings.opted_out:
            logger.debug(f"Telemetry opted out, skipping event {event_name}")
            return SendResult.skipped_result()

        try:
            response = self._deliver(settings, event_name, event_value, cancel)
        except TelemetryError as e:
            logger.debug(f"Failed to send telemetry event {event_name}: {e}")
            return SendResult.failed_result(e)

        return SendResult.sent_result(response)

    def _deliver(
        self,
        settings: TelemetrySettings,
        event_name: str,
        event_value: str,
        cancel: Optional[CancellationToken],
    ) -> httpx.Response:
        url = _validate_endpoint(settings.endpoint)
        context = self.context if self.context is not None else get_event_context()
        try:
            client = self._get_client(settings)
        except (httpx.InvalidURL, ImportError, ValueError) as e:
            raise TransportError(f"Could not configure telemetry transport: {e}") from e

        extensions = {}
        timeout = httpx.USE_CLIENT_DEFAULT
        if cancel is not None:
            extensions[CANCELLATION_EXTENSION] = cancel
            remaining = cancel.remaining()
            if remaining is not None:
                timeout = httpx.Timeout(remaining, connect=min(remaining, CONNECT_TIMEOUT))

        try:
            request = client.build_request(
                "POST",
                url,
                content=build_event_form(context, event_name, event_value),
                headers={"origin": ORIGIN, "Content-Type": FORM_CONTENT_TYPE},
                timeout=timeout,
                extensions=extensions,
            )
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise RequestBuildError(f"Could not build telemetry request: {e}") from e

        try:
            return client.send(request)
        except EventCancelledError:
            raise
        except httpx.TimeoutException as e:
            if cancel is not None and cancel.cancelled:
                raise EventCancelledError(f"Telemetry send deadline exceeded: {e}") from e
            raise TransportError(f"Telemetry request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Telemetry request failed: {e}") from e


def send_event(
    event_name: str,
    event_value: str,
    cancel: Optional[CancellationToken] = None,
    settings: Optional[TelemetrySettings] = None,
) -> SendResult:
    """Send one event for the process-wide context with a short-lived client."""
    with EventSender(settings=settings) as sender:
        return sender.send_event(event_name, event_value, cancel=cancel)
