"""HTTP transport used to deliver telemetry events.

InstrumentedTransport decorates another httpx transport. In verbose mode it
logs every request and response (headers and body) to this module's logger;
otherwise it passes traffic through untouched. It never retries or caches.
"""

from __future__ import annotations

import logging
import socket
import urllib.parse
import urllib.request
from typing import Optional

import httpx
from rich.console import Console
from rich.logging import RichHandler

from stripe_cli.telemetry.config import ANALYTICS_ENDPOINT

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 30.0
KEEPALIVE_INTERVAL = 30
# Request extension key carrying a CancellationToken
CANCELLATION_EXTENSION = "stripe_cli.cancellation"


def _keepalive_socket_options() -> list[tuple[int, int, int]]:
    options = [(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)]
    # Not every platform exposes the per-socket keep-alive settings
    if hasattr(socket, "TCP_KEEPIDLE"):
        options.append((socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, KEEPALIVE_INTERVAL))
    if hasattr(socket, "TCP_KEEPINTVL"):
        options.append((socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, KEEPALIVE_INTERVAL))
    return options


def proxy_from_environment(url: str) -> Optional[httpx.Proxy]:
    """Resolve the proxy for `url` from *_PROXY / NO_PROXY variables.

    Returns:
        Proxy to use, or None for a direct connection
    """
    parts = urllib.parse.urlsplit(url)
    if not parts.hostname or urllib.request.proxy_bypass(parts.hostname):
        return None

    proxies = urllib.request.getproxies()
    proxy_url = proxies.get(parts.scheme) or proxies.get("all")
    if not proxy_url:
        return None
    # Bare host:port values mean a plain HTTP proxy
    if "://" not in proxy_url:
        proxy_url = f"http://{proxy_url}"
    return httpx.Proxy(proxy_url)


def enable_verbose_logging() -> None:
    """Print transport log records to stderr (idempotent)."""
    logger.setLevel(logging.INFO)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(
            RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
        )


def default_timeout() -> httpx.Timeout:
    """Connect phases bounded, no overall limit on the exchange."""
    return httpx.Timeout(None, connect=CONNECT_TIMEOUT)


def build_base_transport(endpoint: str = ANALYTICS_ENDPOINT) -> httpx.HTTPTransport:
    """Create the network transport with keep-alive and proxy settings."""
    return httpx.HTTPTransport(
        proxy=proxy_from_environment(endpoint),
        limits=httpx.Limits(keepalive_expiry=float(KEEPALIVE_INTERVAL)),
        socket_options=_keepalive_socket_options(),
    )


def _format_headers(prefix: str, headers: httpx.Headers) -> str:
    return "\n".join(f"{prefix} {name}: {value}" for name, value in headers.items())


class InstrumentedTransport(httpx.BaseTransport):
    """Transport decorator with optional request/response logging.

    Usage:
        transport = InstrumentedTransport(verbose=True)
        with httpx.Client(transport=transport) as client:
            client.post(url, content=body)
    """

    def __init__(
        self,
        base_transport: Optional[httpx.BaseTransport] = None,
        verbose: bool = False,
        endpoint: str = ANALYTICS_ENDPOINT,
    ):
        """
        Initialize the transport.

        Args:
            base_transport: Transport that performs the exchange. Defaults to
                an HTTPTransport configured by build_base_transport().
            verbose: Log requests and responses
            endpoint: URL used to resolve the environment proxy
        """
        self.base_transport = base_transport or build_base_transport(endpoint)
        self.verbose = verbose

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        token = request.extensions.get(CANCELLATION_EXTENSION)
        if token is not None:
            token.raise_if_cancelled()

        if self.verbose:
            self._log_request(request)

        response = self.base_transport.handle_request(request)

        if self.verbose:
            # The body is buffered so it can be logged and still returned
            response.read()
            self._log_response(response)

        return response

    def close(self) -> None:
        self.base_transport.close()

    def _log_request(self, request: httpx.Request) -> None:
        body = request.read().decode("utf-8", errors="replace")
        logger.info(
            f"> {request.method} {request.url}\n"
            f"{_format_headers('>', request.headers)}\n\n{body}"
        )

    def _log_response(self, response: httpx.Response) -> None:
        logger.info(
            f"< {response.http_version} {response.status_code} {response.reason_phrase}\n"
            f"{_format_headers('<', response.headers)}\n\n{response.text}"
        )


def build_telemetry_client(
    verbose: bool = False,
    base_transport: Optional[httpx.BaseTransport] = None,
    endpoint: str = ANALYTICS_ENDPOINT,
) -> httpx.Client:
    """Create the httpx client used by the event sender.

    Args:
        verbose: Log requests and responses
        base_transport: Override the network transport (tests use MockTransport)
        endpoint: Analytics endpoint, for proxy resolution

    Returns:
        httpx.Client routed through an InstrumentedTransport
    """
    if verbose:
        enable_verbose_logging()

    transport = InstrumentedTransport(
        base_transport=base_transport,
        verbose=verbose,
        endpoint=endpoint,
    )
    return httpx.Client(transport=transport, timeout=default_timeout())
