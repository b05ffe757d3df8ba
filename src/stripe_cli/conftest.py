"""
Root pytest configuration for stripe_cli.

Provides fixtures for CLI testing and for stubbing the telemetry network.
"""

from __future__ import annotations

import logging

import httpx
import pytest
from click.testing import CliRunner

from stripe_cli.telemetry.transport import build_telemetry_client

TELEMETRY_ENV_VARS = [
    "STRIPE_CLI_TELEMETRY_OPTOUT",
    "STRIPE_CLI_TELEMETRY_ENDPOINT",
    "STRIPE_CLI_TELEMETRY_DELAY",
    "STRIPE_CLI_TELEMETRY_VERBOSE",
    "STRIPE_CLI_TELEMETRY_NOTIFY",
    "STRIPE_ACCOUNT_ID",
]


class RecordingHandler:
    """httpx.MockTransport handler that records every request it receives."""

    def __init__(self, status_code: int = 200, body: bytes = b'{"ok": true}', error=None):
        self.status_code = status_code
        self.body = body
        self.error = error
        self.requests: list[httpx.Request] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(
            self.status_code,
            headers={"Content-Type": "application/json", "Request-Id": "req_123"},
            content=self.body,
        )


# ============================================================================
# Environment Isolation
# ============================================================================


@pytest.fixture(autouse=True)
def clean_telemetry_env(monkeypatch):
    """Remove telemetry variables inherited from the developer's shell."""
    for name in TELEMETRY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fresh_event_context(monkeypatch):
    """Start the test with no process-wide EventContext."""
    monkeypatch.setattr("stripe_cli.telemetry.context._event_context", None)


@pytest.fixture(autouse=True)
def restore_transport_logger():
    """Undo handlers and levels that verbose clients attach to the transport logger."""
    transport_logger = logging.getLogger("stripe_cli.telemetry.transport")
    handlers = transport_logger.handlers[:]
    level = transport_logger.level
    yield transport_logger
    transport_logger.handlers[:] = handlers
    transport_logger.setLevel(level)


# ============================================================================
# Network Stubs
# ============================================================================


@pytest.fixture
def recording_handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def telemetry_client(recording_handler: RecordingHandler):
    """httpx client whose InstrumentedTransport forwards to the recording handler."""
    client = build_telemetry_client(base_transport=httpx.MockTransport(recording_handler))
    yield client
    client.close()


@pytest.fixture
def mock_telemetry_client(monkeypatch, recording_handler: RecordingHandler):
    """Route every client built by EventSender to the recording handler."""

    def _build(verbose: bool = False, endpoint: str | None = None, **kwargs):
        return build_telemetry_client(
            verbose=verbose,
            base_transport=httpx.MockTransport(recording_handler),
        )

    monkeypatch.setattr("stripe_cli.telemetry.sender.build_telemetry_client", _build)
    return recording_handler


# ============================================================================
# CLI Testing Fixtures
# ============================================================================


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI runner for testing."""
    return CliRunner()


def invoke_cli(runner: CliRunner, cmd, args: list[str], **kwargs):
    """
    Helper to invoke CLI command.

    Args:
        runner: Click test runner
        cmd: Click command or group
        args: Command arguments
        **kwargs: Additional arguments to runner.invoke()

    Returns:
        Click Result object
    """
    return runner.invoke(cmd, args, catch_exceptions=False, **kwargs)


def assert_cli_success(result) -> None:
    assert result.exit_code == 0, f"exit code {result.exit_code}\n{result.output}"
