"""Tests for telemetry CLI commands."""

from __future__ import annotations

import logging
import urllib.parse

import httpx
import pytest
from click.testing import CliRunner
from rich.logging import RichHandler

from stripe_cli import __version__
from stripe_cli.cli.main import main
from stripe_cli.conftest import assert_cli_success, invoke_cli
from stripe_cli.telemetry.context import get_event_context


def _form(request: httpx.Request) -> dict[str, str]:
    return dict(urllib.parse.parse_qsl(request.content.decode(), keep_blank_values=True))


class TestTelemetryGroup:
    """Tests for `telemetry` command group."""

    def test_telemetry_help(self, cli_runner: CliRunner):
        result = invoke_cli(cli_runner, main, ["telemetry", "--help"])
        assert_cli_success(result)
        assert "Manage telemetry and anonymous usage analytics" in result.output
        assert "status" in result.output
        assert "send" in result.output

    def test_version(self, cli_runner: CliRunner):
        result = invoke_cli(cli_runner, main, ["--version"])
        assert_cli_success(result)
        assert __version__ in result.output


@pytest.mark.usefixtures("fresh_event_context")
class TestStatusCommand:
    """Tests for `telemetry status` command."""

    def test_status_enabled(self, cli_runner: CliRunner):
        result = invoke_cli(cli_runner, main, ["telemetry", "status"])
        assert_cli_success(result)
        assert "Telemetry is Enabled" in result.output
        assert "https://r.stripe.com/0" in result.output

    def test_status_disabled(self, cli_runner: CliRunner, monkeypatch):
        monkeypatch.setenv("STRIPE_CLI_TELEMETRY_OPTOUT", "true")

        result = invoke_cli(cli_runner, main, ["telemetry", "status"])

        assert_cli_success(result)
        assert "Telemetry is Disabled" in result.output
        assert "STRIPE_CLI_TELEMETRY_OPTOUT" in result.output

    def test_status_invalid_settings(self, cli_runner: CliRunner, monkeypatch):
        monkeypatch.setenv("STRIPE_CLI_TELEMETRY_DELAY", "never")

        result = cli_runner.invoke(main, ["telemetry", "status"])

        assert result.exit_code == 1
        assert "Invalid telemetry settings" in result.output


@pytest.mark.usefixtures("fresh_event_context")
class TestSendCommand:
    """Tests for `telemetry send` command."""

    def test_send(self, cli_runner: CliRunner, mock_telemetry_client):
        result = invoke_cli(
            cli_runner,
            main,
            ["--merchant", "acct_123", "telemetry", "send", "purchase", "42", "--no-delay"],
        )

        assert_cli_success(result)
        assert "Sent telemetry event" in result.output
        assert mock_telemetry_client.call_count == 1

        form = _form(mock_telemetry_client.requests[0])
        assert form["event_name"] == "purchase"
        assert form["event_value"] == "42"
        assert form["merchant"] == "acct_123"
        assert form["cli_version"] == __version__
        assert form["command_path"].endswith("telemetry send")
        assert form["invocation_id"] == get_event_context().invocation_id

    def test_send_opted_out(self, cli_runner: CliRunner, monkeypatch, mock_telemetry_client):
        monkeypatch.setenv("STRIPE_CLI_TELEMETRY_OPTOUT", "1")

        result = invoke_cli(cli_runner, main, ["telemetry", "send", "purchase", "42", "--no-delay"])

        assert_cli_success(result)
        assert "Skipped" in result.output
        assert mock_telemetry_client.call_count == 0

    def test_send_failure_keeps_exit_code(self, cli_runner: CliRunner, mock_telemetry_client):
        mock_telemetry_client.error = httpx.ConnectError("unreachable")

        result = invoke_cli(cli_runner, main, ["telemetry", "send", "purchase", "42", "--no-delay"])

        assert_cli_success(result)
        assert "not delivered" in result.output

    def test_send_with_expired_timeout(self, cli_runner: CliRunner, mock_telemetry_client):
        result = invoke_cli(
            cli_runner,
            main,
            ["telemetry", "send", "purchase", "42", "--no-delay", "--timeout", "0"],
        )

        assert_cli_success(result)
        assert "not delivered" in result.output
        assert mock_telemetry_client.call_count == 0

    def test_live_flag(self, cli_runner: CliRunner, mock_telemetry_client):
        invoke_cli(cli_runner, main, ["--live", "telemetry", "send", "a", "b", "--no-delay"])

        assert _form(mock_telemetry_client.requests[0])["livemode"] == "true"

    def test_verbose_attaches_transport_handler(self, cli_runner: CliRunner, mock_telemetry_client):
        result = invoke_cli(
            cli_runner, main, ["telemetry", "send", "purchase", "42", "--no-delay", "--verbose"]
        )

        assert_cli_success(result)
        transport_logger = logging.getLogger("stripe_cli.telemetry.transport")
        assert any(isinstance(h, RichHandler) for h in transport_logger.handlers)
