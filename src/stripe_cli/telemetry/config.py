"""Telemetry configuration and opt-out management."""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from stripe_cli.telemetry.errors import TelemetryConfigError

# Stripe analytics service
ANALYTICS_ENDPOINT = "https://r.stripe.com/0"
CLIENT_ID = "stripe-cli"

TELEMETRY_OPTOUT_ENV = "STRIPE_CLI_TELEMETRY_OPTOUT"
TELEMETRY_ENDPOINT_ENV = "STRIPE_CLI_TELEMETRY_ENDPOINT"
TELEMETRY_DELAY_ENV = "STRIPE_CLI_TELEMETRY_DELAY"
TELEMETRY_VERBOSE_ENV = "STRIPE_CLI_TELEMETRY_VERBOSE"
TELEMETRY_NOTIFY_ENV = "STRIPE_CLI_TELEMETRY_NOTIFY"

# Seconds slept before every send (override with STRIPE_CLI_TELEMETRY_DELAY)
DEFAULT_PRE_SEND_DELAY = 5.0

_TRUTHY = {"1", "true"}


def _env_flag(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY


def telemetry_opted_out(value: Optional[str]) -> bool:
    """Check whether an opt-out value disables telemetry.

    Args:
        value: Raw environment value (may be None)

    Returns:
        True for "1" or "true" (any case)
    """
    return _env_flag(value)


def is_telemetry_enabled() -> bool:
    """Check if telemetry is enabled.

    Telemetry is disabled when STRIPE_CLI_TELEMETRY_OPTOUT is "1" or "true".
    The environment is read on every call.
    """
    return not telemetry_opted_out(os.getenv(TELEMETRY_OPTOUT_ENV))


class TelemetrySettings(BaseModel):
    """Runtime settings for the event sender."""

    opted_out: bool = False
    endpoint: str = ANALYTICS_ENDPOINT
    pre_send_delay: float = Field(default=DEFAULT_PRE_SEND_DELAY, ge=0)
    verbose: bool = False
    notify: bool = False

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "TelemetrySettings":
        """Load settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Raises:
            TelemetryConfigError: If a value fails validation
        """
        env = os.environ if environ is None else environ

        values: dict = {
            "opted_out": telemetry_opted_out(env.get(TELEMETRY_OPTOUT_ENV)),
            "verbose": _env_flag(env.get(TELEMETRY_VERBOSE_ENV)),
            "notify": _env_flag(env.get(TELEMETRY_NOTIFY_ENV)),
        }
        if env.get(TELEMETRY_ENDPOINT_ENV):
            values["endpoint"] = env[TELEMETRY_ENDPOINT_ENV]
        if env.get(TELEMETRY_DELAY_ENV):
            values["pre_send_delay"] = env[TELEMETRY_DELAY_ENV]

        try:
            return cls(**values)
        except ValidationError as e:
            raise TelemetryConfigError(f"Invalid telemetry settings: {e}") from e


def get_telemetry_status() -> dict:
    """Get current telemetry status and configuration.

    Returns:
        Dictionary with telemetry status information
    """
    settings = TelemetrySettings.from_env()

    disabled_reason: Optional[str] = None
    if settings.opted_out:
        disabled_reason = f"{TELEMETRY_OPTOUT_ENV} environment variable"

    return {
        "enabled": not settings.opted_out,
        "disabled_reason": disabled_reason,
        "endpoint": settings.endpoint,
        "pre_send_delay": settings.pre_send_delay,
        "verbose": settings.verbose,
    }
