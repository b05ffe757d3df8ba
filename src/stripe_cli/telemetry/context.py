"""Process-wide telemetry event context.

One EventContext exists per process. It is created on first access and is
never reset: commands run later in the same process see the fields left by
earlier ones unless they rebind them.
"""

from __future__ import annotations

import platform
import threading
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stripe_cli.telemetry.commands import CommandDescriptor


def _key(name: str):
    return field(default="", metadata={"key": name})


def _flag(name: str):
    return field(default=False, metadata={"key": name})


@dataclass
class EventContext:
    """Fields reported with every telemetry event of this invocation."""

    user_agent: str = _key("user_agent")
    invocation_id: str = _key("invocation_id")
    command_path: str = _key("command_path")
    merchant: str = _key("merchant")
    cli_version: str = _key("cli_version")
    os: str = _key("os")
    generated_resource: bool = _flag("generated_resource")
    request_id: str = _key("request_id")
    livemode: bool = _flag("livemode")

    def to_form(self) -> list[tuple[str, str]]:
        """Serialize every field as (form key, value) pairs.

        Booleans encode as "true"/"false"; empty strings are kept.
        """
        pairs = []
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool):
                value = "true" if value else "false"
            pairs.append((f.metadata["key"], str(value)))
        return pairs

    def bind_command(self, descriptor: "CommandDescriptor") -> None:
        from stripe_cli.telemetry.commands import bind_command

        bind_command(self, descriptor)

    def assign_invocation_id(self) -> str:
        from stripe_cli.telemetry.identity import assign_invocation_id

        return assign_invocation_id(self)


# Global context (lazy initialized)
_event_context: EventContext | None = None
_context_lock = threading.Lock()


def get_event_context() -> EventContext:
    """Get the process-wide EventContext, creating it on first call.

    The lock is only taken while the instance does not exist yet, so
    concurrent first callers still receive the same object.
    """
    global _event_context

    if _event_context is not None:
        return _event_context

    with _context_lock:
        if _event_context is None:
            _event_context = EventContext()
        return _event_context


def _user_agent(version: str) -> str:
    return f"Stripe/v1 stripe-cli/{version}"


def initialize_event_context(
    version: str,
    merchant: str = "",
    livemode: bool = False,
) -> EventContext:
    """Fill framework-supplied fields and assign a fresh invocation ID.

    Args:
        version: CLI version string
        merchant: Account identifier, may be empty
        livemode: Whether the invocation targets a live account

    Returns:
        The process-wide EventContext
    """
    ctx = get_event_context()
    ctx.user_agent = _user_agent(version)
    ctx.cli_version = version
    ctx.os = platform.system().lower()
    ctx.merchant = merchant
    ctx.livemode = livemode
    ctx.assign_invocation_id()
    return ctx
