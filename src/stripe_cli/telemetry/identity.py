"""Unique identifiers for invocations and events."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stripe_cli.telemetry.context import EventContext


def new_identifier() -> str:
    """Return a random (version 4) UUID string."""
    return str(uuid.uuid4())


def assign_invocation_id(ctx: "EventContext") -> str:
    """Store a fresh invocation ID in the context and return it.

    Every call generates a new value; callers normally do this once per process.
    """
    ctx.invocation_id = new_identifier()
    return ctx.invocation_id
