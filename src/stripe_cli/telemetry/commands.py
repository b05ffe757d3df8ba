"""Binding the invoked command into the event context."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

import click

if TYPE_CHECKING:
    from stripe_cli.telemetry.context import EventContext

# Annotation value carried by commands generated from the API description
OPERATION_MARKER = "operation"


@dataclass(frozen=True)
class CommandDescriptor:
    """Identity of the command being dispatched.

    Attributes:
        path: Full space-joined command path (e.g. "stripe customers create")
        annotations: Command metadata mapping
        generated: Registration-time tag for generated commands
    """

    path: str
    annotations: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    generated: bool = False

    @property
    def is_generated(self) -> bool:
        if self.generated:
            return True
        return any(value == OPERATION_MARKER for value in self.annotations.values())


def bind_command(ctx: "EventContext", descriptor: CommandDescriptor) -> None:
    """Set command_path and generated_resource from the descriptor.

    Both fields are overwritten on every call.
    """
    ctx.command_path = descriptor.path
    ctx.generated_resource = False

    if descriptor.is_generated:
        ctx.generated_resource = True


def generated_command(cmd: click.Command) -> click.Command:
    """Tag a click command as generated from the API description.

    Apply above the @click.command decorator:

        @generated_command
        @click.command()
        def create(): ...
    """
    cmd.generated_resource = True  # type: ignore[attr-defined]
    return cmd


def descriptor_from_click(ctx: click.Context) -> CommandDescriptor:
    """Build a CommandDescriptor for the command running in a click context."""
    command = ctx.command
    annotations = getattr(command, "annotations", None) or {}
    return CommandDescriptor(
        path=ctx.command_path,
        annotations=dict(annotations),
        generated=bool(getattr(command, "generated_resource", False)),
    )
