"""Click decorators that report command usage."""

from __future__ import annotations

import atexit
import functools
import logging
import threading
import time
from typing import Callable, Optional

import click

from stripe_cli.telemetry.commands import descriptor_from_click
from stripe_cli.telemetry.context import get_event_context
from stripe_cli.telemetry.sender import EventSender, SendResult

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_EVENT = "command_invoked"
# Upper bound on how long interpreter exit waits for background sends
EXIT_FLUSH_TIMEOUT = 10.0

_pending_threads: list[threading.Thread] = []
_threads_lock = threading.Lock()
_atexit_registered = False


def notify_result(result: SendResult) -> None:
    """Print the confirmation shown after a delivered event."""
    if result.sent:
        click.echo("Sent telemetry event", err=True)


def _report(event_name: str, event_value: str, notify: Optional[bool]) -> None:
    try:
        with EventSender() as sender:
            result = sender.send_event(event_name, event_value)
            should_notify = sender.settings.notify if notify is None else notify
            if should_notify:
                notify_result(result)
    except Exception as e:
        logger.debug(f"Error reporting command telemetry: {e}")


def _start_background_report(event_name: str, event_value: str, notify: Optional[bool]) -> None:
    global _atexit_registered

    thread = threading.Thread(
        target=_report,
        args=(event_name, event_value, notify),
        daemon=True,
    )
    with _threads_lock:
        _pending_threads[:] = [t for t in _pending_threads if t.is_alive()]
        _pending_threads.append(thread)
        if not _atexit_registered:
            atexit.register(flush_events, EXIT_FLUSH_TIMEOUT)
            _atexit_registered = True
    thread.start()


def flush_events(timeout: Optional[float] = None) -> int:
    """Wait for background command events to finish sending.

    Called automatically at interpreter exit once a non-blocking command has
    reported.

    Args:
        timeout: Overall seconds to wait, None waits until all are done

    Returns:
        Number of sends still running when the wait ended
    """
    with _threads_lock:
        threads = list(_pending_threads)

    deadline = None if timeout is None else time.monotonic() + timeout
    for thread in threads:
        if deadline is None:
            thread.join()
        else:
            thread.join(max(0.0, deadline - time.monotonic()))

    with _threads_lock:
        _pending_threads[:] = [t for t in _pending_threads if t.is_alive()]
        return len(_pending_threads)


def track_command(
    func: Optional[Callable] = None,
    *,
    event_name: str = DEFAULT_COMMAND_EVENT,
    blocking: bool = True,
    notify: Optional[bool] = None,
):
    """Report a click command's invocation after it runs.

    Binds the running command into the process-wide event context, runs the
    command, then sends `event_name` with value "success" or "failure".
    Telemetry never changes the command's outcome.

    Args:
        func: Command callback (when used without arguments)
        event_name: Event name to send
        blocking: If False, send from a daemon thread; see flush_events()
        notify: Print a confirmation; defaults to the STRIPE_CLI_TELEMETRY_NOTIFY setting

    Example:
        @click.command()
        @track_command
        def create(): ...
    """

    def decorator(f: Callable) -> Callable:
        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            click_ctx = click.get_current_context(silent=True)
            if click_ctx is not None:
                get_event_context().bind_command(descriptor_from_click(click_ctx))

            event_value = "failure"
            try:
                result = f(*args, **kwargs)
                event_value = "success"
                return result
            finally:
                if blocking:
                    _report(event_name, event_value, notify)
                else:
                    _start_background_report(event_name, event_value, notify)

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
