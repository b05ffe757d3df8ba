"""Anonymous usage telemetry for the Stripe command-line tool.

This package provides:
- Telemetry: the per-process event context and the analytics event sender
- CLI: a small click application that wires the context into command dispatch
"""

__version__ = "0.1.0"
