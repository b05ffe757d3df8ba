"""Command-line interface for stripe_cli."""
