"""Stripe telemetry CLI - Main command-line interface."""

import click
from dotenv import load_dotenv

from stripe_cli import __version__
from stripe_cli.cli.telemetry import telemetry
from stripe_cli.telemetry.context import initialize_event_context

load_dotenv()


@click.group()
@click.version_option(version=__version__, prog_name="stripe-telemetry")
@click.option("--merchant", envvar="STRIPE_ACCOUNT_ID", default="", help="Account the command runs against")
@click.option("--live", "livemode", is_flag=True, default=False, help="Target the live account")
def main(merchant: str, livemode: bool):
    """
    Stripe CLI telemetry tools.

    Inspect and exercise the anonymous usage telemetry pipeline.
    """
    initialize_event_context(__version__, merchant=merchant, livemode=livemode)


main.add_command(telemetry)


if __name__ == "__main__":
    main()
