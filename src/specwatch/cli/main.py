"""specwatch CLI - specwatch command."""

import click

from specwatch.cli.detect import detect_command
from specwatch.cli.run import run_command
from specwatch.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="specwatch")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """specwatch - Run Jasmine specs in a headless browser."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(run_command, name="run")
cli.add_command(detect_command, name="detect")


if __name__ == "__main__":
    cli()
