"""specwatch detect command - show the server strategy for a project."""

from __future__ import annotations

from pathlib import Path

import click

from specwatch.config.loader import load_config
from specwatch.core.errors import ConfigError
from specwatch.session import resolve_server, resolve_spec_dir


@click.command()
@click.argument("spec_dir", default=None, required=False)
@click.option("--url", "show_url", is_flag=True, help="Also print the runner URL")
def detect_command(spec_dir: str | None, show_url: bool) -> None:
    """Print the server kind specwatch would start.

    SPEC_DIR defaults to spec/javascripts when present, else spec.
    """
    cwd = Path.cwd()
    overrides = {"runner": {"spec_dir": spec_dir}} if spec_dir else {}
    try:
        config = load_config(cwd, **overrides)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    resolved_dir = resolve_spec_dir(config, cwd)
    server = resolve_server(config, resolved_dir, cwd)
    click.echo(server.kind.name)
    if show_url:
        click.echo(server.url)
