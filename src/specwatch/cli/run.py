"""specwatch run command - run specs once and exit.

Exit codes:
    0  every spec passed
    1  at least one target failed
    2  setup failed (bad config, invalid runner, server or runner unreachable)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click

from specwatch.config.constants import REPORT_MODES
from specwatch.config.loader import load_config
from specwatch.core import console
from specwatch.core.errors import ConfigError, RunnerError, SpecWatchError, TaskFailed
from specwatch.core.logging import configure_logging
from specwatch.session import WatchSession, runner_bin_valid

EXIT_FAILED = 1
EXIT_SETUP = 2

_MODE = click.Choice(REPORT_MODES, case_sensitive=False)


def _section(**values: Any) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def build_overrides(params: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Map CLI options onto config sections, dropping unset ones."""
    sections = {
        "server": _section(
            kind=params.get("server"),
            port=params.get("port"),
            env=params.get("server_env"),
            timeout_sec=params.get("server_timeout"),
            mount=params.get("mount"),
            rackup_config=params.get("rackup_config"),
            verbose=params.get("server_verbose"),
        ),
        "runner": _section(
            bin=params.get("runner_bin"),
            url=params.get("url"),
            timeout_sec=params.get("timeout"),
            spec_dir=params.get("spec_dir"),
            debug=params.get("debug"),
        ),
        "report": _section(
            specdoc=params.get("specdoc"),
            console=params.get("console_mode"),
            errors=params.get("errors"),
            focus=params.get("focus"),
        ),
        "coverage": _section(
            enabled=params.get("coverage"),
            html=params.get("coverage_html"),
            summary=params.get("coverage_summary"),
            html_dir=params.get("coverage_html_dir"),
            statements_threshold=params.get("statements_threshold"),
            functions_threshold=params.get("functions_threshold"),
            branches_threshold=params.get("branches_threshold"),
            lines_threshold=params.get("lines_threshold"),
        ),
    }
    return {name: values for name, values in sections.items() if values}


@click.command()
@click.argument("paths", nargs=-1, type=click.Path())
@click.option("-s", "--server", help="Server to start: auto, none, webrick, thin, puma, ...")
@click.option("-p", "--port", type=int, help="Server port")
@click.option("-e", "--server-env", help="Rack/Rails environment of the server")
@click.option("--server-timeout", type=float, help="Seconds to wait for the server")
@click.option("--mount", help="Mount point of the Jasmine runner")
@click.option("-c", "--rackup-config", help="Custom rackup config")
@click.option("--server-verbose", is_flag=True, default=None, help="Show server output")
@click.option("-u", "--url", help="Jasmine runner URL")
@click.option("-t", "--timeout", type=int, help="Spec run timeout in seconds")
@click.option("-d", "--spec-dir", help="Spec directory")
@click.option("-b", "--runner-bin", help="Headless browser binary")
@click.option("--specdoc", type=_MODE, help="When to show the specdoc")
@click.option("--console", "console_mode", type=_MODE, help="When to show console.log output")
@click.option("--errors", type=_MODE, help="When to show spec errors")
@click.option("--focus/--no-focus", default=None, help="Only list failing specs on failure")
@click.option("--coverage/--no-coverage", default=None, help="Collect code coverage")
@click.option("--coverage-html/--no-coverage-html", default=None, help="Write an HTML report")
@click.option("--coverage-summary/--no-coverage-summary", default=None, help="Summary only")
@click.option("--coverage-html-dir", help="HTML report directory")
@click.option("--statements-threshold", type=click.IntRange(0, 100))
@click.option("--functions-threshold", type=click.IntRange(0, 100))
@click.option("--branches-threshold", type=click.IntRange(0, 100))
@click.option("--lines-threshold", type=click.IntRange(0, 100))
@click.option("--debug", is_flag=True, default=None, help="Echo runner commands and results")
@click.pass_context
def run_command(ctx: click.Context, paths: tuple[str, ...], **params: Any) -> None:
    """Run Jasmine specs once and exit.

    PATHS are spec files (optionally file:line) or the spec directory.
    Defaults to the whole spec directory.
    """
    cwd = Path.cwd()
    try:
        config = load_config(cwd, **build_overrides(params))
    except ConfigError as e:
        console.error(str(e))
        ctx.exit(EXIT_SETUP)

    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    if not verbose:
        configure_logging(config=config.logging)

    session = WatchSession(config, cwd=cwd)
    if not runner_bin_valid(session.options.runner_bin):
        console.error(RunnerError.binary_invalid(session.options.runner_bin).message)
        ctx.exit(EXIT_SETUP)

    targets = list(paths) or [session.spec_dir]
    exit_code = 0
    try:
        if session.has_server:
            session.supervisor.start(
                session.server.kind,
                session.server.port,
                config.server,
                coverage=config.coverage.enabled,
                ignore_instrumentation=config.coverage.ignore_instrumentation,
            )
        if not session.runner_available():
            exit_code = EXIT_SETUP
        else:
            failures = session.orchestrator.run(targets, is_cli=True)
            exit_code = EXIT_FAILED if failures else 0
    except (TaskFailed, SpecWatchError) as e:
        console.error(f"Something went wrong: {e}")
        exit_code = EXIT_SETUP
    finally:
        session.stop()

    ctx.exit(exit_code)
