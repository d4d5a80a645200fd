"""Headless runner invocation.

Builds one shell command per target:

    <runner_bin> [<runner_script>] "<suite_url>" <timeout_ms>

and returns its stdout as a stream. The timeout is advisory data for the
in-browser script; the invoker does not enforce it.
"""

from __future__ import annotations

import subprocess
from types import TracebackType
from typing import Protocol

import structlog

from specwatch.config.models import RunOptions
from specwatch.core import console
from specwatch.runner.selector import query_string

logger = structlog.get_logger()


class OutputStream(Protocol):
    def read(self) -> str: ...

    def close(self) -> None: ...


class RunnerOutput:
    """stdout of a running runner process.

    close() is idempotent and reaps the process.
    """

    def __init__(self, process: subprocess.Popen[str]) -> None:
        self._process = process
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    def read(self) -> str:
        if self._process.stdout is None:
            return ""
        return self._process.stdout.read()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._process.stdout is not None:
            self._process.stdout.close()
        self._process.wait()

    def __enter__(self) -> RunnerOutput:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def suite_url(target: str, options: RunOptions) -> str:
    """Runner URL with the suite filter and caller query params appended."""
    return options.url + query_string(
        target,
        options.spec_dir,
        options.query_params,
        options.line_number,
    )


def runner_command(target: str, options: RunOptions) -> str:
    executable = options.runner_bin
    if options.runner_script:
        executable = f"{executable} {options.runner_script}"
    timeout_ms = options.timeout_sec * 1000
    return f'{executable} "{suite_url(target, options)}" {timeout_ms}'


class RunnerInvoker:
    """Spawns the headless runner for a single target."""

    def invoke(self, target: str, options: RunOptions) -> RunnerOutput:
        cmd = runner_command(target, options)
        if options.debug:
            console.info(cmd)
        logger.debug("runner_invoked", target=target, cmd=cmd)
        process = subprocess.Popen(
            cmd,
            shell=True,
            stdout=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
        return RunnerOutput(process)
