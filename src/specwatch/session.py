"""Watch session: server lifecycle plus cross-run retry state.

WatchSession is what a file watcher (or the CLI) drives. It resolves the
configuration once, owns the ServerSupervisor and the RunOrchestrator, and
keeps the RunState that lets failed targets be retried on the next change.

Any failing run raises TaskFailed after the state has been updated.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import httpx
import structlog

from specwatch.config.constants import DEFAULT_SPEC_DIRS, SERVER_HOST, SPEC_FILE_PATTERN
from specwatch.config.models import RunOptions, SpecWatchConfig
from specwatch.core import console
from specwatch.core.errors import RunnerError, TaskFailed
from specwatch.runner.orchestrator import RunOrchestrator
from specwatch.runner.selector import is_spec_dir
from specwatch.server.kinds import NoServer, ServerKind, TaskBackend, parse_server_kind
from specwatch.server.supervisor import ServerSupervisor, choose_server_port, detect_server

logger = structlog.get_logger()

_SPEC_FILE_RE = re.compile(SPEC_FILE_PATTERN)


@dataclass
class RunState:
    """Outcome of the previous run, read by the next one.

    last_run_failed and last_failed_targets are tracked independently: a
    run can fail without leaving any target behind.
    """

    last_run_failed: bool = False
    last_failed_targets: set[str] = field(default_factory=set)

    def reset(self) -> None:
        self.last_run_failed = False
        self.last_failed_targets = set()

    def with_retries(self, targets: Sequence[str]) -> list[str]:
        """targets followed by previously failed targets not already in it."""
        retries = [t for t in sorted(self.last_failed_targets) if t not in targets]
        return [*targets, *retries]

    def record(self, ran: Iterable[str], failures: dict[str, list[str]]) -> None:
        self.last_run_failed = bool(failures)
        self.last_failed_targets = (self.last_failed_targets - set(ran)) | set(failures)


@dataclass(frozen=True, slots=True)
class ResolvedServer:
    kind: ServerKind
    port: int
    url: str


def resolve_spec_dir(config: SpecWatchConfig, cwd: Path) -> str:
    """Configured spec dir, else spec/javascripts when present, else spec."""
    if config.runner.spec_dir:
        return config.runner.spec_dir
    for candidate in DEFAULT_SPEC_DIRS:
        if (cwd / candidate).is_dir():
            return candidate
    return DEFAULT_SPEC_DIRS[-1]


def resolve_server(config: SpecWatchConfig, spec_dir: str, cwd: Path) -> ResolvedServer:
    """Server kind, port and runner URL for the session."""
    if config.server.kind.strip().lower() == "auto":
        kind = detect_server(spec_dir, cwd=cwd)
    else:
        kind = parse_server_kind(config.server.kind)

    port = config.server.port if config.server.port is not None else choose_server_port(kind)

    if config.runner.url:
        url = config.runner.url
    elif isinstance(kind, TaskBackend) and kind.gem_hosted:
        url = f"http://{SERVER_HOST}:{port}/"
    else:
        url = f"http://{SERVER_HOST}:{port}{config.server.mount}"

    return ResolvedServer(kind=kind, port=port, url=url)


def clean_paths(paths: Iterable[str], spec_dir: str) -> list[str]:
    """Reduce modified paths to the spec targets worth running.

    The spec dir swallows everything else. Otherwise only existing spec
    files are kept, de-duplicated in order.
    """
    unique = list(dict.fromkeys(p for p in paths if p))
    if any(is_spec_dir(p, spec_dir) for p in unique):
        return [spec_dir]
    return [p for p in unique if _SPEC_FILE_RE.search(p) and Path(p).exists()]


def runner_bin_valid(path: str | None) -> bool:
    if not path:
        return False
    return Path(path).is_file() and os.access(path, os.X_OK)


class WatchSession:
    """Drives runs for a watcher and remembers what failed."""

    def __init__(
        self,
        config: SpecWatchConfig,
        *,
        cwd: Path | None = None,
        supervisor: ServerSupervisor | None = None,
        orchestrator: RunOrchestrator | None = None,
        state: RunState | None = None,
    ) -> None:
        self.config = config
        self.cwd = cwd or Path.cwd()
        self.spec_dir = resolve_spec_dir(config, self.cwd)
        self.server = resolve_server(config, self.spec_dir, self.cwd)
        self.options = RunOptions.from_config(config, spec_dir=self.spec_dir, url=self.server.url)
        self.run_all_options = dict(config.session.run_all)
        self.supervisor = supervisor or ServerSupervisor()
        self.orchestrator = orchestrator or RunOrchestrator(self.options)
        self.state = state or RunState()

    @property
    def has_server(self) -> bool:
        return not isinstance(self.server.kind, NoServer)

    def start(self) -> None:
        """Validate the runner, start the server, optionally run everything.

        Raises:
            TaskFailed: The runner binary is unusable, the server did not come
                up, or the initial run failed.
        """
        if not runner_bin_valid(self.options.runner_bin):
            error = RunnerError.binary_invalid(self.options.runner_bin)
            logger.error("runner_invalid", **error.details)
            console.error(error.message)
            raise TaskFailed(str(error))

        if self.has_server:
            self.supervisor.start(
                self.server.kind,
                self.server.port,
                self.config.server,
                coverage=self.config.coverage.enabled,
                ignore_instrumentation=self.config.coverage.ignore_instrumentation,
            )

        if self.config.session.all_on_start and self.runner_available():
            self.run_all()

    def stop(self) -> None:
        if self.has_server:
            self.supervisor.stop()

    def reload(self) -> None:
        self.state.reset()

    def run_all(self) -> None:
        failures = self.orchestrator.run([self.spec_dir], **self.run_all_options)
        self.state.last_failed_targets = set(failures)
        self.state.last_run_failed = bool(failures)
        if failures:
            raise TaskFailed()

    def run_on_modifications(self, paths: Sequence[str]) -> bool:
        """Run the specs behind modified paths plus any retries.

        Returns False when nothing is left to run, True when the run passed.
        """
        targets = list(paths)
        if self.config.session.keep_failed:
            targets = self.state.with_retries(targets)
        if self.config.session.clean:
            targets = clean_paths(targets, self.spec_dir)
        if not targets:
            return False

        failures = self.orchestrator.run(targets)
        previously_failed = self.state.last_run_failed
        self.state.record(targets, failures)
        if failures:
            raise TaskFailed()

        if previously_failed and self.config.session.all_after_pass:
            self.run_all()
        return True

    def runner_available(self) -> bool:
        """True when the runner URL answers with 200."""
        url = self.server.url
        console.info(f"Waiting for Jasmine test runner at {url}")
        try:
            response = httpx.get(url, timeout=self.config.server.timeout_sec)
        except httpx.RequestError as e:
            logger.warning("runner_unavailable", url=url, error=str(e))
            console.error(f"Jasmine test runner isn't available: {e}")
            return False

        if response.status_code != 200:
            logger.warning("runner_unavailable", url=url, status=response.status_code)
            console.error(f"Jasmine test runner failed with status {response.status_code}")
            console.error("Please open the Jasmine runner in your browser for more information.")
            return False
        return True
