"""Test server supervision.

Starts the HTTP server that hosts the Jasmine runner page as a detached
child process, polls its port until it accepts connections, and tears it
down with terminate-then-kill.

Lifecycle: NOT_STARTED -> RUNNING -> STOPPED. A spawn failure leaves the
supervisor NOT_STARTED and is logged, not raised; a readiness timeout stops
the child and raises TaskFailed.
"""

from __future__ import annotations

import os
import shutil
import socket
import subprocess
import time
from collections.abc import Callable
from enum import StrEnum
from pathlib import Path

import structlog

from specwatch.config.constants import (
    BACKEND_EXECUTABLES,
    DETECTABLE_BACKENDS,
    FALLBACK_BACKEND,
    JASMINE_GEM_CONFIG,
    JASMINE_GEM_PORT,
    RACKUP_FILE,
    SERVER_HOST,
    SERVER_POLL_INTERVAL_SEC,
    SERVER_STOP_GRACE_SEC,
)
from specwatch.config.models import ServerConfig
from specwatch.core import console
from specwatch.core.errors import ServerError, TaskFailed
from specwatch.server.kinds import (
    AltBackend,
    NoServer,
    RackBackend,
    ServerKind,
    TaskBackend,
    build_command,
    parse_server_kind,
)

logger = structlog.get_logger()

BackendCheck = Callable[[str], bool]


class ServerState(StrEnum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


def _backend_installed(backend: str) -> bool:
    executable = BACKEND_EXECUTABLES.get(backend, backend)
    return shutil.which(executable) is not None


def detect_server(
    spec_dir: str | Path | None,
    *,
    cwd: Path | None = None,
    installed: BackendCheck = _backend_installed,
) -> ServerKind:
    """Pick the server strategy from the project layout.

    1. ``<spec_dir>/support/jasmine.yml`` -> jasmine gem server
    2. ``config.ru`` -> first installed rack backend, else webrick
    3. otherwise no server
    """
    cwd = cwd or Path.cwd()
    if spec_dir and (cwd / Path(spec_dir)).joinpath(*JASMINE_GEM_CONFIG).exists():
        return parse_server_kind("jasmine_gem")
    if (cwd / RACKUP_FILE).exists():
        for backend in DETECTABLE_BACKENDS:
            if installed(backend):
                return parse_server_kind(backend)
        return parse_server_kind(FALLBACK_BACKEND)
    return NoServer()


def find_free_port() -> int:
    """Ask the OS for an unused local port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((SERVER_HOST, 0))
        port: int = sock.getsockname()[1]
        return port


def choose_server_port(kind: ServerKind) -> int:
    """The gem-hosted server has a fixed default port; others get a free one."""
    if isinstance(kind, TaskBackend) and kind.gem_hosted:
        return JASMINE_GEM_PORT
    return find_free_port()


class ServerSupervisor:
    """Owns the background server process for one watch session."""

    def __init__(
        self,
        *,
        poll_interval: float = SERVER_POLL_INTERVAL_SEC,
        stop_grace: float = SERVER_STOP_GRACE_SEC,
    ) -> None:
        self._poll_interval = poll_interval
        self._stop_grace = stop_grace
        self.process: subprocess.Popen[bytes] | None = None
        self.cmd: list[str] = []
        self.state = ServerState.NOT_STARTED

    def start(
        self,
        kind: ServerKind,
        port: int,
        config: ServerConfig,
        *,
        coverage: bool = False,
        ignore_instrumentation: str | bool = False,
    ) -> None:
        """Launch the server for kind and block until it accepts connections.

        Raises:
            TaskFailed: The server did not accept connections within
                config.timeout_sec.
        """
        if isinstance(kind, NoServer):
            return

        self._announce(kind, port, config, coverage)
        cmd = build_command(kind, port=port, env=config.env, rackup_config=config.rackup_config)
        if not self._spawn(cmd, config, coverage, ignore_instrumentation):
            return
        self.wait_for_server(port, config.timeout_sec)

    def stop(self) -> None:
        """Terminate the server, killing it after the grace period."""
        if self.process is None:
            return
        console.info("specwatch stops server.")
        process, self.process = self.process, None
        try:
            process.terminate()
            process.wait(timeout=self._stop_grace)
        except subprocess.TimeoutExpired:
            logger.warning("server_kill", pid=process.pid, grace_sec=self._stop_grace)
            process.kill()
            process.wait()
        finally:
            self.state = ServerState.STOPPED
        logger.info("server_stopped", pid=process.pid, returncode=process.returncode)

    def wait_for_server(self, port: int, timeout: float) -> None:
        """Poll localhost:port until a connect succeeds or timeout elapses."""
        deadline = time.monotonic() + timeout
        while True:
            try:
                with socket.create_connection((SERVER_HOST, port), timeout=self._poll_interval):
                    logger.info("server_ready", port=port)
                    return
            except OSError:
                pass  # not accepting yet
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            time.sleep(min(self._poll_interval, remaining))

        error = ServerError.timeout(port, timeout, self.cmd)
        logger.error("server_timeout", **error.details)
        console.warning("Timeout while waiting for the server to startup")
        console.warning(
            "Most likely there is a configuration error that's preventing the server from starting"
        )
        console.warning("You may need to increase the `server.timeout_sec` option.")
        console.warning("The commandline that was used to start the server was:")
        console.warning(" ".join(self.cmd))
        console.warning("You should attempt to run that and see if any errors occur")
        self.stop()
        raise TaskFailed(str(error)) from error

    def _announce(self, kind: ServerKind, port: int, config: ServerConfig, coverage: bool) -> None:
        state = "on" if coverage else "off"
        match kind:
            case RackBackend(name=name):
                console.info(
                    f"specwatch starts {name} spec server on port {port} "
                    f"in {config.env} environment (coverage {state})."
                )
            case AltBackend():
                console.info(
                    f"specwatch starts Unicorn spec server on port {port} "
                    f"in {config.env} environment (coverage {state})."
                )
            case TaskBackend():
                console.info(f"specwatch starts Jasmine Gem test server on port {port}.")

    def _spawn(
        self,
        cmd: list[str],
        config: ServerConfig,
        coverage: bool,
        ignore_instrumentation: str | bool,
    ) -> bool:
        self.cmd = cmd
        if config.verbose:
            console.info(f"Starting server using: {' '.join(cmd)}")

        env = dict(os.environ)
        env["COVERAGE"] = _stringify(coverage)
        env["IGNORE_INSTRUMENTATION"] = _stringify(ignore_instrumentation)
        output = None if config.verbose else subprocess.DEVNULL

        try:
            self.process = subprocess.Popen(
                cmd,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=output,
                stderr=output,
                start_new_session=True,
            )
        except OSError as e:
            error = ServerError.spawn_failed(cmd, str(e))
            logger.error("server_spawn_failed", **error.details)
            console.error(f"{error.message}.")
            console.error(f"Error was: {e}")
            return False

        self.state = ServerState.RUNNING
        logger.info("server_spawned", pid=self.process.pid, cmd=cmd)
        return True


def _stringify(value: str | bool) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
