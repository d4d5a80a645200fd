"""Tests for server/supervisor.py module.

Covers:
- detect_server() and choose_server_port()
- ServerSupervisor.start() spawn and spawn failure
- wait_for_server() readiness polling against a real socket listener
- stop() terminate-then-kill
"""

from __future__ import annotations

import socket
import subprocess
import threading
import time
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from rich.console import Console

from specwatch.config.models import ServerConfig
from specwatch.core.errors import TaskFailed
from specwatch.server.kinds import AltBackend, NoServer, RackBackend, TaskBackend
from specwatch.server.supervisor import (
    ServerState,
    ServerSupervisor,
    choose_server_port,
    detect_server,
    find_free_port,
)


@pytest.fixture
def listener() -> Generator[int, None, None]:
    """A local TCP listener accepting connections; yields its port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("localhost", 0))
    sock.listen()
    yield sock.getsockname()[1]
    sock.close()


class TestDetectServer:
    """Tests for detect_server function."""

    def test_given_jasmine_yml_when_detect_then_gem_server(self, tmp_path: Path) -> None:
        support = tmp_path / "spec" / "javascripts" / "support"
        support.mkdir(parents=True)
        (support / "jasmine.yml").write_text("src_files: []\n")
        (tmp_path / "config.ru").write_text("run App\n")

        kind = detect_server("spec/javascripts", cwd=tmp_path)

        assert kind == TaskBackend("jasmine", gem_hosted=True)

    def test_given_rackup_when_detect_then_first_installed_backend(self, tmp_path: Path) -> None:
        (tmp_path / "config.ru").write_text("run App\n")
        checked: list[str] = []

        def installed(backend: str) -> bool:
            checked.append(backend)
            return backend == "mongrel"

        kind = detect_server("spec", cwd=tmp_path, installed=installed)

        assert kind == RackBackend("mongrel")
        assert checked == ["unicorn", "thin", "mongrel"]

    def test_given_unicorn_installed_when_detect_then_alt_backend(self, tmp_path: Path) -> None:
        (tmp_path / "config.ru").write_text("run App\n")

        kind = detect_server("spec", cwd=tmp_path, installed=lambda backend: True)

        assert kind == AltBackend()

    def test_given_no_backend_installed_when_detect_then_webrick(self, tmp_path: Path) -> None:
        (tmp_path / "config.ru").write_text("run App\n")

        kind = detect_server("spec", cwd=tmp_path, installed=lambda backend: False)

        assert kind == RackBackend("webrick")

    def test_given_plain_project_when_detect_then_no_server(self, tmp_path: Path) -> None:
        assert detect_server("spec", cwd=tmp_path) == NoServer()


class TestChooseServerPort:
    """Tests for port selection."""

    def test_gem_server_uses_fixed_port(self) -> None:
        assert choose_server_port(TaskBackend("jasmine", gem_hosted=True)) == 8888

    def test_other_servers_get_free_port(self) -> None:
        port = choose_server_port(RackBackend("thin"))
        assert 0 < port <= 65535

    def test_free_port_is_bindable(self) -> None:
        port = find_free_port()
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("localhost", port))


class TestStart:
    """Tests for ServerSupervisor.start."""

    def test_given_no_server_when_start_then_noop(self) -> None:
        supervisor = ServerSupervisor()

        with patch("specwatch.server.supervisor.subprocess.Popen") as popen:
            supervisor.start(NoServer(), 3001, ServerConfig())

        popen.assert_not_called()
        assert supervisor.state == ServerState.NOT_STARTED
        assert supervisor.process is None

    def test_given_rack_backend_when_start_then_spawns_detached(self) -> None:
        supervisor = ServerSupervisor()
        config = ServerConfig(env="test")

        with (
            patch("specwatch.server.supervisor.subprocess.Popen") as popen,
            patch.object(supervisor, "wait_for_server") as wait,
        ):
            supervisor.start(RackBackend("thin"), 3001, config, coverage=True)

        cmd = popen.call_args.args[0]
        kwargs = popen.call_args.kwargs
        assert cmd == ["rackup", "-E", "test", "-p", "3001", "-s", "thin"]
        assert supervisor.cmd == cmd
        assert kwargs["start_new_session"] is True
        assert kwargs["stdout"] == subprocess.DEVNULL
        assert kwargs["stderr"] == subprocess.DEVNULL
        assert kwargs["env"]["COVERAGE"] == "true"
        assert kwargs["env"]["IGNORE_INSTRUMENTATION"] == "false"
        assert supervisor.state == ServerState.RUNNING
        wait.assert_called_once_with(3001, 60.0)

    def test_given_verbose_when_start_then_output_inherited(self) -> None:
        supervisor = ServerSupervisor()

        with (
            patch("specwatch.server.supervisor.subprocess.Popen") as popen,
            patch.object(supervisor, "wait_for_server"),
        ):
            supervisor.start(AltBackend(), 3001, ServerConfig(verbose=True))

        assert popen.call_args.kwargs["stdout"] is None

    def test_given_spawn_failure_when_start_then_logged_not_raised(
        self, captured_console: Console
    ) -> None:
        supervisor = ServerSupervisor()

        with (
            patch(
                "specwatch.server.supervisor.subprocess.Popen",
                side_effect=FileNotFoundError("No such file or directory: 'rake'"),
            ),
            patch.object(supervisor, "wait_for_server") as wait,
        ):
            supervisor.start(TaskBackend("jasmine", gem_hosted=True), 8888, ServerConfig())

        wait.assert_not_called()
        assert supervisor.process is None
        assert supervisor.state == ServerState.NOT_STARTED
        assert supervisor.cmd == ["rake", "jasmine"]
        assert "Cannot start server using command rake jasmine" in captured_console.export_text()


class TestWaitForServer:
    """Readiness polling against real sockets."""

    def test_given_listener_when_wait_then_returns(self, listener: int) -> None:
        supervisor = ServerSupervisor()

        start = time.monotonic()
        supervisor.wait_for_server(listener, timeout=5.0)

        assert time.monotonic() - start < 1.0

    def test_given_late_listener_when_wait_then_returns_after_it_accepts(self) -> None:
        port = find_free_port()
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        def listen_later() -> None:
            time.sleep(0.3)
            sock.bind(("localhost", port))
            sock.listen()

        thread = threading.Thread(target=listen_later)
        supervisor = ServerSupervisor()
        try:
            start = time.monotonic()
            thread.start()
            supervisor.wait_for_server(port, timeout=5.0)
            elapsed = time.monotonic() - start
        finally:
            thread.join()
            sock.close()

        assert 0.3 <= elapsed < 1.0

    def test_given_no_listener_when_wait_then_task_failed_at_timeout(
        self, captured_console: Console
    ) -> None:
        port = find_free_port()
        supervisor = ServerSupervisor()
        supervisor.cmd = ["rackup", "-p", str(port)]

        start = time.monotonic()
        with pytest.raises(TaskFailed, match="SERVER_TIMEOUT"):
            supervisor.wait_for_server(port, timeout=0.3)
        elapsed = time.monotonic() - start

        assert 0.3 <= elapsed < 1.0
        text = captured_console.export_text()
        assert "Timeout while waiting for the server to startup" in text
        assert f"rackup -p {port}" in text

    def test_given_timeout_when_process_running_then_process_stopped(
        self, captured_console: Console
    ) -> None:
        supervisor = ServerSupervisor()
        process = MagicMock()
        supervisor.process = process
        supervisor.state = ServerState.RUNNING

        with pytest.raises(TaskFailed):
            supervisor.wait_for_server(find_free_port(), timeout=0.1)

        process.terminate.assert_called_once()
        assert supervisor.process is None
        assert supervisor.state == ServerState.STOPPED


class TestStop:
    """Tests for ServerSupervisor.stop."""

    def test_given_no_process_when_stop_then_noop(self) -> None:
        supervisor = ServerSupervisor()

        supervisor.stop()

        assert supervisor.state == ServerState.NOT_STARTED

    def test_given_process_when_stop_then_terminated(self, captured_console: Console) -> None:
        supervisor = ServerSupervisor()
        process = MagicMock()
        supervisor.process = process

        supervisor.stop()

        process.terminate.assert_called_once()
        process.wait.assert_called_once_with(timeout=5.0)
        process.kill.assert_not_called()
        assert supervisor.state == ServerState.STOPPED

    def test_given_stubborn_process_when_stop_then_killed(self, captured_console: Console) -> None:
        supervisor = ServerSupervisor(stop_grace=0.1)
        process = MagicMock()
        process.wait.side_effect = [subprocess.TimeoutExpired("rackup", 0.1), 0]
        supervisor.process = process

        supervisor.stop()

        process.kill.assert_called_once()
        assert supervisor.state == ServerState.STOPPED

    def test_given_real_process_when_stop_then_reaped(
        self, listener: int, captured_console: Console
    ) -> None:
        supervisor = ServerSupervisor()

        with patch(
            "specwatch.server.supervisor.build_command", return_value=["sleep", "30"]
        ):
            supervisor.start(RackBackend("thin"), listener, ServerConfig())

        process = supervisor.process
        assert process is not None
        assert process.poll() is None

        supervisor.stop()

        assert process.returncode is not None
        assert supervisor.state == ServerState.STOPPED
