"""Test server supervision."""

from specwatch.server.kinds import (
    AltBackend,
    NoServer,
    RackBackend,
    ServerKind,
    TaskBackend,
    build_command,
    parse_server_kind,
)
from specwatch.server.supervisor import (
    ServerState,
    ServerSupervisor,
    choose_server_port,
    detect_server,
    find_free_port,
)

__all__ = [
    "AltBackend",
    "NoServer",
    "RackBackend",
    "ServerKind",
    "ServerState",
    "ServerSupervisor",
    "TaskBackend",
    "build_command",
    "choose_server_port",
    "detect_server",
    "find_free_port",
    "parse_server_kind",
]
