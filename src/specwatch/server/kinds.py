"""Server strategies as a closed set of variants.

A configured server name maps to exactly one variant:

- ``none``                          -> NoServer
- ``webrick|mongrel|thin|puma``     -> RackBackend(name)
- ``unicorn``                       -> AltBackend
- ``jasmine_gem``                   -> TaskBackend("jasmine", gem_hosted=True)
- anything else                     -> TaskBackend(name)
"""

from __future__ import annotations

from dataclasses import dataclass

from specwatch.config.constants import (
    JASMINE_GEM_TASK,
    RACK_BACKENDS,
    RACKUP_BINARY,
    TASK_RUNNER_BINARY,
    UNICORN_BINARY,
)


@dataclass(frozen=True, slots=True)
class NoServer:
    name: str = "none"


@dataclass(frozen=True, slots=True)
class RackBackend:
    name: str


@dataclass(frozen=True, slots=True)
class AltBackend:
    name: str = "unicorn"


@dataclass(frozen=True, slots=True)
class TaskBackend:
    task: str
    gem_hosted: bool = False

    @property
    def name(self) -> str:
        return "jasmine_gem" if self.gem_hosted else self.task


ServerKind = NoServer | RackBackend | AltBackend | TaskBackend


def parse_server_kind(name: str) -> ServerKind:
    """Map a configured server name onto its variant."""
    key = name.strip().lstrip(":").lower()
    if key == "none":
        return NoServer()
    if key in RACK_BACKENDS:
        return RackBackend(key)
    if key == "unicorn":
        return AltBackend()
    if key == "jasmine_gem":
        return TaskBackend(JASMINE_GEM_TASK, gem_hosted=True)
    return TaskBackend(name.strip())


def build_command(
    kind: ServerKind,
    *,
    port: int,
    env: str,
    rackup_config: str | None = None,
) -> list[str]:
    """Command line used to launch the server for kind. Empty for NoServer."""
    match kind:
        case NoServer():
            return []
        case RackBackend(name=name):
            cmd = [RACKUP_BINARY, "-E", env, "-p", str(port), "-s", name]
            if rackup_config:
                cmd.append(rackup_config)
            return cmd
        case AltBackend():
            return [UNICORN_BINARY, "-E", env, "-p", str(port)]
        case TaskBackend(task=task):
            return [TASK_RUNNER_BINARY, task]
