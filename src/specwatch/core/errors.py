"""specwatch error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Server
- 4xxx: Runner
- 5xxx: Coverage
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Server (3xxx)
    SERVER_SPAWN_FAILED = 3001
    SERVER_TIMEOUT = 3002

    # Runner (4xxx)
    RUNNER_NO_RESPONSE = 4001
    RUNNER_PARSE_ERROR = 4002
    RUNNER_RUNTIME_ERROR = 4003
    RUNNER_BINARY_INVALID = 4004

    # Coverage (5xxx)
    COVERAGE_TOOL_MISSING = 5001
    COVERAGE_THRESHOLD_FAILED = 5002


@dataclass(frozen=True, slots=True)
class SpecWatchError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'SERVER_TIMEOUT')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(SpecWatchError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class ServerError(SpecWatchError):
    """Test server supervision errors."""

    @classmethod
    def spawn_failed(cls, cmd: list[str], reason: str) -> "ServerError":
        return cls(
            code=ErrorCode.SERVER_SPAWN_FAILED,
            message=f"Cannot start server using command {' '.join(cmd)}",
            details={"cmd": cmd, "reason": reason},
        )

    @classmethod
    def timeout(cls, port: int, timeout_sec: float, cmd: list[str]) -> "ServerError":
        return cls(
            code=ErrorCode.SERVER_TIMEOUT,
            message=f"Server on port {port} not ready after {timeout_sec}s",
            retryable=True,
            details={"port": port, "timeout_sec": timeout_sec, "cmd": cmd},
        )


class RunnerError(SpecWatchError):
    """Headless runner invocation and decoding errors."""

    @classmethod
    def no_response(cls) -> "RunnerError":
        return cls(
            code=ErrorCode.RUNNER_NO_RESPONSE,
            message="No response from the Jasmine runner",
            retryable=True,
        )

    @classmethod
    def parse_error(cls, payload: str, reason: str) -> "RunnerError":
        return cls(
            code=ErrorCode.RUNNER_PARSE_ERROR,
            message=f"Cannot decode JSON from the runner, message received was:\n{payload}",
            details={"payload": payload, "reason": reason},
        )

    @classmethod
    def runtime_error(cls, error: str, trace: str | None = None) -> "RunnerError":
        return cls(
            code=ErrorCode.RUNNER_RUNTIME_ERROR,
            message=f"Runner error: {error}",
            details={"error": error, "trace": trace},
        )

    @classmethod
    def binary_invalid(cls, path: str | None) -> "RunnerError":
        return cls(
            code=ErrorCode.RUNNER_BINARY_INVALID,
            message=f"Runner binary is missing or not executable: {path}",
            details={"path": path},
        )


class CoverageError(SpecWatchError):
    """Coverage tool errors."""

    @classmethod
    def tool_missing(cls, tool: str) -> "CoverageError":
        return cls(
            code=ErrorCode.COVERAGE_TOOL_MISSING,
            message=f"Skipping coverage report: unable to locate {tool} in your PATH",
            details={"tool": tool},
        )

    @classmethod
    def threshold_failed(cls, detail: str) -> "CoverageError":
        return cls(
            code=ErrorCode.COVERAGE_THRESHOLD_FAILED,
            message=detail,
            details={"detail": detail},
        )


class TaskFailed(Exception):  # noqa: N818
    """Fatal signal that aborts the current watch/run session."""

    def __init__(self, reason: str = "task_has_failed") -> None:
        super().__init__(reason)
        self.reason = reason
