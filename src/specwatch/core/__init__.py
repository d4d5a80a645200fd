"""Core module exports."""

from specwatch.core.errors import (
    ConfigError,
    CoverageError,
    ErrorCode,
    RunnerError,
    ServerError,
    SpecWatchError,
    TaskFailed,
)
from specwatch.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)

__all__ = [
    # Errors
    "ConfigError",
    "CoverageError",
    "ErrorCode",
    "RunnerError",
    "ServerError",
    "SpecWatchError",
    "TaskFailed",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
]
