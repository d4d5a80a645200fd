"""Config module exports."""

from specwatch.config.loader import load_config
from specwatch.config.models import (
    CoverageConfig,
    LoggingConfig,
    NotificationConfig,
    ReportConfig,
    RunnerConfig,
    RunOptions,
    ServerConfig,
    SessionConfig,
    SpecWatchConfig,
)

__all__ = [
    "load_config",
    "CoverageConfig",
    "LoggingConfig",
    "NotificationConfig",
    "ReportConfig",
    "RunOptions",
    "RunnerConfig",
    "ServerConfig",
    "SessionConfig",
    "SpecWatchConfig",
]
