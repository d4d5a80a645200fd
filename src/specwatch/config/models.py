"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (SPECWATCH__SECTION__KEY)
3. Project YAML (.specwatch.yaml)
4. Built-in defaults (this file)

Environment Variable Format:
    SPECWATCH__<SECTION>__<KEY>=<VALUE>

Examples:
    SPECWATCH__SERVER__KIND=thin
    SPECWATCH__RUNNER__TIMEOUT_SEC=120
    SPECWATCH__REPORT__SPECDOC=always
    SPECWATCH__COVERAGE__ENABLED=true
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from specwatch.config.constants import (
    COVERAGE_TOOL,
    DEFAULT_REPORT_MODE,
    PORT_MAX,
    PORT_MIN,
    REPORT_MODES,
    RUNNER_BINARY,
    THRESHOLD_METRICS,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
ReportMode = Literal["always", "never", "failure"]


def coerce_report_mode(value: Any) -> ReportMode:
    """Map unknown report modes to the default instead of rejecting them."""
    if isinstance(value, str) and value.lower() in REPORT_MODES:
        return value.lower()  # type: ignore[return-value]
    return DEFAULT_REPORT_MODE


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        SPECWATCH__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. Spec reports are printed regardless of level.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ServerConfig(BaseModel):
    """Test server configuration.

    Env vars:
        SPECWATCH__SERVER__KIND: auto, none, webrick, mongrel, thin, puma, unicorn,
            jasmine_gem, or any rake task name
        SPECWATCH__SERVER__PORT: Port number (default: a free local port)
        SPECWATCH__SERVER__TIMEOUT_SEC: Max wait for the server to accept connections
    """

    kind: str = Field(
        default="auto",
        description="Server strategy. 'auto' detects it from the project layout.",
    )
    port: int | None = Field(
        default=None,
        description="Server port. None picks a free port (8888 for the jasmine gem).",
    )
    env: str = Field(
        default_factory=lambda: os.environ.get("RAILS_ENV", "development"),
        description="Rack/Rails environment passed with -E.",
    )
    timeout_sec: float = Field(
        default=60.0,
        description="Server start timeout. RISK: Too low aborts slow-booting apps.",
    )
    mount: str = Field(
        default="/jasmine",
        description="Mount point of the Jasmine runner on the server.",
    )
    rackup_config: str | None = Field(
        default=None,
        description="Custom rackup config (e.g. spec/dummy/config.ru for mountable engines).",
    )
    verbose: bool = Field(
        default=False,
        description="Let the server process inherit stdout/stderr.",
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int | None) -> int | None:
        if v is not None and not (PORT_MIN <= v <= PORT_MAX):
            raise ValueError(f"Port must be {PORT_MIN}-{PORT_MAX}, got {v}")
        return v


class RunnerConfig(BaseModel):
    """Headless runner configuration.

    Env vars:
        SPECWATCH__RUNNER__BIN: Path to the headless browser binary
        SPECWATCH__RUNNER__URL: Jasmine runner URL (derived from the server when unset)
        SPECWATCH__RUNNER__TIMEOUT_SEC: Per-run timeout handed to the in-browser script
    """

    bin: str | None = Field(
        default_factory=lambda: shutil.which(RUNNER_BINARY),
        description="Headless browser binary. Defaults to the one found on PATH.",
    )
    script: str | None = Field(
        default=None,
        description="In-browser runner script passed before the suite URL.",
    )
    url: str | None = Field(default=None, description="Jasmine runner URL.")
    timeout_sec: int = Field(default=60, description="Spec run timeout, passed as milliseconds.")
    query_params: dict[str, str] = Field(default_factory=dict)
    spec_dir: str | None = Field(
        default=None,
        description="Spec directory. None picks spec/javascripts when present, else spec.",
    )
    line_number: int | None = Field(
        default=None,
        description="Line used to select a single spec when the target has none.",
    )
    debug: bool = Field(default=False, description="Echo runner commands and raw results.")


class ReportConfig(BaseModel):
    """Console report configuration.

    Modes: always, never, failure. Unknown values fall back to 'failure'.
    """

    specdoc: ReportMode = "failure"
    console: ReportMode = "failure"
    errors: ReportMode = "failure"
    focus: bool = Field(
        default=True,
        description="Only list failing specs when the run did not pass.",
    )

    @field_validator("specdoc", "console", "errors", mode="before")
    @classmethod
    def fallback_mode(cls, v: Any) -> ReportMode:
        return coerce_report_mode(v)


class NotificationConfig(BaseModel):
    enabled: bool = True
    hide_success: bool = False
    max_error_notify: int = Field(default=3, ge=0)


class CoverageConfig(BaseModel):
    """Coverage configuration. A threshold of 0 disables that check."""

    enabled: bool = False
    html: bool = False
    summary: bool = False
    html_dir: str = "./coverage"
    ignore_instrumentation: str | bool = False
    tool: str = COVERAGE_TOOL
    statements_threshold: int = Field(default=0, ge=0, le=100)
    functions_threshold: int = Field(default=0, ge=0, le=100)
    branches_threshold: int = Field(default=0, ge=0, le=100)
    lines_threshold: int = Field(default=0, ge=0, le=100)


class SessionConfig(BaseModel):
    """Watch session behaviour."""

    all_on_start: bool = True
    keep_failed: bool = True
    all_after_pass: bool = True
    clean: bool = True
    run_all: dict[str, Any] = Field(
        default_factory=dict,
        description="RunOptions overrides applied to run-all only.",
    )


class SpecWatchConfig(BaseModel):
    """Root configuration for specwatch."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    notification: NotificationConfig = Field(default_factory=NotificationConfig)
    coverage: CoverageConfig = Field(default_factory=CoverageConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)


class RunOptions(BaseModel):
    """Frozen per-run view over the configuration.

    Per-run overrides produce a new instance through merged().
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    runner_bin: str = ""
    runner_script: str | None = None
    url: str = ""
    timeout_sec: int = 60
    query_params: dict[str, str] = Field(default_factory=dict)
    spec_dir: str = "spec"
    line_number: int | None = None
    is_cli: bool = False
    debug: bool = False

    specdoc: ReportMode = "failure"
    console: ReportMode = "failure"
    errors: ReportMode = "failure"
    focus: bool = True

    notification: bool = True
    hide_success: bool = False
    max_error_notify: int = 3

    coverage: bool = False
    coverage_html: bool = False
    coverage_summary: bool = False
    coverage_html_dir: str = "./coverage"
    coverage_tool: str = COVERAGE_TOOL
    statements_threshold: int = 0
    functions_threshold: int = 0
    branches_threshold: int = 0
    lines_threshold: int = 0

    @field_validator("specdoc", "console", "errors", mode="before")
    @classmethod
    def fallback_mode(cls, v: Any) -> ReportMode:
        return coerce_report_mode(v)

    @classmethod
    def from_config(cls, config: SpecWatchConfig, **overrides: Any) -> RunOptions:
        values: dict[str, Any] = {
            "runner_bin": config.runner.bin or "",
            "runner_script": config.runner.script,
            "url": config.runner.url or "",
            "timeout_sec": config.runner.timeout_sec,
            "query_params": dict(config.runner.query_params),
            "spec_dir": config.runner.spec_dir or "spec",
            "line_number": config.runner.line_number,
            "debug": config.runner.debug,
            "specdoc": config.report.specdoc,
            "console": config.report.console,
            "errors": config.report.errors,
            "focus": config.report.focus,
            "notification": config.notification.enabled,
            "hide_success": config.notification.hide_success,
            "max_error_notify": config.notification.max_error_notify,
            "coverage": config.coverage.enabled,
            "coverage_html": config.coverage.html,
            "coverage_summary": config.coverage.summary,
            "coverage_html_dir": config.coverage.html_dir,
            "coverage_tool": config.coverage.tool,
        }
        for metric in THRESHOLD_METRICS:
            name = f"{metric}_threshold"
            values[name] = getattr(config.coverage, name)
        values.update(overrides)
        return cls.model_validate(values)

    def merged(self, **overrides: Any) -> RunOptions:
        """Return a copy with overrides applied and re-validated."""
        if not overrides:
            return self
        return type(self).model_validate({**self.model_dump(), **overrides})

    @property
    def thresholds(self) -> dict[str, int]:
        """Threshold per metric, in statements/functions/branches/lines order."""
        return {metric: getattr(self, f"{metric}_threshold") for metric in THRESHOLD_METRICS}
