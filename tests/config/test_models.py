"""Tests for config/models.py module.

Covers:
- LogOutputConfig model
- ServerConfig model
- RunnerConfig model
- ReportConfig report-mode fallback
- RunOptions from_config / merged / thresholds
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from specwatch.config.models import (
    CoverageConfig,
    LogOutputConfig,
    ReportConfig,
    RunnerConfig,
    RunOptions,
    ServerConfig,
    SpecWatchConfig,
    coerce_report_mode,
)


class TestLogOutputConfig:
    """Tests for LogOutputConfig model."""

    def test_defaults(self) -> None:
        config = LogOutputConfig()
        assert config.format == "console"
        assert config.destination == "stderr"
        assert config.level is None

    def test_absolute_path_destination(self) -> None:
        config = LogOutputConfig(destination="/var/log/specwatch.log")
        assert config.destination == "/var/log/specwatch.log"

    def test_relative_path_fails(self) -> None:
        with pytest.raises(ValidationError):
            LogOutputConfig(destination="relative/specwatch.log")


class TestServerConfig:
    """Tests for ServerConfig model."""

    def test_env_defaults_to_rails_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RAILS_ENV", "test")
        assert ServerConfig().env == "test"

    def test_env_defaults_to_development(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("RAILS_ENV", raising=False)
        assert ServerConfig().env == "development"

    def test_defaults(self) -> None:
        config = ServerConfig()
        assert config.kind == "auto"
        assert config.port is None
        assert config.timeout_sec == 60.0
        assert config.mount == "/jasmine"
        assert config.rackup_config is None
        assert not config.verbose

    @pytest.mark.parametrize("port", [65536, 0, -1])
    def test_invalid_port_rejected(self, port: int) -> None:
        with pytest.raises(ValidationError):
            ServerConfig(port=port)


class TestRunnerConfig:
    """Tests for RunnerConfig model."""

    def test_bin_found_on_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            "specwatch.config.models.shutil.which", lambda name: f"/usr/local/bin/{name}"
        )
        assert RunnerConfig().bin == "/usr/local/bin/phantomjs"

    def test_bin_none_when_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("specwatch.config.models.shutil.which", lambda name: None)
        assert RunnerConfig().bin is None


class TestReportModes:
    """Report modes fall back to 'failure' instead of failing validation."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("always", "always"),
            ("NEVER", "never"),
            ("failure", "failure"),
            ("sometimes", "failure"),
            (None, "failure"),
            (42, "failure"),
        ],
    )
    def test_coerce(self, value: object, expected: str) -> None:
        assert coerce_report_mode(value) == expected

    def test_report_config_falls_back(self) -> None:
        config = ReportConfig(specdoc="bogus", console="always", errors="never")
        assert config.specdoc == "failure"
        assert config.console == "always"
        assert config.errors == "never"


class TestRunOptions:
    """Tests for RunOptions model."""

    def test_from_config_copies_sections(self) -> None:
        config = SpecWatchConfig(
            runner=RunnerConfig(bin="/bin/phantomjs", timeout_sec=20, spec_dir="spec/js"),
            report=ReportConfig(specdoc="always", focus=False),
            coverage=CoverageConfig(enabled=True, lines_threshold=80),
        )

        options = RunOptions.from_config(config, url="http://localhost:4321/jasmine")

        assert options.runner_bin == "/bin/phantomjs"
        assert options.timeout_sec == 20
        assert options.spec_dir == "spec/js"
        assert options.url == "http://localhost:4321/jasmine"
        assert options.specdoc == "always"
        assert not options.focus
        assert options.coverage
        assert options.lines_threshold == 80
        assert not options.is_cli

    def test_is_frozen(self) -> None:
        options = RunOptions()
        with pytest.raises(ValidationError):
            options.spec_dir = "other"  # type: ignore[misc]

    def test_merged_returns_new_instance(self) -> None:
        options = RunOptions(specdoc="failure")

        merged = options.merged(specdoc="always", is_cli=True)

        assert merged.specdoc == "always"
        assert merged.is_cli
        assert options.specdoc == "failure"
        assert not options.is_cli

    def test_merged_without_overrides_is_same(self) -> None:
        options = RunOptions()
        assert options.merged() is options

    def test_merged_ignores_unknown_keys(self) -> None:
        merged = RunOptions().merged(test=True)
        assert not hasattr(merged, "test")

    def test_merged_revalidates_report_modes(self) -> None:
        assert RunOptions().merged(errors="overwritten").errors == "failure"

    def test_thresholds_in_metric_order(self) -> None:
        options = RunOptions(statements_threshold=95, lines_threshold=80)
        assert options.thresholds == {
            "statements": 95,
            "functions": 0,
            "branches": 0,
            "lines": 80,
        }
