"""Tests for the specwatch detect command."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from specwatch.cli.main import cli

runner = CliRunner()


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SPECWATCH__SERVER__KIND", raising=False)
    return tmp_path


class TestDetectCommand:
    """Tests for detect output."""

    def test_plain_project_has_no_server(self, project: Path) -> None:
        result = runner.invoke(cli, ["detect"])

        assert result.exit_code == 0
        assert result.output.strip() == "none"

    def test_jasmine_yml_selects_gem_server(self, project: Path) -> None:
        support = project / "spec" / "javascripts" / "support"
        support.mkdir(parents=True)
        (support / "jasmine.yml").write_text("src_files: []\n")

        result = runner.invoke(cli, ["detect", "--url"])

        assert result.exit_code == 0
        assert result.output.splitlines() == ["jasmine_gem", "http://localhost:8888/"]

    def test_explicit_spec_dir(self, project: Path) -> None:
        support = project / "test" / "js" / "support"
        support.mkdir(parents=True)
        (support / "jasmine.yml").write_text("")

        assert runner.invoke(cli, ["detect"]).output.strip() == "none"
        assert runner.invoke(cli, ["detect", "test/js"]).output.strip() == "jasmine_gem"

    def test_invalid_config_is_reported(self, project: Path) -> None:
        (project / ".specwatch.yaml").write_text("server: [unclosed\n")

        result = runner.invoke(cli, ["detect"])

        assert result.exit_code == 1
        assert "Failed to parse config" in result.output
