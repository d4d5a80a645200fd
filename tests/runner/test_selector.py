"""Tests for runner/selector.py module."""

from __future__ import annotations

from pathlib import Path

import pytest

from specwatch.runner.selector import (
    is_spec_dir,
    query_string,
    spec_title,
    split_target,
    suite_from_first_describe,
    suite_from_line_number,
    suite_selector,
    target_exists,
)

NESTED_SPEC = """\
# helpers
window.helper = -> true

# outer suite
describe 'Outer', ->

  beforeEach -> helper()
  it 'inner', ->
    expect(true).toBe true
  it 'target', ->
    expect(true).toBe true

  describe 'Nested', ->
    it 'deep', ->
      expect(1).toBe 1
"""


@pytest.fixture
def spec_file(tmp_path: Path) -> Path:
    path = tmp_path / "a_spec.js.coffee"
    path.write_text(NESTED_SPEC)
    return path


class TestSplitTarget:
    """Tests for split_target function."""

    @pytest.mark.parametrize(
        ("target", "expected"),
        [
            ("spec/a_spec.js", ("spec/a_spec.js", None)),
            ("spec/a_spec.js:10", ("spec/a_spec.js", 10)),
            ("spec/a_spec.js.coffee:3", ("spec/a_spec.js.coffee", 3)),
            ("spec", ("spec", None)),
        ],
    )
    def test_split(self, target: str, expected: tuple[str, int | None]) -> None:
        assert split_target(target) == expected


class TestTargetExists:
    """Tests for target_exists function."""

    def test_existing_file_with_line(self, spec_file: Path) -> None:
        assert target_exists(f"{spec_file}:5")

    def test_missing_file(self, tmp_path: Path) -> None:
        assert not target_exists(str(tmp_path / "missing_spec.js"))

    def test_directory(self, tmp_path: Path) -> None:
        assert target_exists(str(tmp_path))


class TestSpecTitle:
    """Tests for spec_title function."""

    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("describe 'Outer', ->", "Outer"),
            ('  it "does things", function() {', "does things"),
            ("  beforeEach ->", None),
        ],
    )
    def test_title(self, line: str, expected: str | None) -> None:
        assert spec_title(line) == expected


class TestSuiteFromLineNumber:
    """Tests for suite_from_line_number function."""

    def test_given_it_line_when_resolved_then_enclosing_describe_kept(
        self, spec_file: Path
    ) -> None:
        # Line 10 is `it 'target'`; sibling `it 'inner'` is dropped
        assert suite_from_line_number(f"{spec_file}:10") == "Outer target"

    def test_given_describe_line_when_resolved_then_just_describe(self, spec_file: Path) -> None:
        assert suite_from_line_number(f"{spec_file}:5") == "Outer"

    def test_given_nested_line_when_resolved_then_full_chain(self, spec_file: Path) -> None:
        assert suite_from_line_number(f"{spec_file}:14") == "Outer Nested deep"

    def test_given_nested_describe_when_resolved_then_sibling_its_dropped(
        self, spec_file: Path
    ) -> None:
        assert suite_from_line_number(f"{spec_file}:13") == "Outer Nested"

    def test_given_default_line_when_target_has_none_then_used(self, spec_file: Path) -> None:
        assert suite_from_line_number(str(spec_file), default_line=8) == "Outer inner"

    def test_given_no_line_when_resolved_then_none(self, spec_file: Path) -> None:
        assert suite_from_line_number(str(spec_file)) is None

    def test_given_line_before_declarations_when_resolved_then_none(
        self, spec_file: Path
    ) -> None:
        assert suite_from_line_number(f"{spec_file}:2") is None


class TestSuiteFromFirstDescribe:
    """Tests for suite_from_first_describe function."""

    def test_first_describe(self, spec_file: Path) -> None:
        assert suite_from_first_describe(str(spec_file)) == "Outer"

    def test_js_syntax(self, tmp_path: Path) -> None:
        path = tmp_path / "b_spec.js"
        path.write_text('describe("Calculator", function() {\n  it("adds", function() {});\n});\n')

        assert suite_from_first_describe(str(path)) == "Calculator"

    def test_no_describe(self, tmp_path: Path) -> None:
        path = tmp_path / "empty_spec.js"
        path.write_text("// nothing here\n")

        assert suite_from_first_describe(str(path)) is None


class TestSuiteSelector:
    """Tests for suite_selector function."""

    def test_spec_dir_has_no_selector(self, tmp_path: Path) -> None:
        assert suite_selector(str(tmp_path), str(tmp_path)) is None

    def test_line_number_wins(self, spec_file: Path) -> None:
        assert suite_selector(f"{spec_file}:10", "spec") == "Outer target"

    def test_falls_back_to_first_describe(self, spec_file: Path) -> None:
        assert suite_selector(str(spec_file), "spec") == "Outer"

    def test_spec_dir_with_trailing_slash_has_no_selector(self) -> None:
        assert suite_selector("spec/", "spec") is None

    def test_sub_directory_runs_unfiltered(self, tmp_path: Path) -> None:
        models = tmp_path / "spec" / "models"
        models.mkdir(parents=True)

        assert suite_selector(str(models), str(tmp_path / "spec")) is None
        assert query_string(str(models), str(tmp_path / "spec")) == ""


class TestQueryString:
    """Tests for query_string function."""

    def test_spec_dir_without_params_is_empty(self, tmp_path: Path) -> None:
        assert query_string(str(tmp_path), str(tmp_path)) == ""

    def test_spec_dir_keeps_caller_params(self, tmp_path: Path) -> None:
        assert query_string(str(tmp_path), str(tmp_path), {"debug": "true"}) == "?debug=true"

    def test_selector_uses_spec_key_and_percent_encoding(self, spec_file: Path) -> None:
        result = query_string(f"{spec_file}:10", "spec", {"random": "false"})

        assert result == "?random=false&spec=Outer%20target"


class TestIsSpecDir:
    """Tests for is_spec_dir function."""

    @pytest.mark.parametrize(
        ("target", "spec_dir", "expected"),
        [
            ("spec", "spec", True),
            ("spec/", "spec", True),
            ("spec", "spec/", True),
            ("./spec/javascripts", "spec/javascripts", True),
            ("spec/models", "spec", False),
            ("spec/a_spec.js", "spec", False),
        ],
    )
    def test_is_spec_dir(self, target: str, spec_dir: str, expected: bool) -> None:
        assert is_spec_dir(target, spec_dir) is expected
