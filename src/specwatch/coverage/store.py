"""Persistent coverage store and Istanbul reporting.

The store is a single JSON object at ``<cwd>/tmp/coverage/coverage.json``
mapping implementation file -> Istanbul per-file coverage data:

- A run of the whole spec dir replaces the file wholesale.
- A single-spec run replaces only the entry of its implementation file.
  When no store exists yet, an empty map is written instead (the first
  single-file run only primes the store).

Reports are rendered by the external ``istanbul`` binary over the store.
When the binary is not on PATH, coverage reporting is skipped.
"""

from __future__ import annotations

import json
import re
import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import structlog

from specwatch.config.constants import COVERAGE_DIR, COVERAGE_FILE
from specwatch.config.models import RunOptions
from specwatch.core import console
from specwatch.core.errors import CoverageError
from specwatch.runner.selector import is_spec_dir, split_target

logger = structlog.get_logger()

RenderMode = Literal["text", "summary", "html"]

_WHOLE_DIR_LINE_RE = re.compile(r"[|+]$")
_SUMMARY_LINE_RE = re.compile(r"\)$")


@dataclass(frozen=True, slots=True)
class CoverageCheck:
    """Outcome of the threshold check."""

    passed: bool
    detail: str = ""


class CoverageStore:
    """Merges coverage payloads into the store and renders Istanbul reports."""

    def __init__(
        self,
        options: RunOptions,
        *,
        root: Path | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.options = options
        self.root = root or Path.cwd().joinpath(*COVERAGE_DIR).resolve()
        self._which = which
        self._bin: str | None = None

    @property
    def coverage_file(self) -> Path:
        return self.root / COVERAGE_FILE

    @property
    def bin(self) -> str | None:
        """Coverage tool executable, looked up once."""
        if self._bin is None:
            self._bin = self._which(self.options.coverage_tool)
        return self._bin

    @property
    def report_directory(self) -> Path:
        return Path(self.options.coverage_html_dir).expanduser().resolve()

    def implementation_key(self, target: str) -> str:
        """Store key of the file a spec covers: ``spec/a_spec.js`` -> ``/a.js``."""
        file_name, _ = split_target(target)
        return file_name.replace("_spec", "", 1).replace(self.options.spec_dir, "", 1)

    # -------------------------------------------------------------------------
    # Store
    # -------------------------------------------------------------------------

    def load(self) -> dict[str, Any]:
        """Stored coverage. A missing or unreadable store reads as empty."""
        if not self.coverage_file.exists():
            return {}
        try:
            data = json.loads(self.coverage_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("coverage_store_unreadable", path=str(self.coverage_file), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.warning("coverage_store_unreadable", path=str(self.coverage_file))
            return {}
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.coverage_file.write_text(json.dumps(data), encoding="utf-8")

    def update(self, payload: dict[str, Any], target: str) -> None:
        """Merge one target's coverage payload into the store."""
        if is_spec_dir(target, self.options.spec_dir):
            self._write(payload)
            logger.info("coverage_replaced", files=len(payload))
            return

        if not self.coverage_file.exists():
            self._write({})
            logger.info("coverage_primed", path=str(self.coverage_file))
            return

        impl = self.implementation_key(target)
        stored = self.load()
        if impl in stored and impl in payload:
            stored[impl] = payload[impl]
            logger.info("coverage_updated", file=impl)
        self._write(stored)

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def _run(self, *args: str, merge_stderr: bool = False) -> subprocess.CompletedProcess[str]:
        if self.bin is None:
            raise CoverageError.tool_missing(self.options.coverage_tool)
        cmd = [self.bin, *args]
        logger.debug("coverage_tool", cmd=cmd)
        return subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
            text=True,
            check=False,
        )

    def text_matcher(self, target: str) -> re.Pattern[str]:
        """Lines of the text report relevant to target."""
        if is_spec_dir(target, self.options.spec_dir):
            return _WHOLE_DIR_LINE_RE
        impl = self.implementation_key(target)
        parent = re.sub(r"^/", "", str(Path(impl).parent))
        return re.compile(
            rf"(-+|All files|% Lines|{re.escape(Path(impl).name)}|{re.escape(parent)}/[^/])"
        )

    def render(self, mode: RenderMode, target: str | None = None) -> str:
        """Render a report over the whole store.

        text filters rows to those relevant to target, summary keeps the
        totals rows, html writes into the report directory and returns the
        index path.
        """
        if mode == "text":
            matcher = self.text_matcher(target or self.options.spec_dir)
            output = self._run("report", "--root", str(self.root), "text", str(self.coverage_file))
            lines = [line for line in output.stdout.splitlines() if matcher.search(line)]
            return "\n".join(lines)
        if mode == "summary":
            output = self._run(
                "report", "--root", str(self.root), "text-summary", str(self.coverage_file)
            )
            lines = [line for line in output.stdout.splitlines() if _SUMMARY_LINE_RE.search(line)]
            return "\n".join(lines)
        if mode == "html":
            directory = self.report_directory
            self._run(
                "report",
                "--dir",
                str(directory),
                "--root",
                str(self.root),
                "html",
                str(self.coverage_file),
            )
            return str(directory / "index.html")
        raise ValueError(f"Unknown coverage report mode: {mode}")

    def threshold_args(self) -> list[str]:
        args: list[str] = []
        for metric, threshold in self.options.thresholds.items():
            if threshold != 0:
                args.extend([f"--{metric}", str(threshold)])
        return args

    def check_thresholds(self) -> CoverageCheck | None:
        """Run istanbul check-coverage. None when every threshold is 0."""
        args = self.threshold_args()
        if not args:
            return None
        output = self._run("check-coverage", *args, str(self.coverage_file), merge_stderr=True)
        errors = "".join(line for line in output.stdout.splitlines() if "ERROR" in line)
        detail = errors.replace("ERROR:", "", 1)
        return CoverageCheck(passed=output.returncode == 0, detail=detail)

    # -------------------------------------------------------------------------
    # Flow
    # -------------------------------------------------------------------------

    def report(self, payload: dict[str, Any], target: str) -> CoverageCheck | None:
        """Update the store and print reports for one target's coverage."""
        if self.bin is None:
            error = CoverageError.tool_missing(self.options.coverage_tool)
            logger.warning("coverage_skipped", **error.details)
            console.error(error.message)
            return None

        self.update(payload, target)

        if self.options.coverage_summary:
            console.info("Spec coverage summary:")
            self._print_block(self.render("summary"))
        else:
            console.info("Spec coverage details:")
            self._print_block(self.render("text", target))

        check = self.check_thresholds()
        if check is not None:
            self._report_check(check)

        if self.options.coverage_html:
            index = self.render("html")
            console.info(f"Updated HTML report available at: {index}")
        return check

    def _print_block(self, text: str) -> None:
        console.raw("")
        for line in text.splitlines():
            console.raw(line)
        console.raw("")

    def _report_check(self, check: CoverageCheck) -> None:
        if not check.passed:
            error = CoverageError.threshold_failed(check.detail)
            logger.warning("coverage_threshold_failed", detail=error.message)
            console.error(check.detail)
            if self.options.notification:
                console.notify(
                    check.detail, title="Code coverage failed", image="failed", priority=2
                )
            return

        console.success("Code coverage succeed")
        if self.options.notification and not self.options.hide_success:
            console.notify(
                "All code is adequately covered with specs", title="Code coverage succeed"
            )
