"""Result aggregation and specdoc-style reporting.

Walks the suite tree of one RunResult, decides pass/fail, collects
failure messages for notifications and retry bookkeeping, and builds the
console report. Building is pure; emit() does the printing.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Literal

from specwatch.config.models import RunOptions
from specwatch.core import console
from specwatch.core.console import Notification
from specwatch.core.formatting import format_seconds, indent, pluralize
from specwatch.runner.models import ErrorNode, RunResult, SpecNode, SuiteNode

LineKind = Literal["info", "success", "error", "suite", "failed", "pending"]

_LOCATION_RE = re.compile(r" in http.*\(line \d+\)$", re.MULTILINE)


# =============================================================================
# Error collection
# =============================================================================


def strip_location(message: str) -> str:
    """Remove a trailing ' in http://... (line N)' from a runner message."""
    return _LOCATION_RE.sub("", message)


def format_error(error: ErrorNode, *, short: bool) -> str:
    """Short form is the bare message; long form adds the first trace frame."""
    message = strip_location(error.message)
    if not short and error.trace:
        location = error.trace[0]
        return f"{message} in {location.file}:{location.line}"
    return message


def iter_specs(suites: Sequence[SuiteNode]) -> Iterator[SpecNode]:
    """Every spec depth-first: a suite's own specs, then its nested suites."""
    for suite in suites:
        yield from suite.specs
        yield from iter_specs(suite.suites)


def collect_specs(suites: Sequence[SuiteNode]) -> list[SpecNode]:
    return list(iter_specs(suites))


def collect_spec_errors(suites: Sequence[SuiteNode]) -> list[str]:
    """Short-form message of every error of every spec, in tree order."""
    return [
        format_error(error, short=True)
        for spec in iter_specs(suites)
        for error in spec.errors or ()
    ]


def collect_errors(result: RunResult) -> list[str]:
    """Spec errors plus the runner-level error, if any."""
    errors = collect_spec_errors(result.suites)
    if result.error is not None:
        errors.append(result.error)
    return errors


def notification_errors(errors: Sequence[str], max_error_notify: int) -> str:
    """Messages shown in a failure notification.

    Takes max_error_notify + 1 entries.
    """
    return "\n".join(errors[: max_error_notify + 1])


# =============================================================================
# Report
# =============================================================================


@dataclass(frozen=True, slots=True)
class ReportLine:
    kind: LineKind
    text: str


@dataclass
class AggregateReport:
    """Outcome of aggregating one target's result."""

    target: str
    passed: bool
    failure_messages: list[str] = field(default_factory=list)
    lines: list[ReportLine] = field(default_factory=list)
    notification: Notification | None = None

    @property
    def text(self) -> str:
        return "\n".join(line.text for line in self.lines)


class ResultAggregator:
    """Builds per-target reports according to the run options."""

    def __init__(self, options: RunOptions) -> None:
        self.options = options

    def aggregate(self, result: RunResult, target: str) -> AggregateReport:
        if result.is_runner_error:
            return self._runtime_error(result, target)
        return self._spec_result(result, target)

    def emit(self, report: AggregateReport) -> None:
        printers = {
            "info": console.info,
            "success": console.success,
            "error": console.error,
            "suite": console.suite_name,
            "failed": console.spec_failed,
            "pending": console.spec_pending,
        }
        with console.suppress_console_logs():
            for line in report.lines:
                printers[line.kind](line.text)
        if report.notification is not None:
            n = report.notification
            console.notify(n.message, title=n.title, image=n.image, priority=n.priority)

    # -------------------------------------------------------------------------
    # Runner-level error
    # -------------------------------------------------------------------------

    def _runtime_error(self, result: RunResult, target: str) -> AggregateReport:
        message = f"An error occurred: {result.error}"
        report = AggregateReport(
            target=target,
            passed=False,
            failure_messages=collect_errors(result),
            lines=[ReportLine("error", message)],
        )
        if result.trace:
            report.lines.append(ReportLine("error", result.trace))
        if self.options.notification:
            report.notification = Notification(
                message=message, title="Jasmine error", image="failed", priority=2
            )
        return report

    # -------------------------------------------------------------------------
    # Spec result
    # -------------------------------------------------------------------------

    def _spec_result(self, result: RunResult, target: str) -> AggregateReport:
        stats = result.stats
        elapsed = format_seconds(stats.time)
        pending = f" {stats.pending} pending," if stats.pending > 0 else ""
        specs = pluralize(stats.enabled, "spec")
        message = f"{specs},{pending} {pluralize(stats.failed, 'failure')}"
        full_message = f"{message}\nin {elapsed} seconds"
        passed = stats.passed

        report = AggregateReport(
            target=target,
            passed=passed,
            failure_messages=collect_errors(result),
            lines=[ReportLine("info", f"Finished in {elapsed} seconds")],
        )

        if self.specdoc_shown(passed):
            for suite in result.suites:
                self._report_suite(report.lines, suite, passed, 0)

        if passed:
            report.lines.append(ReportLine("success", message))
            if self.options.notification and not self.options.hide_success:
                report.notification = Notification(
                    message=full_message, title="Jasmine suite passed"
                )
        else:
            report.lines.append(ReportLine("error", message))
            if self.options.notification:
                errors = notification_errors(
                    collect_spec_errors(result.suites), self.options.max_error_notify
                )
                report.notification = Notification(
                    message=f"{errors}\n{full_message}",
                    title="Jasmine suite failed",
                    image="failed",
                    priority=2,
                )
        return report

    def specdoc_shown(self, passed: bool) -> bool:
        mode = self.options.specdoc
        return mode == "always" or (mode == "failure" and not passed)

    def spec_shown(self, spec: SpecNode, run_passed: bool) -> bool:
        """Failed specs always show; the rest follow specdoc and focus."""
        return (
            self.options.specdoc == "always"
            or spec.status == "failed"
            or (not run_passed and not self.options.focus)
        )

    def console_for_spec(self, spec: SpecNode) -> bool:
        if not spec.logs:
            return False
        mode = self.options.console
        return (spec.status == "passed" and mode == "always") or (
            spec.status == "failed" and mode != "never"
        )

    def errors_for_spec(self, spec: SpecNode) -> bool:
        if not spec.errors:
            return False
        mode = self.options.errors
        return mode == "always" or (mode == "failure" and spec.status == "failed")

    def _report_suite(
        self,
        lines: list[ReportLine],
        suite: SuiteNode,
        run_passed: bool,
        level: int,
    ) -> None:
        lines.append(ReportLine("suite", indent(suite.description, level)))

        for spec in suite.specs:
            if not self.spec_shown(spec, run_passed):
                continue
            if spec.status == "passed":
                lines.append(ReportLine("success", indent(f"  ✔ {spec.description}", level)))
            elif spec.status == "failed":
                lines.append(ReportLine("failed", indent(f"  ✘ {spec.description}", level)))
            else:
                lines.append(ReportLine("pending", indent(f"  ○ {spec.description}", level)))
            self._report_errors(lines, spec, level)
            self._report_logs(lines, spec, level)

        for child in suite.suites:
            self._report_suite(lines, child, run_passed, level + 2)

    def _report_errors(self, lines: list[ReportLine], spec: SpecNode, level: int) -> None:
        if not self.errors_for_spec(spec):
            return
        for error in spec.errors or ():
            lines.append(
                ReportLine("failed", indent(f"    ➤ {format_error(error, short=True)}", level))
            )
            for frame in error.trace:
                lines.append(
                    ReportLine(
                        "failed", indent(f"    ➜ {frame.file} on line {frame.line}", level + 2)
                    )
                )

    def _report_logs(self, lines: list[ReportLine], spec: SpecNode, level: int) -> None:
        if not self.console_for_spec(spec):
            return
        for log_level, message in spec.logs or ():
            prefix = "" if log_level == "log" else f"{log_level.upper()}: "
            lines.append(ReportLine("info", indent(f"    • {prefix}{message}", level)))
