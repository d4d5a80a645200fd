"""Runner result models.

Canonical structures for the JSON payload the in-browser Jasmine script
writes to stdout:

    {"stats": {"specs": 2, "disabled": 0, "failed": 1, "pending": 0, "time": 0.5},
     "suites": [{"description": "S",
                 "specs": [{"description": "x", "status": "failed",
                            "errors": [{"message": "...", "trace": [{"file": ..., "line": 3}]}],
                            "logs": [["log", "message"]]}],
                 "suites": [...]}],
     "coverage": {"/path/to/file.js": {...}}}

or, when the runner itself failed, ``{"error": "...", "trace": "..."}``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Literal

SpecStatus = Literal["passed", "failed", "pending"]


@dataclass(frozen=True, slots=True)
class TraceFrame:
    file: str
    line: int | None = None


@dataclass(frozen=True, slots=True)
class ErrorNode:
    message: str
    trace: tuple[TraceFrame, ...] = ()


@dataclass(frozen=True, slots=True)
class SpecNode:
    description: str
    status: SpecStatus
    errors: tuple[ErrorNode, ...] | None = None
    logs: tuple[tuple[str, str], ...] | None = None


@dataclass(frozen=True, slots=True)
class SuiteNode:
    description: str
    specs: tuple[SpecNode, ...] = ()
    suites: tuple[SuiteNode, ...] = ()


@dataclass(frozen=True, slots=True)
class Stats:
    specs: int = 0
    disabled: int = 0
    failed: int = 0
    pending: int = 0
    time: float = 0.0

    @property
    def enabled(self) -> int:
        """Specs that actually ran."""
        return self.specs - self.disabled

    @property
    def passed(self) -> bool:
        return self.failed == 0


@dataclass(slots=True)
class RunResult:
    """Decoded output for one target."""

    stats: Stats = field(default_factory=Stats)
    suites: tuple[SuiteNode, ...] = ()
    coverage: dict[str, Any] | None = None
    error: str | None = None
    trace: str | None = None

    @property
    def is_runner_error(self) -> bool:
        return self.error is not None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> RunResult:
        """Build a result from a decoded payload, tolerating missing keys."""
        if data.get("error"):
            trace = data.get("trace")
            return cls(error=str(data["error"]), trace=None if trace is None else str(trace))

        raw_stats = data.get("stats") or {}
        stats = Stats(
            specs=int(raw_stats.get("specs") or 0),
            disabled=int(raw_stats.get("disabled") or 0),
            failed=int(raw_stats.get("failed") or 0),
            pending=int(raw_stats.get("pending") or 0),
            time=float(raw_stats.get("time") or 0.0),
        )
        coverage = data.get("coverage")
        return cls(
            stats=stats,
            suites=tuple(_suite(s) for s in data.get("suites") or ()),
            coverage=coverage if isinstance(coverage, dict) else None,
        )


def _suite(data: dict[str, Any]) -> SuiteNode:
    return SuiteNode(
        description=str(data.get("description", "")),
        specs=tuple(_spec(s) for s in data.get("specs") or ()),
        suites=tuple(_suite(s) for s in data.get("suites") or ()),
    )


def _spec(data: dict[str, Any]) -> SpecNode:
    errors = data.get("errors")
    logs = data.get("logs")
    status = data.get("status", "pending")
    return SpecNode(
        description=str(data.get("description", "")),
        status=status if status in ("passed", "failed") else "pending",
        errors=None if errors is None else tuple(_error(e) for e in errors),
        logs=None if logs is None else tuple((str(level), str(msg)) for level, msg in logs),
    )


def _error(data: dict[str, Any]) -> ErrorNode:
    trace = data.get("trace") or ()
    return ErrorNode(
        message=str(data.get("message", "")),
        trace=tuple(
            TraceFrame(file=str(t.get("file", "")), line=t.get("line")) for t in trace
        ),
    )


# =============================================================================
# Decode failures
# =============================================================================


class DecodeFailureReason(StrEnum):
    NO_RESPONSE = "no_response"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True, slots=True)
class DecodeFailure:
    """Runner output that did not decode into a result."""

    reason: DecodeFailureReason
    raw_payload: str = ""
    detail: str | None = None
