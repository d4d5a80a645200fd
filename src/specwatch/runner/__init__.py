"""Headless runner pipeline: invoke, decode, aggregate."""

from specwatch.runner.aggregator import AggregateReport, ReportLine, ResultAggregator
from specwatch.runner.decoder import decode, decode_text
from specwatch.runner.invoker import RunnerInvoker, RunnerOutput, runner_command, suite_url
from specwatch.runner.models import (
    DecodeFailure,
    DecodeFailureReason,
    ErrorNode,
    RunResult,
    SpecNode,
    Stats,
    SuiteNode,
    TraceFrame,
)
from specwatch.runner.orchestrator import RunOrchestrator

__all__ = [
    "AggregateReport",
    "DecodeFailure",
    "DecodeFailureReason",
    "ErrorNode",
    "ReportLine",
    "ResultAggregator",
    "RunOrchestrator",
    "RunResult",
    "RunnerInvoker",
    "RunnerOutput",
    "SpecNode",
    "Stats",
    "SuiteNode",
    "TraceFrame",
    "decode",
    "decode_text",
    "runner_command",
    "suite_url",
]
