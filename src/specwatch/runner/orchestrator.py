"""Run orchestration: invoke, decode, aggregate and report each target.

Targets are processed one at a time. The returned mapping only holds
targets with at least one collected failure message, so an empty mapping
means every existing target passed.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

import structlog

from specwatch.config.models import RunOptions
from specwatch.core import console
from specwatch.core.errors import RunnerError
from specwatch.core.formatting import format_target_list
from specwatch.core.logging import clear_run_id, set_run_id
from specwatch.coverage.store import CoverageStore
from specwatch.runner.aggregator import ResultAggregator
from specwatch.runner.decoder import decode
from specwatch.runner.invoker import RunnerInvoker
from specwatch.runner.models import DecodeFailure, DecodeFailureReason
from specwatch.runner.selector import is_spec_dir, target_exists

logger = structlog.get_logger()

CoverageFactory = Callable[[RunOptions], CoverageStore]


class RunOrchestrator:
    """Drives one batch of targets through the runner pipeline."""

    def __init__(
        self,
        options: RunOptions,
        *,
        invoker: RunnerInvoker | None = None,
        coverage_factory: CoverageFactory = CoverageStore,
    ) -> None:
        self.options = options
        self.invoker = invoker or RunnerInvoker()
        self.coverage_factory = coverage_factory

    def run(self, targets: Sequence[str], **overrides: Any) -> dict[str, list[str]]:
        """Run targets with per-call option overrides.

        Returns target -> failure messages for failing targets only.
        Targets whose file is missing are skipped.
        """
        previous = self.options
        self.options = previous.merged(**overrides)
        try:
            if not targets:
                return {}
            return self._run_all(list(targets))
        finally:
            self.options = previous

    def _run_all(self, targets: list[str]) -> dict[str, list[str]]:
        self._announce(targets)
        set_run_id()
        logger.info("run_started", targets=targets)
        failures: dict[str, list[str]] = {}
        try:
            for target in targets:
                if not target_exists(target):
                    logger.debug("target_skipped", target=target)
                    continue
                messages = self.run_target(target)
                if messages:
                    failures[target] = messages
        finally:
            logger.info("run_finished", failed=len(failures))
            clear_run_id()
        return failures

    def _announce(self, targets: list[str]) -> None:
        if len(targets) == 1 and is_spec_dir(targets[0], self.options.spec_dir):
            message = "Run all Jasmine suites"
        else:
            message = f"Run Jasmine {format_target_list(targets)}"
        console.info(message, reset=True)

    def run_target(self, target: str) -> list[str]:
        """Invoke, decode, aggregate and report a single target."""
        outcome = decode(self.invoker.invoke(target, self.options))

        if isinstance(outcome, DecodeFailure):
            return self._decode_failed(outcome, target)

        if self.options.debug:
            console.raw(repr(outcome))

        if outcome.is_runner_error and self.options.is_cli:
            raise RunnerError.runtime_error(outcome.error or "", outcome.trace)

        aggregator = ResultAggregator(self.options)
        report = aggregator.aggregate(outcome, target)
        aggregator.emit(report)
        logger.info(
            "target_finished",
            target=target,
            passed=report.passed,
            messages=len(report.failure_messages),
        )

        if outcome.coverage and self.options.coverage:
            self.coverage_factory(self.options).report(outcome.coverage, target)

        return report.failure_messages

    def _decode_failed(self, failure: DecodeFailure, target: str) -> list[str]:
        if failure.reason == DecodeFailureReason.NO_RESPONSE:
            error = RunnerError.no_response()
        else:
            error = RunnerError.parse_error(failure.raw_payload, failure.detail or "")
        logger.warning("decode_failed", target=target, reason=failure.reason, detail=failure.detail)

        if self.options.is_cli:
            raise error

        if failure.reason == DecodeFailureReason.NO_RESPONSE:
            console.error("No response from the Jasmine runner!")
        else:
            console.error(f"Cannot decode JSON from the runner: {failure.detail}")
            console.error(f"message received was:\n{failure.raw_payload}")

        return [error.message]

