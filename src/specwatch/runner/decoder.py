"""Runner output decoding.

Turns the raw stdout of one runner invocation into a RunResult, or a
DecodeFailure when the runner said nothing or said something that is not
JSON. The stream is closed exactly once on every path.
"""

from __future__ import annotations

import json
import re

import structlog

from specwatch.config.constants import UNSAFE_JS_WARNING
from specwatch.runner.invoker import OutputStream
from specwatch.runner.models import DecodeFailure, DecodeFailureReason, RunResult

logger = structlog.get_logger()

_UNSAFE_JS_RE = re.compile(UNSAFE_JS_WARNING)


def strip_warnings(text: str) -> str:
    """Drop 'Unsafe JavaScript ...' warnings the browser mixes into stdout."""
    return _UNSAFE_JS_RE.sub("", text)


def decode_text(text: str) -> RunResult | DecodeFailure:
    """Decode an already-read payload."""
    payload = strip_warnings(text)
    if not payload.strip():
        return DecodeFailure(reason=DecodeFailureReason.NO_RESPONSE, raw_payload=payload)

    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, RecursionError) as e:
        logger.debug("decode_failed", reason=str(e), size=len(payload))
        return DecodeFailure(
            reason=DecodeFailureReason.PARSE_ERROR,
            raw_payload=payload,
            detail=str(e) if isinstance(e, json.JSONDecodeError) else "nesting too deep",
        )

    if data is None:
        return DecodeFailure(reason=DecodeFailureReason.NO_RESPONSE, raw_payload=payload)
    if not isinstance(data, dict):
        return DecodeFailure(
            reason=DecodeFailureReason.PARSE_ERROR,
            raw_payload=payload,
            detail=f"expected a JSON object, got {type(data).__name__}",
        )
    try:
        return RunResult.from_json(data)
    except (TypeError, ValueError, AttributeError, RecursionError) as e:
        return DecodeFailure(
            reason=DecodeFailureReason.PARSE_ERROR,
            raw_payload=payload,
            detail=f"unexpected result shape: {e}",
        )


def decode(output: OutputStream) -> RunResult | DecodeFailure:
    """Read, decode and close the runner output stream."""
    try:
        return decode_text(output.read())
    finally:
        output.close()
