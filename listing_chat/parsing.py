from __future__ import annotations

import json
import math
from typing import Any, Dict, Iterator, Mapping, Optional

from telemetry.logging_utils import get_logger

from .models import TurnResult

logger = get_logger(__name__)

EMPTY_REPLY_MESSAGE = "Sorry, I didn't catch that. Could you tell me a bit more about your listing?"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a valid JSON number")


def _finite_float(text: str) -> float:
    value = float(text)
    if math.isinf(value) or math.isnan(value):
        raise ValueError(f"{text} is out of range for a JSON number")
    return value


# NaN/Infinity would decode here but cannot be rendered back by the response layer.
_DECODER = json.JSONDecoder(parse_constant=_reject_constant, parse_float=_finite_float)


def loads_strict(raw: Any) -> Any:
    """``json.loads`` that rejects NaN, Infinity and overflowing floats with ValueError."""
    return json.loads(raw, parse_constant=_reject_constant, parse_float=_finite_float)


def iter_json_objects(raw: Optional[str]) -> Iterator[Dict[str, Any]]:
    """Yield each JSON object that decodes cleanly from a ``{`` in ``raw``, left to right."""
    if not raw:
        return
    start = raw.find("{")
    while start >= 0:
        try:
            value, end = _DECODER.raw_decode(raw, start)
        except ValueError:
            start = raw.find("{", start + 1)
            continue
        if isinstance(value, dict):
            yield value
        start = raw.find("{", end)


def extract_json_object(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    """First brace-delimited JSON object in ``raw``; None if there is none."""
    return next(iter_json_objects(raw), None)


def _fallback(raw: Optional[str], prior: Dict[str, Any]) -> TurnResult:
    text = (raw or "").strip()
    return TurnResult(message=text or EMPTY_REPLY_MESSAGE, extractedData=prior, isComplete=False)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1"}
    return bool(value)


def parse_turn_result(raw: Optional[str], prior_extracted: Optional[Mapping[str, Any]] = None) -> TurnResult:
    """Fold the model's free-text reply into a TurnResult. Never raises."""
    prior = dict(prior_extracted or {})
    parsed = next((obj for obj in iter_json_objects(raw) if "message" in obj), None)
    if parsed is None:
        logger.info(
            "model_output_unparsed",
            extra={"reply_length": len(raw or ""), "has_brace": "{" in (raw or "")},
        )
        return _fallback(raw, prior)

    message = parsed.get("message")
    if not isinstance(message, str):
        message = "" if message is None else json.dumps(message, ensure_ascii=False)

    extracted = parsed.get("extractedData")
    if not isinstance(extracted, dict):
        extracted = prior

    next_steps = parsed.get("nextSteps")
    if not isinstance(next_steps, str) or not next_steps.strip():
        next_steps = None

    return TurnResult(
        message=message,
        extractedData=extracted,
        isComplete=_as_bool(parsed.get("isComplete", False)),
        nextSteps=next_steps,
    )
