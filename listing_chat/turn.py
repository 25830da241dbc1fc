"""One conversation turn: prompt -> completion -> parse -> merge.

The graph is stateless; everything it needs arrives in the ``TurnRequest`` and
everything the caller must keep leaves in the ``TurnResult``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, TypedDict, Union

from langgraph.graph import END, StateGraph

from telemetry.logging_utils import get_logger
from telemetry.prompt_filters import INJECTION_REMINDER, detect_prompt_injection, latest_user_content

from .completion import CompletionClient, CompletionOutcome, UpstreamError
from .models import TurnRequest, TurnResult
from .parsing import parse_turn_result
from .prompts import build_system_prompt

logger = get_logger(__name__)

NOT_CONFIGURED_MESSAGE = "AI service not configured"
BUSY_MESSAGE = "The AI service is temporarily busy. Please try again."
UNAVAILABLE_MESSAGE = "The AI service is temporarily unavailable. Please try again."
CREDITS_MESSAGE = "AI credits exhausted. Please add funds."


class TurnState(TypedDict, total=False):
    request: TurnRequest
    client: CompletionClient
    prompt_messages: List[Dict[str, str]]
    injection_reason: Optional[str]
    outcome: CompletionOutcome
    upstream_error: Optional[UpstreamError]
    parsed: TurnResult
    result: TurnResult


def merge_extracted_data(prior: Optional[Dict[str, Any]], patch: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Shallow merge the model's patch over the caller's data, keeping prior values when the new ones are None."""
    merged = dict(prior or {})
    for key, value in (patch or {}).items():
        if value is not None:
            merged[key] = value
    return merged


def upstream_error_message(error: UpstreamError) -> str:
    """Caller-facing text for a failed completion call."""
    if error.status == 429:
        return BUSY_MESSAGE
    if error.status is None or error.status == 503:
        return UNAVAILABLE_MESSAGE
    if error.status == 402:
        return CREDITS_MESSAGE
    return f"AI service error ({error.status})"


def build_prompt(state: TurnState) -> TurnState:
    request = state["request"]
    system_prompt = build_system_prompt(request.category, request.imageCount, request.extractedData)
    messages = [{"role": "system", "content": system_prompt}]

    injection_reason = detect_prompt_injection(latest_user_content(m.model_dump() for m in request.messages))
    messages.extend({"role": m.role, "content": m.content} for m in request.messages)
    if injection_reason:
        logger.warning("prompt_injection_detected", extra={"pattern": injection_reason})
        messages.append({"role": "system", "content": INJECTION_REMINDER})

    return {**state, "prompt_messages": messages, "injection_reason": injection_reason}


def complete(state: TurnState) -> TurnState:
    outcome = state["client"].complete(state["prompt_messages"])
    return {**state, "outcome": outcome, "upstream_error": outcome.error}


def parse(state: TurnState) -> TurnState:
    parsed = parse_turn_result(state["outcome"].content, state["request"].extractedData)
    return {**state, "parsed": parsed}


def merge(state: TurnState) -> TurnState:
    parsed = state["parsed"]
    prior = state["request"].extractedData
    merged = merge_extracted_data(prior, parsed.extractedData)
    result = parsed.model_copy(update={"extractedData": merged})
    return {**state, "result": result}


def build_graph():
    """Construct the LangGraph workflow for a single turn."""
    graph = StateGraph(TurnState)

    graph.add_node("build_prompt", build_prompt)
    graph.add_node("complete", complete)
    graph.add_node("parse", parse)
    graph.add_node("merge", merge)

    graph.set_entry_point("build_prompt")
    graph.add_edge("build_prompt", "complete")
    graph.add_conditional_edges(
        "complete",
        lambda s: "end" if s.get("upstream_error") else "parse",
        {"parse": "parse", "end": END},
    )
    graph.add_edge("parse", "merge")
    graph.add_edge("merge", END)

    return graph.compile()


_GRAPH_CACHE = None


def _get_compiled_graph():
    global _GRAPH_CACHE
    if _GRAPH_CACHE is None:
        _GRAPH_CACHE = build_graph()
    return _GRAPH_CACHE


def run_turn(request: TurnRequest, client: CompletionClient) -> Union[TurnResult, UpstreamError]:
    """Run one turn; returns the result for the caller or the upstream failure to report."""
    logger.info(
        "turn_start",
        extra={
            "category": request.category,
            "image_count": request.imageCount,
            "history_length": len(request.messages),
            "prior_fields": len(request.extractedData),
        },
    )
    final = _get_compiled_graph().invoke({"request": request, "client": client})

    error = final.get("upstream_error")
    if error is not None:
        logger.warning("turn_upstream_failed", extra={"category": request.category, "status": error.status})
        return error

    result: TurnResult = final["result"]
    logger.info(
        "turn_complete",
        extra={
            "category": request.category,
            "attempts": final["outcome"].attempts,
            "fields": len(result.extractedData),
            "is_complete": result.isComplete,
        },
    )
    return result
