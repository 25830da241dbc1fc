"""Outbound chat-completion calls with a bounded retry policy.

The endpoint is OpenAI compatible, so the official SDK is used as transport with
its own retries switched off; ``RetryPolicy`` is the only retry layer. The SDK
sends the key as an ``Authorization: Bearer`` header.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence

from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI

from telemetry.logging_utils import get_logger
from telemetry.metrics import extract_usage_tokens, start_timer
from telemetry.retry import retry_with_backoff

from .config import ConfigurationError, Settings

logger = get_logger(__name__)

CONVERSATION_TEMPERATURE = 0.7
CONVERSATION_MAX_TOKENS = 1500
ERROR_BODY_LIMIT = 2000


@dataclass(frozen=True)
class RetryPolicy:
    """Which failures are retried, and how long to wait between attempts."""

    max_retries: int = 3
    base_delay: float = 1.0
    factor: float = 2.0
    retryable_statuses: FrozenSet[int] = frozenset({429, 503})
    retry_on_timeout: bool = True

    @classmethod
    def single_attempt(cls) -> "RetryPolicy":
        return cls(max_retries=0)

    def is_retryable(self, exc: BaseException) -> bool:
        if isinstance(exc, APIStatusError):
            return exc.status_code in self.retryable_statuses
        if isinstance(exc, APIConnectionError):
            return self.retry_on_timeout
        return False


@dataclass(frozen=True)
class UpstreamError:
    """Non-2xx (or unreachable) completion endpoint after the retry budget is spent."""

    status: Optional[int]
    body: str = ""


@dataclass(frozen=True)
class CompletionOutcome:
    model: str
    attempts: int
    content: Optional[str] = None
    error: Optional[UpstreamError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _first_choice_text(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None) if message is not None else None
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict):
                parts.append(str(item.get("text", "")))
        return "".join(parts)
    return ""


def _error_body(exc: APIStatusError) -> str:
    response = getattr(exc, "response", None)
    text = getattr(response, "text", None) if response is not None else None
    return (text or str(exc))[:ERROR_BODY_LIMIT]


class CompletionClient:
    """Single logical call to the chat-completion endpoint, retried per ``RetryPolicy``."""

    def __init__(
        self,
        settings: Settings,
        policy: Optional[RetryPolicy] = None,
        client: Optional[Any] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.policy = policy or RetryPolicy(
            max_retries=settings.max_retries,
            base_delay=settings.retry_base_delay,
        )
        self._client = client
        self._client_lock = threading.Lock()
        self._sleep = sleep

    def _openai(self) -> Any:
        with self._client_lock:
            if self._client is None:
                self._client = OpenAI(
                    api_key=self.settings.api_key,
                    base_url=self.settings.gateway_url,
                    max_retries=0,
                    timeout=self.settings.request_timeout,
                )
            return self._client

    def complete(
        self,
        messages: Sequence[Dict[str, str]],
        *,
        temperature: float = CONVERSATION_TEMPERATURE,
        max_tokens: int = CONVERSATION_MAX_TOKENS,
        component: str = "conversation",
    ) -> CompletionOutcome:
        """Return the first choice's text, or an ``UpstreamError`` once retries are exhausted."""
        if not self.settings.api_key:
            raise ConfigurationError("AI service not configured")

        model = self.settings.model
        payload: List[Dict[str, str]] = [{"role": m["role"], "content": m["content"]} for m in messages]
        attempts = 0

        def _call() -> Any:
            nonlocal attempts
            attempts += 1
            return self._openai().chat.completions.create(
                model=model,
                messages=payload,
                temperature=temperature,
                max_tokens=max_tokens,
            )

        def _on_retry(attempt: int, exc: BaseException, delay: float) -> None:
            logger.warning(
                "completion_retry",
                extra={
                    "component": component,
                    "attempt": attempt + 1,
                    "status": getattr(exc, "status_code", None),
                    "timeout": isinstance(exc, APITimeoutError),
                    "delay_s": round(delay, 3),
                },
            )

        timer = start_timer(component, model)
        try:
            response = retry_with_backoff(
                _call,
                retries=self.policy.max_retries,
                base_delay=self.policy.base_delay,
                factor=self.policy.factor,
                retry_exceptions=(APIStatusError, APIConnectionError),
                should_retry=self.policy.is_retryable,
                on_retry=_on_retry,
                sleep=self._sleep,
            )
        except APIStatusError as exc:
            error = UpstreamError(status=exc.status_code, body=_error_body(exc))
            timer.done(status=str(exc.status_code), attempts=attempts)
            logger.error(
                "completion_failed",
                extra={"component": component, "status": error.status, "attempts": attempts, "body": error.body},
            )
            return CompletionOutcome(model=model, attempts=attempts, error=error)
        except APIConnectionError as exc:
            error = UpstreamError(status=None, body=str(exc)[:ERROR_BODY_LIMIT])
            timer.done(status="timeout" if isinstance(exc, APITimeoutError) else "unreachable", attempts=attempts)
            logger.error(
                "completion_unreachable",
                extra={"component": component, "attempts": attempts, "error": error.body},
            )
            return CompletionOutcome(model=model, attempts=attempts, error=error)

        tokens_in, tokens_out = extract_usage_tokens(response)
        latency_ms = timer.done(attempts=attempts, tokens_in=tokens_in, tokens_out=tokens_out)
        logger.info(
            "completion_complete",
            extra={
                "component": component,
                "model": model,
                "attempts": attempts,
                "latency_ms": round(latency_ms, 3),
                "tokens_in": tokens_in,
                "tokens_out": tokens_out,
            },
        )
        return CompletionOutcome(model=model, attempts=attempts, content=_first_choice_text(response))
