from types import SimpleNamespace

import httpx
import pytest
from openai import APIStatusError, APITimeoutError

from listing_chat.completion import CompletionClient, RetryPolicy
from listing_chat.config import Settings

GATEWAY = "https://gateway.test/v1"


def _completion(text):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=7),
    )


def _request():
    return httpx.Request("POST", f"{GATEWAY}/chat/completions")


class FakeChatClient:
    """Replays a script: str -> reply text, int -> HTTP error status, "timeout" -> request timeout."""

    def __init__(self, script):
        self.script = list(script)
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        step = self.script.pop(0)
        if step == "timeout":
            raise APITimeoutError(request=_request())
        if isinstance(step, int):
            response = httpx.Response(step, request=_request(), text=f'{{"error": "status {step}"}}')
            raise APIStatusError(f"Error code: {step}", response=response, body=None)
        return _completion(step)


@pytest.fixture(autouse=True)
def _no_metric_sinks(monkeypatch):
    """Keep tests from writing CSV rows or reaching Supabase."""
    monkeypatch.setenv("METRICS_ENABLED", "0")


@pytest.fixture()
def settings():
    return Settings(api_key="test-key", gateway_url=GATEWAY)


@pytest.fixture()
def sleeps():
    return []


@pytest.fixture()
def make_client(settings, sleeps):
    """Build a CompletionClient around a scripted fake; delays are recorded instead of slept."""

    def _make(script, policy=None, client_settings=None):
        fake = FakeChatClient(script)
        client = CompletionClient(
            client_settings or settings,
            policy=policy or RetryPolicy(base_delay=0.5),
            client=fake,
            sleep=sleeps.append,
        )
        return client, fake

    return _make
