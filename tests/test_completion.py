import pytest

from listing_chat.completion import CONVERSATION_MAX_TOKENS, CONVERSATION_TEMPERATURE, RetryPolicy
from listing_chat.config import ConfigurationError, Settings

MESSAGES = [{"role": "system", "content": "be nice"}, {"role": "user", "content": "hello"}]


def test_rate_limited_twice_then_success(make_client, sleeps):
    client, fake = make_client([429, 429, '{"message": "ok"}'])

    outcome = client.complete(MESSAGES)

    assert outcome.ok
    assert outcome.content == '{"message": "ok"}'
    assert outcome.attempts == 3
    assert len(fake.calls) == 3
    # Exponential backoff: base * 2**attempt.
    assert sleeps == [0.5, 1.0]


def test_other_status_is_not_retried(make_client, sleeps):
    client, fake = make_client([500])

    outcome = client.complete(MESSAGES)

    assert not outcome.ok
    assert outcome.error.status == 500
    assert "status 500" in outcome.error.body
    assert len(fake.calls) == 1
    assert sleeps == []


def test_unavailable_exhausts_retry_budget(make_client, sleeps):
    client, fake = make_client([503, 503, 503, 503])

    outcome = client.complete(MESSAGES)

    assert outcome.error.status == 503
    assert outcome.attempts == 4
    assert sleeps == [0.5, 1.0, 2.0]


def test_single_attempt_policy_surfaces_rate_limit(make_client, sleeps):
    client, fake = make_client([429], policy=RetryPolicy.single_attempt())

    outcome = client.complete(MESSAGES)

    assert outcome.error.status == 429
    assert len(fake.calls) == 1
    assert sleeps == []


def test_timeout_is_retried_then_reported_without_status(make_client, sleeps):
    client, _ = make_client(["timeout", "timeout"], policy=RetryPolicy(max_retries=1, base_delay=0.25))

    outcome = client.complete(MESSAGES)

    assert outcome.error.status is None
    assert sleeps == [0.25]


def test_missing_key_fails_before_any_call(make_client):
    client, fake = make_client(["unused"], client_settings=Settings(api_key=None))

    with pytest.raises(ConfigurationError):
        client.complete(MESSAGES)
    assert fake.calls == []


def test_call_parameters_are_fixed(make_client, settings):
    client, fake = make_client(["hi"])

    client.complete(MESSAGES)

    call = fake.calls[0]
    assert call["model"] == settings.model
    assert call["temperature"] == CONVERSATION_TEMPERATURE
    assert call["max_tokens"] == CONVERSATION_MAX_TOKENS
    assert call["messages"] == MESSAGES


def test_settings_repr_masks_key():
    assert "secret-value" not in repr(Settings(api_key="secret-value"))
