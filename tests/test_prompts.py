import json

import pytest

from listing_chat.categories import CATEGORY_IDS, UNKNOWN_CATEGORY_MARKER, get_category, render_category_block
from listing_chat.prompts import build_listing_draft_messages, build_system_prompt


@pytest.mark.parametrize("category_id", CATEGORY_IDS)
def test_prompt_lists_every_required_field(category_id):
    prompt = build_system_prompt(category_id, 2, {})
    schema = get_category(category_id)

    for name in schema.required_names:
        assert name in prompt
    assert schema.guidance in prompt


def test_property_prompt_mentions_core_fields():
    prompt = build_system_prompt("property", 4, None)

    for name in ("title", "mode", "price", "city", "neighborhood", "property_type"):
        assert name in prompt
    assert "rent|sale|both" in prompt
    assert "4 photos" in prompt


def test_unknown_category_is_marked_not_raised():
    prompt = build_system_prompt("spaceship", 1, {"title": "X"})

    assert UNKNOWN_CATEGORY_MARKER in prompt
    assert "'spaceship'" in prompt


def test_output_contract_and_current_data_are_rendered():
    prompt = build_system_prompt("bicycle", 3, {"title": "Trek", "bicycle_type": "mountain"})

    for key in ('"message"', '"extractedData"', '"isComplete"', '"nextSteps"'):
        assert key in prompt
    rendered = json.dumps({"bicycle_type": "mountain", "title": "Trek"}, indent=2, sort_keys=True)
    assert rendered in prompt


def test_empty_extracted_data_renders_as_empty_object():
    assert "Current extracted data: {}" in build_system_prompt("worker", 0, None)


def test_prompt_is_deterministic():
    data = {"b": 1, "a": 2}
    assert build_system_prompt("motorcycle", 1, data) == build_system_prompt("motorcycle", 1, dict(reversed(data.items())))


def test_negative_or_missing_photo_count_renders_zero():
    assert "0 photos" in build_system_prompt("property", -3, {})
    assert "0 photos" in build_system_prompt("property", None, {})


def test_category_lookup_is_case_insensitive():
    assert get_category(" Bicycle ").id == "bicycle"
    assert get_category(None) is None
    assert render_category_block("").startswith(UNKNOWN_CATEGORY_MARKER)


def test_listing_draft_prompt_includes_enumerations():
    messages = build_listing_draft_messages(get_category("worker"), "I fix sinks", 300, "Oaxaca", 2)

    assert [m["role"] for m in messages] == ["system", "user"]
    user = messages[1]["content"]
    assert "I fix sinks" in user
    assert "Oaxaca" in user
    assert "per_hour" in user
    assert "service_category" in user
