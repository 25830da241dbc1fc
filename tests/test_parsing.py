from listing_chat.parsing import EMPTY_REPLY_MESSAGE, extract_json_object, parse_turn_result


def test_clean_json_reply_is_used_verbatim():
    raw = '{"message":"hi","extractedData":{"title":"Loft"},"isComplete":false}'

    result = parse_turn_result(raw, {"city": "Tulum"})

    assert result.to_payload() == {"message": "hi", "extractedData": {"title": "Loft"}, "isComplete": False}


def test_plain_text_falls_back_to_message():
    prior = {"title": "Loft"}

    result = parse_turn_result("Sure! Let me help you.", prior)

    assert result.to_payload() == {
        "message": "Sure! Let me help you.",
        "extractedData": {"title": "Loft"},
        "isComplete": False,
    }


def test_truncated_json_in_prose_falls_back():
    raw = 'Here you go: {"message": "What city is it in?", "extractedData": {"title": "Lo'

    result = parse_turn_result(raw, {})

    assert result.message == raw
    assert result.extractedData == {}
    assert result.isComplete is False


def test_json_wrapped_in_code_fence_and_prose():
    raw = (
        "Sure thing!\n```json\n"
        '{"message": "How many bedrooms?", "extractedData": {"property_type": "loft"}, '
        '"isComplete": false, "nextSteps": "beds, baths"}\n```\nAnything else {?}'
    )

    result = parse_turn_result(raw, {})

    assert result.message == "How many bedrooms?"
    assert result.extractedData == {"property_type": "loft"}
    assert result.nextSteps == "beds, baths"


def test_missing_fields_default_to_prior_and_incomplete():
    result = parse_turn_result('{"message": "Tell me more"}', {"price": 900})

    assert result.extractedData == {"price": 900}
    assert result.isComplete is False
    assert "nextSteps" not in result.to_payload()


def test_object_without_message_is_treated_as_text():
    raw = '{"title": "Loft"}'

    result = parse_turn_result(raw, {"city": "Tulum"})

    assert result.message == raw
    assert result.extractedData == {"city": "Tulum"}


def test_empty_reply_gets_a_reprompt():
    result = parse_turn_result("", None)

    assert result.message == EMPTY_REPLY_MESSAGE
    assert result.extractedData == {}


def test_string_is_complete_flag_is_coerced():
    result = parse_turn_result('{"message": "Done!", "isComplete": "true"}', {})

    assert result.isComplete is True


def test_extract_json_object_ignores_arrays_and_missing_braces():
    assert extract_json_object("no json here") is None
    assert extract_json_object("[1, 2]") is None
    assert extract_json_object('prefix {"a": 1} suffix {"b": 2}') == {"a": 1}


def test_non_finite_numbers_fall_back_to_text():
    raw = '{"message": "Price?", "extractedData": {"price": NaN}, "isComplete": false}'

    result = parse_turn_result(raw, {"title": "Loft"})

    assert result.message == raw
    assert result.extractedData == {"title": "Loft"}
    assert extract_json_object('{"price": Infinity}') is None
    assert extract_json_object('{"price": 1e999}') is None


def test_stray_braces_before_the_reply_object_are_skipped():
    raw = 'Got it {noted}. {"message": "How many gears?", "extractedData": {"bicycle_type": "road"}}'

    result = parse_turn_result(raw, {})

    assert result.message == "How many gears?"
    assert result.extractedData == {"bicycle_type": "road"}


def test_reply_object_is_preferred_over_earlier_objects_without_message():
    raw = 'Example: {"title": "Loft"} Reply: {"message": "Which city?", "isComplete": false}'

    result = parse_turn_result(raw, {})

    assert result.message == "Which city?"
