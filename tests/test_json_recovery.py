from pittari_pipeline.json_recovery import (
    extract_json_object,
    parse_direct,
    parse_key_value_lines,
    parse_sanitized,
    recover_structured_output,
    sanitize_json_string,
)


# --- extract_json_object -----------------------------------------------------


def test_extract_json_object_ignores_surrounding_prose():
    text = 'Sure! Here is the result:\n{"is_wine": true}\nHope this helps.'
    assert extract_json_object(text) == '{"is_wine": true}'


def test_extract_json_object_ignores_braces_inside_strings():
    """Braces and escaped quotes inside string literals must not affect depth."""
    text = 'x {"region": "Rhône {north}", "note": "say \\"hi}\\"", "n": {"a": 1}} tail }'
    assert extract_json_object(text) == (
        '{"region": "Rhône {north}", "note": "say \\"hi}\\"", "n": {"a": 1}}'
    )


def test_extract_json_object_stops_at_first_balanced_span():
    text = '{"a": 1} {"b": 2}'
    assert extract_json_object(text) == '{"a": 1}'


def test_extract_json_object_returns_none_without_braces_or_when_unbalanced():
    assert extract_json_object("is_wine: true") is None
    assert extract_json_object('{"a": {"b": 1}') is None


# --- stage 1: direct ---------------------------------------------------------


def test_direct_parse_recovers_every_field_of_well_formed_json():
    text = (
        '{"is_wine": true, "alcohol_type": "赤ワイン", "type": "赤", '
        '"region": "ボルドー", "flavor_profile": "フルボディ", "country": "フランス"}'
    )
    outcome = recover_structured_output(text)

    assert outcome.strategy == "direct"
    assert outcome.fields == {
        "is_wine": True,
        "alcohol_type": "赤ワイン",
        "type": "赤",
        "region": "ボルドー",
        "flavor_profile": "フルボディ",
        "country": "フランス",
    }


def test_direct_parse_handles_code_fenced_reply():
    text = '```json\n{"is_wine": false, "alcohol_type": "beer"}\n```'
    outcome = recover_structured_output(text)
    assert outcome.strategy == "direct"
    assert outcome.fields == {"is_wine": False, "alcohol_type": "beer"}


def test_direct_parse_rejects_non_object_json():
    assert parse_direct("true") is None
    assert parse_direct("[1, 2]") is None


# --- stage 2: sanitized ------------------------------------------------------


def test_sanitized_parse_fixes_bare_keys_single_quotes_and_trailing_comma():
    text = "{is_wine: true, type: 'Red',}"

    assert parse_direct(text) is None
    outcome = recover_structured_output(text)

    assert outcome.strategy == "sanitized"
    assert outcome.fields == {"is_wine": True, "type": "Red"}


def test_sanitized_parse_normalizes_smart_quotes():
    text = "{“is_wine”: true, “type”: “White”, “region”: ‘Chablis’}"
    assert parse_sanitized(text) == {"is_wine": True, "type": "White", "region": "Chablis"}


def test_sanitize_json_string_removes_trailing_comma_in_arrays():
    assert sanitize_json_string('{"a": [1, 2,],}') == '{"a": [1, 2]}'


# --- stage 3: line fallback --------------------------------------------------


def test_line_fallback_recovers_key_value_lines():
    text = "is_wine: true\ntype: 白\nregion = 'Chablis'\nCountry: \"France\"\nnote: ignored"
    outcome = recover_structured_output(text)

    assert outcome.strategy == "line_fallback"
    assert outcome.fields == {
        "is_wine": True,
        "type": "白",
        "region": "Chablis",
        "country": "France",
    }


def test_line_fallback_boolean_is_true_only_for_literal_true():
    assert parse_key_value_lines("is_wine: TRUE") == {"is_wine": True}
    assert parse_key_value_lines("is_wine: yes") == {"is_wine": False}
    assert parse_key_value_lines("is_wine: 1") == {"is_wine": False}


def test_line_fallback_returns_none_when_no_known_keys():
    assert parse_key_value_lines("vintage: 2015\nproducer: someone") is None


def test_line_fallback_accepts_caller_field_names():
    text = "Type: White\nflavor = dry\nregion: Chablis"

    assert parse_key_value_lines(text, fields=("type", "flavor")) == {
        "type": "White",
        "flavor": "dry",
    }
    assert recover_structured_output(text, fields=("flavor",)).fields == {"flavor": "dry"}
    assert recover_structured_output("flavor: dry").failed


# --- total failure -----------------------------------------------------------


def test_total_failure_is_reported_not_raised():
    outcome = recover_structured_output("I'm sorry, I cannot classify this product.")
    assert outcome.failed
    assert outcome.fields == {}


def test_empty_input_fails():
    assert recover_structured_output("").failed
    assert recover_structured_output("   \n ").failed
    assert recover_structured_output(None).failed


def test_not_wine_reply_is_not_a_parse_failure():
    outcome = recover_structured_output('{"is_wine": false, "alcohol_type": "sake"}')
    assert not outcome.failed
    assert outcome.fields["is_wine"] is False
