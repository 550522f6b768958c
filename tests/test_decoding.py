"""Tests for payload decoding."""

import json

import pytest

from texthooker.decoding import decode_line, parse_payload, payload_text
from texthooker.errors import DecodeError


def test_sentence_field_extracted():
    assert decode_line('{"sentence": "hello"}') == "hello"


def test_extra_fields_ignored():
    assert decode_line(json.dumps({"sentence": "hi", "process": "game.exe"})) == "hi"


def test_plain_text_passes_through():
    assert decode_line("hello") == "hello"


def test_json_without_field_falls_back_to_raw():
    raw = '{"text": "hello"}'
    assert decode_line(raw) == raw


@pytest.mark.parametrize("raw", ['"hello"', "[1, 2]", "42", "null"])
def test_non_object_json_falls_back_to_raw(raw):
    assert decode_line(raw) == raw


@pytest.mark.parametrize("value", [None, "", False, 0])
def test_falsy_field_falls_back_to_raw(value):
    raw = json.dumps({"sentence": value})
    assert decode_line(raw) == raw


def test_non_string_field_is_stringified():
    assert decode_line('{"sentence": 42}') == "42"


def test_empty_payload():
    assert decode_line("") == ""


def test_bytes_decoded_as_utf8():
    assert decode_line('{"sentence": "日本語"}'.encode()) == "日本語"


def test_invalid_utf8_is_replaced():
    assert payload_text(b"ab\xffcd") == "ab�cd"


def test_whitespace_is_preserved():
    assert decode_line('{"sentence": "  spaced  "}') == "  spaced  "


def test_parse_payload_raises_for_plain_text():
    with pytest.raises(DecodeError, match="not JSON"):
        parse_payload("hello")


def test_parse_payload_raises_for_missing_field():
    with pytest.raises(DecodeError, match="sentence"):
        parse_payload("{}")


@pytest.mark.parametrize(
    "value,expected",
    [(True, "true"), ({"a": 1}, '{"a": 1}'), (["あ", 2], '["あ", 2]'), (1.5, "1.5")],
)
def test_non_string_field_rendered_as_json(value, expected):
    assert decode_line(json.dumps({"sentence": value})) == expected


def test_deeply_nested_payload_falls_back_to_raw():
    raw = "[" * 200000
    assert decode_line(raw) == raw


def test_parse_payload_raises_decode_error_for_deep_nesting():
    with pytest.raises(DecodeError, match="not JSON"):
        parse_payload('{"sentence": ' * 100000)
