"""Unit tests for parsing completion service replies."""

import pytest

from autofill.errors import MalformedResponseError
from autofill.integrations.claude.parser import parse_fills_response, strip_code_fence

BARE = '{"fills": [{"fieldId": "email", "value": "a@b.co", "confidence": "high", "reasoning": "profile"}]}'


class TestStripCodeFence:
    """Tests for fence removal."""

    def test_json_fence(self):
        assert strip_code_fence(f"```json\n{BARE}\n```") == BARE

    def test_plain_fence(self):
        assert strip_code_fence(f"```\n{BARE}\n```") == BARE

    def test_unfenced_text_is_trimmed(self):
        assert strip_code_fence(f"  {BARE}\n") == BARE


class TestParseFillsResponse:
    """Tests for parse_fills_response."""

    def test_fenced_and_bare_parse_identically(self):
        """Test a fenced payload parses like the bare JSON."""
        assert parse_fills_response(f"```json\n{BARE}\n```") == parse_fills_response(BARE)

    def test_parses_fill_members(self):
        response = parse_fills_response(BARE)

        fill = response.fills[0]
        assert fill.field_id == "email"
        assert fill.value == "a@b.co"
        assert fill.confidence == "high"
        assert fill.reasoning == "profile"

    def test_empty_fills_is_accepted(self):
        assert parse_fills_response('{"fills": []}').fills == []

    def test_invalid_json_raises(self):
        with pytest.raises(MalformedResponseError) as exc_info:
            parse_fills_response("Sure! Here are the fills you asked for.")

        assert "response format" in str(exc_info.value)

    def test_missing_fills_array_raises(self):
        with pytest.raises(MalformedResponseError):
            parse_fills_response('{"answers": []}')

    def test_top_level_array_raises(self):
        with pytest.raises(MalformedResponseError):
            parse_fills_response("[]")

    def test_non_object_entries_are_dropped(self):
        response = parse_fills_response('{"fills": ["oops", {"fieldId": "a", "value": "x"}]}')

        assert [f.field_id for f in response.fills] == ["a"]

    def test_value_types(self):
        """Test numbers become strings, booleans stay, other types are dropped."""
        response = parse_fills_response(
            '{"fills": ['
            '{"fieldId": "n", "value": 8},'
            '{"fieldId": "c", "value": true},'
            '{"fieldId": "o", "value": {"nested": 1}},'
            '{"fieldId": "z", "value": null}'
            "]}"
        )

        assert [f.value for f in response.fills] == ["8", True, None, None]

    def test_entry_without_field_id_is_kept_but_unusable(self):
        response = parse_fills_response('{"fills": [{"value": "x"}]}')

        assert response.fills[0].field_id is None
        assert response.fills[0].is_usable is False

    def test_unknown_confidence_is_kept(self):
        response = parse_fills_response('{"fills": [{"fieldId": "a", "value": "x", "confidence": "certain"}]}')

        assert response.fills[0].confidence == "certain"
