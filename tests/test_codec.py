"""
Tests for the clipboard wire format.
"""

import json

import pytest

from block_clipboard.codec import encode_payload, decode_payload, is_legacy_markup
from block_clipboard.exceptions import MalformedPayloadError
from block_clipboard.models import SerializedNode, PayloadFormat


LEGACY_XML = '<xml xmlns="https://developers.google.com/blockly/xml"><block type="text_print"/></xml>'


class TestEncodePayload:

    def test_formatted_json(self):
        root = SerializedNode.from_dict({'type': 'math_number', 'fields': {'NUM': 3}})
        text = encode_payload(root)

        assert text == json.dumps({'type': 'math_number', 'fields': {'NUM': 3}}, indent=2)
        assert '\n  ' in text

    def test_zero_indent_is_compact(self):
        root = SerializedNode(kind='a')
        assert encode_payload(root, indent=0) == '{"type": "a"}'


class TestDecodePayload:
    """Test cases for decode_payload."""

    def test_structured(self):
        payload = decode_payload('{"type": "text_print", "x": 5}')
        assert payload.format == PayloadFormat.STRUCTURED
        assert payload.root.kind == 'text_print'
        assert payload.root.x == 5

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_empty(self, text):
        with pytest.raises(MalformedPayloadError) as exc_info:
            decode_payload(text)
        assert str(exc_info.value) == "Clipboard empty"

    def test_not_json_or_xml(self):
        with pytest.raises(MalformedPayloadError) as exc_info:
            decode_payload("hello world")
        assert "valid JSON or XML" in str(exc_info.value)

    def test_legacy_markup(self):
        payload = decode_payload("  " + LEGACY_XML)
        assert payload.is_legacy
        assert payload.markup == LEGACY_XML

    def test_broken_legacy_markup(self):
        with pytest.raises(MalformedPayloadError) as exc_info:
            decode_payload("<xml><block type='a'></xml>")
        assert "legacy XML" in str(exc_info.value)

    def test_legacy_markup_in_json(self):
        payload = decode_payload(json.dumps({'_legacyXml': LEGACY_XML}))
        assert payload.is_legacy
        assert payload.markup == LEGACY_XML

    def test_workspace_envelope(self):
        text = json.dumps({'blocks': {'languageVersion': 0, 'blocks': [
            {'type': 'first'}, {'type': 'second'},
        ]}})
        assert decode_payload(text).root.kind == 'first'

    def test_flat_envelope(self):
        assert decode_payload(json.dumps({'blocks': [{'type': 'only'}]})).root.kind == 'only'

    def test_empty_envelope(self):
        with pytest.raises(MalformedPayloadError):
            decode_payload(json.dumps({'blocks': {'blocks': []}}))

    def test_json_without_type(self):
        with pytest.raises(MalformedPayloadError):
            decode_payload('{"fields": {}}')

    def test_json_array(self):
        with pytest.raises(MalformedPayloadError):
            decode_payload('[1, 2, 3]')


def test_is_legacy_markup():
    assert is_legacy_markup("\n<xml></xml>")
    assert not is_legacy_markup("<block/>")
