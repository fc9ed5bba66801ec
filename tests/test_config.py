"""
Tests for clipboard configuration and the clipboard backends.
"""

import asyncio

import pytest
from unittest.mock import patch

from block_clipboard.clipboard import (
    InMemoryClipboard, SystemClipboard, create_clipboard
)
from block_clipboard.config import ClipboardConfig
from block_clipboard.exceptions import ClipboardAccessError


class TestClipboardConfig:
    """Test cases for ClipboardConfig."""

    def test_defaults(self):
        config = ClipboardConfig()
        assert config.identity_sensitive_kinds == ('variableReferenceBlock', 'subroutineArgumentBlock')
        assert config.json_indent == 2
        assert config.serialize_pastes is True

    @pytest.mark.parametrize("name,expected", [
        ("VAR", True),
        ("var", True),
        ("Variable", True),
        ("VAR_TARGET", True),
        ("NUM", False),
        ("OP", False),
    ])
    def test_variable_field_convention(self, name, expected):
        assert ClipboardConfig().is_variable_field(name) is expected

    def test_invalid_backend(self):
        with pytest.raises(ValueError):
            ClipboardConfig(clipboard_backend="carrier-pigeon")

    def test_negative_indent(self):
        with pytest.raises(ValueError):
            ClipboardConfig(json_indent=-1)

    def test_empty_protected_kind(self):
        with pytest.raises(ValueError):
            ClipboardConfig(variable_reference_kind="")

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv('BLOCK_CLIPBOARD_BACKEND', 'MEMORY')
        monkeypatch.setenv('BLOCK_CLIPBOARD_JSON_INDENT', '4')
        monkeypatch.setenv('BLOCK_CLIPBOARD_SERIALIZE_PASTES', 'no')
        monkeypatch.setenv('BLOCK_CLIPBOARD_LOG_LEVEL', 'debug')
        monkeypatch.setenv('BLOCK_CLIPBOARD_VARIABLE_KIND', 'lexical_variable_get')
        monkeypatch.setenv('BLOCK_CLIPBOARD_ARGUMENT_KIND', '  ')

        config = ClipboardConfig.from_env()

        assert config.clipboard_backend == 'memory'
        assert config.json_indent == 4
        assert config.serialize_pastes is False
        assert config.log_level == 'DEBUG'
        assert config.variable_reference_kind == 'lexical_variable_get'
        assert config.argument_slot_kind == 'subroutineArgumentBlock'

    def test_from_env_overrides(self, monkeypatch):
        monkeypatch.setenv('BLOCK_CLIPBOARD_JSON_INDENT', '4')
        assert ClipboardConfig.from_env(json_indent=0).json_indent == 0


class TestClipboards:
    """Test cases for the clipboard backends."""

    def test_factory(self):
        assert isinstance(create_clipboard(ClipboardConfig(clipboard_backend="memory")), InMemoryClipboard)
        assert isinstance(create_clipboard(ClipboardConfig()), SystemClipboard)

    def test_in_memory_round_trip(self):
        clipboard = InMemoryClipboard()
        asyncio.run(clipboard.write_text("hello"))
        assert asyncio.run(clipboard.read_text()) == "hello"

    def test_in_memory_denied(self):
        clipboard = InMemoryClipboard(denied=True)
        with pytest.raises(ClipboardAccessError) as exc_info:
            asyncio.run(clipboard.read_text())
        assert exc_info.value.operation == "read"

    def test_system_clipboard_uses_pyperclip(self):
        with patch('block_clipboard.clipboard.pyperclip.paste', return_value="copied") as paste:
            assert asyncio.run(SystemClipboard().read_text()) == "copied"
        paste.assert_called_once()

    def test_system_clipboard_refusal(self):
        import pyperclip

        with patch('block_clipboard.clipboard.pyperclip.copy',
                   side_effect=pyperclip.PyperclipException("no clipboard")):
            with pytest.raises(ClipboardAccessError) as exc_info:
                asyncio.run(SystemClipboard().write_text("x"))
        assert exc_info.value.operation == "write"
