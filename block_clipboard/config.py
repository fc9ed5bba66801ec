"""
Configuration for the block clipboard.

Settings resolve in two tiers: environment variable, then the dataclass
default. Every subsystem receives a ``ClipboardConfig`` instance rather than
reading the environment itself.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple


CLIPBOARD_BACKENDS = ("system", "memory")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _env(name: str) -> Optional[str]:
    """Return a stripped environment value, or None when unset or blank."""
    value = os.environ.get(name, '').strip()
    return value or None


def _env_bool(value: str) -> bool:
    return value.lower() in ('1', 'true', 'yes', 'on')


@dataclass
class ClipboardConfig:
    """Clipboard transfer settings."""
    variable_reference_kind: str = "variableReferenceBlock"
    argument_slot_kind: str = "subroutineArgumentBlock"
    variable_field_names: Tuple[str, ...] = ("VAR", "VARIABLE")
    variable_field_prefix: str = "VAR"
    json_indent: int = 2
    legacy_markup_prefix: str = "<xml"
    serialize_pastes: bool = True
    clipboard_backend: str = "system"
    copy_label: str = "Copy Block"
    paste_label: str = "Paste Block"
    menu_weight: int = 90
    log_level: str = "INFO"
    extra_protected_kinds: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.variable_reference_kind or not self.argument_slot_kind:
            raise ValueError("Both identity-sensitive node kinds must be named")
        if not self.variable_field_prefix:
            raise ValueError("variable_field_prefix must not be empty")
        if self.json_indent < 0:
            raise ValueError("json_indent must be >= 0")
        if self.clipboard_backend not in CLIPBOARD_BACKENDS:
            raise ValueError(f"Unknown clipboard backend: {self.clipboard_backend}")
        self.variable_field_names = tuple(name.upper() for name in self.variable_field_names)
        self.variable_field_prefix = self.variable_field_prefix.upper()

    @property
    def identity_sensitive_kinds(self) -> Tuple[str, ...]:
        """Node kinds whose fields bind to a variable or argument slot."""
        return (self.variable_reference_kind, self.argument_slot_kind) + tuple(self.extra_protected_kinds)

    def is_identity_sensitive(self, kind: str) -> bool:
        return kind in self.identity_sensitive_kinds

    def is_variable_field(self, field_name: str) -> bool:
        """Check a field name against the variable naming convention (case-insensitive)."""
        upper = field_name.upper()
        return upper in self.variable_field_names or upper.startswith(self.variable_field_prefix)

    @classmethod
    def from_env(cls, **overrides) -> 'ClipboardConfig':
        """Build a configuration from ``BLOCK_CLIPBOARD_*`` environment variables."""
        values = {}

        backend = _env('BLOCK_CLIPBOARD_BACKEND')
        if backend:
            values['clipboard_backend'] = backend.lower()

        indent = _env('BLOCK_CLIPBOARD_JSON_INDENT')
        if indent:
            values['json_indent'] = int(indent)

        serialize = _env('BLOCK_CLIPBOARD_SERIALIZE_PASTES')
        if serialize:
            values['serialize_pastes'] = _env_bool(serialize)

        log_level = _env('BLOCK_CLIPBOARD_LOG_LEVEL')
        if log_level:
            values['log_level'] = log_level.upper()

        variable_kind = _env('BLOCK_CLIPBOARD_VARIABLE_KIND')
        if variable_kind:
            values['variable_reference_kind'] = variable_kind

        argument_kind = _env('BLOCK_CLIPBOARD_ARGUMENT_KIND')
        if argument_kind:
            values['argument_slot_kind'] = argument_kind

        values.update(overrides)
        return cls(**values)


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for command-line and web use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
