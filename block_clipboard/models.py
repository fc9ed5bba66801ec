"""
Core data models for the block clipboard.

This module defines the serialized node tree that travels through the system
clipboard, the variable identities referenced by that tree, and the payload
wrapper that distinguishes structured trees from legacy markup.

Wire keys follow the host serializer: ``type``, ``fields``, ``inputs`` (each
input holding ``block`` and/or ``shadow``), ``next``, ``x``, ``y`` and
``extraState``. Keys the clipboard does not interpret (``id``, ``icons``,
``data`` ...) are carried through untouched.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional
from enum import Enum

from .exceptions import MalformedPayloadError


LEGACY_MARKUP_KEY = "_legacyXml"

_NODE_KEYS = {'type', 'fields', 'inputs', 'next', 'x', 'y', 'extraState', LEGACY_MARKUP_KEY}
_ATTACHMENT_KEYS = {'block', 'shadow'}


class PayloadFormat(Enum):
    """Formats accepted on the clipboard."""
    STRUCTURED = "structured"
    LEGACY_MARKUP = "legacy_markup"


@dataclass
class Point:
    """A position in canvas-space units."""
    x: float = 0.0
    y: float = 0.0

    def offset_to(self, other: 'Point') -> 'Point':
        """Return the translation that moves this point onto ``other``."""
        return Point(other.x - self.x, other.y - self.y)


@dataclass
class Attachment:
    """An input slot or chain link: an optional primary node and an optional placeholder."""
    primary: Optional['SerializedNode'] = None
    placeholder: Optional['SerializedNode'] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    def children(self) -> List['SerializedNode']:
        """Attached nodes, primary before placeholder."""
        return [node for node in (self.primary, self.placeholder) if node is not None]

    @classmethod
    def from_dict(cls, data: Any, path: str = "") -> 'Attachment':
        if not isinstance(data, dict):
            raise MalformedPayloadError(f"Attachment at '{path}' is not an object")
        primary = data.get('block')
        placeholder = data.get('shadow')
        return cls(
            primary=SerializedNode.from_dict(primary, f"{path}.block") if primary is not None else None,
            placeholder=SerializedNode.from_dict(placeholder, f"{path}.shadow") if placeholder is not None else None,
            extras={k: v for k, v in data.items() if k not in _ATTACHMENT_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extras)
        if self.primary is not None:
            data['block'] = self.primary.to_dict()
        if self.placeholder is not None:
            data['shadow'] = self.placeholder.to_dict()
        return data


@dataclass
class SerializedNode:
    """One canvas node and everything nested or chained beneath it."""
    kind: str
    fields: Dict[str, Any] = field(default_factory=dict)
    inputs: Dict[str, Attachment] = field(default_factory=dict)
    next: Optional[Attachment] = None
    x: Optional[float] = None
    y: Optional[float] = None
    extra_state: Any = None
    legacy_markup: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def position(self) -> Point:
        """This node's position, with absent coordinates read as 0."""
        return Point(
            self.x if isinstance(self.x, (int, float)) else 0,
            self.y if isinstance(self.y, (int, float)) else 0,
        )

    @property
    def next_node(self) -> Optional['SerializedNode']:
        return self.next.primary if self.next is not None else None

    def strip_next(self) -> Optional[Attachment]:
        """Detach and return the sequential chain that follows this node."""
        detached = self.next
        self.next = None
        return detached

    def is_object_variable(self) -> bool:
        """Whether extra state marks this node's variable as object-typed."""
        return isinstance(self.extra_state, dict) and bool(self.extra_state.get('isObjectVar'))

    @classmethod
    def from_dict(cls, data: Any, path: str = "root") -> 'SerializedNode':
        """Build a node tree from the host serializer's dictionary form."""
        if not isinstance(data, dict):
            raise MalformedPayloadError(f"Node at '{path}' is not an object")
        kind = data.get('type')
        if not isinstance(kind, str) or not kind:
            raise MalformedPayloadError(f"Node at '{path}' has no type")

        fields = data.get('fields') or {}
        if not isinstance(fields, dict):
            raise MalformedPayloadError(f"Fields of node at '{path}' are not an object")

        raw_inputs = data.get('inputs') or {}
        if not isinstance(raw_inputs, dict):
            raise MalformedPayloadError(f"Inputs of node at '{path}' are not an object")
        inputs = {
            name: Attachment.from_dict(attachment, f"{path}.inputs.{name}")
            for name, attachment in raw_inputs.items()
        }

        raw_next = data.get('next')
        next_attachment = Attachment.from_dict(raw_next, f"{path}.next") if raw_next is not None else None

        return cls(
            kind=kind,
            fields=dict(fields),
            inputs=inputs,
            next=next_attachment,
            x=data.get('x'),
            y=data.get('y'),
            extra_state=data.get('extraState'),
            legacy_markup=data.get(LEGACY_MARKUP_KEY),
            extras={k: v for k, v in data.items() if k not in _NODE_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to the host serializer's dictionary form."""
        data: Dict[str, Any] = {'type': self.kind}
        data.update(self.extras)
        if self.x is not None:
            data['x'] = self.x
        if self.y is not None:
            data['y'] = self.y
        if self.extra_state is not None:
            data['extraState'] = self.extra_state
        if self.fields:
            data['fields'] = dict(self.fields)
        if self.inputs:
            data['inputs'] = {name: attachment.to_dict() for name, attachment in self.inputs.items()}
        if self.next is not None:
            data['next'] = self.next.to_dict()
        if self.legacy_markup is not None:
            data[LEGACY_MARKUP_KEY] = self.legacy_markup
        return data


@dataclass(frozen=True)
class VariableIdentity:
    """A variable referenced by a pasted tree."""
    name: str
    type: str = ""
    identity: Optional[str] = None
    is_object_var: bool = False

    @property
    def key(self) -> str:
        """Deduplication key: the identity when present, else ``name::type``."""
        if self.identity:
            return self.identity
        return f"{self.name}::{self.type}"


@dataclass
class ClipboardPayload:
    """What the clipboard held: a structured tree or an opaque legacy markup string."""
    format: PayloadFormat
    root: Optional[SerializedNode] = None
    markup: Optional[str] = None

    @classmethod
    def structured(cls, root: SerializedNode) -> 'ClipboardPayload':
        return cls(format=PayloadFormat.STRUCTURED, root=root)

    @classmethod
    def legacy(cls, markup: str) -> 'ClipboardPayload':
        return cls(format=PayloadFormat.LEGACY_MARKUP, markup=markup)

    @property
    def is_legacy(self) -> bool:
        return self.format == PayloadFormat.LEGACY_MARKUP


def is_structured_variable(value: Any) -> bool:
    """Structured variable values are objects carrying at least a name."""
    return isinstance(value, dict) and isinstance(value.get('name'), str)


def variable_value_name(value: Any) -> Optional[str]:
    """Resolve a variable field value to its plain name."""
    if is_structured_variable(value):
        return value['name']
    if isinstance(value, str):
        return value
    return None


def variable_value_identity(value: Any) -> Optional[str]:
    # Host serializers write "id"; older payloads spell it out.
    if not isinstance(value, dict):
        return None
    identity = value.get('id', value.get('identity'))
    return identity if identity else None


def variable_value_type(value: Any) -> str:
    if isinstance(value, dict):
        return value.get('type') or ""
    return ""
