"""
Clipboard wire format.

Copy always writes a structured tree as formatted JSON. Paste accepts that
form, a saved-workspace envelope (first top-level block is taken), and, for
backward compatibility, legacy XML markup.
"""

import json
import xml.etree.ElementTree as ET
from typing import Any, Optional

from .config import ClipboardConfig
from .exceptions import MalformedPayloadError, SerializationError
from .models import ClipboardPayload, SerializedNode, LEGACY_MARKUP_KEY


def encode_payload(root: SerializedNode, indent: int = 2) -> str:
    """Serialize a tree as formatted clipboard text.

    Raises:
        SerializationError: If the tree holds values JSON cannot represent
    """
    try:
        return json.dumps(root.to_dict(), indent=indent or None)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Block could not be encoded: {e}", details={'kind': root.kind})


def is_legacy_markup(text: str, config: Optional[ClipboardConfig] = None) -> bool:
    config = config or ClipboardConfig()
    return text.lstrip().startswith(config.legacy_markup_prefix)


def _unwrap_envelope(data: Any) -> Any:
    """Take the first block out of ``{"blocks": {"blocks": [...]}}`` or ``{"blocks": [...]}``."""
    if not isinstance(data, dict) or 'type' in data or 'blocks' not in data:
        return data
    blocks = data['blocks']
    if isinstance(blocks, dict):
        blocks = blocks.get('blocks')
    if not isinstance(blocks, list) or not blocks:
        raise MalformedPayloadError("Workspace envelope contains no blocks")
    return blocks[0]


def decode_payload(text: str, config: Optional[ClipboardConfig] = None) -> ClipboardPayload:
    """Parse clipboard text, falling back to legacy markup.

    Raises:
        MalformedPayloadError: If the text is neither format
    """
    config = config or ClipboardConfig()
    if not text or not text.strip():
        raise MalformedPayloadError("Clipboard empty")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        if not is_legacy_markup(text, config):
            raise MalformedPayloadError(
                "Clipboard does not contain valid JSON or XML",
                details={'json_error': str(e)},
            )
        try:
            ET.fromstring(text.strip())
        except ET.ParseError as xml_error:
            raise MalformedPayloadError(
                "Failed to parse legacy XML",
                details={'xml_error': str(xml_error)},
            )
        return ClipboardPayload.legacy(text.strip())

    data = _unwrap_envelope(data)
    if isinstance(data, dict) and 'type' not in data and isinstance(data.get(LEGACY_MARKUP_KEY), str):
        return ClipboardPayload.legacy(data[LEGACY_MARKUP_KEY])
    return ClipboardPayload.structured(SerializedNode.from_dict(data))
