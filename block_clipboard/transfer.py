"""
Copy and paste of block subtrees through the system clipboard.

Copy serializes one node with its nested subtree, drops the sequential chain
that follows it and writes formatted JSON. Paste reads and parses the
clipboard, registers missing variables, repairs fields, moves the tree so its
root lands under the pointer and hands it to the host for materialization.

Neither operation raises: each returns a ``TransferResult`` and logs its
outcome, leaving the destination untouched on failure before
materialization.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .clipboard import Clipboard, create_clipboard
from .codec import decode_payload, encode_payload
from .config import ClipboardConfig
from .coordinates import CoordinateMapper, PointerTracker
from .exceptions import (
    ClipboardAccessError, ClipboardError, MalformedPayloadError,
    MaterializationError, SerializationError
)
from .models import ClipboardPayload, Point, SerializedNode
from .sanitizer import SanitizationReport, Sanitizer
from .traversal import traverse
from .variables import ReconciliationReport, VariableDirectory, VariableReconciler


class TransferStage(Enum):
    """Pipeline stage a transfer reached."""
    SERIALIZE = "serialize"
    WRITE = "write"
    READ = "read"
    PARSE = "parse"
    RECONCILE = "reconcile"
    SANITIZE = "sanitize"
    POSITION = "position"
    MATERIALIZE = "materialize"
    COMPLETE = "complete"


@dataclass
class TransferResult:
    """Outcome of a copy or paste."""
    success: bool
    operation: str
    stage: TransferStage
    error_message: Optional[str] = None
    text: Optional[str] = None
    payload: Optional[ClipboardPayload] = None
    reconciliation: Optional[ReconciliationReport] = None
    sanitization: Optional[SanitizationReport] = None
    position: Optional[Point] = None


def translate_tree(root: SerializedNode, dx: float, dy: float) -> None:
    """Shift every node's own position by ``(dx, dy)``, reading absent coordinates as 0."""
    def shift(node: SerializedNode):
        position = node.position
        node.x = position.x + dx
        node.y = position.y + dy

    traverse(root, shift)


class ClipboardTransfer:
    """Copy/paste entry points bound to a destination canvas and a clipboard."""

    SERIALIZERS = ('serialize_block', 'save_block')
    MATERIALIZERS = ('append', 'append_block')
    LEGACY_MATERIALIZERS = ('load_legacy_markup', 'dom_to_workspace')

    def __init__(self, canvas_provider: Callable[[], Any],
                 clipboard: Optional[Clipboard] = None,
                 config: Optional[ClipboardConfig] = None,
                 tracker: Optional[PointerTracker] = None):
        """
        Initialize the transfer.

        Args:
            canvas_provider: Returns the current destination canvas, or None
            clipboard: Platform clipboard; built from config when omitted
            config: Clipboard settings
            tracker: Pointer state read when resolving the paste position
        """
        self.canvas_provider = canvas_provider
        self.config = config or ClipboardConfig()
        self.clipboard = clipboard or create_clipboard(self.config)
        self.mapper = CoordinateMapper(tracker)
        self._paste_lock = asyncio.Lock() if self.config.serialize_pastes else None
        self.logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Copy
    # ------------------------------------------------------------------

    async def copy_node(self, block: Any) -> TransferResult:
        """Copy ``block`` and its descendants, excluding the blocks chained after it."""
        result = TransferResult(False, 'copy', TransferStage.SERIALIZE)
        try:
            return await self._copy(block, result)
        except Exception as e:
            self.logger.exception(f"Copy failed: {e}")
            result.error_message = f"Copy failed: {e}"
            return result

    async def _copy(self, block: Any, result: TransferResult) -> TransferResult:
        try:
            root = self.extract_for_clipboard(block)
            text = encode_payload(root, self.config.json_indent)
        except (SerializationError, MalformedPayloadError) as e:
            self.logger.error(f"Copy failed: {e}")
            result.error_message = str(e)
            return result

        result.stage = TransferStage.WRITE
        try:
            await self.clipboard.write_text(text)
        except ClipboardAccessError as e:
            self.logger.error(f"Copy failed: {e}")
            result.error_message = str(e)
            return result

        result.success = True
        result.stage = TransferStage.COMPLETE
        result.text = text
        result.payload = ClipboardPayload.structured(root)
        self.logger.info("Copied block (excluding chain below)")
        return result

    def extract_for_clipboard(self, block: Any) -> SerializedNode:
        """Serialize ``block`` through the host and strip its ``next`` chain."""
        canvas = self.canvas_provider()
        for name in self.SERIALIZERS:
            serializer = getattr(canvas, name, None)
            if callable(serializer):
                break
        else:
            raise SerializationError("No block serializer available")

        try:
            data = serializer(block)
        except Exception as e:
            raise SerializationError(f"Serialization failed: {e}")

        root = SerializedNode.from_dict(data)
        root.strip_next()
        return root

    # ------------------------------------------------------------------
    # Paste
    # ------------------------------------------------------------------

    async def paste(self) -> TransferResult:
        """Paste the clipboard contents under the pointer."""
        result = TransferResult(False, 'paste', TransferStage.READ)
        try:
            if self._paste_lock is None:
                return await self._paste(result)
            async with self._paste_lock:
                return await self._paste(result)
        except Exception as e:
            self.logger.exception(f"Paste failed at {result.stage.value}: {e}")
            result.success = False
            result.error_message = f"Paste failed: {e}"
            return result

    def _fail(self, result: TransferResult, message: str) -> TransferResult:
        result.error_message = message
        return result

    async def _paste(self, result: TransferResult) -> TransferResult:
        canvas = self.canvas_provider()
        if canvas is None:
            self.logger.warning("No workspace available")
            return self._fail(result, "No workspace available")

        try:
            text = await self.clipboard.read_text()
        except ClipboardAccessError as e:
            self.logger.error(f"Paste failed: {e}")
            return self._fail(result, str(e))
        if not text:
            self.logger.warning("Clipboard empty")
            return self._fail(result, "Clipboard empty")
        result.text = text

        result.stage = TransferStage.PARSE
        try:
            payload = decode_payload(text, self.config)
        except MalformedPayloadError as e:
            self.logger.error(f"Paste aborted: {e}")
            return self._fail(result, str(e))
        result.payload = payload

        if payload.is_legacy:
            return self._paste_legacy(canvas, payload, result)

        root = payload.root
        result.stage = TransferStage.RECONCILE
        directory = VariableDirectory(canvas)
        result.reconciliation = VariableReconciler(directory, self.config).reconcile(root)
        result.stage = TransferStage.SANITIZE
        result.sanitization = Sanitizer(canvas, self.config, directory).run(root)

        result.stage = TransferStage.POSITION
        original = root.position
        pointer = self.mapper.resolve(canvas)
        delta = original.offset_to(pointer)
        translate_tree(root, delta.x, delta.y)
        result.position = pointer

        result.stage = TransferStage.MATERIALIZE
        try:
            self.materialize(canvas, root)
        except ClipboardError as e:
            self.logger.error(f"Paste failed: {e}")
            return self._fail(result, str(e))

        result.success = True
        result.stage = TransferStage.COMPLETE
        self.logger.info("Paste complete at cursor (relative positions preserved)")
        return result

    def _paste_legacy(self, canvas: Any, payload: ClipboardPayload,
                      result: TransferResult) -> TransferResult:
        result.stage = TransferStage.MATERIALIZE
        try:
            self._materialize_legacy(canvas, payload.markup)
        except ClipboardError as e:
            self.logger.error(f"Failed to paste legacy XML: {e}")
            return self._fail(result, str(e))
        result.success = True
        result.stage = TransferStage.COMPLETE
        self.logger.info("Pasted legacy XML")
        return result

    def materialize(self, canvas: Any, root: SerializedNode) -> None:
        """Instantiate ``root`` on ``canvas``, falling back to its legacy markup.

        Raises:
            MaterializationError: If the host rejects the tree or no path exists
        """
        for name in self.MATERIALIZERS:
            append = getattr(canvas, name, None)
            if callable(append):
                try:
                    append(root.to_dict())
                except Exception as e:
                    raise MaterializationError(f"Materialization failed: {e}", root.kind)
                return

        if root.legacy_markup:
            self._materialize_legacy(canvas, root.legacy_markup)
            return
        raise MaterializationError("No materialization path available", root.kind)

    def _materialize_legacy(self, canvas: Any, markup: str) -> None:
        for name in self.LEGACY_MATERIALIZERS:
            load = getattr(canvas, name, None)
            if callable(load):
                try:
                    load(markup)
                except Exception as e:
                    raise MaterializationError(f"Legacy XML paste failed: {e}")
                return
        raise MaterializationError("No materialization path available")
