"""
Block Clipboard - copy/paste of block subtrees for node-based visual programming canvases.

A copied block travels through the system clipboard as a JSON tree. On paste
the tree's variables are registered in the destination, its field values are
repaired, and it is placed so its root lands under the pointer.
"""

__version__ = "0.1.0"
__author__ = "VPyD Development Team"

from .models import (
    SerializedNode, Attachment, VariableIdentity, ClipboardPayload, PayloadFormat, Point
)
from .config import ClipboardConfig, setup_logging
from .exceptions import (
    ClipboardError, CapabilityMissingError, MalformedPayloadError,
    ClipboardAccessError, SerializationError, MaterializationError
)
from .traversal import traverse, collect_nodes
from .coordinates import (
    PointerEvent, PointerTracker, TransformMatrix, CoordinateMapper,
    attach_pointer_tracking, resolve_pointer_canvas_position, default_tracker
)
from .variables import (
    extract_variable_identities, register_missing, VariableDirectory,
    VariableReconciler, ReconciliationReport
)
from .sanitizer import sanitize, Sanitizer, SanitizationReport, FieldRepair, RepairAction
from .codec import encode_payload, decode_payload
from .clipboard import Clipboard, SystemClipboard, InMemoryClipboard, create_clipboard
from .transfer import ClipboardTransfer, TransferResult, TransferStage, translate_tree
from .commands import ClipboardPlugin, CommandRegistry, ContextMenuItem, MenuScope, ScopeType
from .workspace import Workspace, ViewportState, VariableMap, VariableModel, BlockDefinition, Block

__all__ = [
    "SerializedNode",
    "Attachment",
    "VariableIdentity",
    "ClipboardPayload",
    "PayloadFormat",
    "Point",
    "ClipboardConfig",
    "setup_logging",
    "ClipboardError",
    "CapabilityMissingError",
    "MalformedPayloadError",
    "ClipboardAccessError",
    "SerializationError",
    "MaterializationError",
    "traverse",
    "collect_nodes",
    "PointerEvent",
    "PointerTracker",
    "TransformMatrix",
    "CoordinateMapper",
    "attach_pointer_tracking",
    "resolve_pointer_canvas_position",
    "default_tracker",
    "extract_variable_identities",
    "register_missing",
    "VariableDirectory",
    "VariableReconciler",
    "ReconciliationReport",
    "sanitize",
    "Sanitizer",
    "SanitizationReport",
    "FieldRepair",
    "RepairAction",
    "encode_payload",
    "decode_payload",
    "Clipboard",
    "SystemClipboard",
    "InMemoryClipboard",
    "create_clipboard",
    "ClipboardTransfer",
    "TransferResult",
    "TransferStage",
    "translate_tree",
    "ClipboardPlugin",
    "CommandRegistry",
    "ContextMenuItem",
    "MenuScope",
    "ScopeType",
    "Workspace",
    "ViewportState",
    "VariableMap",
    "VariableModel",
    "BlockDefinition",
    "Block",
]
