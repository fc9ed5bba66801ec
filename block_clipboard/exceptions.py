"""
Clipboard-specific exceptions for the block clipboard.
"""

from typing import Optional, Any, Dict


class ClipboardError(Exception):
    """Base exception for all clipboard transfer errors."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class CapabilityMissingError(ClipboardError):
    """Raised when every fallback for a host capability has been exhausted."""
    
    def __init__(self, message: str, capability: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.capability = capability


class MalformedPayloadError(ClipboardError):
    """Raised when clipboard text is neither a structured payload nor legacy markup."""
    pass


class ClipboardAccessError(ClipboardError):
    """Raised when the platform refuses clipboard access."""
    
    def __init__(self, message: str, operation: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.operation = operation


class SerializationError(ClipboardError):
    """Raised when a node cannot be serialized for copying."""
    pass


class MaterializationError(ClipboardError):
    """Raised when a pasted tree cannot be instantiated on the destination canvas."""
    
    def __init__(self, message: str, node_kind: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.node_kind = node_kind
