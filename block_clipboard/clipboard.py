"""
Asynchronous text clipboards.

``SystemClipboard`` talks to the OS clipboard through ``pyperclip`` on a
worker thread so the event loop never blocks; ``InMemoryClipboard`` serves
hosts without a system clipboard and tests.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import pyperclip

from .config import ClipboardConfig
from .exceptions import ClipboardAccessError


class Clipboard(ABC):
    """Platform clipboard contract."""

    @abstractmethod
    async def read_text(self) -> str:
        """Return the clipboard text.

        Raises:
            ClipboardAccessError: If the platform refuses access
        """
        pass

    @abstractmethod
    async def write_text(self, text: str) -> None:
        """Replace the clipboard text.

        Raises:
            ClipboardAccessError: If the platform refuses access
        """
        pass


class SystemClipboard(Clipboard):
    """OS clipboard via pyperclip."""

    async def read_text(self) -> str:
        try:
            return await asyncio.to_thread(pyperclip.paste) or ""
        except pyperclip.PyperclipException as e:
            raise ClipboardAccessError(f"Clipboard read refused: {e}", "read")

    async def write_text(self, text: str) -> None:
        try:
            await asyncio.to_thread(pyperclip.copy, text)
        except pyperclip.PyperclipException as e:
            raise ClipboardAccessError(f"Clipboard write refused: {e}", "write")


class InMemoryClipboard(Clipboard):
    """Process-local clipboard; ``denied`` simulates a platform refusal."""

    def __init__(self, text: str = "", denied: bool = False):
        self.text = text
        self.denied = denied

    async def read_text(self) -> str:
        if self.denied:
            raise ClipboardAccessError("Clipboard read refused", "read")
        return self.text

    async def write_text(self, text: str) -> None:
        if self.denied:
            raise ClipboardAccessError("Clipboard write refused", "write")
        self.text = text


def create_clipboard(config: Optional[ClipboardConfig] = None) -> Clipboard:
    """Build the clipboard backend the configuration names."""
    config = config or ClipboardConfig()
    if config.clipboard_backend == "memory":
        return InMemoryClipboard()
    return SystemClipboard()
