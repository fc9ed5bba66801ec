"""
Context-menu commands for copy and paste.

The clipboard plugs into the host canvas as two context-menu items: a
block-scoped "copy" and a workspace-scoped "paste". Callbacks return nothing;
outcomes surface only through logging.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from .config import ClipboardConfig
from .coordinates import PointerTracker, attach_pointer_tracking, default_tracker
from .transfer import ClipboardTransfer


COPY_ITEM_ID = "copyBlockMenuItem"
PASTE_ITEM_ID = "pasteBlockMenuItem"


class ScopeType(Enum):
    """What a context-menu item is attached to."""
    BLOCK = "block"
    WORKSPACE = "workspace"


@dataclass
class MenuScope:
    """The target a context menu was opened on."""
    block: Any = None
    workspace: Any = None


@dataclass
class ContextMenuItem:
    """A registered context-menu command."""
    id: str
    display_text: str
    scope_type: ScopeType
    callback: Callable[[MenuScope], None]
    weight: int = 90
    precondition: Callable[[MenuScope], str] = field(default=lambda scope: "enabled")

    def is_enabled(self, scope: MenuScope) -> bool:
        return self.precondition(scope) == "enabled"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'display_text': self.display_text,
            'scope_type': self.scope_type.value,
            'weight': self.weight,
        }


class CommandRegistry:
    """Host-side registry of context-menu items."""

    def __init__(self):
        self._items: Dict[str, ContextMenuItem] = {}

    def register(self, item: ContextMenuItem):
        if item.id in self._items:
            raise ValueError(f"Menu item already registered: {item.id}")
        self._items[item.id] = item

    def unregister(self, item_id: str):
        if item_id not in self._items:
            raise KeyError(f"Menu item not registered: {item_id}")
        del self._items[item_id]

    def get_item(self, item_id: str) -> Optional[ContextMenuItem]:
        return self._items.get(item_id)

    def items_for_scope(self, scope_type: ScopeType) -> List[ContextMenuItem]:
        """Items of one scope type, heaviest first."""
        items = [item for item in self._items.values() if item.scope_type == scope_type]
        return sorted(items, key=lambda item: item.weight, reverse=True)

    def invoke(self, item_id: str, scope: MenuScope) -> bool:
        """Run an item's callback if it is registered and enabled."""
        item = self.get_item(item_id)
        if item is None or not item.is_enabled(scope):
            return False
        item.callback(scope)
        return True


class ClipboardPlugin:
    """Wires copy/paste commands and pointer tracking into a host canvas."""

    def __init__(self, transfer: ClipboardTransfer, config: Optional[ClipboardConfig] = None,
                 tracker: Optional[PointerTracker] = None,
                 dispatcher: Optional[Callable[[Awaitable], Any]] = None):
        self.transfer = transfer
        self.dispatcher = dispatcher
        self.config = config or transfer.config
        self.tracker = tracker or default_tracker
        self._pending: Set[asyncio.Task] = set()
        self.logger = logging.getLogger(__name__)

    def build_items(self) -> List[ContextMenuItem]:
        copy_item = ContextMenuItem(
            id=COPY_ITEM_ID,
            display_text=self.config.copy_label,
            scope_type=ScopeType.BLOCK,
            callback=self._on_copy,
            weight=self.config.menu_weight,
        )
        paste_item = ContextMenuItem(
            id=PASTE_ITEM_ID,
            display_text=self.config.paste_label,
            scope_type=ScopeType.WORKSPACE,
            callback=self._on_paste,
            weight=self.config.menu_weight,
        )
        return [copy_item, paste_item]

    def initialize_workspace(self, workspace: Any, registry: CommandRegistry) -> bool:
        """Register both commands (replacing stale ones) and start pointer tracking."""
        try:
            for item in self.build_items():
                if registry.get_item(item.id) is not None:
                    registry.unregister(item.id)
                registry.register(item)
            attach_pointer_tracking(workspace, self.tracker)
            self.logger.info("Initialized (transform-based pointer mapping)")
            return True
        except Exception as e:
            self.logger.error(f"Initialization failed: {e}")
            return False

    def cleanup(self, registry: CommandRegistry) -> None:
        for item_id in (COPY_ITEM_ID, PASTE_ITEM_ID):
            if registry.get_item(item_id) is not None:
                registry.unregister(item_id)

    def _on_copy(self, scope: MenuScope) -> None:
        if scope is not None and scope.block is not None:
            self._dispatch(self.transfer.copy_node(scope.block))

    def _on_paste(self, scope: MenuScope) -> None:
        self._dispatch(self.transfer.paste())

    def _dispatch(self, coro) -> None:
        """Hand to the dispatcher, else schedule on the running loop, else run to completion."""
        if self.dispatcher is not None:
            self.dispatcher(coro)
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(coro)
            return
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
