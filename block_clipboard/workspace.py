"""
In-memory block workspace.

This module provides a ``Workspace`` that implements every host capability
the clipboard consumes: viewport metrics and the screen transform of its
rendering surface, pointer events, a variable map, block definitions with
dropdown options, a block serializer, and materialization from the
structured and legacy XML formats. It backs the web interface and the test
suite.
"""

import uuid
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .coordinates import PointerEvent, TransformMatrix


@dataclass
class ViewportState:
    """Represents the current viewport state."""
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    width: float = 1920.0
    height: float = 1080.0
    origin_x: float = 0.0  # Screen position of the surface's top-left corner
    origin_y: float = 0.0

    def world_to_screen(self, world_x: float, world_y: float) -> Tuple[float, float]:
        """Convert world coordinates to screen coordinates."""
        screen_x = (world_x + self.pan_x) * self.zoom + self.origin_x
        screen_y = (world_y + self.pan_y) * self.zoom + self.origin_y
        return screen_x, screen_y

    def screen_to_world(self, screen_x: float, screen_y: float) -> Tuple[float, float]:
        """Convert screen coordinates to world coordinates."""
        world_x = ((screen_x - self.origin_x) / self.zoom) - self.pan_x
        world_y = ((screen_y - self.origin_y) / self.zoom) - self.pan_y
        return world_x, world_y

    def screen_ctm(self) -> TransformMatrix:
        """The canvas-to-screen transform matrix."""
        return TransformMatrix.scale_translate(
            self.zoom,
            self.origin_x + self.pan_x * self.zoom,
            self.origin_y + self.pan_y * self.zoom,
        )

    def metrics(self) -> Dict[str, float]:
        """Visible area in canvas units."""
        return {
            'view_left': -self.pan_x,
            'view_top': -self.pan_y,
            'view_width': self.width / self.zoom,
            'view_height': self.height / self.zoom,
        }


class RenderSurface:
    """The drawing surface of a workspace: screen transform, bounds and pointer events."""

    def __init__(self, viewport: ViewportState):
        self.viewport = viewport
        self.transform_available = True
        self._listeners: Dict[str, List[Callable[[Any], None]]] = {}

    def get_screen_ctm(self) -> Optional[TransformMatrix]:
        if not self.transform_available:
            return None
        return self.viewport.screen_ctm()

    def get_bounding_client_rect(self) -> Dict[str, float]:
        return {
            'left': self.viewport.origin_x,
            'top': self.viewport.origin_y,
            'width': self.viewport.width,
            'height': self.viewport.height,
        }

    def add_event_listener(self, event_type: str, callback: Callable[[Any], None]):
        self._listeners.setdefault(event_type, []).append(callback)

    def dispatch_event(self, event_type: str, event: Any):
        for callback in list(self._listeners.get(event_type, [])):
            callback(event)


@dataclass
class VariableModel:
    """A variable in the workspace's variable map."""
    name: str
    type: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    is_object_var: bool = False

    def to_dict(self) -> Dict[str, str]:
        return {'id': self.id, 'name': self.name, 'type': self.type}


class VariableMap:
    """Variables of a workspace, keyed by id."""

    def __init__(self):
        self._variables: Dict[str, VariableModel] = {}

    def get_variable_by_id(self, var_id: str) -> Optional[VariableModel]:
        return self._variables.get(var_id)

    def get_variable(self, name: str, var_type: Optional[str] = None) -> Optional[VariableModel]:
        """Find a variable by name, optionally restricted to a type."""
        for variable in self._variables.values():
            if variable.name == name and (var_type is None or variable.type == var_type):
                return variable
        return None

    def get_variable_by_name(self, name: str) -> Optional[VariableModel]:
        return self.get_variable(name)

    def create_variable(self, name: str, var_type: str = "", var_id: Optional[str] = None,
                        is_object_var: bool = False) -> VariableModel:
        """Create a variable; an existing name with the same type is returned unchanged."""
        existing = self.get_variable(name)
        if existing is not None:
            if existing.type != var_type:
                raise ValueError(f"Variable '{name}' already exists with type '{existing.type}'")
            return existing
        if var_id and var_id in self._variables:
            raise ValueError(f"Variable id already in use: {var_id}")
        variable = VariableModel(name=name, type=var_type or "", is_object_var=is_object_var)
        if var_id:
            variable.id = var_id
        self._variables[variable.id] = variable
        return variable

    def get_all_variables(self) -> List[VariableModel]:
        return list(self._variables.values())


@dataclass
class BlockDefinition:
    """Shape of a block kind: its dropdown fields and variable fields."""
    kind: str
    dropdowns: Dict[str, List[Tuple[str, str]]] = field(default_factory=dict)
    variable_fields: Tuple[str, ...] = ()


@dataclass
class BlockField:
    """A field of a live block."""
    name: str
    value: Any = None
    options: Optional[List[Tuple[str, str]]] = None

    def get_options(self) -> Optional[List[Tuple[str, str]]]:
        return self.options


@dataclass
class Block:
    """A live block on the workspace."""
    kind: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    fields: Dict[str, Any] = field(default_factory=dict)
    inputs: Dict[str, Dict[str, 'Block']] = field(default_factory=dict)
    next_block: Optional['Block'] = None
    parent: Optional['Block'] = None
    x: float = 0.0
    y: float = 0.0
    extra_state: Any = None
    definition: Optional[BlockDefinition] = None
    disposed: bool = False

    def get_field(self, name: str) -> Optional[BlockField]:
        options = None
        if self.definition is not None:
            options = self.definition.dropdowns.get(name)
        if name not in self.fields and options is None:
            return None
        return BlockField(name, self.fields.get(name), options)

    def set_input(self, name: str, child: 'Block', shadow: bool = False):
        self.inputs.setdefault(name, {})['shadow' if shadow else 'block'] = child
        child.parent = self

    def set_next(self, child: 'Block'):
        self.next_block = child
        child.parent = self

    def dispose(self, heal_stack: bool = False):
        self.disposed = True


class Workspace:
    """In-memory canvas implementing the clipboard's host capabilities."""

    def __init__(self, width: float = 1920.0, height: float = 1080.0,
                 definitions: Optional[List[BlockDefinition]] = None):
        self.viewport = ViewportState(width=width, height=height)
        self.surface = RenderSurface(self.viewport)
        self.variable_map = VariableMap()
        self.definitions: Dict[str, BlockDefinition] = {}
        self.blocks: Dict[str, Block] = {}
        self.top_blocks: List[Block] = []

        for definition in definitions or []:
            self.define_block(definition)

    # Viewport

    @property
    def scale(self) -> float:
        return self.viewport.zoom

    @property
    def scroll_x(self) -> float:
        return -self.viewport.pan_x

    @property
    def scroll_y(self) -> float:
        return -self.viewport.pan_y

    def set_zoom(self, zoom: float):
        """Set the zoom level, clamped between 0.1x and 5x."""
        self.viewport.zoom = max(0.1, min(zoom, 5.0))

    def pan_viewport(self, delta_x: float, delta_y: float):
        """Pan the viewport by the given screen delta."""
        self.viewport.pan_x += delta_x / self.viewport.zoom
        self.viewport.pan_y += delta_y / self.viewport.zoom

    def get_metrics(self) -> Dict[str, float]:
        return self.viewport.metrics()

    def get_canvas(self) -> RenderSurface:
        return self.surface

    def get_parent_svg(self) -> RenderSurface:
        return self.surface

    def dispatch_pointer(self, client_x: float, client_y: float):
        """Deliver a pointer-move event to the surface's listeners."""
        self.surface.dispatch_event("pointermove", PointerEvent(client_x, client_y))

    # Variables

    def get_variable_map(self) -> VariableMap:
        return self.variable_map

    def create_variable(self, name: str, var_type: str = "", var_id: Optional[str] = None,
                        is_object_var: bool = False) -> VariableModel:
        return self.variable_map.create_variable(name, var_type, var_id, is_object_var)

    # Block definitions

    def define_block(self, definition: BlockDefinition):
        self.definitions[definition.kind] = definition

    def get_field_options(self, kind: str, field_name: str) -> Optional[List[Tuple[str, str]]]:
        """Dropdown options of a field; None for unknown kinds and non-dropdown fields."""
        definition = self.definitions.get(kind)
        if definition is None:
            return None
        return definition.dropdowns.get(field_name)

    def new_block(self, kind: str) -> Block:
        """Create a detached block of a defined kind."""
        if kind not in self.definitions:
            raise KeyError(f"Unknown block kind: {kind}")
        definition = self.definitions[kind]
        fields = {name: options[0][1] for name, options in definition.dropdowns.items() if options}
        return Block(kind=kind, fields=fields, definition=definition)

    # Blocks

    def add_block(self, kind: str, fields: Optional[Dict[str, Any]] = None,
                  x: float = 0.0, y: float = 0.0, top_level: bool = True) -> Block:
        definition = self.definitions.get(kind)
        fields = dict(fields or {})
        if definition is not None:
            for name in definition.variable_fields:
                if name in fields:
                    fields[name] = self._resolve_variable(fields[name]).id
        block = Block(kind=kind, fields=fields, x=x, y=y, definition=definition)
        self.blocks[block.id] = block
        if top_level:
            self.top_blocks.append(block)
        return block

    def get_block(self, block_id: str) -> Optional[Block]:
        return self.blocks.get(block_id)

    def get_top_blocks(self) -> List[Block]:
        return list(self.top_blocks)

    def serialize_block(self, block: Block) -> Dict[str, Any]:
        """Save a block, its inputs and its next chain in the wire dictionary form."""
        data: Dict[str, Any] = {'type': block.kind, 'id': block.id}
        if block.parent is None:
            data['x'] = block.x
            data['y'] = block.y
        if block.extra_state is not None:
            data['extraState'] = block.extra_state
        if block.fields:
            data['fields'] = {name: self._serialize_field(block, name, value)
                              for name, value in block.fields.items()}
        if block.inputs:
            data['inputs'] = {
                name: {slot: self.serialize_block(child) for slot, child in attachment.items()}
                for name, attachment in block.inputs.items()
            }
        if block.next_block is not None:
            data['next'] = {'block': self.serialize_block(block.next_block)}
        return data

    def _serialize_field(self, block: Block, name: str, value: Any) -> Any:
        # Variable fields hold variable ids on live blocks.
        if block.definition is not None and name in block.definition.variable_fields:
            variable = self.variable_map.get_variable_by_id(value)
            if variable is not None:
                return variable.to_dict()
        return value

    def append(self, data: Dict[str, Any]) -> Block:
        """Materialize a serialized tree as a new top-level block.

        Raises:
            ValueError: If the tree references a variable the workspace lacks
        """
        self._check_variables(data)
        block = self._build(data, parent=None)
        self.top_blocks.append(block)
        return block

    def _check_variables(self, data: Dict[str, Any]):
        definition = self.definitions.get(data.get('type'))
        if definition is not None:
            for name in definition.variable_fields:
                if name in (data.get('fields') or {}):
                    self._resolve_variable(data['fields'][name])
        for attachment in (data.get('inputs') or {}).values():
            for child in attachment.values():
                if isinstance(child, dict):
                    self._check_variables(child)
        next_data = (data.get('next') or {}).get('block')
        if next_data:
            self._check_variables(next_data)

    def _resolve_variable(self, value: Any) -> VariableModel:
        variable = None
        if isinstance(value, dict):
            if value.get('id'):
                variable = self.variable_map.get_variable_by_id(value['id'])
            if variable is None and value.get('name'):
                variable = self.variable_map.get_variable(value['name'])
        elif isinstance(value, str):
            variable = self.variable_map.get_variable_by_id(value) or self.variable_map.get_variable(value)
        if variable is None:
            raise ValueError(f"Unknown variable reference: {value!r}")
        return variable

    def _build(self, data: Dict[str, Any], parent: Optional[Block]) -> Block:
        kind = data['type']
        definition = self.definitions.get(kind)
        block_id = data.get('id')
        if not block_id or block_id in self.blocks:
            block_id = str(uuid.uuid4())

        fields = dict(data.get('fields') or {})
        if definition is not None:
            for name in definition.variable_fields:
                if name in fields:
                    fields[name] = self._resolve_variable(fields[name]).id

        block = Block(
            kind=kind, id=block_id, fields=fields, parent=parent,
            x=data.get('x', 0.0), y=data.get('y', 0.0),
            extra_state=data.get('extraState'), definition=definition,
        )
        self.blocks[block.id] = block

        for name, attachment in (data.get('inputs') or {}).items():
            for slot in ('block', 'shadow'):
                if attachment.get(slot):
                    block.set_input(name, self._build(attachment[slot], block), shadow=(slot == 'shadow'))
        next_data = (data.get('next') or {}).get('block')
        if next_data:
            block.set_next(self._build(next_data, block))
        return block

    def load_legacy_markup(self, markup: str) -> List[Block]:
        """Materialize every top-level block of a legacy XML document."""
        root = ET.fromstring(markup)
        trees = [self._xml_to_dict(element) for element in root if element.tag in ('block', 'shadow')]
        for tree in trees:
            self._check_variables(tree)
        return [self.append(tree) for tree in trees]

    def _xml_to_dict(self, element: ET.Element) -> Dict[str, Any]:
        data: Dict[str, Any] = {'type': element.get('type', '')}
        if element.get('id'):
            data['id'] = element.get('id')
        if element.get('x') is not None:
            data['x'] = float(element.get('x'))
        if element.get('y') is not None:
            data['y'] = float(element.get('y'))

        for child in element:
            if child.tag == 'field':
                value: Any = child.text or ""
                if child.get('id'):
                    value = {'id': child.get('id'), 'name': value,
                             'type': child.get('variabletype', '')}
                data.setdefault('fields', {})[child.get('name')] = value
            elif child.tag in ('value', 'statement'):
                attachment = {}
                for nested in child:
                    if nested.tag in ('block', 'shadow'):
                        attachment[nested.tag] = self._xml_to_dict(nested)
                data.setdefault('inputs', {})[child.get('name')] = attachment
            elif child.tag == 'next':
                for nested in child:
                    if nested.tag == 'block':
                        data['next'] = {'block': self._xml_to_dict(nested)}
        return data

    def get_state(self) -> Dict[str, Any]:
        """Get the current state of the workspace."""
        return {
            'viewport': {
                'zoom': self.viewport.zoom,
                'pan_x': self.viewport.pan_x,
                'pan_y': self.viewport.pan_y,
                'width': self.viewport.width,
                'height': self.viewport.height
            },
            'variables': [variable.to_dict() for variable in self.variable_map.get_all_variables()],
            'top_blocks': [self.serialize_block(block) for block in self.top_blocks],
            'block_count': len(self.blocks)
        }
