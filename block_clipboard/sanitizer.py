"""
Field repair for pasted trees.

The sanitizer walks a payload and repairs field values so they are valid in
the destination:

- variable-like fields (``VAR``, ``VARIABLE``, ``VAR*``) are resolved to a
  plain name, the variable is created if the destination lacks it, and
  structured values are normalized to the plain-name form;
- every other string field is treated as a possible dropdown value and
  replaced with the first valid option when the destination rejects it.

Identity-sensitive kinds (variable references and argument slots) are never
inspected or rewritten. Each field produces a ``FieldRepair`` so the outcome
of a pass is observable; a failing repair is recorded and skipped, never
raised.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .config import ClipboardConfig
from .models import (
    SerializedNode, is_structured_variable, variable_value_name, variable_value_type
)
from .traversal import traverse
from .variables import VariableDirectory


class RepairAction(Enum):
    """What sanitization did to one field."""
    UNCHANGED = "unchanged"
    VARIABLE_ENSURED = "variable_ensured"
    VARIABLE_NORMALIZED = "variable_normalized"
    OPTION_REPLACED = "option_replaced"
    UNVERIFIED = "unverified"
    SKIPPED = "skipped"


@dataclass
class FieldRepair:
    """Result of sanitizing a single field."""
    node_kind: str
    field_name: str
    action: RepairAction
    original_value: Any = None
    new_value: Any = None
    variable_created: bool = False
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.action != RepairAction.SKIPPED

    @property
    def changed(self) -> bool:
        return self.action in (RepairAction.VARIABLE_NORMALIZED, RepairAction.OPTION_REPLACED)


@dataclass
class SanitizationReport:
    """Aggregate outcome of one sanitization pass."""
    payload: Optional[SerializedNode] = None
    repairs: List[FieldRepair] = field(default_factory=list)
    nodes_visited: int = 0
    protected_nodes: int = 0

    @property
    def skipped(self) -> List[FieldRepair]:
        return [r for r in self.repairs if not r.succeeded]

    @property
    def changed(self) -> List[FieldRepair]:
        return [r for r in self.repairs if r.changed]

    @property
    def variables_created(self) -> int:
        return sum(1 for r in self.repairs if r.variable_created)

    @property
    def is_clean(self) -> bool:
        """True when no field needed changing and none failed."""
        return not self.changed and not self.skipped


def option_values(options: Any) -> List[Any]:
    """Values of an option list given as ``[label, value]`` pairs or plain values."""
    values = []
    for option in options or []:
        if isinstance(option, (list, tuple)) and len(option) >= 2:
            values.append(option[1])
        else:
            values.append(option)
    return values


class OptionLookup:
    """Queries the destination for a field's valid dropdown options.

    Tries the host's direct option query first, then a disposable temporary
    node of the same kind. Returns None when the destination cannot answer.
    """

    def __init__(self, canvas: Any):
        self.canvas = canvas
        self._cache: Dict[Tuple[str, str], Optional[List[Any]]] = {}
        self.logger = logging.getLogger(__name__)

    def valid_options(self, kind: str, field_name: str) -> Optional[List[Any]]:
        key = (kind, field_name)
        if key not in self._cache:
            self._cache[key] = self._query(kind, field_name)
        return self._cache[key]

    def _query(self, kind: str, field_name: str) -> Optional[List[Any]]:
        direct = getattr(self.canvas, 'get_field_options', None)
        if callable(direct):
            options = direct(kind, field_name)
            return None if options is None else option_values(options)

        new_block = getattr(self.canvas, 'new_block', None)
        if not callable(new_block):
            return None
        temp = new_block(kind)
        try:
            field_obj = temp.get_field(field_name)
            get_options = getattr(field_obj, 'get_options', None) if field_obj is not None else None
            if not callable(get_options):
                return None
            options = get_options()
            return None if options is None else option_values(options)
        finally:
            dispose = getattr(temp, 'dispose', None)
            if callable(dispose):
                dispose(False)


class Sanitizer:
    """Repairs field values of a tree in place for a destination canvas."""

    def __init__(self, canvas: Any, config: Optional[ClipboardConfig] = None,
                 directory: Optional[VariableDirectory] = None):
        self.canvas = canvas
        self.config = config or ClipboardConfig()
        self.directory = directory or VariableDirectory(canvas)
        self.options = OptionLookup(canvas)
        self.logger = logging.getLogger(__name__)

    def run(self, root: SerializedNode) -> SanitizationReport:
        """Sanitize ``root`` in place and report every field's outcome."""
        report = SanitizationReport(payload=root)

        def visit(node: SerializedNode):
            report.nodes_visited += 1
            if self.config.is_identity_sensitive(node.kind):
                report.protected_nodes += 1
                return
            for field_name in list(node.fields.keys()):
                if self.config.is_variable_field(field_name):
                    report.repairs.append(self._repair_variable_field(node, field_name))
                elif isinstance(node.fields[field_name], str):
                    report.repairs.append(self._repair_option_field(node, field_name))

        traverse(root, visit)

        if report.skipped:
            self.logger.warning(f"Sanitization skipped {len(report.skipped)} field repair(s)")
        return report

    def _repair_variable_field(self, node: SerializedNode, field_name: str) -> FieldRepair:
        value = node.fields[field_name]
        repair = FieldRepair(node.kind, field_name, RepairAction.UNCHANGED, value, value)
        try:
            name = variable_value_name(value)
            if not name:
                return repair
            _, created = self.directory.ensure(name, variable_value_type(value))
            repair.variable_created = created
            repair.action = RepairAction.VARIABLE_ENSURED
            if is_structured_variable(value):
                node.fields[field_name] = name
                repair.new_value = name
                repair.action = RepairAction.VARIABLE_NORMALIZED
        except Exception as e:
            repair.action = RepairAction.SKIPPED
            repair.error_message = str(e)
            self.logger.debug(f"Variable repair of {node.kind}.{field_name} skipped: {e}")
        return repair

    def _repair_option_field(self, node: SerializedNode, field_name: str) -> FieldRepair:
        value = node.fields[field_name]
        repair = FieldRepair(node.kind, field_name, RepairAction.UNCHANGED, value, value)
        try:
            valid = self.options.valid_options(node.kind, field_name)
            if valid is None:
                repair.action = RepairAction.UNVERIFIED
            elif value not in valid:
                replacement = valid[0] if valid else ""
                if replacement == value:
                    return repair
                node.fields[field_name] = replacement
                repair.new_value = replacement
                repair.action = RepairAction.OPTION_REPLACED
        except Exception as e:
            repair.action = RepairAction.SKIPPED
            repair.error_message = str(e)
            self.logger.debug(f"Option repair of {node.kind}.{field_name} skipped: {e}")
        return repair


def sanitize(payload: SerializedNode, destination: Any,
             config: Optional[ClipboardConfig] = None) -> SerializedNode:
    """Sanitize ``payload`` for ``destination`` in place and return the same tree."""
    Sanitizer(destination, config).run(payload)
    return payload
