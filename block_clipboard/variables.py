"""
Variable reconciliation for pasted trees.

Before any node is materialized, every variable the payload references must
exist in the destination. Extraction collects the referenced identities;
registration creates the missing ones. A destination variable that already
matches (by identity, then by name) always wins: paste never changes the type
or identity binding of a variable that is already in use.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from .config import ClipboardConfig
from .exceptions import CapabilityMissingError
from .models import (
    SerializedNode, VariableIdentity, is_structured_variable,
    variable_value_identity, variable_value_name, variable_value_type
)
from .traversal import traverse


def extract_variable_identities(root: Optional[SerializedNode],
                                config: Optional[ClipboardConfig] = None) -> List[VariableIdentity]:
    """Collect the variables a tree references, deduplicated by key, first occurrence winning."""
    config = config or ClipboardConfig()
    seen = set()
    identities: List[VariableIdentity] = []

    def visit(node: SerializedNode):
        for field_name, value in node.fields.items():
            if is_structured_variable(value):
                identity = VariableIdentity(
                    name=value['name'],
                    type=variable_value_type(value),
                    identity=variable_value_identity(value),
                    is_object_var=node.is_object_variable(),
                )
            elif isinstance(value, str) and value and config.is_variable_field(field_name):
                identity = VariableIdentity(name=value, is_object_var=node.is_object_variable())
            else:
                continue
            if identity.key in seen:
                continue
            seen.add(identity.key)
            identities.append(identity)

    traverse(root, visit)
    return identities


class VariableDirectory:
    """One lookup/creation interface over the destination's variable capabilities.

    Host builds expose overlapping APIs for the same operations, on the
    variable map and on the canvas itself. Each operation tries them in a
    fixed order and the first success wins.
    """

    ID_LOOKUPS = (
        ('table', 'get_variable_by_id'),
        ('canvas', 'get_variable_by_id'),
    )
    NAME_LOOKUPS = (
        ('table', 'get_variable'),
        ('table', 'get_variable_by_name'),
        ('canvas', 'get_variable'),
    )
    CREATORS = (
        ('table', 'create_variable'),
        ('canvas', 'create_variable'),
    )

    def __init__(self, canvas: Any, table: Any = None):
        self.canvas = canvas
        self.table = table if table is not None else self._resolve_table(canvas)
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _resolve_table(canvas: Any) -> Any:
        get_map = getattr(canvas, 'get_variable_map', None)
        if callable(get_map):
            return get_map()
        return None

    def _capabilities(self, paths: Tuple[Tuple[str, str], ...]) -> List[Tuple[str, Callable]]:
        owners = {'table': self.table, 'canvas': self.canvas}
        found = []
        for owner_name, method_name in paths:
            owner = owners[owner_name]
            method = getattr(owner, method_name, None) if owner is not None else None
            if callable(method):
                found.append((f"{owner_name}.{method_name}", method))
        return found

    def _lookup(self, paths, key: str) -> Any:
        for label, method in self._capabilities(paths):
            try:
                found = method(key)
            except Exception as e:
                self.logger.debug(f"{label}({key!r}) failed: {e}")
                continue
            if found is not None:
                return found
        return None

    def find_by_identity(self, identity: Optional[str]) -> Any:
        if not identity:
            return None
        return self._lookup(self.ID_LOOKUPS, identity)

    def find_by_name(self, name: str) -> Any:
        if not name:
            return None
        return self._lookup(self.NAME_LOOKUPS, name)

    def find(self, variable: VariableIdentity) -> Any:
        """Look a variable up by identity first, then by name."""
        found = self.find_by_identity(variable.identity)
        if found is None:
            found = self.find_by_name(variable.name)
        return found

    def create(self, name: str, var_type: str = "", identity: Optional[str] = None,
               is_object_var: bool = False) -> Any:
        """Create a variable, preserving identity and object flag where a creation path supports them.

        Each creation path is called with the richest argument list first and
        degrades on ``TypeError`` down to name and type only.

        Raises:
            CapabilityMissingError: If no creation path succeeds
        """
        creators = self._capabilities(self.CREATORS)
        if not creators:
            raise CapabilityMissingError("No variable creation capability available", "create_variable")

        calls = [((name, var_type, identity), {}), ((name, var_type), {})]
        if is_object_var:
            calls.insert(0, ((name, var_type, identity), {'is_object_var': True}))

        errors = []
        for label, method in creators:
            for args, kwargs in calls:
                try:
                    return method(*args, **kwargs)
                except TypeError as e:
                    # Older builds take fewer arguments.
                    self.logger.debug(f"{label} rejected {len(args)}-argument call: {e}")
                except Exception as e:
                    errors.append(f"{label}: {e}")
                    break
            else:
                errors.append(f"{label}: no accepted signature")

        raise CapabilityMissingError(
            f"Could not create variable '{name}'",
            "create_variable",
            details={'errors': errors},
        )

    def ensure(self, name: str, var_type: str = "") -> Tuple[Any, bool]:
        """Return ``(variable, created)``, creating a minimal variable when the name is unknown."""
        existing = self.find_by_name(name)
        if existing is not None:
            return existing, False
        return self.create(name, var_type), True


@dataclass
class ReconciliationReport:
    """Outcome of registering a payload's variables."""
    existing: List[VariableIdentity] = field(default_factory=list)
    created: List[VariableIdentity] = field(default_factory=list)
    failed: List[VariableIdentity] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed


class VariableReconciler:
    """Registers the variables a payload references in the destination table."""

    def __init__(self, directory: VariableDirectory, config: Optional[ClipboardConfig] = None):
        self.directory = directory
        self.config = config or ClipboardConfig()
        self.logger = logging.getLogger(__name__)

    def extract(self, root: SerializedNode) -> List[VariableIdentity]:
        return extract_variable_identities(root, self.config)

    def register_missing(self, identities: List[VariableIdentity]) -> ReconciliationReport:
        """Create every identity the destination lacks, in extraction order."""
        report = ReconciliationReport()
        for variable in identities:
            if self.directory.find(variable) is not None:
                report.existing.append(variable)
                continue
            try:
                self.directory.create(variable.name, variable.type, variable.identity,
                                      variable.is_object_var)
                report.created.append(variable)
                self.logger.debug(f"Created variable '{variable.name}' ({variable.type or 'untyped'})")
            except CapabilityMissingError as e:
                report.failed.append(variable)
                self.logger.warning(f"Variable '{variable.name}' could not be registered: {e}")
        return report

    def reconcile(self, root: SerializedNode) -> ReconciliationReport:
        return self.register_missing(self.extract(root))


def register_missing(canvas: Any, identities: List[VariableIdentity],
                     table: Any = None) -> ReconciliationReport:
    """Register the identities missing from ``canvas``'s variable table."""
    return VariableReconciler(VariableDirectory(canvas, table)).register_missing(identities)
