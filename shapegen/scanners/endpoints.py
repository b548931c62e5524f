"""Pair endpoint units (controllers) with declared owning units."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from tree_sitter import Node

from ..analyzers.endpoints import (
    classify_status,
    detect_http_verb,
    endpoint_key,
    handler_methods,
    is_array_handler,
)
from ..analyzers.naming import MODULE_SUFFIX, NamingResolver
from ..analyzers.tree_sitter import ParsedSource, SourceParser, first_named, named_children
from ..config import ShapegenConfig
from ..errors import ConfigurationFailure, UnitFailure
from ..io import read_source
from ..logging import get_logger
from ..models import DeclaredUnit, EndpointMapping, EndpointUnit, LookupTable
from ..repo_scanner import SourceScanner

_WRAPPED_VALUES = {"as_expression", "satisfies_expression", "parenthesized_expression"}


class EndpointScanner:
    """Builds the :class:`LookupTable` from controller sources.

    This is the only producer of lookup tables; the rewriter and the emitted
    runtime helper only read them.
    """

    def __init__(
        self,
        config: Optional[ShapegenConfig] = None,
        *,
        scanner: Optional[SourceScanner] = None,
        parser: Optional[SourceParser] = None,
    ) -> None:
        self.config = config or ShapegenConfig(root=Path.cwd())
        self.scanner = scanner or SourceScanner(self.config.exclude_paths)
        self.parser = parser or SourceParser()
        self.naming = NamingResolver(self.config.conventions.response_suffix)
        self.logger = get_logger("scanners.endpoints")

    def scan(self, root: Path, pattern: str, declared_units: Dict[str, DeclaredUnit]) -> LookupTable:
        table = LookupTable(declared_units=dict(declared_units))
        for path in self.scanner.list_paths(root, pattern):
            try:
                text = read_source(path)
            except UnitFailure as exc:
                self.logger.error("Skipping endpoint unit: %s", exc)
                continue
            self.scan_source(text, path, table)
        return table

    def scan_source(self, text: str, path: Path, table: LookupTable) -> None:
        """Add every endpoint class found in ``text`` to ``table``."""
        conventions = self.config.conventions
        source = self.parser.parse(text)
        for cls in source.classes():
            key = endpoint_key(cls.name, conventions.endpoint_suffix)
            if key is None:
                continue
            owning_unit = f"{key}{conventions.unit_suffix}"
            declared = table.declared_unit(owning_unit)
            if declared is None:
                failure = ConfigurationFailure(
                    cls.name, owning_unit, f"no declarations were generated for {owning_unit}"
                )
                self.logger.warning("Skipping endpoint unit %s", failure)
                continue

            unit = table.endpoints.get(key)
            if unit is None:
                unit = EndpointUnit(
                    key=key, class_name=cls.name, owning_unit=owning_unit, source_path=Path(path)
                )
                table.endpoints[key] = unit
            else:
                self.logger.warning(
                    "Endpoint key %s is declared in both %s and %s; merging handlers",
                    key,
                    unit.source_path,
                    path,
                )

            for method in handler_methods(cls.methods):
                verb = detect_http_verb(method, conventions.http_verbs)
                if verb is None:
                    continue
                mapping = self.map_handler(key, method.name, verb, declared)
                if mapping is None:
                    self.logger.warning(
                        "%s.%s has no matching member on %s; skipping",
                        cls.name,
                        method.name,
                        owning_unit,
                    )
                    continue
                unit.handlers.setdefault(method.name, mapping)

            self.logger.info("Mapped %d handlers for %s", len(unit.handlers), cls.name)

    def map_handler(
        self, key: str, handler: str, verb: Optional[str], declared: DeclaredUnit
    ) -> Optional[EndpointMapping]:
        declaration = declared.declaration_for(handler)
        if declaration is None:
            return None
        return EndpointMapping(
            endpoint_key=key,
            handler=handler,
            owning_unit=declared.unit_name,
            member=handler,
            declaration_name=declaration,
            reference=f"{declared.lookup_name}.{handler}",
            is_array=is_array_handler(handler),
            status=classify_status(verb, self.config.conventions.create_verb),
            verb=verb,
        )

    # ------------------------------------------------------------------
    # Declared units from existing modules

    def load_declared_units(self, declarations_dir: Path) -> Dict[str, DeclaredUnit]:
        """Recover declared units from generated modules without executing them."""
        units: Dict[str, DeclaredUnit] = {}
        declarations_dir = Path(declarations_dir)
        if not declarations_dir.is_dir():
            self.logger.warning("Declarations directory %s does not exist", declarations_dir)
            return units

        for path in sorted(declarations_dir.glob(f"*{MODULE_SUFFIX}")):
            try:
                text = read_source(path)
            except UnitFailure as exc:
                self.logger.error("Skipping declarations module: %s", exc)
                continue
            unit = self.read_declared_unit(self.parser.parse(text), path)
            if unit is None:
                self.logger.warning("No lookup object found in %s", path)
                continue
            units[unit.unit_name] = unit
        return units

    def read_declared_unit(self, source: ParsedSource, path: Path) -> Optional[DeclaredUnit]:
        suffix = self.config.conventions.response_suffix
        for name, value in source.exported_constants().items():
            if not name.endswith(suffix) or len(name) == len(suffix):
                continue
            members = _lookup_members(source, value)
            if members is None:
                continue
            return DeclaredUnit(
                unit_name=name[: -len(suffix)],
                lookup_name=name,
                module_path=Path(path),
                members=members,
            )
        return None


def _lookup_members(source: ParsedSource, value: Node) -> Optional[Dict[str, str]]:
    """Read ``{ member: Declaration, ... }``; None when ``value`` is not such an object."""
    while value.type in _WRAPPED_VALUES:
        inner = first_named(value)
        if inner is None:
            return None
        value = inner
    if value.type != "object":
        return None

    members: Dict[str, str] = {}
    for pair in named_children(value):
        if pair.type != "pair":
            return None
        key = pair.child_by_field_name("key")
        target = pair.child_by_field_name("value")
        if key is None or target is None or target.type != "identifier":
            return None
        if key.type == "string":
            members[source.string_value(key)] = source.node_text(target)
        else:
            members[source.node_text(key)] = source.node_text(target)
    return members


def build_lookup_table(
    root: Path,
    pattern: str,
    declared_units: Dict[str, DeclaredUnit],
    config: Optional[ShapegenConfig] = None,
) -> LookupTable:
    return EndpointScanner(config).scan(root, pattern, declared_units)


__all__ = ["EndpointScanner", "build_lookup_table"]
