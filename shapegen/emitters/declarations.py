"""Render inferred shapes as TypeScript declaration modules."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from ..analyzers.naming import NameRegistry, NamingResolver
from ..analyzers.shapes import is_id_like
from ..config import DocumentationConfig
from ..models import (
    AnalyzableMember,
    ArrayShape,
    ObjectShape,
    PrimitiveShape,
    Shape,
    UnitAnalysis,
    UnknownShape,
)

GENERATED_BANNER = "// Generated by shapegen. Do not edit by hand."

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def example_for(name: str, shape: Shape) -> Any:
    """Pick a sample value for a field from its name and primitive kind."""
    if not isinstance(shape, PrimitiveShape):
        return None
    lowered = name.lower()
    if shape.primitive == "string":
        if "email" in lowered:
            return "user@example.com"
        if "name" in lowered:
            return "example name"
        if "password" in lowered:
            return "password123"
        if "role" in lowered:
            return "user"
        return "example value"
    if shape.primitive == "number":
        return 1 if is_id_like(name) else 0
    return True


def ts_type(shape: Shape) -> str:
    if isinstance(shape, PrimitiveShape):
        return shape.primitive
    if isinstance(shape, ArrayShape):
        return f"{ts_type(shape.element)}[]"
    if isinstance(shape, ObjectShape):
        return "object"
    return "any"


def property_key(name: str) -> str:
    return name if _IDENTIFIER.match(name) else json.dumps(name)


@dataclass
class EmittedModule:
    """A rendered declarations module for one owning unit."""

    unit_name: str
    filename: str
    lookup_name: str
    text: str
    collisions: List[Tuple[str, str, str]] = field(default_factory=list)


class DeclarationEmitter:
    """Turns analyzed members into declaration source text.

    Child declarations for nested objects are emitted before the declaration
    that references them, since decorator metadata is evaluated at class
    definition time.
    """

    def __init__(
        self,
        naming: Optional[NamingResolver] = None,
        documentation: Optional[DocumentationConfig] = None,
    ) -> None:
        self.naming = naming or NamingResolver()
        self.documentation = documentation or DocumentationConfig()

    def emit_module(self, analysis: UnitAnalysis) -> Optional[EmittedModule]:
        """Render the module, or None when the unit has no analyzable members."""
        if not analysis.members:
            return None
        registry = NameRegistry(analysis.unit_name)
        blocks: List[str] = []
        for member in analysis.members:
            blocks.extend(self.emit_member(member, registry))

        lookup_name = self.naming.lookup_name(analysis.unit_name)
        sections = [
            GENERATED_BANNER,
            f"import {{ {self.documentation.property_decorator} }} from '{self.documentation.module}';",
            "",
            "\n\n".join(blocks),
            "",
            self.emit_lookup(lookup_name, analysis.members),
        ]
        return EmittedModule(
            unit_name=analysis.unit_name,
            filename=self.naming.module_filename(analysis.unit_name),
            lookup_name=lookup_name,
            text="\n".join(sections) + "\n",
            collisions=list(registry.collisions),
        )

    def emit_member(self, member: AnalyzableMember, registry: Optional[NameRegistry] = None) -> List[str]:
        registry = registry or NameRegistry(member.unit_name)
        return self._emit_top(member.declaration_name, member.shape, registry, member.member_name)

    def emit_lookup(self, lookup_name: str, members: List[AnalyzableMember]) -> str:
        entries = "\n".join(
            f"  {property_key(member.member_name)}: {member.declaration_name},"
            for member in members
        )
        type_name = self.naming.lookup_type_name(lookup_name)
        return (
            f"export const {lookup_name} = {{\n{entries}\n}} as const;\n\n"
            f"export type {type_name} = typeof {lookup_name};"
        )

    # ------------------------------------------------------------------
    # Declarations

    def _emit_top(self, name: str, shape: Shape, registry: NameRegistry, owner: str) -> List[str]:
        if isinstance(shape, ObjectShape):
            return self._emit_class(name, shape, registry, owner)

        if isinstance(shape, ArrayShape):
            item_name = self.naming.item_name(name)
            blocks = self._emit_top(item_name, shape.element, registry, owner)
            registry.claim(name, owner)
            blocks.append(
                f"// Use [{item_name}] in @{self.documentation.ok_decorator} for array responses\n"
                f"export const {name} = {item_name};\n"
                f"export type {name} = {item_name};"
            )
            return blocks

        registry.claim(name, owner)
        if isinstance(shape, UnknownShape):
            body = "  // Return type could not be inferred\n" + self._property("value", shape)
        else:
            body = self._property("value", shape)
        return [f"export class {name} {{\n{body}\n}}"]

    def _emit_class(
        self, name: str, shape: ObjectShape, registry: NameRegistry, owner: str
    ) -> List[str]:
        children: List[str] = []
        properties: List[str] = []
        for field_name, field_shape in shape.fields:
            if isinstance(field_shape, ObjectShape):
                child = self.naming.child_name(name, field_name)
                children.extend(self._emit_class(child, field_shape, registry, owner))
                properties.append(self._reference_property(field_name, child, is_array=False))
            elif isinstance(field_shape, ArrayShape) and isinstance(field_shape.element, ObjectShape):
                child = self.naming.child_name(name, field_name, item=True)
                children.extend(self._emit_class(child, field_shape.element, registry, owner))
                properties.append(self._reference_property(field_name, child, is_array=True))
            else:
                properties.append(self._property(field_name, field_shape))

        registry.claim(name, owner)
        if properties:
            declaration = f"export class {name} {{\n" + "\n\n".join(properties) + "\n}"
        else:
            declaration = f"export class {name} {{}}"
        return children + [declaration]

    # ------------------------------------------------------------------
    # Properties

    def _decorator(self, options: List[str]) -> str:
        decorator = self.documentation.property_decorator
        if not options:
            return f"@{decorator}()"
        return f"@{decorator}({{ {', '.join(options)} }})"

    def _reference_property(self, field_name: str, child: str, *, is_array: bool) -> str:
        options = [f"type: {child}"]
        if is_array:
            options.append("isArray: true")
        suffix = "[]" if is_array else ""
        return f"  {self._decorator(options)}\n  {property_key(field_name)}: {child}{suffix};"

    def _property(self, field_name: str, shape: Shape) -> str:
        options: List[str] = []
        if isinstance(shape, PrimitiveShape):
            options.append(f"example: {json.dumps(example_for(field_name, shape))}")
            options.append(f"type: '{shape.primitive}'")
        elif isinstance(shape, ArrayShape):
            if isinstance(shape.element, PrimitiveShape):
                options.append(f"type: '{shape.element.primitive}'")
            options.append("isArray: true")
        return f"  {self._decorator(options)}\n  {property_key(field_name)}: {ts_type(shape)};"


__all__ = [
    "DeclarationEmitter",
    "EmittedModule",
    "GENERATED_BANNER",
    "example_for",
    "property_key",
    "ts_type",
]
