"""Core data models shared across shapegen components."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

PRIMITIVE_KINDS = ("string", "number", "boolean")


@dataclass(frozen=True)
class PrimitiveShape:
    """A scalar value: string, number or boolean."""

    primitive: str
    kind: str = field(default="primitive", init=False)

    def __post_init__(self) -> None:
        if self.primitive not in PRIMITIVE_KINDS:
            raise ValueError(f"Unsupported primitive kind: {self.primitive!r}")


@dataclass(frozen=True)
class ArrayShape:
    """A homogeneous list whose element is itself a shape."""

    element: "Shape"
    kind: str = field(default="array", init=False)


@dataclass(frozen=True)
class ObjectShape:
    """A record with fields kept in first-seen order."""

    fields: Tuple[Tuple[str, "Shape"], ...] = ()
    kind: str = field(default="object", init=False)

    @classmethod
    def from_items(cls, items: Iterable[Tuple[str, "Shape"]]) -> "ObjectShape":
        """Build an object shape; a repeated key keeps its first position."""
        ordered: Dict[str, Shape] = {}
        for name, shape in items:
            ordered[name] = shape
        return cls(fields=tuple(ordered.items()))


@dataclass(frozen=True)
class UnknownShape:
    """Inference failed or the construct is unsupported."""

    kind: str = field(default="unknown", init=False)


Shape = Union[PrimitiveShape, ArrayShape, ObjectShape, UnknownShape]

STRING = PrimitiveShape("string")
NUMBER = PrimitiveShape("number")
BOOLEAN = PrimitiveShape("boolean")
UNKNOWN = UnknownShape()


@dataclass(frozen=True)
class AnalyzableMember:
    """A service method together with its inferred return shape."""

    unit_name: str
    member_name: str
    shape: Shape
    declaration_name: str


@dataclass
class UnitAnalysis:
    """Analysis result for a single owning unit (service class)."""

    unit_name: str
    source_path: Path
    members: List[AnalyzableMember] = field(default_factory=list)


@dataclass
class DeclaredUnit:
    """An owning unit whose declarations module exists on disk."""

    unit_name: str
    lookup_name: str
    module_path: Path
    members: Dict[str, str] = field(default_factory=dict)

    def declaration_for(self, member: str) -> Optional[str]:
        return self.members.get(member)


@dataclass(frozen=True)
class EndpointMapping:
    """Resolved documentation data for one controller handler."""

    endpoint_key: str
    handler: str
    owning_unit: str
    member: str
    declaration_name: str
    reference: str
    is_array: bool
    status: str
    verb: Optional[str]


@dataclass
class EndpointUnit:
    """Controller class paired with its owning unit."""

    key: str
    class_name: str
    owning_unit: str
    source_path: Path
    handlers: Dict[str, EndpointMapping] = field(default_factory=dict)


@dataclass
class LookupTable:
    """Generation-time mapping from (endpoint key, handler) to mappings."""

    declared_units: Dict[str, DeclaredUnit] = field(default_factory=dict)
    endpoints: Dict[str, EndpointUnit] = field(default_factory=dict)

    def get(self, endpoint_key: str, handler: str) -> Optional[EndpointMapping]:
        unit = self.endpoints.get(endpoint_key)
        if unit is None:
            return None
        return unit.handlers.get(handler)

    def declared_unit(self, unit_name: str) -> Optional[DeclaredUnit]:
        return self.declared_units.get(unit_name)


__all__ = [
    "AnalyzableMember",
    "ArrayShape",
    "BOOLEAN",
    "DeclaredUnit",
    "EndpointMapping",
    "EndpointUnit",
    "LookupTable",
    "NUMBER",
    "ObjectShape",
    "PRIMITIVE_KINDS",
    "PrimitiveShape",
    "STRING",
    "Shape",
    "UNKNOWN",
    "UnitAnalysis",
    "UnknownShape",
]
