"""Structural return-shape inference over TypeScript syntax trees."""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from tree_sitter import Node

from ..errors import AnalysisFailure
from ..logging import get_logger
from ..models import (
    BOOLEAN,
    NUMBER,
    STRING,
    UNKNOWN,
    ArrayShape,
    ObjectShape,
    Shape,
    UnknownShape,
)
from .tree_sitter import MethodInfo, ParsedSource, first_named, named_children, walk

_USER_FIELDS = (
    ("id", NUMBER),
    ("firstname", STRING),
    ("lastname", STRING),
    ("email", STRING),
    ("role", STRING),
)

# Closed registry of well-known domain types. Anything else falls back to
# ``_DEFAULT_NAMED_SHAPE``; there is no user registration hook.
KNOWN_SHAPES: Dict[str, Shape] = {
    "User": ObjectShape(fields=_USER_FIELDS),
    "CreateUserDto": ObjectShape(
        fields=(
            ("firstname", STRING),
            ("lastname", STRING),
            ("email", STRING),
            ("password", STRING),
            ("role", STRING),
        )
    ),
    "UpdateUserDto": ObjectShape(
        fields=(
            ("firstname", STRING),
            ("lastname", STRING),
            ("email", STRING),
            ("role", STRING),
        )
    ),
}

PAGINATED_SHAPE: Shape = ObjectShape(
    fields=(
        ("data", ArrayShape(ObjectShape(fields=_USER_FIELDS))),
        (
            "meta",
            ObjectShape(
                fields=(
                    ("page", NUMBER),
                    ("limit", NUMBER),
                    ("total", NUMBER),
                    ("totalPages", NUMBER),
                    ("hasNext", BOOLEAN),
                    ("hasPrev", BOOLEAN),
                )
            ),
        ),
    )
)

_DEFAULT_NAMED_SHAPE: Shape = ObjectShape(fields=(("id", NUMBER),))

_PREDEFINED = {"string": STRING, "number": NUMBER, "boolean": BOOLEAN}

_UNWRAPPED_TYPES = {"parenthesized_type", "readonly_type"}
_UNWRAPPED_EXPRESSIONS = {
    "parenthesized_expression",
    "await_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
}
_FUNCTION_SCOPES = {
    "arrow_function",
    "function_expression",
    "function_declaration",
    "generator_function",
    "generator_function_declaration",
    "method_definition",
    "class_declaration",
    "class",
}

_ID_LIKE = re.compile(r"^id$|^ids$|(?:Id|ID|_id)s?$")


def is_id_like(name: str) -> bool:
    """Return True for ``id``, ``userId``, ``user_id``, ``parentIDs`` and friends."""
    return bool(_ID_LIKE.search(name)) or name.lower() == "id"


def is_email_like(name: str) -> bool:
    return "email" in name.lower()


def shorthand_shape(name: str) -> Shape:
    """Shape for ``{ name }`` shorthand properties, which carry no initializer."""
    if name == "id":
        return NUMBER
    return STRING


def named_type_shape(type_name: str) -> Shape:
    """Resolve a named type through the closed registry."""
    if type_name.endswith("[]"):
        return ArrayShape(named_type_shape(type_name[:-2]))
    known = KNOWN_SHAPES.get(type_name)
    if known is not None:
        return known
    if "Paginated" in type_name:
        return PAGINATED_SHAPE
    return _DEFAULT_NAMED_SHAPE


class TypeAnalyzer:
    """Turns a method declaration into a structural :class:`Shape`.

    The explicit return annotation wins when it yields a known shape; otherwise
    the first ``return`` statement of the method body is inspected. Nested
    function scopes are not searched for return statements.
    """

    def __init__(self) -> None:
        self.logger = get_logger("analyzers.shapes")

    def analyze_method(
        self, source: ParsedSource, method: MethodInfo, unit_name: str = "<unit>"
    ) -> Shape:
        try:
            return self._analyze_method(source, method)
        except Exception as exc:  # pragma: no cover - defensive guard
            failure = AnalysisFailure(unit_name, method.name, str(exc))
            self.logger.debug("Falling back to unknown shape: %s", failure)
            return UNKNOWN

    def _analyze_method(self, source: ParsedSource, method: MethodInfo) -> Shape:
        annotation = method.return_type
        if annotation is not None:
            explicit = self.analyze_type(source, annotation)
            if not isinstance(explicit, UnknownShape):
                return explicit

        body = method.body
        if body is None:
            return UNKNOWN
        returns = self.find_return_statements(body)
        if not returns:
            return UNKNOWN
        expression = first_named(returns[0])
        if expression is None:
            return UNKNOWN
        return self.analyze_expression(source, expression)

    @staticmethod
    def find_return_statements(body: Node) -> List[Node]:
        return [
            node
            for node in walk(body, stop=_FUNCTION_SCOPES)
            if node.type == "return_statement"
        ]

    # ------------------------------------------------------------------
    # Type annotations

    def analyze_type(self, source: ParsedSource, node: Node) -> Shape:
        kind = node.type

        if kind in _UNWRAPPED_TYPES:
            inner = first_named(node)
            return self.analyze_type(source, inner) if inner is not None else UNKNOWN

        if kind == "array_type":
            element = first_named(node)
            return ArrayShape(self.analyze_type(source, element) if element is not None else UNKNOWN)

        if kind == "object_type":
            return self._analyze_object_type(source, node)

        if kind == "generic_type":
            return self._analyze_generic_type(source, node)

        if kind == "type_identifier":
            return named_type_shape(source.node_text(node))

        if kind == "predefined_type":
            return _PREDEFINED.get(source.node_text(node).strip(), UNKNOWN)

        return UNKNOWN

    def _analyze_object_type(self, source: ParsedSource, node: Node) -> Shape:
        items = []
        for member in named_children(node):
            if member.type != "property_signature":
                continue
            name_node = member.child_by_field_name("name")
            if name_node is None or name_node.type != "property_identifier":
                continue
            annotation = member.child_by_field_name("type")
            type_node = first_named(annotation) if annotation is not None else None
            shape = self.analyze_type(source, type_node) if type_node is not None else UNKNOWN
            items.append((source.node_text(name_node), shape))
        return ObjectShape.from_items(items)

    def _analyze_generic_type(self, source: ParsedSource, node: Node) -> Shape:
        name = source.node_text(node.child_by_field_name("name"))
        arguments_node = node.child_by_field_name("type_arguments")
        arguments = named_children(arguments_node) if arguments_node is not None else []
        if len(arguments) == 1:
            if name in {"Array", "ReadonlyArray"}:
                return ArrayShape(self.analyze_type(source, arguments[0]))
            if name == "Promise":
                return self.analyze_type(source, arguments[0])
        return named_type_shape(name)

    # ------------------------------------------------------------------
    # Return expressions

    def analyze_expression(self, source: ParsedSource, node: Node) -> Shape:
        kind = node.type

        if kind in _UNWRAPPED_EXPRESSIONS:
            inner = first_named(node)
            return self.analyze_expression(source, inner) if inner is not None else UNKNOWN

        if kind == "array":
            elements = [child for child in named_children(node) if child.type != "spread_element"]
            if not elements:
                return ArrayShape(UNKNOWN)
            return ArrayShape(self.analyze_expression(source, elements[0]))

        if kind == "object":
            return self._analyze_object_literal(source, node)

        if kind in {"string", "template_string"}:
            return STRING

        if kind == "number":
            return NUMBER

        if kind in {"true", "false"}:
            return BOOLEAN

        if kind == "binary_expression":
            operator = node.child_by_field_name("operator")
            if operator is not None and operator.type == "||":
                right = node.child_by_field_name("right")
                return self.analyze_expression(source, right) if right is not None else UNKNOWN
            return UNKNOWN

        if kind == "member_expression":
            property_name = source.node_text(node.child_by_field_name("property"))
            if is_email_like(property_name):
                return STRING
            if is_id_like(property_name):
                return NUMBER
            return STRING

        return UNKNOWN

    def _analyze_object_literal(self, source: ParsedSource, node: Node) -> Shape:
        items = []
        for prop in named_children(node):
            if prop.type == "pair":
                key = prop.child_by_field_name("key")
                value = prop.child_by_field_name("value")
                if key is None or value is None:
                    continue
                if key.type == "property_identifier":
                    name = source.node_text(key)
                elif key.type == "string":
                    name = source.string_value(key)
                else:
                    continue
                items.append((name, self.analyze_expression(source, value)))
            elif prop.type == "shorthand_property_identifier":
                name = source.node_text(prop)
                items.append((name, shorthand_shape(name)))
        return ObjectShape.from_items(items)


__all__ = [
    "KNOWN_SHAPES",
    "PAGINATED_SHAPE",
    "TypeAnalyzer",
    "is_email_like",
    "is_id_like",
    "named_type_shape",
    "shorthand_shape",
]
