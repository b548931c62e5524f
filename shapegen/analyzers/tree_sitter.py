"""Tree-sitter powered TypeScript parsing helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

TYPESCRIPT = Language(tree_sitter_typescript.language_typescript())

_CLASS_NODE_TYPES = {"class_declaration", "abstract_class_declaration"}
_PLAIN_NAME_TYPES = {"property_identifier", "private_property_identifier"}


@dataclass
class DecoratorInfo:
    """A decorator attached to a class or method."""

    name: Optional[str]
    node: Node
    arguments: List[Node] = field(default_factory=list)
    is_call: bool = False


@dataclass
class MethodInfo:
    """A method declared in a class body."""

    name: str
    node: Node
    decorators: List[DecoratorInfo] = field(default_factory=list)
    accessibility: Optional[str] = None
    is_accessor: bool = False
    # False for quoted and computed names such as 'a-b'() or [Symbol.iterator]().
    plain_name: bool = True

    @property
    def is_constructor(self) -> bool:
        return self.name == "constructor"

    @property
    def is_private(self) -> bool:
        return self.accessibility == "private" or self.name.startswith("#")

    @property
    def is_analyzable(self) -> bool:
        return self.plain_name and not (self.is_constructor or self.is_private or self.is_accessor)

    def decorator_names(self) -> List[str]:
        return [decorator.name for decorator in self.decorators if decorator.name]

    @property
    def return_type(self) -> Optional[Node]:
        annotation = self.node.child_by_field_name("return_type")
        if annotation is None or annotation.type != "type_annotation":
            return None
        return first_named(annotation)

    @property
    def body(self) -> Optional[Node]:
        return self.node.child_by_field_name("body")


@dataclass
class ClassInfo:
    """A top-level class declaration."""

    name: str
    node: Node
    decorators: List[DecoratorInfo] = field(default_factory=list)
    methods: List[MethodInfo] = field(default_factory=list)


@dataclass
class ImportSpecifier:
    name: str
    alias: Optional[str]
    text: str

    @property
    def local_name(self) -> str:
        return self.alias or self.name


@dataclass
class ImportInfo:
    """An `import ... from '...'` statement."""

    node: Node
    source: str
    specifiers: List[ImportSpecifier] = field(default_factory=list)
    has_named_imports: bool = False
    has_other_bindings: bool = False

    def local_names(self) -> List[str]:
        return [specifier.local_name for specifier in self.specifiers]


def first_named(node: Node) -> Optional[Node]:
    """Return the first named child that is not a comment."""
    for child in node.named_children:
        if child.type != "comment":
            return child
    return None


def named_children(node: Node) -> List[Node]:
    return [child for child in node.named_children if child.type != "comment"]


class ParsedSource:
    """A parsed TypeScript source with text helpers keyed on byte offsets."""

    def __init__(self, text: str, data: bytes, tree) -> None:  # type: ignore[no-untyped-def]
        self.text = text
        self.data = data
        self.tree = tree

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def has_error(self) -> bool:
        return bool(self.root.has_error)

    def node_text(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        return self.data[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")

    def string_value(self, node: Node) -> str:
        """Return the unquoted contents of a string literal node."""
        raw = self.node_text(node)
        if len(raw) >= 2 and raw[0] in "'\"`" and raw[-1] == raw[0]:
            raw = raw[1:-1]
        return raw.replace("\\'", "'").replace('\\"', '"').replace("\\\\", "\\")

    def line_indent(self, offset: int) -> str:
        """Return the leading whitespace of the line containing ``offset``."""
        line_start = self.data.rfind(b"\n", 0, offset) + 1
        end = line_start
        while end < len(self.data) and self.data[end : end + 1] in (b" ", b"\t"):
            end += 1
        return self.data[line_start:end].decode("utf-8")

    # ------------------------------------------------------------------
    # Declarations

    def classes(self) -> List[ClassInfo]:
        """Return top-level classes, including exported ones, in source order."""
        results: List[ClassInfo] = []
        for child in named_children(self.root):
            outer_decorators: List[DecoratorInfo] = []
            target: Optional[Node] = child
            if child.type == "export_statement":
                outer_decorators = [
                    self.decorator(node) for node in child.children if node.type == "decorator"
                ]
                target = child.child_by_field_name("declaration")
                if target is None:
                    target = next(
                        (node for node in child.named_children if node.type in _CLASS_NODE_TYPES),
                        None,
                    )
            if target is None or target.type not in _CLASS_NODE_TYPES:
                continue
            name_node = target.child_by_field_name("name")
            if name_node is None:
                continue
            decorators = outer_decorators + [
                self.decorator(node) for node in target.children if node.type == "decorator"
            ]
            results.append(
                ClassInfo(
                    name=self.node_text(name_node),
                    node=target,
                    decorators=decorators,
                    methods=list(self._methods(target)),
                )
            )
        return results

    def _methods(self, class_node: Node) -> Iterator[MethodInfo]:
        body = class_node.child_by_field_name("body")
        if body is None:
            return
        # Method decorators are siblings that precede the method in the class body.
        pending: List[DecoratorInfo] = []
        for child in body.named_children:
            if child.type == "decorator":
                pending.append(self.decorator(child))
                continue
            if child.type == "comment":
                continue
            if child.type == "method_definition":
                own = [self.decorator(node) for node in child.children if node.type == "decorator"]
                method = self._method(child, pending + own)
                if method is not None:
                    yield method
            pending = []

    def _method(self, node: Node, decorators: List[DecoratorInfo]) -> Optional[MethodInfo]:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        accessibility = None
        is_accessor = False
        for child in node.children:
            if child.type == "accessibility_modifier":
                accessibility = self.node_text(child).strip()
            elif not child.is_named and child.type in {"get", "set"}:
                is_accessor = True
        return MethodInfo(
            name=self.node_text(name_node),
            node=node,
            decorators=decorators,
            accessibility=accessibility,
            is_accessor=is_accessor,
            plain_name=name_node.type in _PLAIN_NAME_TYPES,
        )

    def decorator(self, node: Node) -> DecoratorInfo:
        target = first_named(node)
        arguments: List[Node] = []
        is_call = False
        if target is not None and target.type == "call_expression":
            is_call = True
            args = target.child_by_field_name("arguments")
            if args is not None:
                arguments = named_children(args)
            target = target.child_by_field_name("function")
        name = self.node_text(target) if target is not None and target.type == "identifier" else None
        return DecoratorInfo(name=name, node=node, arguments=arguments, is_call=is_call)

    # ------------------------------------------------------------------
    # Imports and exports

    def imports(self) -> List[ImportInfo]:
        results: List[ImportInfo] = []
        for child in named_children(self.root):
            if child.type != "import_statement":
                continue
            source_node = child.child_by_field_name("source")
            info = ImportInfo(
                node=child,
                source=self.string_value(source_node) if source_node is not None else "",
            )
            clause = next((node for node in child.named_children if node.type == "import_clause"), None)
            if clause is not None:
                for part in named_children(clause):
                    if part.type == "named_imports":
                        info.has_named_imports = True
                        info.specifiers.extend(self._specifiers(part))
                    else:
                        info.has_other_bindings = True
            results.append(info)
        return results

    def _specifiers(self, named_imports: Node) -> Iterable[ImportSpecifier]:
        for node in named_children(named_imports):
            if node.type != "import_specifier":
                continue
            name_node = node.child_by_field_name("name")
            alias_node = node.child_by_field_name("alias")
            yield ImportSpecifier(
                name=self.node_text(name_node),
                alias=self.node_text(alias_node) if alias_node is not None else None,
                text=self.node_text(node),
            )

    def exported_constants(self) -> Dict[str, Node]:
        """Map exported ``const`` names to their initializer nodes."""
        constants: Dict[str, Node] = {}
        for child in named_children(self.root):
            if child.type != "export_statement":
                continue
            declaration = child.child_by_field_name("declaration")
            if declaration is None or declaration.type != "lexical_declaration":
                continue
            for declarator in named_children(declaration):
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                value_node = declarator.child_by_field_name("value")
                if name_node is not None and value_node is not None:
                    constants[self.node_text(name_node)] = value_node
        return constants


class SourceParser:
    """Parses TypeScript source text into a traversable syntax tree."""

    def __init__(self) -> None:
        self._parser = Parser(TYPESCRIPT)

    def parse(self, text: str) -> ParsedSource:
        data = text.encode("utf-8")
        tree = self._parser.parse(data)
        return ParsedSource(text, data, tree)


def walk(node: Node, *, stop: Optional[set] = None) -> Iterator[Node]:
    """Depth-first pre-order traversal that does not descend into ``stop`` types."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if stop and current is not node and current.type in stop:
            continue
        stack.extend(reversed(current.children))


__all__ = [
    "ClassInfo",
    "DecoratorInfo",
    "ImportInfo",
    "ImportSpecifier",
    "MethodInfo",
    "ParsedSource",
    "SourceParser",
    "TYPESCRIPT",
    "first_named",
    "named_children",
    "walk",
]
