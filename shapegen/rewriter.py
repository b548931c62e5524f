"""Replace response markers in endpoint sources with documentation decorators.

Edits are computed as byte-range splices over tree-sitter nodes and applied in
one pass, so unrelated decorators and formatting are left untouched. Once a
marker has been rewritten nothing is left to match, which makes a second run a
no-op.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from .analyzers.endpoints import (
    STATUS_CREATED,
    classify_status,
    detect_http_verb,
    endpoint_key,
    is_array_handler,
    normalize_status,
)
from .analyzers.tree_sitter import (
    DecoratorInfo,
    ImportInfo,
    MethodInfo,
    ParsedSource,
    SourceParser,
)
from .config import ShapegenConfig
from .errors import EmissionFailure, UnitFailure
from .io import read_source, relative_specifier, write_output
from .logging import get_logger
from .models import EndpointMapping, LookupTable
from .repo_scanner import SourceScanner

_OPTION_KEYS = {
    "description": "description",
    "isArray": "is_array",
    "status": "status",
    "serviceName": "service_name",
    "methodName": "method_name",
}

Edit = Tuple[int, int, bytes]


@dataclass
class MarkerOptions:
    """Options read from a marker's object-literal argument."""

    description: Optional[str] = None
    is_array: Optional[bool] = None
    status: Optional[str] = None
    service_name: Optional[str] = None
    method_name: Optional[str] = None

    def merged_over(self, defaults: "MarkerOptions") -> "MarkerOptions":
        values = {}
        for item in fields(self):
            own = getattr(self, item.name)
            values[item.name] = own if own is not None else getattr(defaults, item.name)
        return MarkerOptions(**values)


@dataclass
class RewriteResult:
    text: str
    rewritten: int = 0
    unresolved: List[str] = field(default_factory=list)
    changed: bool = False


class DecoratorRewriter:
    """Rewrites marker decorators using a generation-time lookup table."""

    def __init__(
        self,
        config: Optional[ShapegenConfig] = None,
        *,
        parser: Optional[SourceParser] = None,
        scanner: Optional[SourceScanner] = None,
    ) -> None:
        self.config = config or ShapegenConfig(root=Path.cwd())
        self.conventions = self.config.conventions
        self.documentation = self.config.documentation
        self.parser = parser or SourceParser()
        self.scanner = scanner or SourceScanner(self.config.exclude_paths)
        self.logger = get_logger("rewriter")

    # ------------------------------------------------------------------
    # Single source

    def rewrite(
        self, text: str, table: LookupTable, source_path: Optional[Path] = None
    ) -> RewriteResult:
        result = RewriteResult(text=text)
        markers = set(self.conventions.markers)
        if not any(marker in text for marker in markers):
            return result

        source = self.parser.parse(text)
        if source.has_error:
            failure = UnitFailure(Path(source_path or "<source>"), "syntax errors; left unchanged")
            self.logger.error("%s", failure)
            return result

        edits: List[Edit] = []
        used_lookups: Dict[str, Path] = {}
        used_decorators: Set[str] = set()
        marker_total = 0
        markers_removed = 0

        for cls in source.classes():
            class_markers = [d for d in cls.decorators if d.name in markers]
            marker_total += len(class_markers)
            class_options = self._class_options(source, class_markers)
            key = endpoint_key(cls.name, self.conventions.endpoint_suffix)
            class_unresolved = False

            for method in cls.methods:
                own_markers = [d for d in method.decorators if d.name in markers]
                marker_total += len(own_markers)
                if own_markers:
                    options = self.marker_options(source, own_markers[0]).merged_over(class_options)
                elif class_markers and self._needs_class_default(method):
                    options = class_options
                else:
                    continue

                mapping = self.resolve(key, method, options, table)
                if mapping is None:
                    label = f"{cls.name}.{method.name}"
                    result.unresolved.append(label)
                    self.logger.warning(
                        "Cannot resolve a response declaration for %s; marker left in place", label
                    )
                    if not own_markers:
                        class_unresolved = True
                    continue

                decorator_name, decorator_text = self.render_decorator(mapping, options)
                declared = table.declared_unit(mapping.owning_unit)
                if declared is not None:
                    used_lookups[declared.lookup_name] = declared.module_path
                used_decorators.add(decorator_name)
                result.rewritten += 1

                if own_markers:
                    first = own_markers[0]
                    edits.append((first.node.start_byte, first.node.end_byte, decorator_text.encode("utf-8")))
                    for extra in own_markers[1:]:
                        edits.append(self._removal(source, extra.node.start_byte, extra.node.end_byte))
                    markers_removed += len(own_markers)
                else:
                    edits.append(self._insertion_after_decorators(source, method, decorator_text))

            if class_markers and not class_unresolved:
                for marker in class_markers:
                    edits.append(self._removal(source, marker.node.start_byte, marker.node.end_byte))
                markers_removed += len(class_markers)

        if result.rewritten == 0 and markers_removed == 0:
            return result

        drop_markers = markers_removed == marker_total
        edits.extend(
            self._import_edits(source, used_lookups, used_decorators, drop_markers, source_path)
        )
        result.text = apply_edits(source.data, edits).decode("utf-8")
        result.changed = result.text != text
        return result

    def marker_options(self, source: ParsedSource, marker: DecoratorInfo) -> MarkerOptions:
        options = MarkerOptions()
        if marker.arguments and marker.arguments[0].type == "object":
            for pair in marker.arguments[0].named_children:
                if pair.type != "pair":
                    continue
                key_node = pair.child_by_field_name("key")
                value_node = pair.child_by_field_name("value")
                if key_node is None or value_node is None:
                    continue
                key = source.node_text(key_node)
                if key_node.type == "string":
                    key = source.string_value(key_node)
                attribute = _OPTION_KEYS.get(key)
                if attribute is None:
                    continue
                value = _literal_value(source, value_node)
                if value is None:
                    continue
                if attribute == "is_array" and not isinstance(value, bool):
                    continue
                if attribute != "is_array" and not isinstance(value, str):
                    continue
                setattr(options, attribute, value)

        if marker.name == self.conventions.array_marker and options.is_array is None:
            options.is_array = True
        if marker.name == self.conventions.created_marker and options.status is None:
            options.status = STATUS_CREATED
        return options

    def resolve(
        self,
        key: Optional[str],
        method: MethodInfo,
        options: MarkerOptions,
        table: LookupTable,
    ) -> Optional[EndpointMapping]:
        if options.service_name:
            owning_unit = options.service_name
        elif key is not None:
            owning_unit = f"{key}{self.conventions.unit_suffix}"
        else:
            return None
        member = options.method_name or method.name

        declared = table.declared_unit(owning_unit)
        if declared is None:
            return None
        declaration = declared.declaration_for(member)
        if declaration is None:
            return None

        verb = detect_http_verb(method, self.conventions.http_verbs)
        known = table.get(key, method.name) if key is not None else None
        if known is not None and known.owning_unit == owning_unit and known.member == member:
            is_array, status = known.is_array, known.status
        else:
            is_array = is_array_handler(member)
            status = classify_status(verb, self.conventions.create_verb)

        if options.is_array is not None:
            is_array = options.is_array
        status = normalize_status(options.status) or status

        return EndpointMapping(
            endpoint_key=key or owning_unit,
            handler=method.name,
            owning_unit=owning_unit,
            member=member,
            declaration_name=declaration,
            reference=f"{declared.lookup_name}.{member}",
            is_array=is_array,
            status=status,
            verb=verb,
        )

    def render_decorator(self, mapping: EndpointMapping, options: MarkerOptions) -> Tuple[str, str]:
        name = (
            self.documentation.created_decorator
            if mapping.status == STATUS_CREATED
            else self.documentation.ok_decorator
        )
        parts = [f"type: {mapping.reference}"]
        if mapping.is_array:
            parts.append("isArray: true")
        if options.description:
            parts.append(f"description: {_quote(options.description)}")
        return name, f"@{name}({{ {', '.join(parts)} }})"

    # ------------------------------------------------------------------
    # Edit helpers

    def _class_options(self, source: ParsedSource, class_markers: List[DecoratorInfo]) -> MarkerOptions:
        if not class_markers:
            return MarkerOptions()
        return self.marker_options(source, class_markers[0])

    def _needs_class_default(self, method: MethodInfo) -> bool:
        if not method.is_analyzable:
            return False
        if detect_http_verb(method, self.conventions.http_verbs) is None:
            return False
        documented = {self.documentation.ok_decorator, self.documentation.created_decorator}
        return not documented.intersection(method.decorator_names())

    @staticmethod
    def _insertion_after_decorators(source: ParsedSource, method: MethodInfo, text: str) -> Edit:
        last = max(method.decorators, key=lambda decorator: decorator.node.end_byte)
        indent = source.line_indent(last.node.start_byte)
        position = last.node.end_byte
        return (position, position, f"\n{indent}{text}".encode("utf-8"))

    @staticmethod
    def _removal(source: ParsedSource, start: int, end: int) -> Edit:
        """Remove ``[start, end)`` plus trailing whitespace up to the next token."""
        data = source.data
        while end < len(data) and data[end : end + 1] in (b" ", b"\t", b"\r", b"\n"):
            end += 1
        return (start, end, b"")

    @staticmethod
    def _line_removal(source: ParsedSource, start: int, end: int) -> Edit:
        """Remove ``[start, end)`` together with the rest of its line."""
        data = source.data
        while end < len(data) and data[end : end + 1] in (b" ", b"\t", b"\r"):
            end += 1
        if data[end : end + 1] == b"\n":
            end += 1
        return (start, end, b"")

    def _import_edits(
        self,
        source: ParsedSource,
        used_lookups: Dict[str, Path],
        used_decorators: Set[str],
        drop_markers: bool,
        source_path: Optional[Path],
    ) -> List[Edit]:
        imports = source.imports()
        markers = set(self.conventions.markers)
        module = self.documentation.module
        edits: List[Edit] = []
        removed: Set[int] = set()

        imported = {name for info in imports for name in info.local_names()}
        swagger = next(
            (
                info
                for info in reversed(imports)
                if info.source == module and info.has_named_imports and not info.has_other_bindings
            ),
            None,
        )
        missing_decorators = sorted(name for name in used_decorators if name not in imported)

        for index, info in enumerate(imports):
            specifiers = [spec.text for spec in info.specifiers]
            names = [spec.name for spec in info.specifiers]
            updated = list(specifiers)
            if drop_markers:
                updated = [text for text, name in zip(specifiers, names) if name not in markers]
            if info is swagger:
                updated.extend(missing_decorators)
            if updated == specifiers:
                continue
            if not updated and not info.has_other_bindings:
                edits.append(self._line_removal(source, info.node.start_byte, info.node.end_byte))
                removed.add(index)
                continue
            if info.has_other_bindings:
                # Default or namespace bindings are left alone; only named markers go.
                continue
            edits.append((info.node.start_byte, info.node.end_byte, self._import_line(source, info, updated)))

        new_lines: List[str] = []
        if swagger is None and missing_decorators:
            new_lines.append(f"import {{ {', '.join(missing_decorators)} }} from '{module}';")
        for lookup_name in sorted(used_lookups):
            if lookup_name in imported:
                continue
            specifier = self._module_specifier(used_lookups[lookup_name], source_path)
            new_lines.append(f"import {{ {lookup_name} }} from '{specifier}';")
        if not new_lines:
            return edits

        kept = [info for index, info in enumerate(imports) if index not in removed]
        anchor = next((info for info in reversed(kept) if info.source == module), None)
        if anchor is None and kept:
            anchor = kept[-1]
        if anchor is not None:
            position = anchor.node.end_byte
            edits.append((position, position, "".join(f"\n{line}" for line in new_lines).encode("utf-8")))
        elif imports:
            position = imports[0].node.start_byte
            edits.append((position, position, "".join(f"{line}\n" for line in new_lines).encode("utf-8")))
        else:
            edits.append((0, 0, ("\n".join(new_lines) + "\n\n").encode("utf-8")))
        return edits

    @staticmethod
    def _import_line(source: ParsedSource, info: ImportInfo, specifiers: List[str]) -> bytes:
        source_node = info.node.child_by_field_name("source")
        quoted = source.node_text(source_node) if source_node is not None else f"'{info.source}'"
        text = source.node_text(info.node)
        terminator = ";" if text.rstrip().endswith(";") else ""
        return f"import {{ {', '.join(specifiers)} }} from {quoted}{terminator}".encode("utf-8")

    def _module_specifier(self, module_path: Path, source_path: Optional[Path]) -> str:
        base = Path(source_path).parent if source_path is not None else self.config.root
        return relative_specifier(base, module_path)

    # ------------------------------------------------------------------
    # Trees

    def rewrite_file(self, path: Path, table: LookupTable, *, dry_run: bool = False) -> bool:
        text = read_source(path)
        result = self.rewrite(text, table, source_path=path)
        if not result.changed:
            return False
        if dry_run:
            self.logger.info("Would rewrite %s (%d decorators)", path, result.rewritten)
            return True
        write_output(path, result.text)
        self.logger.info("Rewrote %s (%d decorators)", path, result.rewritten)
        return True

    def rewrite_paths(
        self, root: Path, pattern: str, table: LookupTable, *, dry_run: bool = False
    ) -> List[Path]:
        changed: List[Path] = []
        for path in self.scanner.list_paths(root, pattern):
            try:
                if self.rewrite_file(path, table, dry_run=dry_run):
                    changed.append(path)
            except (UnitFailure, EmissionFailure) as exc:
                self.logger.error("Skipping endpoint unit: %s", exc)
        return changed


def apply_edits(data: bytes, edits: List[Edit]) -> bytes:
    """Apply non-overlapping ``(start, end, replacement)`` splices to ``data``."""
    ordered = sorted(edits, key=lambda edit: (edit[0], edit[1]), reverse=True)
    result = data
    boundary = len(data) + 1
    for start, end, replacement in ordered:
        if end > boundary:
            raise ValueError(f"Overlapping edits at byte {start}")
        result = result[:start] + replacement + result[end:]
        boundary = start
    return result


def _literal_value(source: ParsedSource, node) -> object:  # type: ignore[no-untyped-def]
    if node.type == "string":
        return source.string_value(node)
    if node.type == "template_string" and not any(
        child.type == "template_substitution" for child in node.named_children
    ):
        return source.string_value(node)
    if node.type == "true":
        return True
    if node.type == "false":
        return False
    return None


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
    return f"'{escaped}'"


def rewrite_endpoint_file(
    source_text: str,
    lookup_table: LookupTable,
    *,
    source_path: Optional[Path] = None,
    config: Optional[ShapegenConfig] = None,
) -> str:
    """Return ``source_text`` with every resolvable marker rewritten."""
    return DecoratorRewriter(config).rewrite(source_text, lookup_table, source_path).text


def rewrite_endpoints(
    root_dir: Path,
    controller_glob: str,
    lookup_table: LookupTable,
    *,
    config: Optional[ShapegenConfig] = None,
) -> int:
    """Rewrite every matching endpoint file in place; return how many changed."""
    return len(DecoratorRewriter(config).rewrite_paths(Path(root_dir), controller_glob, lookup_table))


__all__ = [
    "DecoratorRewriter",
    "MarkerOptions",
    "RewriteResult",
    "apply_edits",
    "rewrite_endpoint_file",
    "rewrite_endpoints",
]
