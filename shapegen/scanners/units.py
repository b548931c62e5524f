"""Discover owning units (service classes) and emit their declarations."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Set

from ..analyzers.naming import MODULE_SUFFIX, NamingResolver
from ..analyzers.shapes import TypeAnalyzer
from ..analyzers.tree_sitter import ClassInfo, ParsedSource, SourceParser
from ..config import ShapegenConfig
from ..emitters.declarations import DeclarationEmitter
from ..errors import EmissionFailure, UnitFailure
from ..io import read_source, write_output
from ..logging import get_logger
from ..models import AnalyzableMember, DeclaredUnit, UnitAnalysis
from ..repo_scanner import SourceScanner


class UnitScanner:
    """Analyzes every owning unit under a root and writes one module per unit."""

    def __init__(
        self,
        config: Optional[ShapegenConfig] = None,
        *,
        scanner: Optional[SourceScanner] = None,
        parser: Optional[SourceParser] = None,
        analyzer: Optional[TypeAnalyzer] = None,
    ) -> None:
        self.config = config or ShapegenConfig(root=Path.cwd())
        conventions = self.config.conventions
        self.scanner = scanner or SourceScanner(self.config.exclude_paths)
        self.parser = parser or SourceParser()
        self.analyzer = analyzer or TypeAnalyzer()
        self.naming = NamingResolver(conventions.response_suffix)
        self.emitter = DeclarationEmitter(self.naming, self.config.documentation)
        self.logger = get_logger("scanners.units")

    def scan(self, root: Path, pattern: str, output_dir: Path) -> List[DeclaredUnit]:
        """Generate declaration modules and return the units that were written."""
        output_dir = Path(output_dir)
        declared: List[DeclaredUnit] = []
        seen: Dict[str, Path] = {}

        for path in self.scanner.list_paths(root, pattern):
            try:
                analysis = self.analyze_path(path)
            except UnitFailure as exc:
                self.logger.error("Skipping unit: %s", exc)
                continue
            if analysis is None:
                self.logger.debug("No %s class found in %s", self.config.conventions.unit_suffix, path)
                continue

            if analysis.unit_name in seen:
                self.logger.warning(
                    "%s is declared in both %s and %s; keeping the first",
                    analysis.unit_name,
                    seen[analysis.unit_name],
                    path,
                )
                continue
            seen[analysis.unit_name] = path

            unit = self.emit(analysis, output_dir)
            if unit is not None:
                declared.append(unit)

        if self.config.clean:
            self.remove_stale(output_dir, {unit.module_path.name for unit in declared})
        return declared

    def emit(self, analysis: UnitAnalysis, output_dir: Path) -> Optional[DeclaredUnit]:
        module = self.emitter.emit_module(analysis)
        if module is None:
            self.logger.warning("%s has no analyzable members; no module written", analysis.unit_name)
            return None

        target = Path(output_dir) / module.filename
        try:
            changed = write_output(target, module.text)
        except EmissionFailure as exc:
            self.logger.error("%s", exc)
            return None

        self.logger.info(
            "%s %s (%d members)",
            "Wrote" if changed else "Unchanged",
            target,
            len(analysis.members),
        )
        return DeclaredUnit(
            unit_name=analysis.unit_name,
            lookup_name=module.lookup_name,
            module_path=target,
            members={member.member_name: member.declaration_name for member in analysis.members},
        )

    def analyze_path(self, path: Path) -> Optional[UnitAnalysis]:
        text = read_source(path)
        return self.analyze_source(text, path)

    def analyze_source(self, text: str, path: Path) -> Optional[UnitAnalysis]:
        source = self.parser.parse(text)
        unit_class = self.find_unit_class(source)
        if unit_class is None:
            return None

        analysis = UnitAnalysis(unit_name=unit_class.name, source_path=Path(path))
        names: Set[str] = set()
        for method in unit_class.methods:
            if not method.plain_name:
                self.logger.debug("Skipping %s.%s: not an identifier name", unit_class.name, method.name)
                continue
            if not method.is_analyzable or method.name in names:
                continue
            names.add(method.name)
            shape = self.analyzer.analyze_method(source, method, unit_class.name)
            analysis.members.append(
                AnalyzableMember(
                    unit_name=unit_class.name,
                    member_name=method.name,
                    shape=shape,
                    declaration_name=self.naming.declaration_name(unit_class.name, method.name),
                )
            )
        return analysis

    def find_unit_class(self, source: ParsedSource) -> Optional[ClassInfo]:
        suffix = self.config.conventions.unit_suffix
        for cls in source.classes():
            if cls.name.endswith(suffix):
                return cls
        return None

    def remove_stale(self, output_dir: Path, keep: Set[str]) -> None:
        if not output_dir.is_dir():
            return
        for path in sorted(output_dir.glob(f"*{MODULE_SUFFIX}")):
            if path.name in keep:
                continue
            try:
                path.unlink()
            except OSError as exc:
                self.logger.error("Failed to remove stale module %s: %s", path, exc)
                continue
            self.logger.info("Removed stale module %s", path)


__all__ = ["UnitScanner"]
