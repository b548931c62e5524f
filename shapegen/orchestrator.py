"""Pipeline orchestration for generate/wire/rewrite/build flows."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .config import ShapegenConfig, load_config
from .emitters.wiring import INDEX_FILENAME, WiringEmitter
from .errors import EmissionFailure
from .io import relative_specifier, write_output
from .logging import get_logger
from .models import DeclaredUnit, LookupTable
from .repo_scanner import SourceScanner
from .rewriter import DecoratorRewriter
from .scanners.endpoints import EndpointScanner
from .scanners.units import UnitScanner
from .stores.generation import LOCK_FILENAME, GenerationLock, GenerationMarker


@dataclass
class GenerationContext:
    """Accumulators for one generation pass.

    Create one per pass and hand it to every step so that later steps see the
    units declared by earlier ones without re-reading generated files.
    """

    config: ShapegenConfig
    declared_units: Dict[str, DeclaredUnit] = field(default_factory=dict)
    lookup_table: Optional[LookupTable] = None
    written: List[Path] = field(default_factory=list)

    @classmethod
    def for_root(cls, root: Path) -> "GenerationContext":
        return cls(config=ShapegenConfig(root=Path(root).expanduser().resolve()))


@dataclass
class BuildOutcome:
    """Result of a build-flow run."""

    ran: bool
    reason: str
    declarations: int = 0
    endpoints: int = 0


@dataclass
class RewriteOutcome:
    declarations: int
    endpoints: int
    changed: List[Path] = field(default_factory=list)
    dry_run: bool = False


class Orchestrator:
    """Coordinates the generation steps for a project root."""

    def __init__(self, scanner: Optional[SourceScanner] = None) -> None:
        self.scanner = scanner
        self.logger = get_logger("orchestrator")

    # ------------------------------------------------------------------
    # Steps

    def generate_declarations(
        self,
        root_dir: Path,
        unit_glob: str,
        output_dir: Path,
        *,
        context: Optional[GenerationContext] = None,
    ) -> int:
        context = context or GenerationContext.for_root(root_dir)
        units = UnitScanner(context.config, scanner=self._scanner(context.config)).scan(
            Path(root_dir), unit_glob, Path(output_dir)
        )
        for unit in units:
            context.declared_units[unit.unit_name] = unit
            context.written.append(unit.module_path)
        self.logger.info("Generated %d declaration modules in %s", len(units), output_dir)
        return len(units)

    def generate_endpoint_wiring(
        self,
        root_dir: Path,
        controller_glob: str,
        output_dir: Path,
        *,
        declarations_dir: Optional[Path] = None,
        context: Optional[GenerationContext] = None,
    ) -> int:
        context = context or GenerationContext.for_root(root_dir)
        output_dir = Path(output_dir)
        declarations_dir = Path(declarations_dir) if declarations_dir is not None else output_dir / "responses"

        scanner = EndpointScanner(context.config, scanner=self._scanner(context.config))
        declared = context.declared_units
        if not declared:
            declared = scanner.load_declared_units(declarations_dir)
            context.declared_units.update(declared)

        table = scanner.scan(Path(root_dir), controller_glob, declared)
        context.lookup_table = table

        emitter = WiringEmitter(
            scanner.naming,
            context.config.documentation,
            responses_prefix=relative_specifier(output_dir, declarations_dir),
        )
        target = output_dir / INDEX_FILENAME
        try:
            write_output(target, emitter.emit(table))
        except EmissionFailure as exc:
            self.logger.error("%s", exc)
            return 0
        context.written.append(target)

        mapped = sum(1 for unit in table.endpoints.values() if unit.handlers)
        self.logger.info("Wired %d endpoint units into %s", mapped, target)
        return mapped

    def rewrite_endpoints(
        self,
        root_dir: Path,
        controller_glob: str,
        lookup_table: LookupTable,
        *,
        config: Optional[ShapegenConfig] = None,
        dry_run: bool = False,
    ) -> List[Path]:
        config = config or ShapegenConfig(root=Path(root_dir).expanduser().resolve())
        rewriter = DecoratorRewriter(config, scanner=self._scanner(config))
        changed = rewriter.rewrite_paths(Path(root_dir), controller_glob, lookup_table, dry_run=dry_run)
        self.logger.info(
            "%s %d endpoint sources", "Would rewrite" if dry_run else "Rewrote", len(changed)
        )
        return changed

    # ------------------------------------------------------------------
    # Project flows

    def run_generate(self, path: str) -> int:
        context = self._context(path)
        config = context.config
        return self.generate_declarations(
            self._source_root(config), config.service_pattern, config.declarations_dir, context=context
        )

    def run_wire(self, path: str) -> int:
        context = self._context(path)
        config = context.config
        return self.generate_endpoint_wiring(
            self._source_root(config),
            config.controller_pattern,
            config.output_root,
            declarations_dir=config.declarations_dir,
            context=context,
        )

    def run_rewrite(self, path: str, *, dry_run: bool = False) -> RewriteOutcome:
        """Generate declarations and wiring, then rewrite endpoint sources.

        ``dry_run`` only protects endpoint sources; generated modules are
        still refreshed because the lookup table is built from them.
        """
        context = self._context(path)
        config = context.config
        source_root = self._source_root(config)
        declarations = self.generate_declarations(
            source_root, config.service_pattern, config.declarations_dir, context=context
        )
        endpoints = self.generate_endpoint_wiring(
            source_root,
            config.controller_pattern,
            config.output_root,
            declarations_dir=config.declarations_dir,
            context=context,
        )
        table = context.lookup_table or LookupTable(declared_units=dict(context.declared_units))
        changed = self.rewrite_endpoints(
            source_root, config.controller_pattern, table, config=config, dry_run=dry_run
        )
        return RewriteOutcome(declarations, endpoints, changed, dry_run)

    def run_build(self, path: str, *, force: bool = False) -> BuildOutcome:
        """Staleness-gated, locked generation of declarations and wiring."""
        context = self._context(path)
        config = context.config
        source_root = self._source_root(config)
        scanner = self._scanner(config)
        sources = scanner.list_paths(source_root, config.service_pattern) + scanner.list_paths(
            source_root, config.controller_pattern
        )

        marker = GenerationMarker(config.declarations_dir)
        if not force and not marker.is_stale(sources):
            self.logger.info("Generated responses are up to date; skipping")
            return BuildOutcome(ran=False, reason="up-to-date")

        lock = GenerationLock(config.root / LOCK_FILENAME, stale_after=config.build.lock_timeout)
        if not lock.acquire():
            self.logger.info("Another generation holds %s; skipping", lock.path)
            return BuildOutcome(ran=False, reason="locked")
        try:
            declarations = self.generate_declarations(
                source_root, config.service_pattern, config.declarations_dir, context=context
            )
            endpoints = self.generate_endpoint_wiring(
                source_root,
                config.controller_pattern,
                config.output_root,
                declarations_dir=config.declarations_dir,
                context=context,
            )
            marker.record(sources)
        finally:
            lock.release()
        return BuildOutcome(ran=True, reason="generated", declarations=declarations, endpoints=endpoints)

    # ------------------------------------------------------------------
    # Helpers

    def _context(self, path: str) -> GenerationContext:
        root = Path(path).expanduser().resolve()
        if not root.exists():
            raise FileNotFoundError(f"Project path not found: {path}")
        if not root.is_dir():
            raise NotADirectoryError(f"Project path is not a directory: {path}")
        return GenerationContext(config=load_config(root))

    def _source_root(self, config: ShapegenConfig) -> Path:
        source_root = config.source_root
        if source_root.is_dir():
            return source_root
        self.logger.debug("%s does not exist; scanning %s", source_root, config.root)
        return config.root

    def _scanner(self, config: ShapegenConfig) -> SourceScanner:
        return self.scanner or SourceScanner(config.exclude_paths)


def generate_declarations(
    root_dir: Path,
    unit_glob: str,
    output_dir: Path,
    *,
    context: Optional[GenerationContext] = None,
) -> int:
    """Write one declarations module per owning unit; return how many were written."""
    return Orchestrator().generate_declarations(root_dir, unit_glob, output_dir, context=context)


def generate_endpoint_wiring(
    root_dir: Path,
    controller_glob: str,
    output_dir: Path,
    *,
    declarations_dir: Optional[Path] = None,
    context: Optional[GenerationContext] = None,
) -> int:
    """Write the lookup table module; return the number of wired endpoint units."""
    return Orchestrator().generate_endpoint_wiring(
        root_dir,
        controller_glob,
        output_dir,
        declarations_dir=declarations_dir,
        context=context,
    )


__all__ = [
    "BuildOutcome",
    "GenerationContext",
    "Orchestrator",
    "RewriteOutcome",
    "generate_declarations",
    "generate_endpoint_wiring",
]
