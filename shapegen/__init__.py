"""Generate API response declarations from statically inferred return shapes."""

from .orchestrator import (
    GenerationContext,
    Orchestrator,
    generate_declarations,
    generate_endpoint_wiring,
)
from .rewriter import rewrite_endpoint_file, rewrite_endpoints

__all__ = [
    "GenerationContext",
    "Orchestrator",
    "generate_declarations",
    "generate_endpoint_wiring",
    "rewrite_endpoint_file",
    "rewrite_endpoints",
]
