"""Text emitters for generated TypeScript modules."""

from .declarations import DeclarationEmitter, EmittedModule
from .wiring import INDEX_FILENAME, WiringEmitter

__all__ = ["DeclarationEmitter", "EmittedModule", "INDEX_FILENAME", "WiringEmitter"]
