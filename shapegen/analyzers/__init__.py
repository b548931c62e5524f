"""Syntax-tree analysis for TypeScript services and controllers."""

from .naming import NameRegistry, NamingResolver
from .shapes import TypeAnalyzer
from .tree_sitter import ParsedSource, SourceParser

__all__ = ["NameRegistry", "NamingResolver", "ParsedSource", "SourceParser", "TypeAnalyzer"]
