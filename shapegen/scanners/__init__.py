"""Scanners that turn source trees into analyses and lookup tables."""

from .endpoints import EndpointScanner, build_lookup_table
from .units import UnitScanner

__all__ = ["EndpointScanner", "UnitScanner", "build_lookup_table"]
