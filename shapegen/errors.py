"""Error taxonomy for generation passes.

None of these abort a pass on their own: the scanners catch them per unit,
log them and move on, so callers that need hard failures must check the
returned success counts.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ShapegenError(RuntimeError):
    """Base class for shapegen failures."""


class AnalysisFailure(ShapegenError):
    """A single member could not be analyzed; recovered as an unknown shape."""

    def __init__(self, unit: str, member: str, reason: str) -> None:
        super().__init__(f"{unit}.{member}: {reason}")
        self.unit = unit
        self.member = member
        self.reason = reason


class UnitFailure(ShapegenError):
    """A source unit could not be read or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class EmissionFailure(ShapegenError):
    """Writing a generated artifact failed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Failed to write {path}: {reason}")
        self.path = path
        self.reason = reason


class ConfigurationFailure(ShapegenError):
    """An endpoint unit cannot be paired with an owning unit."""

    def __init__(self, endpoint: str, owning_unit: Optional[str], reason: str) -> None:
        super().__init__(f"{endpoint}: {reason}")
        self.endpoint = endpoint
        self.owning_unit = owning_unit
        self.reason = reason


__all__ = [
    "AnalysisFailure",
    "ConfigurationFailure",
    "EmissionFailure",
    "ShapegenError",
    "UnitFailure",
]
