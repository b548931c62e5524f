"""Persistence helpers for shapegen."""

from .generation import GenerationLock, GenerationMarker

__all__ = ["GenerationLock", "GenerationMarker"]
