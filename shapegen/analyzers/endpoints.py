"""Shared endpoint classification helpers."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .tree_sitter import MethodInfo

STATUS_OK = "ok"
STATUS_CREATED = "created"

_DIRECT_ARRAY_PREFIXES = ("findall", "getall", "listall")
_PAGINATED_PATTERNS = ("paginated", "paged")


def detect_http_verb(method: MethodInfo, verbs: Sequence[str]) -> Optional[str]:
    """Return the first decorator name found in the verb allow-list."""
    allowed = set(verbs)
    for name in method.decorator_names():
        if name in allowed:
            return name
    return None


def is_array_handler(name: str) -> bool:
    """Classify a handler as returning a bare array from its name alone.

    Paginated handlers return an object with data and meta, so the paginated
    patterns take precedence over the ``findAll``-style prefixes.
    """
    lowered = name.lower()
    if any(pattern in lowered for pattern in _PAGINATED_PATTERNS):
        return False
    return lowered.startswith(_DIRECT_ARRAY_PREFIXES)


def classify_status(verb: Optional[str], create_verb: str) -> str:
    return STATUS_CREATED if verb == create_verb else STATUS_OK


def normalize_status(value: object) -> Optional[str]:
    """Accept explicit ``'ok'``/``'created'`` overrides; anything else is ignored."""
    if isinstance(value, str) and value.strip().lower() in {STATUS_OK, STATUS_CREATED}:
        return value.strip().lower()
    return None


def endpoint_key(class_name: str, suffix: str) -> Optional[str]:
    """``UsersController`` -> ``Users``; None when the suffix does not match."""
    if not class_name.endswith(suffix) or len(class_name) == len(suffix):
        return None
    return class_name[: -len(suffix)]


def handler_methods(methods: Iterable[MethodInfo]) -> Iterable[MethodInfo]:
    return (method for method in methods if method.is_analyzable)


__all__ = [
    "STATUS_CREATED",
    "STATUS_OK",
    "classify_status",
    "detect_http_verb",
    "endpoint_key",
    "handler_methods",
    "is_array_handler",
    "normalize_status",
]
