"""Deterministic names for generated declarations."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from ..logging import get_logger

ITEM_SUFFIX = "Item"
MODULE_SUFFIX = ".response.ts"


def capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


class NamingResolver:
    """Derives declaration names from (unit, member, nesting path).

    Every name is a pure function of its inputs, so reordering methods in a
    source file never changes an individual declaration name.
    """

    def __init__(self, response_suffix: str = "Response") -> None:
        self.response_suffix = response_suffix

    def declaration_name(self, unit_name: str, member_name: str) -> str:
        return f"{unit_name}{capitalize(member_name)}{self.response_suffix}"

    @staticmethod
    def child_name(parent: str, field_name: str, *, item: bool = False) -> str:
        name = f"{parent}{capitalize(field_name)}"
        return f"{name}{ITEM_SUFFIX}" if item else name

    @staticmethod
    def item_name(declaration: str) -> str:
        return f"{declaration}{ITEM_SUFFIX}"

    def lookup_name(self, unit_name: str) -> str:
        return f"{unit_name}{self.response_suffix}"

    @staticmethod
    def lookup_type_name(lookup_name: str) -> str:
        return f"{lookup_name}Type"

    @staticmethod
    def module_filename(unit_name: str) -> str:
        return f"{unit_name.lower()}{MODULE_SUFFIX}"

    @staticmethod
    def module_specifier(unit_name: str) -> str:
        return f"{unit_name.lower()}{MODULE_SUFFIX[:-3]}"


class NameRegistry:
    """Tracks emitted names within one module and reports collisions.

    Collisions are reported, never renamed: there is no defined precedence
    between a member declaration and a synthetic child of another member.
    """

    def __init__(self, scope: str) -> None:
        self.scope = scope
        self._owners: Dict[str, str] = {}
        self.collisions: List[Tuple[str, str, str]] = []
        self.logger = get_logger("analyzers.naming")

    def claim(self, name: str, owner: str) -> bool:
        existing: Optional[str] = self._owners.get(name)
        if existing is None:
            self._owners[name] = owner
            return True
        self.collisions.append((name, existing, owner))
        self.logger.warning(
            "Declaration name %s in %s is produced by both %s and %s",
            name,
            self.scope,
            existing,
            owner,
        )
        return False

    def __contains__(self, name: object) -> bool:
        return name in self._owners


__all__ = [
    "ITEM_SUFFIX",
    "MODULE_SUFFIX",
    "NameRegistry",
    "NamingResolver",
    "capitalize",
]
