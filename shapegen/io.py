"""Filesystem helpers shared by the scanners and the rewriter."""

from __future__ import annotations

import os
from pathlib import Path

from .errors import EmissionFailure, UnitFailure


def read_source(path: Path) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise UnitFailure(Path(path), f"unreadable source: {exc}") from exc


def write_output(path: Path, text: str) -> bool:
    """Write ``text`` to ``path``, creating parents; return False when unchanged."""
    target = Path(path)
    try:
        if target.exists() and target.read_text(encoding="utf-8") == text:
            return False
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise EmissionFailure(target, str(exc)) from exc
    return True


def relative_specifier(from_dir: Path, target: Path) -> str:
    """Return an ES module specifier for ``target`` as seen from ``from_dir``.

    The ``.ts`` extension is dropped and same-directory or child paths get a
    ``./`` prefix.
    """
    relative = Path(os.path.relpath(Path(target), Path(from_dir))).as_posix()
    if relative.endswith(".ts"):
        relative = relative[:-3]
    if not relative.startswith("."):
        relative = f"./{relative}"
    return relative


__all__ = ["read_source", "relative_specifier", "write_output"]
