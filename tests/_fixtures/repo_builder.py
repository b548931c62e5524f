"""Helper utilities for constructing temporary TypeScript projects in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import List, Mapping

from shapegen.repo_scanner import SourceScanner


class RepoBuilder:
    """Utility for writing files into a throwaway project and listing them back."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "repo"
        self.root.mkdir()
        self._scanner = SourceScanner()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the project."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def read(self, relative: str) -> str:
        return (self.root / relative).read_text(encoding="utf-8")

    def list(self, pattern: str) -> List[str]:
        """Return project-relative POSIX paths matching ``pattern``."""
        root = self.root.resolve()
        return [path.relative_to(root).as_posix() for path in self._scanner.list_paths(root, pattern)]

    def path(self) -> Path:
        """Return the project root path."""
        return self.root


__all__ = ["RepoBuilder"]
