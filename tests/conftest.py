from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from shapegen.analyzers.tree_sitter import SourceParser
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable project builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture(scope="session")
def parser() -> SourceParser:
    return SourceParser()


@pytest.fixture(autouse=True)
def _reset_shapegen_logger() -> Iterator[None]:
    """Undo CLI logging setup so caplog keeps seeing shapegen records."""
    yield
    logger = logging.getLogger("shapegen")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
