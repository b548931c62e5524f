"""Tests for the staleness marker and the generation lock."""

from __future__ import annotations

import os
import time
from pathlib import Path

from shapegen.stores.generation import GenerationLock, GenerationMarker


def _touch(path: Path, content: str = "x", mtime: float | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def test_marker_is_stale_until_recorded(tmp_path: Path) -> None:
    source = _touch(tmp_path / "users.service.ts", mtime=time.time() - 100)
    marker = GenerationMarker(tmp_path / "responses")

    assert marker.is_stale([source]) is True
    marker.record([source])
    assert marker.is_stale([source]) is False
    assert marker.path.name == ".signature"


def test_marker_detects_newer_sources(tmp_path: Path) -> None:
    source = _touch(tmp_path / "users.service.ts", mtime=time.time() - 100)
    marker = GenerationMarker(tmp_path / "responses")
    marker.record([source])

    _touch(source, "changed", mtime=time.time() + 100)

    assert marker.is_stale([source]) is True


def test_marker_detects_added_or_removed_sources(tmp_path: Path) -> None:
    first = _touch(tmp_path / "a.service.ts", mtime=time.time() - 100)
    second = _touch(tmp_path / "b.service.ts", mtime=time.time() - 100)
    marker = GenerationMarker(tmp_path / "responses")
    marker.record([first, second])

    assert marker.is_stale([first]) is True


def test_marker_ignores_corrupt_payload(tmp_path: Path) -> None:
    marker = GenerationMarker(tmp_path)
    marker.path.write_text("{not json", encoding="utf-8")

    assert marker.is_stale([]) is True
    marker.clear()
    assert not marker.path.exists()


def test_lock_is_exclusive_and_released(tmp_path: Path) -> None:
    path = tmp_path / ".shapegen.lock"
    first = GenerationLock(path)
    second = GenerationLock(path)

    assert first.acquire() is True
    assert path.read_text(encoding="utf-8") == str(os.getpid())
    assert second.acquire() is False

    first.release()
    assert not path.exists()
    assert second.acquire() is True
    second.release()


def test_stale_lock_is_replaced(tmp_path: Path) -> None:
    path = tmp_path / ".shapegen.lock"
    _touch(path, "12345", mtime=time.time() - 120)

    lock = GenerationLock(path, stale_after=30.0)

    assert lock.acquire() is True
    assert path.read_text(encoding="utf-8") == str(os.getpid())
    lock.release()


def test_fresh_foreign_lock_is_respected(tmp_path: Path) -> None:
    path = tmp_path / ".shapegen.lock"
    _touch(path, "12345")

    lock = GenerationLock(path, stale_after=30.0, clock=lambda: path.stat().st_mtime + 5)

    assert lock.acquire() is False
    lock.release()
    assert path.exists()


def test_lock_context_manager_releases(tmp_path: Path) -> None:
    path = tmp_path / ".shapegen.lock"

    with GenerationLock(path) as lock:
        assert lock.held
        assert path.exists()

    assert not path.exists()
