"""Staleness marker and advisory lock for the build flow."""

from __future__ import annotations

import hashlib
import json
import os
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

from ..logging import get_logger

SIGNATURE_FILENAME = ".signature"
LOCK_FILENAME = ".shapegen.lock"

_SIGNATURE_VERSION = 1


def fingerprint_sources(paths: Sequence[Path]) -> str:
    """Hash the identity, size and mtime of every source in ``paths``."""
    digest = hashlib.sha256()
    for path in sorted(Path(item) for item in paths):
        try:
            stat_result = path.stat()
        except OSError:
            continue
        digest.update(f"{path.as_posix()}\0{stat_result.st_size}\0{stat_result.st_mtime_ns}\n".encode("utf-8"))
    return digest.hexdigest()


class GenerationMarker:
    """Records when generation last completed and over which sources."""

    def __init__(self, directory: Path) -> None:
        self.path = Path(directory) / SIGNATURE_FILENAME
        self.logger = get_logger("stores.generation")

    def is_stale(self, sources: Sequence[Path]) -> bool:
        payload = self._load()
        if payload is None:
            return True
        try:
            marker_mtime = self.path.stat().st_mtime_ns
        except OSError:
            return True

        for source in sources:
            try:
                if Path(source).stat().st_mtime_ns > marker_mtime:
                    self.logger.debug("%s changed since the last generation", source)
                    return True
            except OSError:
                return True
        # Deleted or added sources change the fingerprint without touching mtimes.
        return payload.get("fingerprint") != fingerprint_sources(sources)

    def record(self, sources: Sequence[Path]) -> None:
        payload = {
            "version": _SIGNATURE_VERSION,
            "generated_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "sources": len(sources),
            "fingerprint": fingerprint_sources(sources),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

    def _load(self) -> Optional[Dict[str, object]]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError):
            return None
        if not isinstance(data, dict) or data.get("version") != _SIGNATURE_VERSION:
            return None
        return data


class GenerationLock:
    """Exclusive lock file holding the writer's pid.

    A lock older than ``stale_after`` seconds is assumed to belong to a crashed
    process and is replaced.
    """

    def __init__(
        self,
        path: Path,
        *,
        stale_after: float = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = Path(path)
        self.stale_after = stale_after
        self._clock = clock
        self._held = False
        self.logger = get_logger("stores.generation")

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> bool:
        if self._held:
            return True
        if self._try_create():
            return True
        if not self._is_stale():
            return False
        self.logger.warning("Removing stale lock %s", self.path)
        self.path.unlink(missing_ok=True)
        return self._try_create()

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        self.path.unlink(missing_ok=True)

    def __enter__(self) -> "GenerationLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def _try_create(self) -> bool:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            descriptor = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        with os.fdopen(descriptor, "w", encoding="utf-8") as handle:
            handle.write(str(os.getpid()))
        self._held = True
        return True

    def _is_stale(self) -> bool:
        try:
            age = self._clock() - self.path.stat().st_mtime
        except FileNotFoundError:
            return True
        return age > self.stale_after


__all__ = [
    "GenerationLock",
    "GenerationMarker",
    "LOCK_FILENAME",
    "SIGNATURE_FILENAME",
    "fingerprint_sources",
]
