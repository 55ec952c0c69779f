"""Key/value storage adapters for the persisted snapshot.

The engine owns all (de)serialization; adapters only move named byte blobs.
``set`` raises on failure and callers decide how to degrade.
"""

from __future__ import annotations

import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol

from parking_ai.utils.logging import get_logger


class StorageAdapter(Protocol):
    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...


class InMemoryStorage:
    """Dictionary-backed adapter for tests and ephemeral engines."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None) -> None:
        self._data: Dict[str, bytes] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    def keys(self):
        with self._lock:
            return sorted(self._data)


class JsonFileStorage:
    """Persist each key as its own file under a directory.

    File layout::

        parking_memory/
            parking_patterns.json
            location_clusters.json
            behavioral_metrics.json

    Writes go to a temporary file first and are renamed into place so a crash
    mid-write leaves the previous snapshot intact.
    """

    _SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def _path_for(self, key: str) -> Path:
        if not self._SAFE_KEY.match(key):
            raise ValueError(f"Unsupported storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        if not path.exists():
            self.logger.debug("No stored blob", key=key)
            return None
        return path.read_bytes()

    def set(self, key: str, value: bytes) -> None:
        path = self._path_for(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as tmp_file:
                tmp_file.write(value)
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        self.logger.debug("Blob written", key=key, size_bytes=len(value))
