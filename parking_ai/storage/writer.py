"""Background, best-effort persistence of snapshots."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import List, Optional

from parking_ai.storage.snapshot import SnapshotCodec
from parking_ai.utils.data_models import ModelSnapshot
from parking_ai.utils.logging import get_logger


class SnapshotWriter:
    """Fire-and-forget snapshot persistence.

    A single worker thread applies writes in submission order, so the stored
    state always moves forward. Failures are logged and dropped: the in-memory
    model stays authoritative and the next mutation writes again.
    """

    def __init__(self, codec: SnapshotCodec) -> None:
        self.codec = codec
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="parking-ai-persist")
        self._pending: List[Future] = []
        self._lock = threading.Lock()
        self._closed = False
        self.failed_writes = 0
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def submit(self, snapshot: ModelSnapshot) -> Optional[Future]:
        """Queue a snapshot write and return immediately."""
        with self._lock:
            if self._closed:
                self.logger.warning("Writer closed; dropping snapshot")
                return None
            self._pending = [f for f in self._pending if not f.done()]
            future = self._executor.submit(self._write, snapshot)
            self._pending.append(future)
            return future

    def _write(self, snapshot: ModelSnapshot) -> bool:
        try:
            self.codec.save(snapshot)
        except Exception as error:
            self.failed_writes += 1
            self.logger.warning(
                "Snapshot write failed; continuing with in-memory state",
                error=str(error),
                failed_writes=self.failed_writes,
            )
            return False

        self.logger.debug(
            "Snapshot persisted",
            patterns=len(snapshot.patterns),
            clusters=len(snapshot.clusters),
        )
        return True

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued writes. Returns False if the timeout elapsed first."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self, timeout: Optional[float] = 5.0) -> None:
        self.flush(timeout)
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=False)
