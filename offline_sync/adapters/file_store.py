"""Directory-backed key-value store with atomic writes.

Each key is one ``<key>.json`` file. Writes go to ``tmp/`` first and are
moved into place with ``os.replace()``, so a reader never observes a
partially written value:

    storage_path/
        .lock         # Cross-process write lock (filelock)
        tmp/          # Partial writes (crash-safe)
        <key>.json    # Committed values

Writers in different processes (e.g. the host app and the CLI) are
serialized through the lock file; reads take no lock.
"""

from __future__ import annotations

import logging
import os
import random
import time
from pathlib import Path

from filelock import FileLock
from filelock import Timeout as FileLockTimeout

from offline_sync.core.errors import StorageError
from offline_sync.core.utils import safe_key

logger = logging.getLogger(__name__)

LOCK_FILENAME = ".lock"


class JsonFileKeyValueStore:
    """File-per-key implementation of KeyValueStoreProtocol."""

    def __init__(self, storage_path: Path, lock_timeout: float = 5.0) -> None:
        """Initialize the store.

        Directories are created lazily on first write.

        Args:
            storage_path: Directory that holds the committed values.
            lock_timeout: Seconds to wait for another process's write to finish.
        """
        self._root = Path(storage_path)
        self._tmp_dir = self._root / "tmp"
        self._lock = FileLock(str(self._root / LOCK_FILENAME), timeout=lock_timeout)
        self._lock_timeout = lock_timeout

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        return self._root / f"{safe_key(key)}.json"

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read {path.name}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        tmp_path = self._tmp_dir / f"{time.time_ns()}-{os.getpid()}-{random.randbytes(4).hex()}"
        try:
            self._tmp_dir.mkdir(parents=True, exist_ok=True)
            with self._lock:
                tmp_path.write_text(value, encoding="utf-8")
                os.replace(tmp_path, path)
        except FileLockTimeout as e:
            raise StorageError(
                f"Timed out after {self._lock_timeout}s waiting to write {path.name}; "
                "another process may be holding the lock"
            ) from e
        except OSError as e:
            if tmp_path.exists():
                tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Cannot write {path.name}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        if not self._root.exists():
            return
        try:
            with self._lock:
                path.unlink(missing_ok=True)
        except FileLockTimeout as e:
            raise StorageError(f"Timed out waiting to delete {path.name}") from e
        except OSError as e:
            raise StorageError(f"Cannot delete {path.name}: {e}") from e

    def cleanup_tmp(self) -> int:
        """Remove partial writes left behind by a crash.

        Returns:
            Number of orphaned temp files removed.
        """
        if not self._tmp_dir.exists():
            return 0
        removed = 0
        # Writers only create temp files while holding the lock
        with self._lock:
            for orphan in self._tmp_dir.iterdir():
                try:
                    orphan.unlink()
                    removed += 1
                except OSError as e:
                    logger.debug(f"Could not remove orphaned temp file {orphan.name}: {e}")
        if removed:
            logger.info(f"Removed {removed} orphaned temp file(s) from {self._tmp_dir}")
        return removed
