"""
Layered Asset Registry - Snapshot Storage Backend

This module persists registry snapshots as a single JSON document. Every
mutation goes through a read-modify-write cycle held under an exclusive lock
file, so several registry handles (or CLI processes) sharing one storage
directory always build on the latest stored state.
"""

import hashlib
import json
import logging
import os
import shutil
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from .exceptions import IntegrityError, LockTimeoutError, StorageError
from .schema import RegistrySnapshot


logger = logging.getLogger("registry.storage")

SnapshotUpdater = Callable[[Optional[RegistrySnapshot]], RegistrySnapshot]


class FileLock:
    """
    Cross-process exclusive lock backed by a ``<file>.lock`` sibling.

    The lock file is created with O_EXCL and carries the owner's pid, which
    shows up in the timeout error when another process holds it.
    """

    poll_interval = 0.05

    def __init__(self, file_path: Union[str, Path], timeout: float = 30.0):
        self.target = Path(file_path)
        self.lock_file_path = self.target.with_name(self.target.name + '.lock')
        self.timeout = timeout
        self._fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def _holder(self) -> str:
        try:
            return self.lock_file_path.read_text().strip() or "unknown"
        except OSError:
            return "unknown"

    def acquire(self) -> None:
        if self.held:
            return

        deadline = time.monotonic() + self.timeout
        while True:
            try:
                self._fd = os.open(str(self.lock_file_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                if time.monotonic() >= deadline:
                    raise LockTimeoutError(
                        f"{self.lock_file_path} still held by pid {self._holder()} "
                        f"after {self.timeout} seconds"
                    )
                time.sleep(self.poll_interval)
                continue
            except OSError as e:
                raise StorageError(f"Cannot create lock file {self.lock_file_path}: {e}")

            os.write(self._fd, str(os.getpid()).encode('ascii'))
            return

    def release(self) -> None:
        if not self.held:
            return

        fd, self._fd = self._fd, None
        try:
            os.close(fd)
            self.lock_file_path.unlink()
        except OSError as e:
            logger.warning(f"Failed to release lock {self.lock_file_path}: {e}")

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


class JSONStorage:
    """
    One JSON document on disk with atomic replacement and rotated backups.

    ``read``, ``write`` and ``update`` each take the lock themselves; the
    underscored ``_load`` and ``_store`` expect the caller to hold ``locked()``.
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        backup_count: int = 5,
        lock_timeout: float = 30.0
    ):
        self.file_path = Path(file_path)
        self.backup_count = backup_count
        self.lock_timeout = lock_timeout
        self._thread_lock = RLock()

        self.file_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def backup_dir(self) -> Path:
        return self.file_path.parent / 'backups'

    @staticmethod
    def checksum(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    @contextmanager
    def locked(self):
        """Hold both the in-process and the lock-file lock."""
        with self._thread_lock:
            file_lock = FileLock(self.file_path, timeout=self.lock_timeout)
            with file_lock:
                yield

    def _load(self) -> Dict[str, Any]:
        try:
            raw = self.file_path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageError(f"Failed to read {self.file_path}: {e}")

        if not raw:
            return {}
        try:
            return json.loads(raw.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise IntegrityError(f"Invalid JSON data in {self.file_path}: {e}")

    def _store(self, data: Dict[str, Any], create_backup: bool) -> str:
        payload = json.dumps(data, indent=2, default=str).encode('utf-8')
        staging = self.file_path.with_name(self.file_path.name + '.tmp')

        if create_backup:
            self._backup()

        try:
            with open(staging, 'wb') as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(staging, self.file_path)
        except OSError as e:
            staging.unlink(missing_ok=True)
            raise StorageError(f"Failed to write {self.file_path}: {e}")

        return self.checksum(payload)

    def _backup(self) -> None:
        if self.backup_count <= 0 or not self.file_path.exists():
            return

        stamp = datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S_%f')
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(self.file_path, self.backup_dir / f"{self.file_path.stem}_{stamp}{self.file_path.suffix}")

        for stale in self.list_backups()[self.backup_count:]:
            try:
                stale.unlink()
            except OSError as e:
                logger.warning(f"Failed to remove old backup {stale}: {e}")

    def read(self) -> Dict[str, Any]:
        """Current document, {} when nothing has been written yet."""
        if not self.file_path.exists():
            return {}
        with self.locked():
            return self._load()

    def write(self, data: Dict[str, Any], create_backup: bool = True) -> str:
        """Replace the document and return the checksum of the written bytes."""
        with self.locked():
            return self._store(data, create_backup)

    def update(
        self,
        updater_func: Callable[[Dict[str, Any]], Dict[str, Any]],
        create_backup: bool = True
    ) -> str:
        """Read, transform and write back the document under one lock."""
        with self.locked():
            return self._store(updater_func(self._load()), create_backup)

    def exists(self) -> bool:
        return self.file_path.exists()

    def size(self) -> int:
        return self.file_path.stat().st_size if self.file_path.exists() else 0

    def verify(self, expected_checksum: str) -> bool:
        """Check the stored bytes against a checksum returned by write()."""
        if not self.file_path.exists():
            return False
        return self.checksum(self.file_path.read_bytes()) == expected_checksum

    def list_backups(self) -> List[Path]:
        """Backup files, newest first."""
        if not self.backup_dir.exists():
            return []

        pattern = f"{self.file_path.stem}_*{self.file_path.suffix}"
        return sorted(self.backup_dir.glob(pattern), key=lambda p: p.name, reverse=True)


class RegistryStorage:
    """Registry snapshots on top of a JSONStorage document."""

    def __init__(self, storage_dir: Union[str, Path] = "registry_data", backup_count: int = 5):
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

        self.json_storage = JSONStorage(
            self.storage_dir / "registry.json",
            backup_count=backup_count
        )
        self.last_checksum: Optional[str] = None

    @staticmethod
    def _parse(data: Dict[str, Any]) -> Optional[RegistrySnapshot]:
        if not data:
            return None
        try:
            return RegistrySnapshot.model_validate(data)
        except ValidationError as e:
            raise IntegrityError(f"Invalid registry snapshot: {e}")

    def exists(self) -> bool:
        return self.json_storage.exists()

    def load_snapshot(self) -> Optional[RegistrySnapshot]:
        """Stored snapshot, or None for an empty storage directory."""
        snapshot = self._parse(self.json_storage.read())
        if snapshot is not None:
            logger.debug(f"Loaded snapshot with {snapshot.counter} assets from {self.storage_dir}")
        return snapshot

    def save_snapshot(self, snapshot: RegistrySnapshot) -> str:
        """Overwrite the stored snapshot and return its checksum."""
        self.last_checksum = self.json_storage.write(snapshot.model_dump(mode='json'))
        logger.debug(f"Saved snapshot with {snapshot.counter} assets ({self.last_checksum[:12]})")
        return self.last_checksum

    def update_snapshot(self, updater_func: SnapshotUpdater) -> RegistrySnapshot:
        """
        Replace the stored snapshot with updater_func(stored) atomically.

        updater_func receives the snapshot as it is on disk while the lock is
        held (None when nothing is stored yet). If it raises, nothing is written.
        """
        result: List[RegistrySnapshot] = []

        def apply(data: Dict[str, Any]) -> Dict[str, Any]:
            updated = updater_func(self._parse(data))
            result.append(updated)
            return updated.model_dump(mode='json')

        self.last_checksum = self.json_storage.update(apply)
        logger.debug(f"Committed snapshot with {result[0].counter} assets ({self.last_checksum[:12]})")
        return result[0]

    def get_storage_info(self) -> Dict[str, Any]:
        return {
            'file_path': str(self.json_storage.file_path),
            'size_bytes': self.json_storage.size(),
            'exists': self.json_storage.exists(),
            'backup_count': len(self.json_storage.list_backups()),
            'last_checksum': self.last_checksum,
        }
