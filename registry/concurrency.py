"""
Layered Asset Registry - Concurrency Utilities

This module provides the locking discipline for registry mutations: one
allocation lock for minting, one lock per asset identifier for updates, and a
commit lock that orders persistence, in-memory writes and event emission.
The commit lock is always acquired first and every lock is reentrant.
"""

import threading
import time
from collections import deque
from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Lock, RLock
from typing import Any, Dict


class LockMetrics:
    """Lock performance metrics."""

    def __init__(self):
        self.acquisition_count = 0
        self.contention_count = 0
        self.total_wait_time = 0.0
        self.max_wait_time = 0.0
        self.last_acquisition = None
        self.lock_history = deque(maxlen=100)  # Last 100 lock events
        self._lock = Lock()

    def record_acquisition(self, name: str, wait_time: float, contended: bool) -> None:
        """Record lock acquisition metrics."""
        with self._lock:
            self.acquisition_count += 1
            self.total_wait_time += wait_time
            self.max_wait_time = max(self.max_wait_time, wait_time)
            self.last_acquisition = datetime.now(timezone.utc)

            if contended:
                self.contention_count += 1

            self.lock_history.append({
                'lock': name,
                'timestamp': self.last_acquisition,
                'wait_time': wait_time,
                'contended': contended,
                'thread_id': threading.get_ident()
            })

    def get_contention_ratio(self) -> float:
        """Get lock contention ratio."""
        if self.acquisition_count == 0:
            return 0.0
        return self.contention_count / self.acquisition_count

    def get_average_wait_time(self) -> float:
        """Get average wait time."""
        if self.acquisition_count == 0:
            return 0.0
        return self.total_wait_time / self.acquisition_count


class AssetLockManager:
    """Allocation, per-asset and commit locks for the registry facade."""

    def __init__(self):
        self._allocation_lock = RLock()
        self._commit_lock = RLock()
        self._asset_locks: Dict[int, RLock] = {}
        self._registry_lock = Lock()
        self.metrics = LockMetrics()

    def _asset_lock(self, asset_id: int) -> RLock:
        with self._registry_lock:
            lock = self._asset_locks.get(asset_id)
            if lock is None:
                lock = RLock()
                self._asset_locks[asset_id] = lock
            return lock

    @contextmanager
    def _hold(self, name: str, lock: RLock):
        start_time = time.time()
        contended = not lock.acquire(blocking=False)
        if contended:
            lock.acquire()
        try:
            self.metrics.record_acquisition(name, time.time() - start_time, contended)
            yield
        finally:
            lock.release()

    def allocation(self):
        """Serialize identifier allocation across all mints."""
        return self._hold("allocation", self._allocation_lock)

    def asset(self, asset_id: int):
        """Serialize updates to a single asset."""
        return self._hold(f"asset:{asset_id}", self._asset_lock(asset_id))

    def commit(self):
        """Serialize persist, apply and emit steps of every mutation."""
        return self._hold("commit", self._commit_lock)

    def get_metrics(self) -> Dict[str, Any]:
        """Get lock performance metrics."""
        with self._registry_lock:
            asset_lock_count = len(self._asset_locks)
        return {
            'acquisition_count': self.metrics.acquisition_count,
            'contention_count': self.metrics.contention_count,
            'contention_ratio': self.metrics.get_contention_ratio(),
            'average_wait_time': self.metrics.get_average_wait_time(),
            'max_wait_time': self.metrics.max_wait_time,
            'asset_locks': asset_lock_count,
            'last_acquisition': self.metrics.last_acquisition
        }
