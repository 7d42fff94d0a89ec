"""
Unit tests for concurrency utilities and concurrent registry mutations.
"""

import threading
import time

import pytest

from registry.concurrency import AssetLockManager, LockMetrics


class TestLockMetrics:

    def test_empty_metrics(self):
        metrics = LockMetrics()
        assert metrics.get_contention_ratio() == 0.0
        assert metrics.get_average_wait_time() == 0.0

    def test_record_acquisition(self):
        metrics = LockMetrics()
        metrics.record_acquisition("commit", 0.5, contended=True)
        metrics.record_acquisition("commit", 0.1, contended=False)

        assert metrics.acquisition_count == 2
        assert metrics.contention_count == 1
        assert metrics.get_contention_ratio() == 0.5
        assert metrics.max_wait_time == 0.5
        assert metrics.lock_history[-1]['lock'] == "commit"


class TestAssetLockManager:

    def test_asset_locks_are_reentrant(self):
        locks = AssetLockManager()
        with locks.asset(1):
            with locks.asset(1):
                pass
        assert locks.get_metrics()['acquisition_count'] == 2

    def test_one_lock_per_asset(self):
        locks = AssetLockManager()
        with locks.asset(1), locks.asset(2), locks.asset(1):
            pass
        assert locks.get_metrics()['asset_locks'] == 2

    def test_asset_lock_excludes_other_threads(self):
        locks = AssetLockManager()
        inside = []
        overlap = []

        def worker(n):
            for _ in range(50):
                with locks.asset(7):
                    inside.append(n)
                    if len(inside) > 1:
                        overlap.append(n)
                    inside.remove(n)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert overlap == []
        assert locks.get_metrics()['acquisition_count'] == 200


class TestConcurrentRegistry:

    def test_concurrent_mints_get_unique_identifiers(self, registry, admin):
        results = []
        results_lock = threading.Lock()

        def minter(n):
            for i in range(25):
                asset_id = registry.mint(admin, f"to-{n}", f"ipfs://{n}/{i}", f"N{n}", "D")
                with results_lock:
                    results.append(asset_id)

        threads = [threading.Thread(target=minter, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(results) == list(range(1, 201))
        assert registry.total_supply() == 200
        assert [e.sequence for e in registry.events()] == list(range(1, 201))

        # Every record was written under the identifier its event announced
        for event in registry.events():
            assert registry.get_base_uri(event.asset_id) == event.base_uri

    def test_concurrent_updates_to_same_asset(self, minted, admin):
        registry, asset_id = minted
        written = [f"ipfs://overlay/{n}" for n in range(6)]

        def updater(uri):
            for _ in range(20):
                registry.set_overlay(admin, asset_id, uri)

        threads = [threading.Thread(target=updater, args=(uri,)) for uri in written]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        last_event = registry.events()[-1]
        assert registry.get_overlay_uri(asset_id) == last_event.overlay_uri
        assert registry.get_overlay_uri(asset_id) in written
        assert len(registry.events()) == 1 + 6 * 20

    @pytest.mark.parametrize("workers", [2, 6])
    def test_persistent_concurrent_mints(self, persistent_registry, admin, storage_dir, workers):
        from registry.manager import AssetRegistry

        def minter(n):
            for i in range(5):
                persistent_registry.mint(admin, "to", f"ipfs://{n}/{i}", "N", "D")

        threads = [threading.Thread(target=minter, args=(n,)) for n in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        reopened = AssetRegistry.open(storage_dir)
        assert reopened.total_supply() == workers * 5
        assert len(reopened.events()) == workers * 5

    def test_subscriber_may_update_while_another_thread_updates(self, minted, admin):
        registry, asset_id = minted
        in_subscriber = threading.Event()

        def on_event(event):
            if event.event_type == "minted" and event.asset_id == 2:
                in_subscriber.set()
                time.sleep(0.1)
                registry.set_overlay(admin, asset_id, "ipfs://from-subscriber")

        registry.subscribe(on_event)

        minter = threading.Thread(
            target=registry.mint, args=(admin, "to", "ipfs://2", "N", "D")
        )

        def updater():
            in_subscriber.wait(2)
            registry.set_overlay(admin, asset_id, "ipfs://from-thread")

        other = threading.Thread(target=updater)
        minter.start()
        other.start()
        minter.join(3)
        other.join(3)

        assert not minter.is_alive()
        assert not other.is_alive()
        overlays = [e.overlay_uri for e in registry.events() if e.event_type == "overlay_updated"]
        assert sorted(overlays) == ["ipfs://from-subscriber", "ipfs://from-thread"]
        assert registry.get_overlay_uri(asset_id) == overlays[-1]

    def test_subscriber_reentry_on_persistent_registry(self, persistent_registry, admin):
        minted_ids = []

        def on_event(event):
            if event.event_type == "minted":
                minted_ids.append(event.asset_id)
                persistent_registry.set_overlay(admin, event.asset_id, f"ipfs://overlay/{event.asset_id}")

        persistent_registry.subscribe(on_event)
        persistent_registry.mint(admin, "to", "ipfs://1", "N", "D")

        assert minted_ids == [1]
        assert persistent_registry.get_overlay_uri(1) == "ipfs://overlay/1"
        assert [e.sequence for e in persistent_registry.events()] == [1, 2]

    def test_concurrent_mints_through_separate_handles(self, storage_dir, admin):
        from registry.manager import AssetRegistry

        handles = [AssetRegistry.open(storage_dir, administrator=admin) for _ in range(3)]
        results = []
        results_lock = threading.Lock()

        def minter(handle, n):
            for i in range(4):
                asset_id = handle.mint(admin, "to", f"ipfs://{n}/{i}", "N", "D")
                with results_lock:
                    results.append(asset_id)

        threads = [threading.Thread(target=minter, args=(h, n)) for n, h in enumerate(handles)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(results) == list(range(1, 13))
        reopened = AssetRegistry.open(storage_dir)
        assert reopened.total_supply() == 12
        assert [e.sequence for e in reopened.events()] == list(range(1, 13))
