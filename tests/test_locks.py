import asyncio

from i18n_openai_sync.locks import FileLockStore


class TestFileLockStore:
    """Self-write suppression locks with delayed release."""

    def test_acquire_and_has(self, lock_store, tmp_path):
        path = tmp_path / "fr" / "common.json"
        assert not lock_store.has(path)
        lock_store.acquire(path)
        assert lock_store.has(path)
        assert lock_store.get(path).path == path.resolve()

    def test_paths_are_normalized(self, lock_store, tmp_path):
        lock_store.acquire(tmp_path / "fr" / ".." / "fr" / "common.json")
        assert lock_store.has(tmp_path / "fr" / "common.json")

    def test_release_waits_for_grace_delay(self, lock_store, scheduler, tmp_path):
        path = tmp_path / "fr.json"
        lock_store.acquire(path)
        lock_store.release(path)

        assert lock_store.has(path)
        scheduler.advance(0.4)
        assert lock_store.has(path)
        scheduler.advance(0.1)
        assert not lock_store.has(path)

    def test_reacquire_cancels_pending_release(self, lock_store, scheduler, tmp_path):
        path = tmp_path / "fr.json"
        lock_store.acquire(path)
        lock_store.release(path)
        scheduler.advance(0.3)

        lock_store.acquire(path)
        scheduler.advance(0.3)
        assert lock_store.has(path)

        lock_store.release(path)
        scheduler.advance(0.5)
        assert not lock_store.has(path)

    def test_release_now(self, lock_store, scheduler, tmp_path):
        path = tmp_path / "fr.json"
        lock_store.acquire(path)
        lock_store.release(path)
        lock_store.release_now(path)
        assert not lock_store.has(path)
        assert scheduler.pending == []

    def test_dispose_cancels_everything(self, lock_store, scheduler, tmp_path):
        for name in ("a.json", "b.json"):
            lock_store.acquire(tmp_path / name)
            lock_store.release(tmp_path / name)
        lock_store.dispose()
        assert len(lock_store) == 0
        assert scheduler.pending == []

    async def test_default_scheduler_uses_event_loop_timer(self, tmp_path):
        store = FileLockStore(grace_delay=0.01)
        path = tmp_path / "fr.json"
        store.acquire(path)
        store.release(path)
        assert store.has(path)
        await asyncio.sleep(0.05)
        assert not store.has(path)
