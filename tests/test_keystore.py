"""Tests for per-origin symmetric key stores."""

import json
import multiprocessing
import os
import stat
import threading
import time

import pytest

from cloutkey.config import Settings
from cloutkey.errors import KeyMaterialMalformed
from cloutkey.keystore.base import storage_key
from cloutkey.keystore.factory import get_key_store, reset_key_store_cache
from cloutkey.keystore.file import FileKeyStore
from cloutkey.utils.locks import LockTimeoutError
from cloutkey.keystore.memory import InMemoryKeyStore


class SlowInMemoryKeyStore(InMemoryKeyStore):
    """Widens the read-then-write window so races show up reliably."""

    def _read(self, name):
        value = super()._read(name)
        time.sleep(0.01)
        return value


def get_or_create_in_process(path, origin, barrier, results):
    """Child process body: open the shared store and race for one origin's key."""
    store = FileKeyStore(path, lock_timeout=30.0)
    barrier.wait(30.0)
    results.put((origin, store.get_or_create(origin).hex()))


@pytest.fixture(params=["memory", "file"])
def store(request, memory_store, file_store):
    return memory_store if request.param == "memory" else file_store


class TestKeyStoreContract:
    """Behaviour shared by every backend."""

    def test_get_missing_returns_none(self, store):
        assert store.get("example.com") is None

    def test_get_or_create_is_stable(self, store):
        first = store.get_or_create("example.com")
        second = store.get_or_create("example.com")

        assert len(first) == 32
        assert first == second
        assert store.get("example.com") == first

    def test_origins_get_different_keys(self, store):
        assert store.get_or_create("a.example.com") != store.get_or_create("b.example.com")

    def test_put_then_get(self, store):
        key = bytes(range(32))
        store.put("example.com", key)

        assert store.get("example.com") == key
        assert store.get_or_create("example.com") == key

    @pytest.mark.parametrize("length", [0, 16, 31, 33])
    def test_put_rejects_wrong_length(self, store, length):
        with pytest.raises(KeyMaterialMalformed):
            store.put("example.com", b"\x00" * length)
        assert store.get("example.com") is None

    def test_delete(self, store):
        store.get_or_create("example.com")
        store.delete("example.com")

        assert store.get("example.com") is None

    def test_delete_missing_is_noop(self, store):
        store.delete("never-used.example.com")

    @pytest.mark.parametrize("origin", ["", None])
    def test_empty_origin_raises(self, store, origin):
        with pytest.raises(ValueError):
            store.get_or_create(origin)

    def test_storage_key_naming(self):
        assert storage_key("example.com") == "seed-hex-key-example.com"


class TestAtomicGetOrCreate:
    """Concurrent first use must settle on one key per origin."""

    def test_concurrent_first_use_yields_single_key(self):
        store = SlowInMemoryKeyStore(lock_timeout=10.0)
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(store.get_or_create("race.example.com"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8
        assert len(set(results)) == 1
        assert store.get("race.example.com") == results[0]

    def test_concurrent_origins_on_file_store(self, file_store):
        """Parallel writers for different origins don't drop each other's keys."""
        origins = [f"site{i}.example.com" for i in range(10)]
        keys = {}

        def worker(origin):
            keys[origin] = file_store.get_or_create(origin)

        threads = [threading.Thread(target=worker, args=(o,)) for o in origins]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        reopened = FileKeyStore(file_store.path)
        for origin in origins:
            assert reopened.get(origin) == keys[origin]

    @pytest.mark.skipif(not hasattr(os, "fork"), reason="needs fork start method")
    @pytest.mark.parametrize("round_", range(3))
    def test_processes_sharing_file_store(self, tmp_path, round_):
        """Separate processes on one file agree per origin and keep every slot."""
        path = tmp_path / "shared" / "keystore.json"
        origins = ["shared.example.com"] * 3 + [f"own{i}.example.com" for i in range(3)]
        ctx = multiprocessing.get_context("fork")
        barrier = ctx.Barrier(len(origins))
        results = ctx.Queue()

        processes = [
            ctx.Process(target=get_or_create_in_process, args=(path, origin, barrier, results))
            for origin in origins
        ]
        for p in processes:
            p.start()
        returned = [results.get(timeout=60) for _ in processes]
        for p in processes:
            p.join(timeout=60)
            assert p.exitcode == 0

        shared = {key for origin, key in returned if origin == "shared.example.com"}
        assert len(shared) == 1

        stored = FileKeyStore(path)
        for origin, key in returned:
            assert stored.get(origin).hex() == key
        assert len(json.loads(path.read_text())) == 4

    def test_factory_first_use_yields_single_store(self, monkeypatch):
        """Threads hitting an empty factory cache all share one store and one key."""
        original_init = InMemoryKeyStore.__init__

        def slow_init(self, *args, **kwargs):
            time.sleep(0.05)
            original_init(self, *args, **kwargs)

        monkeypatch.setattr(InMemoryKeyStore, "__init__", slow_init)
        reset_key_store_cache()
        settings = Settings(key_store_backend="memory")
        barrier = threading.Barrier(4)
        stores = []
        keys = []

        def worker():
            barrier.wait()
            store = get_key_store(settings)
            stores.append(store)
            keys.append(store.get_or_create("example.com"))

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len({id(s) for s in stores}) == 1
        assert len(set(keys)) == 1


class TestFileKeyStore:
    """File backend specifics."""

    def test_persists_across_instances(self, file_store):
        key = file_store.get_or_create("example.com")
        reopened = FileKeyStore(file_store.path)

        assert reopened.get("example.com") == key

    def test_file_layout(self, file_store):
        key = file_store.get_or_create("example.com")
        data = json.loads(file_store.path.read_text())

        assert data == {"seed-hex-key-example.com": key.hex()}

    def test_creates_parent_directory(self, file_store):
        assert not file_store.path.parent.exists()
        file_store.get_or_create("example.com")
        assert file_store.path.exists()

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions only")
    def test_file_is_owner_only(self, file_store):
        file_store.get_or_create("example.com")
        mode = stat.S_IMODE(file_store.path.stat().st_mode)

        assert mode == 0o600

    def test_no_temp_files_left_behind(self, file_store):
        file_store.get_or_create("a.example.com")
        file_store.get_or_create("b.example.com")

        assert sorted(p.name for p in file_store.path.parent.iterdir()) == sorted(
            [file_store.path.name, file_store.lock_path.name]
        )

    def test_lock_file_sits_beside_store(self, file_store):
        assert file_store.lock_path == file_store.path.with_name("keystore.json.lock")

    def test_get_does_not_create_files(self, file_store):
        assert file_store.get("example.com") is None
        assert not file_store.path.parent.exists()

    def test_held_file_lock_times_out(self, file_store):
        """Another holder of the store lock makes writers give up after the timeout."""
        file_store.path.parent.mkdir(parents=True)
        other = FileKeyStore(file_store.path, lock_timeout=0.1)
        acquired = threading.Event()
        release = threading.Event()

        def hold():
            with file_store._transaction():
                acquired.set()
                release.wait(5.0)

        holder = threading.Thread(target=hold)
        holder.start()
        acquired.wait(5.0)

        try:
            with pytest.raises(LockTimeoutError):
                other.get_or_create("example.com")
        finally:
            release.set()
            holder.join()

        assert other.get("example.com") is None

    def test_non_object_document_raises(self, file_store):
        file_store.path.parent.mkdir(parents=True)
        file_store.path.write_text("[]")

        with pytest.raises(ValueError):
            file_store.get("example.com")


class TestKeyStoreFactory:
    """Backend selection from settings."""

    def test_memory_backend(self):
        store = get_key_store(Settings(key_store_backend="memory"))
        assert isinstance(store, InMemoryKeyStore)

    def test_memory_backend_is_cached(self):
        settings = Settings(key_store_backend="memory")
        store = get_key_store(settings)
        store.get_or_create("example.com")

        assert get_key_store(settings) is store

    def test_file_backend(self, tmp_path):
        path = tmp_path / "store.json"
        store = get_key_store(Settings(key_store_backend="file", key_store_path=path))

        assert isinstance(store, FileKeyStore)
        assert store.path == path

    def test_default_settings_use_env(self):
        """conftest selects the memory backend through CLOUTKEY_KEY_STORE_BACKEND."""
        assert isinstance(get_key_store(), InMemoryKeyStore)

    def test_unknown_backend_raises(self):
        settings = Settings.model_construct(key_store_backend="cookie")

        with pytest.raises(ValueError):
            get_key_store(settings)
