"""Tests for the gesture store: CRUD, write-through persistence and recovery."""

import json
import logging

import numpy as np
import pytest

from sign_engine.errors import CorruptStorage, InvalidSample, PersistenceError
from sign_engine.landmarks import LandmarkSample
from sign_engine.patterns import GesturePattern
from sign_engine.storage import JsonFileSlot, MemorySlot, decode_library
from sign_engine.store import GestureStore


def make_sample(seed=0):
    rng = np.random.RandomState(seed)
    return LandmarkSample(left_hand=rng.rand(21, 3).astype(np.float32))


def make_pattern(name="hello", n=3, seed=0, created_at=1700000000000):
    return GesturePattern(
        name, [make_sample(seed + i) for i in range(n)], created_at=created_at
    )


class FailingSlot(MemorySlot):
    """Memory slot whose writes can be switched to fail."""

    def __init__(self, text=None):
        super().__init__(text)
        self.fail_writes = False
        self.writes = 0

    def write(self, text):
        if self.fail_writes:
            raise PersistenceError("disk full")
        self.writes += 1
        super().write(text)


class TestLoad:
    def test_absent_slot_is_empty_library(self):
        store = GestureStore(MemorySlot())
        library = store.load()
        assert len(library) == 0
        assert len(store) == 0

    def test_load_returns_stored_patterns(self):
        slot = MemorySlot()
        GestureStore(slot).upsert(make_pattern("hello"))
        library = GestureStore(slot).load()
        assert list(library) == ["hello"]

    def test_load_corrupt_raises_and_keeps_memory(self):
        slot = MemorySlot()
        store = GestureStore(slot)
        store.upsert(make_pattern("hello"))
        slot.write("{broken")
        with pytest.raises(CorruptStorage):
            store.load()
        assert store.names() == ["hello"]

    def test_snapshot_from_load_is_read_only(self):
        store = GestureStore(MemorySlot())
        library = store.load()
        with pytest.raises(TypeError):
            library["x"] = make_pattern("x")


class TestOpen:
    def test_open_recovers_from_corruption(self, caplog):
        slot = MemorySlot("this is not json")
        with caplog.at_level(logging.WARNING, logger="sign_engine.store"):
            store = GestureStore.open(slot)
        assert len(store) == 0
        assert "Discarding unreadable gesture library" in caplog.text

    def test_recovered_store_is_trainable(self):
        slot = MemorySlot("[]")
        store = GestureStore.open(slot)
        store.upsert(make_pattern("hello"))
        assert list(decode_library(slot.read())) == ["hello"]

    def test_open_recovers_from_invalid_utf8(self, tmp_path):
        path = tmp_path / "gestures.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        slot = JsonFileSlot(path)
        store = GestureStore.open(slot)
        assert len(store) == 0
        store.upsert(make_pattern("hello"))
        assert GestureStore.open(slot).names() == ["hello"]

    def test_open_recovers_from_deep_nesting(self):
        store = GestureStore.open(MemorySlot("[" * 100000))
        assert len(store) == 0

    def test_open_propagates_read_failures(self, tmp_path):
        path = tmp_path / "gestures.json"
        path.mkdir()
        with pytest.raises(PersistenceError):
            GestureStore.open(JsonFileSlot(path))

    def test_open_loads_existing(self, tmp_path):
        slot = JsonFileSlot(tmp_path / "gestures.json")
        GestureStore(slot).upsert(make_pattern("hello"))
        assert GestureStore.open(slot).names() == ["hello"]


class TestUpsert:
    def test_insert_persists_immediately(self):
        slot = MemorySlot()
        store = GestureStore(slot)
        store.upsert(make_pattern("hello"))
        assert "hello" in decode_library(slot.read())

    def test_replace_not_merge(self):
        store = GestureStore(MemorySlot())
        first = make_pattern("hello", n=5, seed=0)
        second = make_pattern("hello", n=2, seed=10, created_at=1700000009999)
        store.upsert(first)
        store.upsert(second)
        patterns = store.list()
        assert len(patterns) == 1
        assert patterns[0] == second
        assert patterns[0].sample_count == 2

    def test_other_patterns_untouched(self):
        store = GestureStore(MemorySlot())
        a = make_pattern("a", seed=0)
        b = make_pattern("b", seed=5)
        store.upsert(a)
        store.upsert(b)
        store.upsert(make_pattern("b", seed=9))
        assert store.get("a") == a

    def test_zero_samples_rejected(self):
        store = GestureStore(MemorySlot())
        with pytest.raises(InvalidSample):
            store.upsert(GesturePattern("empty"))
        assert len(store) == 0

    def test_failed_save_keeps_memory(self):
        slot = FailingSlot()
        store = GestureStore(slot)
        slot.fail_writes = True
        with pytest.raises(PersistenceError):
            store.upsert(make_pattern("hello"))
        assert "hello" in store
        assert slot.read() is None

        # Retry persistence without redoing training
        slot.fail_writes = False
        store.save()
        assert "hello" in decode_library(slot.read())


class TestDelete:
    def test_delete_present(self):
        slot = MemorySlot()
        store = GestureStore(slot)
        store.upsert(make_pattern("hello"))
        assert store.delete("hello") is True
        assert "hello" not in store
        assert decode_library(slot.read()) == {}

    def test_delete_absent_is_noop(self):
        slot = FailingSlot()
        store = GestureStore(slot)
        store.upsert(make_pattern("hello"))
        writes = slot.writes
        before = store.list()
        assert store.delete("missing") is False
        assert store.list() == before
        assert slot.writes == writes

    def test_delete_twice(self):
        store = GestureStore(MemorySlot())
        store.upsert(make_pattern("hello"))
        store.delete("hello")
        store.delete("hello")
        assert len(store) == 0


class TestSnapshots:
    def test_list_is_a_copy(self):
        store = GestureStore(MemorySlot())
        store.upsert(make_pattern("a"))
        patterns = store.list()
        store.upsert(make_pattern("b"))
        store.delete("a")
        assert [p.name for p in patterns] == ["a"]

    def test_snapshot_detached(self):
        store = GestureStore(MemorySlot())
        store.upsert(make_pattern("a"))
        snap = store.snapshot()
        store.delete("a")
        assert "a" in snap
        assert "a" not in store.snapshot()

    def test_mutating_list_does_not_affect_store(self):
        store = GestureStore(MemorySlot())
        store.upsert(make_pattern("a"))
        patterns = store.list()
        patterns.clear()
        assert len(store) == 1


class TestRoundTrip:
    def test_file_roundtrip(self, tmp_path):
        slot = JsonFileSlot(tmp_path / "gestures.json")
        store = GestureStore(slot)
        patterns = [
            make_pattern("hello", seed=0),
            GesturePattern(
                "both",
                [LandmarkSample(left_hand=np.ones((21, 3)), right_hand=np.zeros((21, 3)))],
                created_at=42,
            ),
            GesturePattern(
                "right",
                [LandmarkSample(right_hand=np.full((21, 3), -0.5))],
                created_at=43,
            ),
        ]
        for p in patterns:
            store.upsert(p)

        reloaded = GestureStore(slot).load()
        assert dict(reloaded) == {p.name: p for p in patterns}

    def test_document_is_versioned(self, tmp_path):
        path = tmp_path / "gestures.json"
        store = GestureStore(JsonFileSlot(path))
        store.upsert(make_pattern("hello"))
        data = json.loads(path.read_text())
        assert data["version"] == 1
        assert list(data["gestures"]) == ["hello"]


class TestStoreRecognize:
    def test_recognize_uses_current_library(self):
        store = GestureStore(MemorySlot())
        sample = make_sample(3)
        assert store.recognize(sample) is None
        store.upsert(GesturePattern("hello", [sample]))
        name, confidence = store.recognize(sample)
        assert name == "hello"
        assert confidence == pytest.approx(100.0)

    def test_threshold_override(self):
        store = GestureStore(MemorySlot(), threshold=0.99)
        hand = np.zeros((21, 3), dtype=np.float32)
        store.upsert(GesturePattern("hello", [LandmarkSample(left_hand=hand)]))
        # mean distance 0.1 -> similarity ~0.909
        probe = LandmarkSample(left_hand=hand + np.array([0.1, 0.0, 0.0], dtype=np.float32))
        assert store.recognize(probe) is None
        assert store.recognize(probe, threshold=0.7)[0] == "hello"

    def test_recognize_survives_failed_persistence(self):
        slot = FailingSlot()
        store = GestureStore(slot)
        slot.fail_writes = True
        sample = make_sample(1)
        with pytest.raises(PersistenceError):
            store.upsert(GesturePattern("hello", [sample]))
        assert store.recognize(sample)[0] == "hello"
