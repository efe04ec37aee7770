"""Gesture library store with write-through persistence."""

from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import Mapping, Optional

from sign_engine.errors import CorruptStorage, InvalidSample, PersistenceError
from sign_engine.landmarks import LandmarkSample
from sign_engine.patterns import GesturePattern
from sign_engine.recognizer import DEFAULT_THRESHOLD, GestureRecognizer
from sign_engine.storage import StorageSlot, decode_library, encode_library

logger = logging.getLogger("sign_engine.store")


class GestureStore:
    """Owns the gesture library and keeps it in sync with a storage slot.

    Every mutation (``upsert``, ``delete``) rewrites the whole library to the
    slot before returning. If that write fails the in-memory change is kept
    and ``PersistenceError`` is raised, so the caller can retry ``save()``
    without redoing training.

    Mutations are serialized by a lock. Readers get snapshots, so a
    recognition loop can run alongside a single training writer.

    Usage:
        store = GestureStore.open(JsonFileSlot("gestures.json"))
        store.upsert(GesturePattern("hello", samples))
        match = store.recognize(live_sample)
    """

    def __init__(self, slot: StorageSlot, threshold: float = DEFAULT_THRESHOLD):
        self._slot = slot
        self._patterns: dict[str, GesturePattern] = {}
        self._lock = threading.Lock()
        self._recognizer = GestureRecognizer(threshold)

    @classmethod
    def open(
        cls, slot: StorageSlot, threshold: float = DEFAULT_THRESHOLD
    ) -> GestureStore:
        """Create a store and load it, starting empty if the slot is corrupt."""
        store = cls(slot, threshold=threshold)
        try:
            store.load()
        except CorruptStorage as e:
            logger.warning("Discarding unreadable gesture library in %r: %s", slot, e)
        return store

    @property
    def threshold(self) -> float:
        return self._recognizer.threshold

    def load(self) -> Mapping[str, GesturePattern]:
        """Replace the in-memory library with the slot's contents.

        Raises:
            CorruptStorage: the slot holds a malformed document. The in-memory
                library is left unchanged.
            PersistenceError: the slot could not be read.
        """
        text = self._slot.read()
        library = decode_library(text) if text is not None else {}

        with self._lock:
            self._patterns = library
            snapshot = MappingProxyType(dict(self._patterns))

        logger.info("Loaded %d gestures from storage", len(library))
        return snapshot

    def save(self):
        """Write the full library to the slot.

        Raises:
            PersistenceError: the write failed. In-memory state is unaffected.
        """
        with self._lock:
            self._persist()

    def upsert(self, pattern: GesturePattern):
        """Insert or replace a pattern by name, then persist."""
        if not pattern.samples:
            raise InvalidSample(f"Gesture {pattern.name!r} has no samples")

        with self._lock:
            self._patterns[pattern.name] = pattern
            self._persist()

        logger.info(
            "Gesture %r saved with %d samples", pattern.name, pattern.sample_count
        )

    def delete(self, name: str) -> bool:
        """Remove a pattern if present. Returns whether anything was removed."""
        with self._lock:
            if name not in self._patterns:
                return False
            del self._patterns[name]
            self._persist()

        logger.info("Gesture %r deleted", name)
        return True

    def list(self) -> list[GesturePattern]:
        """A snapshot of all stored patterns."""
        with self._lock:
            return list(self._patterns.values())

    def get(self, name: str) -> Optional[GesturePattern]:
        with self._lock:
            return self._patterns.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return list(self._patterns.keys())

    def snapshot(self) -> Mapping[str, GesturePattern]:
        """Read-only copy of the library, detached from later mutations."""
        with self._lock:
            return MappingProxyType(dict(self._patterns))

    def recognize(
        self, sample: LandmarkSample, threshold: Optional[float] = None
    ) -> Optional[tuple[str, float]]:
        """Match a sample against the current library snapshot."""
        recognizer = self._recognizer
        if threshold is not None:
            recognizer = GestureRecognizer(threshold)
        return recognizer.recognize(sample, self.snapshot())

    def _persist(self):
        # Caller holds self._lock
        text = encode_library(self._patterns)
        try:
            self._slot.write(text)
        except PersistenceError as e:
            logger.error("Failed to save gestures: %s", e)
            raise
        logger.debug("Saved %d gestures to storage", len(self._patterns))

    def __len__(self) -> int:
        with self._lock:
            return len(self._patterns)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._patterns
