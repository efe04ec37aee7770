"""Durable storage slot and the versioned library document format.

The whole gesture library lives in one JSON document inside one slot.
Every write replaces the document as a unit; there is no append format.

Document layout (version 1):

    {
      "version": 1,
      "gestures": {
        "<name>": {
          "name": "<name>",
          "samples": [{"left_hand": [{"x": .., "y": .., "z": ..}, ...] | null,
                       "right_hand": [...] | null}, ...],
          "created_at": <epoch millis>
        }
      }
    }

Documents written by the original app have no "version" value (a gesture
named "version" does not count): they are a bare name -> pattern mapping
using camelCase fields (leftHand, rightHand, timestamp). Those are read
transparently and rewritten in the current layout on the next save.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional

from sign_engine.errors import CorruptStorage, PersistenceError
from sign_engine.patterns import GesturePattern

logger = logging.getLogger("sign_engine.storage")

SCHEMA_VERSION = 1

_LEGACY_FIELDS = {
    "leftHand": "left_hand",
    "rightHand": "right_hand",
    "timestamp": "created_at",
}


class StorageSlot(ABC):
    """A single named slot holding one serialized document."""

    @abstractmethod
    def read(self) -> Optional[str]:
        """Return the stored document, or None if the slot is empty."""

    @abstractmethod
    def write(self, text: str):
        """Replace the stored document."""

    @abstractmethod
    def clear(self):
        """Remove the stored document, if any."""

    def exists(self) -> bool:
        return self.read() is not None


class MemorySlot(StorageSlot):
    """In-process slot. Useful for tests and for hosts without a disk."""

    def __init__(self, text: Optional[str] = None):
        self._text = text

    def read(self) -> Optional[str]:
        return self._text

    def write(self, text: str):
        self._text = text

    def clear(self):
        self._text = None


class JsonFileSlot(StorageSlot):
    """File-backed slot with atomic replace-on-write.

    The document is written to a temporary file next to the target, synced,
    and then moved over the target with ``os.replace``. A crash mid-write
    leaves the previous document intact.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def read(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise CorruptStorage(f"{self.path} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Could not read {self.path}: {e}") from e

    def write(self, text: str):
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise PersistenceError(f"Could not write {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

    def clear(self):
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not remove {self.path}: {e}") from e

    def __repr__(self) -> str:
        return f"JsonFileSlot({str(self.path)!r})"


def encode_library(library: Mapping[str, GesturePattern]) -> str:
    """Serialize a whole library to a version-1 JSON document."""
    data = {
        "version": SCHEMA_VERSION,
        "gestures": {name: pattern.to_dict() for name, pattern in library.items()},
    }
    return json.dumps(data)


def decode_library(text: str) -> dict[str, GesturePattern]:
    """Parse a library document.

    Raises:
        CorruptStorage: if the document is not valid JSON or does not follow
            a known layout.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CorruptStorage(f"Library document is not valid JSON: {e}") from e
    except RecursionError as e:
        raise CorruptStorage("Library document is nested too deeply") from e

    if not isinstance(data, dict):
        raise CorruptStorage("Library document must be a JSON object")

    # A legacy library may hold a gesture named "version"; its entry is an object
    if "version" in data and not isinstance(data["version"], dict):
        version = data["version"]
        if not isinstance(version, int) or version < 1 or version > SCHEMA_VERSION:
            raise CorruptStorage(f"Unsupported library version: {version!r}")
        entries = data.get("gestures")
    else:
        logger.info("Reading unversioned library document (legacy layout)")
        entries = {name: _migrate_legacy(entry) for name, entry in data.items()}

    if not isinstance(entries, dict):
        raise CorruptStorage("Library 'gestures' must be a JSON object")

    library: dict[str, GesturePattern] = {}
    for key, entry in entries.items():
        if not isinstance(entry, dict):
            raise CorruptStorage(f"Gesture {key!r}: entry must be a JSON object")
        if not isinstance(entry.get("samples"), list):
            raise CorruptStorage(f"Gesture {key!r}: 'samples' must be a list")
        try:
            pattern = GesturePattern.from_dict(entry)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CorruptStorage(f"Gesture {key!r}: {e}") from e
        if pattern.name != key:
            raise CorruptStorage(
                f"Gesture key {key!r} does not match its name {pattern.name!r}"
            )
        library[key] = pattern

    return library


def _migrate_legacy(entry):
    """Rename camelCase fields of an original-app entry to current names."""
    if not isinstance(entry, dict):
        return entry

    migrated = {_LEGACY_FIELDS.get(k, k): v for k, v in entry.items()}
    samples = migrated.get("samples")
    if isinstance(samples, list):
        migrated["samples"] = [
            {_LEGACY_FIELDS.get(k, k): v for k, v in s.items()}
            if isinstance(s, dict) else s
            for s in samples
        ]
    return migrated
