"""SignEngine configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path

import yaml

from sign_engine.recognizer import DEFAULT_THRESHOLD
from sign_engine.storage import JsonFileSlot
from sign_engine.store import GestureStore
from sign_engine.trainer import DEFAULT_CAPTURE_INTERVAL_MS, DEFAULT_SAMPLES_NEEDED

logger = logging.getLogger("sign_engine.config")


@dataclass
class EngineConfig:
    threshold: float = DEFAULT_THRESHOLD
    samples_needed: int = DEFAULT_SAMPLES_NEEDED
    capture_interval_ms: int = DEFAULT_CAPTURE_INTERVAL_MS
    storage_path: str = "gestures.json"

    def validate(self) -> EngineConfig:
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {self.threshold}")
        if self.samples_needed < 1:
            raise ValueError(f"samples_needed must be at least 1, got {self.samples_needed}")
        if self.capture_interval_ms < 0:
            raise ValueError(
                f"capture_interval_ms must not be negative, got {self.capture_interval_ms}"
            )
        if not self.storage_path:
            raise ValueError("storage_path must not be empty")
        return self

    def open_store(self) -> GestureStore:
        """Open the gesture store at ``storage_path``."""
        return GestureStore.open(JsonFileSlot(self.storage_path), threshold=self.threshold)

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        """Load config from YAML. Missing file or keys fall back to defaults."""
        path = Path(path)
        if not path.exists():
            logger.info("No config at %s, using defaults", path)
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))

        config = cls(**{k: v for k, v in data.items() if k in known})
        return config.validate()

    def to_yaml(self, path: str | Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(asdict(self), f, default_flow_style=False, sort_keys=False)
