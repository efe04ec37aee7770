"""Gesture patterns: a named set of recorded landmark samples."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from sign_engine.errors import InvalidSample
from sign_engine.landmarks import LandmarkSample


def now_millis() -> int:
    """Current wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class GesturePattern:
    """A trained gesture: a unique name plus the samples it was taught with.

    The name is the pattern's identity. Storing a pattern under an existing
    name replaces the old one entirely.

    A pattern without samples is allowed so that old or hand-edited
    libraries still load, but it never matches anything.
    """

    name: str
    samples: tuple[LandmarkSample, ...] = ()
    created_at: int = field(default_factory=now_millis)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Gesture name must be a non-empty string")
        object.__setattr__(self, "samples", tuple(self.samples))
        for sample in self.samples:
            if not isinstance(sample, LandmarkSample):
                raise InvalidSample(
                    f"Gesture {self.name!r}: samples must be LandmarkSample, "
                    f"got {type(sample).__name__}"
                )
        object.__setattr__(self, "created_at", int(self.created_at))

    @property
    def sample_count(self) -> int:
        return len(self.samples)

    @property
    def is_matchable(self) -> bool:
        return len(self.samples) > 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "samples": [s.to_dict() for s in self.samples],
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> GesturePattern:
        return cls(
            name=data["name"],
            samples=tuple(LandmarkSample.from_dict(s) for s in data["samples"]),
            created_at=data["created_at"],
        )
