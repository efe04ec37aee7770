"""Training sessions — collect N spaced samples and turn them into a pattern.

Usage:
    session = TrainingSession("hello", samples_needed=5, capture_interval_ms=1000)
    # In your frame loop:
    session.offer(sample)
    if session.is_complete:
        session.finish(store)
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Optional

from sign_engine.errors import InvalidSample
from sign_engine.landmarks import LandmarkSample
from sign_engine.patterns import GesturePattern

if TYPE_CHECKING:
    from sign_engine.store import GestureStore

DEFAULT_SAMPLES_NEEDED = 5
DEFAULT_CAPTURE_INTERVAL_MS = 1000


class TrainingSession:
    """Accumulates landmark samples for one new gesture.

    A sample is captured only when it shows at least one hand and enough
    time has passed since the previous capture, which keeps near-duplicate
    consecutive frames out of the pattern.
    """

    def __init__(
        self,
        name: str,
        samples_needed: int = DEFAULT_SAMPLES_NEEDED,
        capture_interval_ms: int = DEFAULT_CAPTURE_INTERVAL_MS,
    ):
        if not name or not name.strip():
            raise ValueError("Gesture name must be a non-empty string")
        if samples_needed < 1:
            raise ValueError(f"samples_needed must be at least 1, got {samples_needed}")
        if capture_interval_ms < 0:
            raise ValueError(
                f"capture_interval_ms must not be negative, got {capture_interval_ms}"
            )

        self.name = name.strip()
        self.samples_needed = samples_needed
        self.capture_interval_ms = capture_interval_ms
        self._samples: list[LandmarkSample] = []
        self._last_capture: Optional[float] = None

    def offer(self, sample: LandmarkSample, timestamp: Optional[float] = None) -> bool:
        """Offer a frame's sample. Returns True if it was captured.

        Args:
            sample: Landmarks for the current frame.
            timestamp: Monotonic time in seconds. Defaults to ``time.monotonic()``.
        """
        if self.is_complete or not sample.has_hands:
            return False

        now = timestamp if timestamp is not None else time.monotonic()
        if self._last_capture is not None:
            elapsed_ms = (now - self._last_capture) * 1000
            if elapsed_ms < self.capture_interval_ms:
                return False

        self._samples.append(sample)
        self._last_capture = now
        return True

    @property
    def collected(self) -> int:
        return len(self._samples)

    @property
    def remaining(self) -> int:
        return max(0, self.samples_needed - len(self._samples))

    @property
    def is_complete(self) -> bool:
        return len(self._samples) >= self.samples_needed

    @property
    def progress(self) -> float:
        """Fraction of required samples collected, in [0, 1]."""
        return min(1.0, len(self._samples) / self.samples_needed)

    @property
    def samples(self) -> list[LandmarkSample]:
        return list(self._samples)

    def reset(self):
        """Drop all collected samples and start over."""
        self._samples = []
        self._last_capture = None

    def build_pattern(self, created_at: Optional[int] = None) -> GesturePattern:
        """Turn the collected samples into a pattern.

        Raises:
            InvalidSample: nothing has been collected.
            ValueError: fewer than ``samples_needed`` samples were collected.
        """
        if not self._samples:
            raise InvalidSample(f"Gesture {self.name!r} has no samples")
        if not self.is_complete:
            raise ValueError(
                f"Training for {self.name!r} is incomplete: "
                f"{self.collected}/{self.samples_needed} samples"
            )

        if created_at is None:
            return GesturePattern(self.name, tuple(self._samples))
        return GesturePattern(self.name, tuple(self._samples), created_at)

    def finish(self, store: GestureStore) -> GesturePattern:
        """Build the pattern and store it, replacing any gesture of that name."""
        pattern = self.build_pattern()
        store.upsert(pattern)
        return pattern

    def __repr__(self) -> str:
        return (
            f"TrainingSession(name={self.name!r}, "
            f"collected={self.collected}/{self.samples_needed})"
        )
