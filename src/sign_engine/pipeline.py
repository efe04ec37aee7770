"""Host pipeline: route each frame's landmarks to training or recognition."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from sign_engine.config import EngineConfig
from sign_engine.detector import LandmarkSource
from sign_engine.errors import PersistenceError
from sign_engine.landmarks import LandmarkSample
from sign_engine.patterns import GesturePattern
from sign_engine.recognizer import GestureRecognizer
from sign_engine.store import GestureStore
from sign_engine.trainer import TrainingSession

logger = logging.getLogger("sign_engine.pipeline")


class Mode(Enum):
    IDLE = "idle"
    TRAIN = "train"
    RECOGNIZE = "recognize"


@dataclass
class RecognitionEvent:
    """A recognized gesture with metadata."""
    gesture: str
    confidence: float  # 0-100
    sample: LandmarkSample
    timestamp: float


class SignPipeline:
    """Feeds landmark samples into either a training session or the recognizer.

    Modes:
    - IDLE: samples are ignored
    - TRAIN: samples go to the active ``TrainingSession``; once it has enough
      the pattern is stored and the pipeline returns to IDLE
    - RECOGNIZE: samples are matched against the store's current library

    Usage:
        pipeline = SignPipeline(store, config)
        pipeline.on_recognition(lambda e: print(e.gesture))
        pipeline.start_recognition()
        for sample in samples:
            pipeline.process_sample(sample)
    """

    def __init__(
        self,
        store: GestureStore,
        config: Optional[EngineConfig] = None,
        source: Optional[LandmarkSource] = None,
    ):
        self.store = store
        self.config = (config or EngineConfig()).validate()
        self.source = source
        self.recognizer = GestureRecognizer(self.config.threshold)

        self._mode = Mode.IDLE
        self._session: Optional[TrainingSession] = None
        self._status = "idle"
        self._recognition_callbacks: list[Callable[[RecognitionEvent], None]] = []
        self._saved_callbacks: list[Callable[[GesturePattern], None]] = []
        self._total_samples = 0
        self._total_recognitions = 0

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def status(self) -> str:
        """Outcome of the last processed sample.

        One of: idle, no_hands, no_match, matched, capturing, saved,
        save_failed. save_failed means training finished and the pattern is
        in the store, but writing it to the slot failed.
        """
        return self._status

    @property
    def session(self) -> Optional[TrainingSession]:
        return self._session

    def on_recognition(self, callback: Callable[[RecognitionEvent], None]):
        """Register a callback for recognized gestures."""
        self._recognition_callbacks.append(callback)

    def on_pattern_saved(self, callback: Callable[[GesturePattern], None]):
        """Register a callback for newly trained patterns."""
        self._saved_callbacks.append(callback)

    def start_training(self, name: str) -> TrainingSession:
        """Begin collecting samples for a new gesture."""
        self._session = TrainingSession(
            name,
            samples_needed=self.config.samples_needed,
            capture_interval_ms=self.config.capture_interval_ms,
        )
        self._mode = Mode.TRAIN
        self._status = "capturing"
        logger.info(
            "Training %r: collecting %d samples", self._session.name, self.config.samples_needed
        )
        return self._session

    def start_recognition(self):
        self._session = None
        self._mode = Mode.RECOGNIZE
        self._status = "idle"

    def stop(self):
        """Return to IDLE, abandoning any unfinished training session."""
        if self._session is not None and not self._session.is_complete:
            logger.info("Training %r cancelled", self._session.name)
        self._session = None
        self._mode = Mode.IDLE
        self._status = "idle"

    def process_sample(
        self, sample: LandmarkSample, timestamp: Optional[float] = None
    ) -> Optional[RecognitionEvent]:
        """Process one frame's landmarks.

        Returns a ``RecognitionEvent`` when a gesture is recognized, else None.

        Raises:
            PersistenceError: a completed training session could not be
                saved. The pattern is still in the store's memory.
        """
        now = timestamp if timestamp is not None else time.monotonic()
        self._total_samples += 1

        if self._mode == Mode.TRAIN:
            self._train(sample, now)
            return None

        if self._mode == Mode.RECOGNIZE:
            return self._recognize(sample, now)

        return None

    def process_frame(self, frame_rgb: np.ndarray) -> Optional[RecognitionEvent]:
        """Detect landmarks in a frame and process them."""
        if self.source is None:
            raise RuntimeError("SignPipeline has no landmark source for frames")
        return self.process_sample(self.source.detect(frame_rgb))

    def _train(self, sample: LandmarkSample, now: float):
        session = self._session
        if not sample.has_hands:
            self._status = "no_hands"
            return

        if session.offer(sample, timestamp=now):
            logger.debug(
                "Captured sample %d/%d for %r",
                session.collected, session.samples_needed, session.name,
            )
        self._status = "capturing"

        if not session.is_complete:
            return

        # The store keeps the pattern in memory even if persisting it fails
        try:
            pattern = session.finish(self.store)
        except PersistenceError:
            logger.error("Gesture %r trained but not persisted", session.name)
            self._status = "save_failed"
            raise
        finally:
            self._session = None
            self._mode = Mode.IDLE

        self._status = "saved"

        for cb in self._saved_callbacks:
            cb(pattern)

    def _recognize(self, sample: LandmarkSample, now: float) -> Optional[RecognitionEvent]:
        if not sample.has_hands:
            self._status = "no_hands"
            return None

        result = self.recognizer.recognize(sample, self.store.snapshot())
        if result is None:
            self._status = "no_match"
            return None

        name, confidence = result
        event = RecognitionEvent(
            gesture=name,
            confidence=confidence,
            sample=sample,
            timestamp=now,
        )
        self._status = "matched"
        self._total_recognitions += 1

        for cb in self._recognition_callbacks:
            cb(event)
        return event

    @property
    def stats(self) -> dict:
        return {
            "mode": self._mode.value,
            "total_samples": self._total_samples,
            "total_recognitions": self._total_recognitions,
            "gestures_stored": len(self.store),
        }

    def close(self):
        """Release resources."""
        if self.source is not None:
            self.source.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
