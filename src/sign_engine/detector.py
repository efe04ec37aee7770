"""Landmark sources: turn camera frames into ``LandmarkSample`` values.

The recognition core never looks at images. Anything that can produce
left/right hand landmarks in the 21-point MediaPipe order can feed it by
implementing ``LandmarkSource``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import numpy as np

from sign_engine.landmarks import LEFT_HAND, RIGHT_HAND, LandmarkSample

try:
    import mediapipe as mp
except ImportError:
    mp = None

logger = logging.getLogger("sign_engine.detector")


class LandmarkSource(ABC):
    """Produces one ``LandmarkSample`` per frame."""

    @abstractmethod
    def detect(self, frame_rgb: np.ndarray) -> LandmarkSample:
        """Detect hands in an RGB frame (H, W, 3) uint8."""

    def close(self):
        """Release any resources held by the source."""

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def sample_from_result(result) -> LandmarkSample:
    """Convert a MediaPipe Hands result into a ``LandmarkSample``.

    Handedness labels decide the side. A hand without a usable label falls
    back to its position in the result: the first becomes the right hand,
    any later one the left hand. If two hands claim the same side the later
    one wins.
    """
    hands = getattr(result, "multi_hand_landmarks", None)
    if not hands:
        return LandmarkSample.empty()

    handedness = getattr(result, "multi_handedness", None) or []
    sides = {LEFT_HAND: None, RIGHT_HAND: None}

    for index, hand_landmarks in enumerate(hands):
        points = np.array(
            [[lm.x, lm.y, lm.z] for lm in hand_landmarks.landmark],
            dtype=np.float32,
        )

        label = ""
        if index < len(handedness) and handedness[index].classification:
            category = handedness[index].classification[0]
            label = (category.label or "").lower()
            logger.debug(
                "Hand %d: %s (score %.2f)", index, label, getattr(category, "score", 0.0)
            )

        if "left" in label:
            sides[LEFT_HAND] = points
        elif "right" in label:
            sides[RIGHT_HAND] = points
        elif index == 0:
            sides[RIGHT_HAND] = points
        else:
            sides[LEFT_HAND] = points

    return LandmarkSample(left_hand=sides[LEFT_HAND], right_hand=sides[RIGHT_HAND])


class HandDetector(LandmarkSource):
    """Extracts left/right hand landmarks using MediaPipe Hands.

    Each landmark is (x, y, z) normalized to [0, 1] relative to image
    dimensions, exactly as MediaPipe reports it.
    """

    def __init__(
        self,
        max_hands: int = 2,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        static_image_mode: bool = False,
    ):
        if mp is None:
            raise ImportError(
                "mediapipe is required. Install with: pip install sign-engine[detector]"
            )

        self.max_hands = max_hands
        self._hands = mp.solutions.hands.Hands(
            static_image_mode=static_image_mode,
            max_num_hands=max_hands,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

    def detect(self, frame_rgb: np.ndarray) -> LandmarkSample:
        """Detect hands and return them as a sample (possibly with no hands)."""
        return sample_from_result(self._hands.process(frame_rgb))

    def close(self):
        """Release MediaPipe resources."""
        self._hands.close()
