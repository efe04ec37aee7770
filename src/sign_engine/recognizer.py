"""Nearest-neighbour recognition of landmark samples against a gesture library.

Similarity between two samples is derived from the mean Euclidean distance
between same-index landmarks of the hands both samples share:

    similarity = 1 / (1 + mean_distance)

A pattern's score is the mean similarity over all of its samples. The best
scoring pattern wins if its score is strictly above the threshold.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

import numpy as np

from sign_engine.geometry import point_distances
from sign_engine.landmarks import HANDS, LandmarkSample
from sign_engine.patterns import GesturePattern

logger = logging.getLogger("sign_engine.recognizer")

DEFAULT_THRESHOLD = 0.7


def sample_similarity(current: LandmarkSample, sample: LandmarkSample) -> float:
    """Similarity in [0, 1] between two samples.

    Hands missing from either sample are left out of the comparison. If the
    two samples share no hand at all the similarity is exactly 0.
    """
    total = 0.0
    count = 0

    for side in HANDS:
        a = current.hand(side)
        b = sample.hand(side)
        if a is None or b is None:
            continue
        total += float(np.sum(point_distances(a, b)))
        count += len(a)

    if count == 0:
        return 0.0

    mean_distance = total / count
    return 1.0 / (1.0 + mean_distance)


def pattern_similarity(
    current: LandmarkSample, pattern: GesturePattern
) -> Optional[float]:
    """Mean sample similarity against a pattern, or None if it has no samples."""
    if not pattern.samples:
        return None
    scores = [sample_similarity(current, s) for s in pattern.samples]
    return sum(scores) / len(scores)


class GestureRecognizer:
    """Scores a live sample against every stored pattern.

    Ties between equally scoring patterns go to the one seen first in the
    library's iteration order. That rule is deterministic but otherwise
    arbitrary.
    """

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {threshold}")
        self.threshold = threshold

    def scores(
        self,
        current: LandmarkSample,
        library: Mapping[str, GesturePattern],
    ) -> list[tuple[str, float]]:
        """Aggregate similarity per matchable pattern, in library order."""
        results = []
        for name, pattern in library.items():
            score = pattern_similarity(current, pattern)
            if score is None:
                logger.debug("Skipping %r: pattern has no samples", name)
                continue
            logger.debug("Comparing with %r: %.0f%% similar", name, score * 100)
            results.append((name, score))
        return results

    def recognize(
        self,
        current: LandmarkSample,
        library: Mapping[str, GesturePattern],
    ) -> Optional[tuple[str, float]]:
        """Find the best matching pattern.

        Returns:
            (gesture_name, confidence) with confidence in [0, 100], or None
            if the library is empty or no pattern clears the threshold.
        """
        if not library:
            logger.debug("No gestures stored to compare against")
            return None

        best_name: Optional[str] = None
        best_score = 0.0

        for name, score in self.scores(current, library):
            if score > best_score and score > self.threshold:
                best_name = name
                best_score = score

        if best_name is None:
            return None

        logger.debug("Best match: %r with %.0f%% confidence", best_name, best_score * 100)
        return best_name, best_score * 100.0


def recognize(
    current: LandmarkSample,
    library: Mapping[str, GesturePattern],
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[tuple[str, float]]:
    """Functional shortcut for ``GestureRecognizer(threshold).recognize``."""
    return GestureRecognizer(threshold).recognize(current, library)
