"""Tests for converting detector output into landmark samples."""

from types import SimpleNamespace

import numpy as np
import pytest

from sign_engine import detector as detector_module
from sign_engine.detector import HandDetector, LandmarkSource, sample_from_result
from sign_engine.landmarks import LandmarkSample


def make_hand_landmarks(offset=0.0):
    """Fake MediaPipe NormalizedLandmarkList."""
    return SimpleNamespace(landmark=[
        SimpleNamespace(x=0.5 + offset + i * 0.01, y=0.5 - i * 0.01, z=-0.01 * i)
        for i in range(21)
    ])


def make_handedness(label, score=0.95):
    return SimpleNamespace(classification=[SimpleNamespace(label=label, score=score)])


def make_result(hands, labels=None):
    return SimpleNamespace(
        multi_hand_landmarks=hands,
        multi_handedness=[make_handedness(l) for l in labels] if labels is not None else None,
    )


class TestSampleFromResult:
    def test_no_hands(self):
        assert sample_from_result(make_result(None)) == LandmarkSample.empty()
        assert sample_from_result(make_result([])) == LandmarkSample.empty()

    def test_labelled_left(self):
        sample = sample_from_result(make_result([make_hand_landmarks()], ["Left"]))
        assert sample.left_hand is not None
        assert sample.right_hand is None
        np.testing.assert_allclose(sample.left_hand[2], [0.52, 0.48, -0.02], rtol=1e-6)

    def test_labelled_right(self):
        sample = sample_from_result(make_result([make_hand_landmarks()], ["Right"]))
        assert sample.right_hand is not None
        assert sample.left_hand is None

    def test_two_labelled_hands(self):
        result = make_result(
            [make_hand_landmarks(0.0), make_hand_landmarks(0.2)], ["Right", "Left"]
        )
        sample = sample_from_result(result)
        assert sample.hand_count == 2
        assert sample.right_hand[0, 0] == pytest.approx(0.5)
        assert sample.left_hand[0, 0] == pytest.approx(0.7)

    def test_unlabelled_fallback_order(self):
        result = make_result([make_hand_landmarks(0.0), make_hand_landmarks(0.2)])
        sample = sample_from_result(result)
        assert sample.right_hand[0, 0] == pytest.approx(0.5)
        assert sample.left_hand[0, 0] == pytest.approx(0.7)

    def test_empty_label_falls_back(self):
        result = make_result([make_hand_landmarks()], [""])
        assert sample_from_result(result).right_hand is not None

    def test_same_label_later_wins(self):
        result = make_result(
            [make_hand_landmarks(0.0), make_hand_landmarks(0.2)], ["Left", "Left"]
        )
        sample = sample_from_result(result)
        assert sample.right_hand is None
        assert sample.left_hand[0, 0] == pytest.approx(0.7)

    def test_coordinates_kept_raw(self):
        sample = sample_from_result(make_result([make_hand_landmarks()], ["Left"]))
        # wrist is not re-centred
        np.testing.assert_allclose(sample.left_hand[0], [0.5, 0.5, 0.0], atol=1e-7)


class FakeSource(LandmarkSource):
    def __init__(self):
        self.closed = False

    def detect(self, frame_rgb):
        return LandmarkSample.empty()

    def close(self):
        self.closed = True


class TestLandmarkSource:
    def test_context_manager_closes(self):
        with FakeSource() as source:
            assert source.detect(np.zeros((4, 4, 3), dtype=np.uint8)) == LandmarkSample.empty()
        assert source.closed

    def test_hand_detector_requires_mediapipe(self, monkeypatch):
        monkeypatch.setattr(detector_module, "mp", None)
        with pytest.raises(ImportError, match="mediapipe"):
            HandDetector()
