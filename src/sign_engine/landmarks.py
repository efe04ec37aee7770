"""Landmark samples: a snapshot of up to two hands, 21 points each."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numpy as np

from sign_engine.errors import InvalidSample
from sign_engine.geometry import Point

# Hand landmark indices, in the detector's fixed anatomical order
WRIST = 0
THUMB_CMC, THUMB_MCP, THUMB_IP, THUMB_TIP = 1, 2, 3, 4
INDEX_MCP, INDEX_PIP, INDEX_DIP, INDEX_TIP = 5, 6, 7, 8
MIDDLE_MCP, MIDDLE_PIP, MIDDLE_DIP, MIDDLE_TIP = 9, 10, 11, 12
RING_MCP, RING_PIP, RING_DIP, RING_TIP = 13, 14, 15, 16
PINKY_MCP, PINKY_PIP, PINKY_DIP, PINKY_TIP = 17, 18, 19, 20

NUM_LANDMARKS = 21
LANDMARK_DIM = 3  # x, y, z

LEFT_HAND = "left_hand"
RIGHT_HAND = "right_hand"
HANDS = (LEFT_HAND, RIGHT_HAND)


def _as_hand(value: Any, side: str) -> Optional[np.ndarray]:
    """Coerce a hand input into a read-only (21, 3) float32 array."""
    if value is None:
        return None

    if isinstance(value, np.ndarray):
        raw = value
    else:
        try:
            rows = list(value)
        except TypeError as e:
            raise InvalidSample(f"{side}: expected a sequence of points") from e
        if rows and isinstance(rows[0], Point):
            rows = [[p.x, p.y, p.z] for p in rows]
        raw = rows

    try:
        arr = np.array(raw, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise InvalidSample(f"{side}: landmarks are not numeric ({e})") from e

    if arr.ndim != 2 or arr.shape[0] != NUM_LANDMARKS or arr.shape[1] not in (2, 3):
        raise InvalidSample(
            f"{side}: expected {NUM_LANDMARKS} points of 2 or 3 coordinates, "
            f"got shape {arr.shape}"
        )

    if arr.shape[1] == 2:
        arr = np.hstack([arr, np.zeros((NUM_LANDMARKS, 1), dtype=np.float32)])

    if not np.all(np.isfinite(arr)):
        raise InvalidSample(f"{side}: landmarks contain non-finite values")

    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class LandmarkSample:
    """Landmarks for the left and right hand of a single frame.

    Either hand may be absent (``None``); a sample with no hands at all is
    valid and simply matches nothing. Present hands are stored as private,
    read-only arrays of shape (21, 3).

    Hands can be given as numpy arrays of shape (21, 3) or (21, 2), as
    nested lists, or as sequences of ``Point``. 2D input gets ``z = 0``.
    """

    left_hand: Optional[np.ndarray] = None
    right_hand: Optional[np.ndarray] = None

    def __post_init__(self):
        object.__setattr__(self, "left_hand", _as_hand(self.left_hand, LEFT_HAND))
        object.__setattr__(self, "right_hand", _as_hand(self.right_hand, RIGHT_HAND))

    @classmethod
    def empty(cls) -> LandmarkSample:
        """A sample with no hands detected."""
        return cls()

    def hand(self, side: str) -> Optional[np.ndarray]:
        if side == LEFT_HAND:
            return self.left_hand
        if side == RIGHT_HAND:
            return self.right_hand
        raise KeyError(f"Unknown hand: {side!r}")

    def points(self, side: str) -> Optional[list[Point]]:
        """The hand's landmarks as ``Point`` values, or None if absent."""
        arr = self.hand(side)
        if arr is None:
            return None
        return [Point(float(x), float(y), float(z)) for x, y, z in arr]

    @property
    def has_hands(self) -> bool:
        return self.left_hand is not None or self.right_hand is not None

    @property
    def hand_count(self) -> int:
        return sum(1 for side in HANDS if self.hand(side) is not None)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LandmarkSample):
            return NotImplemented
        for side in HANDS:
            a, b = self.hand(side), other.hand(side)
            if (a is None) != (b is None):
                return False
            if a is not None and not np.array_equal(a, b):
                return False
        return True

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        present = [side for side in HANDS if self.hand(side) is not None]
        return f"LandmarkSample(hands={present})"

    def to_dict(self) -> dict:
        data = {}
        for side in HANDS:
            arr = self.hand(side)
            if arr is None:
                data[side] = None
            else:
                data[side] = [
                    {"x": float(x), "y": float(y), "z": float(z)} for x, y, z in arr
                ]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> LandmarkSample:
        hands = {}
        for side in HANDS:
            points = data.get(side)
            if points is None:
                hands[side] = None
            else:
                hands[side] = [_point_row(p) for p in points]
        return cls(left_hand=hands[LEFT_HAND], right_hand=hands[RIGHT_HAND])

    @classmethod
    def from_points(
        cls,
        left_hand: Optional[Sequence[Point]] = None,
        right_hand: Optional[Sequence[Point]] = None,
    ) -> LandmarkSample:
        return cls(left_hand=left_hand, right_hand=right_hand)


def _point_row(point: dict) -> list[float]:
    return [float(point["x"]), float(point["y"]), float(point.get("z", 0.0))]
