"""
Library-neutral recognizer output and its conversion to InferenceOutcome.
"""

from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional

from gesture_overlay.core.types import (
    GestureResult,
    Handedness,
    InferenceOutcome,
    LandmarkSet,
)


class Category(NamedTuple):
    category_name: str
    score: float


@dataclass
class RecognizerOutput:
    """Raw per-hand recognizer result.

    ``gestures[i]`` and ``handedness[i]`` are ranked category lists for hand i;
    ``landmarks[i]`` is its landmark set.
    """
    gestures: List[List[Category]] = field(default_factory=list)
    handedness: List[List[Category]] = field(default_factory=list)
    landmarks: List[LandmarkSet] = field(default_factory=list)


def primary_gesture(output: RecognizerOutput) -> Optional[GestureResult]:
    """Top gesture of the first hand, or None when no hand was recognized."""
    if not output.gestures or not output.gestures[0]:
        return None

    top = output.gestures[0][0]
    handedness = Handedness.RIGHT
    if output.handedness and output.handedness[0]:
        handedness = Handedness.from_label(output.handedness[0][0].category_name)

    # Scores occasionally overshoot 1.0 by float error
    confidence = min(max(float(top.score), 0.0), 1.0)
    return GestureResult(
        category_name=top.category_name,
        confidence=confidence,
        handedness=handedness,
    )


def build_outcome(frame_timestamp: int, output: RecognizerOutput) -> InferenceOutcome:
    return InferenceOutcome(
        frame_timestamp=frame_timestamp,
        result=primary_gesture(output),
        landmarks=tuple(tuple(hand) for hand in output.landmarks),
    )
