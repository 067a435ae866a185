"""
Shared domain types for the gesture overlay pipeline.

Centralizes enums, data classes, and constants used across modules
to eliminate circular imports and ensure type consistency.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional, Tuple

import numpy as np


# =============================================================================
# Hand Topology
# =============================================================================

# Joint-index pairs of the 21-point hand skeleton (MediaPipe convention)
HAND_CONNECTIONS: Tuple[Tuple[int, int], ...] = (
    (0, 1), (1, 2), (2, 3), (3, 4),          # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),          # Index
    (5, 9), (9, 10), (10, 11), (11, 12),     # Middle
    (9, 13), (13, 14), (14, 15), (15, 16),   # Ring
    (13, 17), (17, 18), (18, 19), (19, 20),  # Pinky
    (0, 17),                                 # Palm base
)

NUM_HAND_LANDMARKS = 21


class Landmark(NamedTuple):
    """A single hand joint in normalized frame-relative coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width
    y: float  # 0.0 to 1.0, normalized by image height
    z: float  # Depth relative to wrist


LandmarkSet = Tuple[Landmark, ...]


# =============================================================================
# Gesture Types
# =============================================================================

class Handedness(Enum):
    """Which hand the recognizer believes it saw."""
    LEFT = "Left"
    RIGHT = "Right"

    @classmethod
    def from_label(cls, label: str) -> "Handedness":
        """Convert a recognizer label ("Left", "right", ...) to Handedness."""
        normalized = (label or "").strip().capitalize()
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown handedness label: {label!r}") from None


@dataclass(frozen=True)
class GestureResult:
    """Classification of the primary hand in a frame."""
    category_name: str
    confidence: float
    handedness: Handedness

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")

    @property
    def confidence_percent(self) -> float:
        return self.confidence * 100.0

    @property
    def confidence_text(self) -> str:
        """Confidence as a percentage rounded to two decimals, e.g. '92.00%'."""
        return f"{self.confidence_percent:.2f}%"

    @property
    def summary(self) -> str:
        return f"{self.category_name} {self.confidence_text}"


# =============================================================================
# Data Containers
# =============================================================================

@dataclass(frozen=True, eq=False)
class Frame:
    """A captured image sample with acquisition metadata.

    ``width`` and ``height`` always describe ``image`` itself, so a device
    renegotiating its resolution is visible on the very next frame.
    """
    image: np.ndarray
    timestamp_ms: int
    frame_number: int = 0

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def dimensions(self) -> Tuple[int, int]:
        return (self.width, self.height)


@dataclass(frozen=True)
class InferenceOutcome:
    """Atomic unit written into the ResultBuffer.

    ``result`` is None when the recognizer found no hand in the frame;
    ``landmarks`` then is an empty tuple.
    """
    frame_timestamp: int
    result: Optional[GestureResult] = None
    landmarks: Tuple[LandmarkSet, ...] = ()

    @property
    def hand_detected(self) -> bool:
        return self.result is not None or bool(self.landmarks)


class PipelineState(Enum):
    """Lifecycle of the PipelineController."""
    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"
    RUNNING = "running"
    STOPPED = "stopped"
