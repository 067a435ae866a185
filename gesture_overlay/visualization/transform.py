"""
Selfie-view mirror transform shared by the video layer and the overlay.

The overlay and the video must go through the same horizontal flip or the
skeleton visibly drifts away from the hand. ``map_point`` is the pure
coordinate form of ``cv2.flip(image, 1)``: pixel column c lands on
column ``width - 1 - c``.
"""

from typing import Tuple

import cv2
import numpy as np


def to_pixel(x: float, y: float, width: int, height: int) -> Tuple[int, int]:
    """Scale normalized coordinates to pixel coordinates."""
    return (int(x * width), int(y * height))


def mirror_point(point: Tuple[int, int], width: int) -> Tuple[int, int]:
    px, py = point
    return (width - 1 - px, py)


class MirrorTransform:
    """Horizontal flip applied identically to image and overlay coordinates."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def map_point(self, x: float, y: float, width: int, height: int) -> Tuple[int, int]:
        """Map a normalized point to pixel coordinates on the displayed (mirrored) surface."""
        point = to_pixel(x, y, width, height)
        if self.enabled:
            return mirror_point(point, width)
        return point

    def apply_image(self, image: np.ndarray) -> np.ndarray:
        """Present ``image`` under the same transform used by ``map_point``."""
        if self.enabled:
            return cv2.flip(image, 1)
        return image
