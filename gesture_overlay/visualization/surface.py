"""
Drawing surfaces the overlay renderer paints on.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np


@dataclass(frozen=True)
class DrawStyle:
    color: Tuple[int, int, int] = (0, 255, 0)  # BGR
    thickness: int = 2
    radius: int = 4


class DrawingSurface(ABC):
    """Minimal capability set the renderer depends on."""

    @abstractmethod
    def resize(self, width: int, height: int) -> None:
        """Resize the surface. Resizing always clears it."""

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def draw_line(self, p1: Tuple[int, int], p2: Tuple[int, int], style: DrawStyle) -> None: ...

    @abstractmethod
    def draw_point(self, p: Tuple[int, int], style: DrawStyle) -> None: ...

    @property
    @abstractmethod
    def size(self) -> Tuple[int, int]:
        """(width, height)"""


class CanvasSurface(DrawingSurface):
    """Transparent BGRA canvas backed by a numpy array.

    Pixels with non-zero alpha are overlay content; ``composite`` blends
    them onto a video frame of the same size.
    """

    def __init__(self, width: int = 0, height: int = 0):
        self._canvas = np.zeros((height, width, 4), dtype=np.uint8)

    def resize(self, width: int, height: int) -> None:
        self._canvas = np.zeros((height, width, 4), dtype=np.uint8)

    def clear(self) -> None:
        self._canvas[:] = 0

    def draw_line(self, p1, p2, style: DrawStyle) -> None:
        cv2.line(self._canvas, tuple(p1), tuple(p2), (*style.color, 255),
                 style.thickness, cv2.LINE_AA)

    def draw_point(self, p, style: DrawStyle) -> None:
        cv2.circle(self._canvas, tuple(p), style.radius, (*style.color, 255), -1)

    @property
    def size(self) -> Tuple[int, int]:
        return (self._canvas.shape[1], self._canvas.shape[0])

    @property
    def image(self) -> np.ndarray:
        return self._canvas

    @property
    def is_blank(self) -> bool:
        return not self._canvas[:, :, 3].any()

    def composite(self, video: np.ndarray) -> np.ndarray:
        """Return a copy of BGR ``video`` with the overlay painted on top."""
        height, width = video.shape[:2]
        if (width, height) != self.size:
            raise ValueError(
                f"Overlay is {self.size[0]}x{self.size[1]} but video is {width}x{height}")
        # Anti-aliased strokes blend toward the zero background, so the
        # canvas color channels are already premultiplied by alpha
        alpha = self._canvas[:, :, 3:4].astype(np.float32) / 255.0
        out = video.astype(np.float32) * (1.0 - alpha) + self._canvas[:, :, :3]
        return np.clip(np.rint(out), 0, 255).astype(np.uint8)
