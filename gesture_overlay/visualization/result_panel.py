"""
Classification text shown beside the video.

This is presentation state, not overlay drawing: it has no geometry tied
to the camera frame.
"""

from typing import List, Optional, Tuple

import cv2
import numpy as np

from gesture_overlay.core.types import GestureResult


class ResultDisplay:
    """Holds the gesture currently presented to the user."""

    def __init__(self):
        self._result: Optional[GestureResult] = None

    def show(self, result: Optional[GestureResult]) -> None:
        self._result = result

    def clear(self) -> None:
        self._result = None

    @property
    def result(self) -> Optional[GestureResult]:
        return self._result

    @property
    def is_blank(self) -> bool:
        return self._result is None

    @property
    def text(self) -> str:
        """One-line summary such as ``'Open_Palm 92.00%'``; empty when blank."""
        return self._result.summary if self._result else ""

    @property
    def lines(self) -> List[str]:
        if self._result is None:
            return []
        return [
            f"Gesture: {self._result.category_name}",
            f"Confidence: {self._result.confidence_text}",
            f"Handedness: {self._result.handedness.value}",
        ]

    def render_panel(
        self,
        width: int,
        height: int,
        text_color: Tuple[int, int, int] = (255, 255, 255),
        font_scale: float = 0.9,
        thickness: int = 2,
    ) -> np.ndarray:
        """Draw the result lines centered on a blank BGR panel."""
        panel = np.zeros((height, width, 3), dtype=np.uint8)
        lines = self.lines
        if not lines:
            return panel

        font = cv2.FONT_HERSHEY_SIMPLEX
        line_height = int(45 * font_scale)
        y = (height - line_height * len(lines)) // 2 + line_height
        for line in lines:
            text_w = cv2.getTextSize(line, font, font_scale, thickness)[0][0]
            x = max(10, (width - text_w) // 2)
            cv2.putText(panel, line, (x, y), font, font_scale, text_color, thickness)
            y += line_height
        return panel
