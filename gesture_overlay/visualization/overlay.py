"""
Overlay Renderer
================

Redraws the landmark skeleton once per tick, sized to the frame that is
being displayed in that same tick.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from gesture_overlay.core.types import (
    HAND_CONNECTIONS,
    Frame,
    InferenceOutcome,
    LandmarkSet,
)
from gesture_overlay.inference.result_buffer import ResultBuffer
from gesture_overlay.visualization.result_panel import ResultDisplay
from gesture_overlay.visualization.surface import DrawingSurface, DrawStyle
from gesture_overlay.visualization.transform import MirrorTransform


@dataclass
class OverlayConfig:
    """Overlay drawing settings."""
    mirror: bool = True
    show_connections: bool = True
    show_landmarks: bool = True

    # Colors (BGR format)
    connection_color: Tuple[int, int, int] = (0, 255, 0)  # Green
    landmark_color: Tuple[int, int, int] = (0, 0, 255)    # Red
    connection_thickness: int = 5
    landmark_radius: int = 4

    @classmethod
    def from_dict(cls, config: dict) -> "OverlayConfig":
        colors = config.get("colors", {})
        return cls(
            mirror=config.get("mirror", True),
            show_connections=config.get("show_connections", True),
            show_landmarks=config.get("show_landmarks", True),
            connection_color=tuple(colors.get("connections", [0, 255, 0])),
            landmark_color=tuple(colors.get("landmarks", [0, 0, 255])),
            connection_thickness=config.get("connection_thickness", 5),
            landmark_radius=config.get("landmark_radius", 4),
        )


class OverlayRenderer:
    """
    Paints the latest ResultBuffer outcome onto a DrawingSurface.

    The surface and its size are owned by the renderer; nothing else
    draws on it.

    Example:
        >>> renderer = OverlayRenderer(CanvasSurface(), buffer, ResultDisplay())
        >>> renderer.render(frame)
        >>> shown = renderer.surface.composite(renderer.transform.apply_image(frame.image))
    """

    def __init__(
        self,
        surface: DrawingSurface,
        buffer: ResultBuffer,
        display: Optional[ResultDisplay] = None,
        config: Optional[OverlayConfig] = None,
        transform: Optional[MirrorTransform] = None,
    ):
        self.config = config or OverlayConfig()
        self.surface = surface
        self.display = display or ResultDisplay()
        self.transform = transform or MirrorTransform(self.config.mirror)
        self._buffer = buffer
        self._connection_style = DrawStyle(
            color=self.config.connection_color,
            thickness=self.config.connection_thickness,
        )
        self._landmark_style = DrawStyle(
            color=self.config.landmark_color,
            radius=self.config.landmark_radius,
        )

    def render(self, frame: Frame) -> Optional[InferenceOutcome]:
        """Redraw the overlay for ``frame``.

        Returns:
            The outcome that was drawn, or None if the buffer was empty
        """
        # Resizing clears whatever the previous tick drew
        width, height = frame.width, frame.height
        self.surface.resize(width, height)

        outcome = self._buffer.read()
        if outcome is None:
            self.display.clear()
            return None

        for hand in outcome.landmarks:
            self._draw_hand(hand, width, height)

        # A "no hand" outcome blanks the text; failed frames never get here
        self.display.show(outcome.result)
        return outcome

    def _draw_hand(self, hand: LandmarkSet, width: int, height: int) -> None:
        points = [self.transform.map_point(lm.x, lm.y, width, height) for lm in hand]

        if self.config.show_connections:
            for start_idx, end_idx in HAND_CONNECTIONS:
                if start_idx < len(points) and end_idx < len(points):
                    self.surface.draw_line(points[start_idx], points[end_idx],
                                           self._connection_style)

        if self.config.show_landmarks:
            for point in points:
                self.surface.draw_point(point, self._landmark_style)

    def clear(self) -> None:
        """Blank both the surface and the result display."""
        self.surface.clear()
        self.display.clear()
