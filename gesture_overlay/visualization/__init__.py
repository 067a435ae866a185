"""Overlay rendering."""
from .overlay import OverlayConfig, OverlayRenderer
from .result_panel import ResultDisplay
from .surface import CanvasSurface, DrawingSurface, DrawStyle
from .transform import MirrorTransform

__all__ = [
    "OverlayConfig",
    "OverlayRenderer",
    "ResultDisplay",
    "CanvasSurface",
    "DrawingSurface",
    "DrawStyle",
    "MirrorTransform",
]
