"""Camera capture module."""
from .frame_source import CameraConfig, FrameSource

__all__ = ["CameraConfig", "FrameSource"]
