"""
Live Frame Source
=================

Camera capture that always exposes the most recent hardware frame.
A background grab thread keeps a single latest-frame slot so readers
on the pipeline loop never block waiting for the device.
"""

import cv2
import time
import threading
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from gesture_overlay.core.exceptions import DeviceUnavailable
from gesture_overlay.core.types import Frame

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    """Camera configuration settings."""
    device_id: int = 0
    width: int = 1280
    height: int = 720
    fps: int = 30
    buffer_size: int = 1  # Minimal buffering for low latency
    warmup_frames: int = 5

    @classmethod
    def from_dict(cls, config: dict) -> "CameraConfig":
        """Create config from dictionary (YAML parsed)."""
        return cls(
            device_id=config.get("device_id", 0),
            width=config.get("width", 1280),
            height=config.get("height", 720),
            fps=config.get("fps", 30),
            buffer_size=config.get("buffer_size", 1),
            warmup_frames=config.get("warmup_frames", 5),
        )


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class FrameSource:
    """
    Pull interface over a live capture device.

    Example:
        >>> source = FrameSource(CameraConfig())
        >>> source.start()
        >>> frame = source.current_frame()
        >>> if frame:
        ...     print(frame.width, frame.height)
        >>> source.stop()
    """

    def __init__(self, config: Optional[CameraConfig] = None):
        self.config = config or CameraConfig()
        self._cap: Optional[cv2.VideoCapture] = None
        self._opened = False
        self._running = False
        self._frame_number = 0
        self._last_timestamp_ms = 0

        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._latest_frame: Optional[Frame] = None

    def start(self) -> None:
        """
        Open the device and begin capture.

        Raises:
            DeviceUnavailable: if no backend could open the device
        """
        if self._running:
            return

        logger.info("Starting camera (device=%d, %dx%d@%dfps)",
                    self.config.device_id, self.config.width,
                    self.config.height, self.config.fps)

        # V4L2 first (lower latency on Linux USB cameras), then whatever OpenCV picks
        for backend in (cv2.CAP_V4L2, cv2.CAP_ANY):
            self._cap = cv2.VideoCapture(self.config.device_id, backend)
            if not self._cap.isOpened():
                logger.warning("Camera backend %s failed, trying next...", backend)
                self._cap = None
                continue

            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
            self._cap.set(cv2.CAP_PROP_FPS, self.config.fps)
            self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

            ret, test_frame = self._cap.read()
            if ret and test_frame is not None:
                break
            logger.warning("Can't read frames from backend %s, trying next...", backend)
            self._cap.release()
            self._cap = None

        if self._cap is None:
            raise DeviceUnavailable(
                "Failed to open camera device {}".format(self.config.device_id))

        logger.info("Camera initialized: %dx%d@%.0ffps",
                    int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                    int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
                    self._cap.get(cv2.CAP_PROP_FPS))

        # Let auto-exposure settle
        for _ in range(self.config.warmup_frames):
            self._cap.read()

        self._opened = True
        self._running = True
        self._frame_number = 0
        with self._lock:
            self._latest_frame = None

        self._thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._thread.start()
        logger.info("Started capture thread")

    def stop(self) -> None:
        """Stop capture and release the device."""
        self._running = False

        if self._thread:
            self._thread.join(timeout=1.0)
            self._thread = None

        if self._cap:
            self._cap.release()
            self._cap = None

        with self._lock:
            self._latest_frame = None
        logger.info("Camera stopped")

    def current_frame(self) -> Optional[Frame]:
        """
        Most recently captured frame, or None if none is available yet.

        Never touches the device: reads only the slot the grab thread
        fills, so a slow camera cannot stall the caller. If nothing new has
        arrived since the previous call the same frame is returned again.

        Raises:
            DeviceUnavailable: if the device was never opened
        """
        if not self._opened:
            raise DeviceUnavailable("Camera device was never opened")
        if not self._running:
            return None

        with self._lock:
            return self._latest_frame

    @property
    def dimensions(self) -> Optional[Tuple[int, int]]:
        """(width, height) of the latest frame; re-read every call."""
        with self._lock:
            frame = self._latest_frame
        return frame.dimensions if frame is not None else None

    def _capture_frame(self) -> Optional[Frame]:
        cap = self._cap
        if cap is None:
            return None

        ret, image = cap.read()

        if not ret or image is None:
            logger.debug("Failed to capture frame")
            return None

        # Recognizers in video mode require strictly increasing timestamps
        timestamp_ms = max(monotonic_ms(), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms
        self._frame_number += 1

        return Frame(image=image, timestamp_ms=timestamp_ms,
                     frame_number=self._frame_number)

    def _capture_loop(self) -> None:
        """Background grab thread; only ever replaces the latest-frame slot."""
        while self._running:
            frame = self._capture_frame()
            if frame is not None and self._running:
                with self._lock:
                    self._latest_frame = frame
            else:
                time.sleep(0.001)

    @property
    def is_running(self) -> bool:
        return self._running

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
