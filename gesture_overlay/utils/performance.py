"""
Rolling FPS and per-stage latency tracking for the tick loop.
"""

import time
import logging
from collections import deque
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """Tracks tick rate, stage latencies, and dropped frames."""

    def __init__(self, window_size=100):
        self._window_size = window_size
        self._frame_times = deque(maxlen=window_size)
        self._last_frame_time = None
        self._stage_times = {}
        self._frame_count = 0
        self._dropped_frames = 0
        self._start_time = time.monotonic()

    @contextmanager
    def measure(self, stage_name: str):
        """Context manager to measure a pipeline stage's duration."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            if stage_name not in self._stage_times:
                self._stage_times[stage_name] = deque(maxlen=self._window_size)
            self._stage_times[stage_name].append(elapsed_ms)

    def tick(self):
        """Call once per rendered tick."""
        now = time.perf_counter()
        if self._last_frame_time is not None:
            self._frame_times.append(now - self._last_frame_time)
        self._last_frame_time = now
        self._frame_count += 1

    def record_drop(self):
        self._dropped_frames += 1

    @property
    def fps(self) -> float:
        """Current ticks per second (rolling average)."""
        if len(self._frame_times) < 2:
            return 0.0
        avg_interval = sum(self._frame_times) / len(self._frame_times)
        return 1.0 / avg_interval if avg_interval > 0 else 0.0

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def dropped_frames(self) -> int:
        return self._dropped_frames

    def get_stage_latency(self, stage_name: str) -> float:
        times = self._stage_times.get(stage_name)
        if not times:
            return 0.0
        return sum(times) / len(times)

    def get_report(self) -> dict:
        uptime = time.monotonic() - self._start_time
        return {
            "fps": round(self.fps, 1),
            "total_frames": self._frame_count,
            "dropped_frames": self._dropped_frames,
            "drop_rate": round(
                self._dropped_frames / max(self._frame_count, 1) * 100, 2
            ),
            "uptime_seconds": round(uptime, 1),
            "latencies_ms": {
                name: round(self.get_stage_latency(name), 2) for name in self._stage_times
            },
        }

    def print_report(self):
        report = self.get_report()
        logger.info("=" * 60)
        logger.info("PERFORMANCE REPORT")
        logger.info("=" * 60)
        logger.info("FPS:            %.1f", report["fps"])
        logger.info("Total Frames:   %d", report["total_frames"])
        logger.info("Dropped Frames: %d (%.2f%%)", report["dropped_frames"], report["drop_rate"])
        logger.info("Uptime:         %.1fs", report["uptime_seconds"])
        for stage, latency in report["latencies_ms"].items():
            logger.info("  %-18s %7.2f ms", stage, latency)
        logger.info("=" * 60)

    def reset(self):
        self._frame_times.clear()
        self._last_frame_time = None
        self._stage_times.clear()
        self._frame_count = 0
        self._dropped_frames = 0
        self._start_time = time.monotonic()
