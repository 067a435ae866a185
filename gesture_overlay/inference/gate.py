"""
Single-flight gate in front of the inference capability.

Inference can take longer than one capture interval. Rather than queueing
frames (which would grow without bound and return results out of order),
the gate runs at most one inference at a time and drops every frame that
arrives while it is busy.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from gesture_overlay.core.events import EventBus, InferenceCompleted
from gesture_overlay.core.types import Frame
from gesture_overlay.inference.outcome import build_outcome
from gesture_overlay.inference.result_buffer import ResultBuffer

logger = logging.getLogger(__name__)


class GateStatus(Enum):
    IDLE = "idle"
    PENDING = "pending"


@dataclass
class GateStats:
    submitted: int = 0
    started: int = 0
    dropped: int = 0
    completed: int = 0
    failed: int = 0
    stale: int = 0
    total_latency_ms: float = 0.0

    @property
    def avg_latency_ms(self) -> float:
        finished = self.completed + self.failed
        return self.total_latency_ms / finished if finished else 0.0

    def as_dict(self) -> dict:
        return {
            "submitted": self.submitted,
            "started": self.started,
            "dropped": self.dropped,
            "completed": self.completed,
            "failed": self.failed,
            "stale": self.stale,
            "avg_latency_ms": round(self.avg_latency_ms, 2),
        }


class InferenceGate:
    """Runs ``capability.infer`` with at most one call outstanding.

    Must be used from a running asyncio event loop.
    """

    def __init__(self, capability, buffer: ResultBuffer, event_bus: Optional[EventBus] = None):
        self._capability = capability
        self._buffer = buffer
        self._bus = event_bus
        self._status = GateStatus.IDLE
        self._task: Optional[asyncio.Task] = None
        self.stats = GateStats()

    @property
    def status(self) -> GateStatus:
        return self._status

    def submit(self, frame: Frame) -> bool:
        """Start inference on ``frame`` unless one is already outstanding.

        Returns:
            True if inference started, False if the frame was dropped
        """
        self.stats.submitted += 1
        if self._status is GateStatus.PENDING:
            self.stats.dropped += 1
            return False

        self._status = GateStatus.PENDING
        self.stats.started += 1
        generation = self._buffer.generation
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(frame, generation))
        return True

    async def _run(self, frame: Frame, generation: int) -> None:
        start = time.perf_counter()
        try:
            output = await self._capability.infer(frame.image, frame.timestamp_ms)
            outcome = build_outcome(frame.timestamp_ms, output)
        except Exception as e:
            # Last-good policy: the buffer keeps whatever it already shows
            self.stats.failed += 1
            self.stats.total_latency_ms += (time.perf_counter() - start) * 1000
            logger.debug("Inference failed for frame t=%d: %s", frame.timestamp_ms, e)
            return
        finally:
            self._status = GateStatus.IDLE

        latency_ms = (time.perf_counter() - start) * 1000
        self.stats.completed += 1
        self.stats.total_latency_ms += latency_ms

        accepted = self._buffer.write(outcome, generation)
        if not accepted:
            self.stats.stale += 1

        if self._bus is not None:
            self._bus.publish(InferenceCompleted(
                outcome=outcome, accepted=accepted, latency_ms=latency_ms))

    async def wait_idle(self) -> None:
        """Wait for the outstanding inference, if any, to finish."""
        task = self._task
        if task is not None and not task.done():
            await task
