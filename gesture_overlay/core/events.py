"""
Typed event bus for decoupled communication inside the frame pipeline.

Each tick emits typed events instead of poking shared variables:

    bus = EventBus()
    bus.subscribe(FrameCaptured, gate_handler)
    bus.publish(FrameCaptured(frame=frame))

Dispatch is synchronous and runs on the caller's thread, which in the
pipeline is always the asyncio event loop.
"""

import time
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Optional, Type

from gesture_overlay.core.exceptions import PipelineError
from gesture_overlay.core.types import Frame, InferenceOutcome, PipelineState

logger = logging.getLogger(__name__)


# =============================================================================
# Event Types
# =============================================================================

@dataclass(frozen=True)
class FrameCaptured:
    """A new frame was pulled from the FrameSource this tick."""
    frame: Frame


@dataclass(frozen=True)
class InferenceCompleted:
    """An inference call finished; ``accepted`` is False for stale completions."""
    outcome: InferenceOutcome
    accepted: bool
    latency_ms: float = 0.0


@dataclass(frozen=True)
class RenderRequested:
    """The overlay should be redrawn for ``frame``."""
    frame: Frame


@dataclass(frozen=True)
class StateChanged:
    previous: PipelineState
    current: PipelineState


@dataclass(frozen=True)
class PipelineFault:
    """A user-visible error (initialization failure, device unavailable, not ready)."""
    error: PipelineError


# =============================================================================
# Bus
# =============================================================================

class EventBus:
    """Publish/subscribe bus keyed by event type.

    Supports priority ordering of listeners and keeps a short history
    of published events for diagnostics.
    """

    def __init__(self, max_history: int = 100):
        self._listeners = defaultdict(list)  # event type -> [(priority, callback)]
        self._event_history = []
        self._max_history = max_history
        self._enabled = True

    def subscribe(self, event_type: Type, callback: Callable, priority: int = 0):
        """Register a listener for an event type.

        Args:
            event_type: Event class to listen for
            callback: Function receiving the event instance
            priority: Higher priority callbacks run first (default 0)
        """
        self._listeners[event_type].append((priority, callback))
        self._listeners[event_type].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to %s: %s (priority=%d)",
                     event_type.__name__, getattr(callback, "__name__", callback), priority)

    def unsubscribe(self, event_type: Type, callback: Callable):
        """Remove a listener for an event type."""
        self._listeners[event_type] = [
            (p, cb) for p, cb in self._listeners[event_type] if cb is not callback
        ]

    def publish(self, event):
        """Deliver ``event`` to every listener registered for its type.

        A failing listener is logged and does not stop the others.
        """
        if not self._enabled:
            return

        event_type = type(event)
        listeners = list(self._listeners.get(event_type, []))

        self._event_history.append({
            "event": event_type.__name__,
            "time": time.monotonic(),
        })
        if len(self._event_history) > self._max_history:
            self._event_history = self._event_history[-self._max_history:]

        for priority, callback in listeners:
            try:
                callback(event)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_type.__name__, getattr(callback, "__name__", callback), e)

    def clear(self, event_type: Optional[Type] = None):
        """Remove all listeners, optionally for a single event type."""
        if event_type:
            self._listeners.pop(event_type, None)
        else:
            self._listeners.clear()

    def set_enabled(self, enabled: bool):
        self._enabled = enabled

    @property
    def registered_events(self) -> list:
        """Event types with at least one listener."""
        return [t for t, cbs in self._listeners.items() if cbs]

    @property
    def listener_count(self) -> int:
        return sum(len(cbs) for cbs in self._listeners.values())

    def get_history(self, last_n: int = 10) -> list:
        """Get recent event history."""
        return self._event_history[-last_n:]
