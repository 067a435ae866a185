"""
Pipeline controller for the live gesture overlay.

Owns the lifecycle state machine and wires the components together
on every tick:

    FrameSource -> InferenceGate (async, single-flight) -> ResultBuffer
    FrameSource -> OverlayRenderer (reads the latest ResultBuffer value)

Everything here runs on one asyncio event loop. The only interleaving
point is the awaited inference call inside the gate, so no locks are
needed around the buffer, the gate status, or the drawing surface.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from gesture_overlay.core.events import (
    EventBus,
    FrameCaptured,
    InferenceCompleted,
    PipelineFault,
    RenderRequested,
    StateChanged,
)
from gesture_overlay.core.exceptions import (
    DeviceUnavailable,
    InitializationFailure,
    NotReadyError,
    PipelineError,
)
from gesture_overlay.core.types import Frame, PipelineState
from gesture_overlay.inference.gate import InferenceGate
from gesture_overlay.inference.result_buffer import ResultBuffer
from gesture_overlay.utils.performance import PerformanceMonitor

logger = logging.getLogger(__name__)


class PipelineController:
    """Lifecycle owner: IDLE -> INITIALIZING -> READY <-> RUNNING.

    Args:
        source: FrameSource (or anything with start/stop/current_frame)
        loader: coroutine function returning a loaded inference capability
        renderer: OverlayRenderer bound to ``buffer``
        buffer: the ResultBuffer the gate writes into and the renderer reads
    """

    def __init__(
        self,
        source,
        loader: Callable[[], Awaitable],
        renderer,
        buffer: ResultBuffer,
        event_bus: Optional[EventBus] = None,
        performance_monitor: Optional[PerformanceMonitor] = None,
        tick_fps: float = 30.0,
    ):
        self._source = source
        self._loader = loader
        self._renderer = renderer
        self._buffer = buffer
        self._bus = event_bus or EventBus()
        self._perf = performance_monitor or PerformanceMonitor()
        self._tick_interval = 1.0 / tick_fps if tick_fps > 0 else 0.0

        self._state = PipelineState.IDLE
        self._capability = None
        self._gate: Optional[InferenceGate] = None
        self._last_submitted_ts: Optional[int] = None
        self._init_attempt = 0
        self.last_error: Optional[PipelineError] = None

        self._bus.subscribe(FrameCaptured, self._on_frame_captured)
        self._bus.subscribe(RenderRequested, self._on_render_requested)
        self._bus.subscribe(InferenceCompleted, self._on_inference_completed)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def gate(self) -> Optional[InferenceGate]:
        return self._gate

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def is_running(self) -> bool:
        return self._state is PipelineState.RUNNING

    def _set_state(self, new_state: PipelineState):
        previous = self._state
        if previous is new_state:
            return
        self._state = new_state
        logger.info("Pipeline state: %s -> %s", previous.value, new_state.value)
        self._bus.publish(StateChanged(previous=previous, current=new_state))

    def _surface_error(self, error: PipelineError):
        self.last_error = error
        logger.error("%s: %s", type(error).__name__, error)
        self._bus.publish(PipelineFault(error=error))

    async def initialize(self) -> bool:
        """Load the inference capability.

        A failure returns to IDLE with the error surfaced; calling this
        again is the manual retry.
        """
        if self._state is not PipelineState.IDLE:
            logger.warning("initialize() ignored in state %s", self._state.value)
            return self._state is not PipelineState.INITIALIZING

        self.last_error = None
        self._init_attempt += 1
        attempt = self._init_attempt
        self._set_state(PipelineState.INITIALIZING)
        try:
            capability = await self._loader()
        except Exception as e:
            if attempt != self._init_attempt:
                logger.debug("Abandoned initialization failed: %s", e)
                return False
            error = e if isinstance(e, InitializationFailure) else InitializationFailure(str(e))
            self._set_state(PipelineState.IDLE)
            self._surface_error(error)
            return False

        # shutdown() ran while the loader was pending
        if attempt != self._init_attempt:
            logger.info("Initialization finished after shutdown; releasing recognizer")
            capability.close()
            return False

        self._capability = capability
        self._gate = InferenceGate(capability, self._buffer, self._bus)
        self._set_state(PipelineState.READY)
        return True

    def enable(self) -> bool:
        """User "enable" action: start capture and the per-tick loop."""
        if self._state is PipelineState.RUNNING:
            return True
        if self._state not in (PipelineState.READY, PipelineState.STOPPED):
            self._surface_error(NotReadyError(
                "Gesture recognizer is not ready (state={})".format(self._state.value)))
            return False

        try:
            self._source.start()
        except DeviceUnavailable as e:
            self._surface_error(e)
            return False

        self._buffer.invalidate()
        self._renderer.clear()
        self._last_submitted_ts = None
        self.last_error = None
        self._set_state(PipelineState.RUNNING)
        return True

    def disable(self) -> None:
        """User "disable" action: stop capture and drop all overlay state."""
        if self._state is not PipelineState.RUNNING:
            return

        self._set_state(PipelineState.STOPPED)
        self._source.stop()
        # Any inference still in flight now belongs to a dead generation
        self._buffer.invalidate()
        self._renderer.clear()
        self._set_state(PipelineState.READY)

    def toggle(self) -> bool:
        """The single user control. Returns True if capture is now running."""
        if self.is_running:
            self.disable()
            return False
        return self.enable()

    async def shutdown(self) -> None:
        """Stop everything and release the recognizer; ends in IDLE.

        A load still in flight is abandoned: its capability is closed as
        soon as the loader returns.
        """
        self.disable()
        if self._state is PipelineState.IDLE:
            return
        self._init_attempt += 1
        self._set_state(PipelineState.STOPPED)
        if self._gate is not None:
            await self._gate.wait_idle()
        if self._capability is not None:
            self._capability.close()
        self._capability = None
        self._gate = None
        self._set_state(PipelineState.IDLE)

    # ------------------------------------------------------------------
    # Tick loop
    # ------------------------------------------------------------------

    def tick(self) -> Optional[Frame]:
        """Run one capture -> submit -> render cycle.

        Returns:
            The frame displayed this tick, or None if nothing was rendered
        """
        if self._state is not PipelineState.RUNNING:
            return None

        try:
            with self._perf.measure("capture"):
                frame = self._source.current_frame()
        except DeviceUnavailable as e:
            self._surface_error(e)
            self.disable()
            return None

        if frame is None:
            return None

        self._bus.publish(FrameCaptured(frame=frame))
        self._bus.publish(RenderRequested(frame=frame))
        self._perf.tick()
        return frame

    async def run(self, stop_event: asyncio.Event,
                  on_tick: Optional[Callable[[Optional[Frame]], None]] = None) -> None:
        """Drive ``tick()`` at the configured rate until ``stop_event`` is set.

        ``on_tick`` is called after every tick, running or not, so a UI
        can present the frame and poll its controls.
        """
        loop = asyncio.get_running_loop()
        while not stop_event.is_set():
            started = loop.time()
            frame = self.tick()
            if on_tick is not None:
                on_tick(frame)
            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, self._tick_interval - elapsed))

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _on_frame_captured(self, event: FrameCaptured):
        frame = event.frame
        # The source repeats its last frame until a new one arrives
        if self._last_submitted_ts is not None and frame.timestamp_ms <= self._last_submitted_ts:
            return
        self._last_submitted_ts = frame.timestamp_ms
        if not self._gate.submit(frame):
            self._perf.record_drop()

    def _on_render_requested(self, event: RenderRequested):
        with self._perf.measure("render"):
            self._renderer.render(event.frame)

    def _on_inference_completed(self, event: InferenceCompleted):
        if not event.accepted:
            logger.debug("Stale completion for t=%d discarded", event.outcome.frame_timestamp)
            return
        result = event.outcome.result
        logger.debug("Inference t=%d -> %s (%.1fms)", event.outcome.frame_timestamp,
                     result.summary if result else "no hand", event.latency_ms)
