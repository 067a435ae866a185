"""
Tests for the Pipeline Controller
==================================
"""

import asyncio
from types import SimpleNamespace

from gesture_overlay.core.events import PipelineFault, StateChanged
from gesture_overlay.core.exceptions import (
    DeviceUnavailable,
    InitializationFailure,
    NotReadyError,
)
from gesture_overlay.core.pipeline import PipelineController
from gesture_overlay.core.types import PipelineState
from gesture_overlay.inference.outcome import RecognizerOutput
from gesture_overlay.inference.result_buffer import ResultBuffer
from gesture_overlay.visualization.overlay import OverlayRenderer
from gesture_overlay.visualization.result_panel import ResultDisplay

from tests.fakes import (
    ControlledCapability,
    FakeSource,
    RecordingSurface,
    gesture_output,
    make_frame,
)


def build_pipeline(loader=None, source=None, tick_fps=30.0):
    capability = ControlledCapability()
    source = source or FakeSource()
    buffer = ResultBuffer()
    surface = RecordingSurface()
    display = ResultDisplay()
    renderer = OverlayRenderer(surface, buffer, display)

    async def default_loader():
        return capability

    controller = PipelineController(
        source=source,
        loader=loader or default_loader,
        renderer=renderer,
        buffer=buffer,
        tick_fps=tick_fps,
    )
    return SimpleNamespace(
        controller=controller, capability=capability, source=source,
        buffer=buffer, surface=surface, display=display,
    )


async def running_pipeline(**kwargs):
    p = build_pipeline(**kwargs)
    assert await p.controller.initialize()
    assert p.controller.enable()
    return p


class TestInitialization:
    """IDLE -> INITIALIZING -> READY / IDLE."""

    def test_starts_idle(self):
        p = build_pipeline()
        assert p.controller.state is PipelineState.IDLE
        assert p.controller.gate is None

    def test_initialize_success(self):
        async def scenario():
            p = build_pipeline()
            states = []
            p.controller.event_bus.subscribe(StateChanged, lambda e: states.append(e.current))

            assert await p.controller.initialize() is True
            assert p.controller.state is PipelineState.READY
            assert p.controller.gate is not None
            assert states == [PipelineState.INITIALIZING, PipelineState.READY]

        asyncio.run(scenario())

    def test_initialize_failure_returns_to_idle(self):
        async def scenario():
            async def failing_loader():
                raise InitializationFailure("model missing")

            p = build_pipeline(loader=failing_loader)
            faults = []
            p.controller.event_bus.subscribe(PipelineFault, faults.append)

            assert await p.controller.initialize() is False
            assert p.controller.state is PipelineState.IDLE
            assert isinstance(p.controller.last_error, InitializationFailure)
            assert len(faults) == 1

        asyncio.run(scenario())

    def test_unexpected_loader_error_is_initialization_failure(self):
        async def scenario():
            async def broken_loader():
                raise RuntimeError("delegate not supported")

            p = build_pipeline(loader=broken_loader)
            await p.controller.initialize()
            assert isinstance(p.controller.last_error, InitializationFailure)
            assert "delegate not supported" in str(p.controller.last_error)

        asyncio.run(scenario())

    def test_enable_after_failed_initialization_rejected(self):
        async def scenario():
            async def failing_loader():
                raise InitializationFailure("model missing")

            p = build_pipeline(loader=failing_loader)
            await p.controller.initialize()

            assert p.controller.enable() is False
            assert p.controller.state is PipelineState.IDLE
            assert isinstance(p.controller.last_error, NotReadyError)
            assert p.source.start_count == 0

        asyncio.run(scenario())

    def test_manual_retry_after_failure(self):
        async def scenario():
            attempts = []
            capability = ControlledCapability()

            async def flaky_loader():
                attempts.append(1)
                if len(attempts) == 1:
                    raise InitializationFailure("download interrupted")
                return capability

            p = build_pipeline(loader=flaky_loader)
            assert await p.controller.initialize() is False
            assert await p.controller.initialize() is True
            assert p.controller.state is PipelineState.READY

        asyncio.run(scenario())

    def test_enable_while_initializing_rejected(self):
        async def scenario():
            release = asyncio.Event()
            capability = ControlledCapability()

            async def slow_loader():
                await release.wait()
                return capability

            p = build_pipeline(loader=slow_loader)
            init_task = asyncio.ensure_future(p.controller.initialize())
            await asyncio.sleep(0)
            assert p.controller.state is PipelineState.INITIALIZING

            assert p.controller.enable() is False
            assert isinstance(p.controller.last_error, NotReadyError)
            assert p.controller.state is PipelineState.INITIALIZING

            release.set()
            assert await init_task is True
            assert p.controller.state is PipelineState.READY
            assert p.source.start_count == 0

        asyncio.run(scenario())


class TestEnableDisable:
    """READY <-> RUNNING transitions."""

    def test_enable_starts_source(self):
        async def scenario():
            p = await running_pipeline()
            assert p.controller.state is PipelineState.RUNNING
            assert p.source.running

        asyncio.run(scenario())

    def test_device_unavailable_surfaced(self):
        async def scenario():
            p = build_pipeline(source=FakeSource(fail_start=True))
            await p.controller.initialize()

            assert p.controller.enable() is False
            assert p.controller.state is PipelineState.READY
            assert isinstance(p.controller.last_error, DeviceUnavailable)

        asyncio.run(scenario())

    def test_disable_returns_to_ready(self):
        async def scenario():
            p = await running_pipeline()
            states = []
            p.controller.event_bus.subscribe(StateChanged, lambda e: states.append(e.current))

            p.controller.disable()

            assert p.controller.state is PipelineState.READY
            assert states == [PipelineState.STOPPED, PipelineState.READY]
            assert p.source.stop_count == 1

        asyncio.run(scenario())

    def test_toggle(self):
        async def scenario():
            p = build_pipeline()
            await p.controller.initialize()
            assert p.controller.toggle() is True
            assert p.controller.is_running
            assert p.controller.toggle() is False
            assert p.controller.state is PipelineState.READY

        asyncio.run(scenario())

    def test_tick_does_nothing_when_not_running(self):
        async def scenario():
            p = build_pipeline()
            await p.controller.initialize()
            p.source.frame = make_frame(100)
            assert p.controller.tick() is None
            assert p.surface.resizes == []

        asyncio.run(scenario())


class TestFramePipeline:
    """End-to-end tick behavior."""

    def test_open_palm_then_no_hand(self):
        async def scenario():
            p = await running_pipeline()
            gate = p.controller.gate

            p.source.frame = make_frame(100)
            p.controller.tick()
            await asyncio.sleep(0)
            assert p.capability.calls == [100]

            # Inference for t=100 still outstanding: t=133 is dropped
            p.source.frame = make_frame(133)
            p.controller.tick()
            assert gate.stats.dropped == 1

            p.capability.complete(100, gesture_output("Open_Palm", 0.92))
            await gate.wait_idle()

            p.source.frame = make_frame(166)
            p.controller.tick()
            await asyncio.sleep(0)
            assert p.display.text == "Open_Palm 92.00%"
            assert p.capability.calls == [100, 166]

            p.capability.complete(166, RecognizerOutput())
            await gate.wait_idle()
            p.controller.tick()

            assert p.display.is_blank
            assert p.surface.points == []
            assert p.buffer.read().frame_timestamp == 166

        asyncio.run(scenario())

    def test_failed_inference_keeps_last_good_display(self):
        async def scenario():
            p = await running_pipeline()
            gate = p.controller.gate

            p.source.frame = make_frame(100)
            p.controller.tick()
            await asyncio.sleep(0)
            p.capability.complete(100, gesture_output("Thumb_Up", 0.75))
            await gate.wait_idle()

            p.source.frame = make_frame(133)
            p.controller.tick()
            await asyncio.sleep(0)
            p.capability.fail(133)
            await gate.wait_idle()
            p.controller.tick()

            assert p.display.text == "Thumb_Up 75.00%"
            assert p.controller.last_error is None

        asyncio.run(scenario())

    def test_surface_follows_frame_size(self):
        async def scenario():
            p = await running_pipeline()

            p.source.frame = make_frame(100, 640, 480)
            p.controller.tick()
            assert p.surface.size == (640, 480)

            p.source.frame = make_frame(133, 1280, 720)
            p.controller.tick()
            assert p.surface.size == (1280, 720)

            p.capability.complete(100)
            await p.controller.gate.wait_idle()

        asyncio.run(scenario())

    def test_repeated_frame_is_not_resubmitted(self):
        async def scenario():
            p = await running_pipeline()
            p.source.frame = make_frame(100)
            p.controller.tick()
            await asyncio.sleep(0)
            p.capability.complete(100)
            await p.controller.gate.wait_idle()

            p.controller.tick()
            p.controller.tick()
            await asyncio.sleep(0)

            assert p.capability.calls == [100]
            assert p.controller.gate.stats.submitted == 1

        asyncio.run(scenario())

    def test_device_lost_mid_run_is_surfaced(self):
        async def scenario():
            p = await running_pipeline()
            p.source.opened = False

            assert p.controller.tick() is None
            assert isinstance(p.controller.last_error, DeviceUnavailable)
            assert p.controller.state is PipelineState.READY

        asyncio.run(scenario())


class TestStopCleanup:
    """Stopping must not leak the previous session's result."""

    def test_restart_begins_empty(self):
        async def scenario():
            p = await running_pipeline()
            p.source.frame = make_frame(100)
            p.controller.tick()
            await asyncio.sleep(0)
            p.capability.complete(100, gesture_output())
            await p.controller.gate.wait_idle()
            p.controller.tick()
            assert p.display.text

            p.controller.disable()
            assert p.buffer.read() is None
            assert p.display.is_blank
            assert p.surface.points == []

            assert p.controller.enable()
            p.source.frame = make_frame(500)
            p.controller.tick()
            assert p.display.is_blank
            assert p.surface.points == []
            p.capability.complete(500)
            await p.controller.gate.wait_idle()

        asyncio.run(scenario())

    def test_inflight_completion_after_stop_is_discarded(self):
        async def scenario():
            p = await running_pipeline()
            p.source.frame = make_frame(100)
            p.controller.tick()
            await asyncio.sleep(0)

            p.controller.disable()
            p.capability.complete(100, gesture_output())
            await p.controller.gate.wait_idle()

            assert p.buffer.read() is None
            assert p.controller.gate.stats.stale == 1

        asyncio.run(scenario())

    def test_shutdown_releases_capability(self):
        async def scenario():
            p = await running_pipeline()
            await p.controller.shutdown()

            assert p.controller.state is PipelineState.IDLE
            assert p.capability.closed
            assert p.controller.gate is None
            assert not p.source.running

        asyncio.run(scenario())


    def test_shutdown_during_initialization_stays_idle(self):
        async def scenario():
            release = asyncio.Event()
            capability = ControlledCapability()

            async def slow_loader():
                await release.wait()
                return capability

            p = build_pipeline(loader=slow_loader)
            init_task = asyncio.ensure_future(p.controller.initialize())
            await asyncio.sleep(0)
            assert p.controller.state is PipelineState.INITIALIZING

            await p.controller.shutdown()
            assert p.controller.state is PipelineState.IDLE

            release.set()
            assert await init_task is False
            assert p.controller.state is PipelineState.IDLE
            assert p.controller.gate is None
            assert capability.closed

        asyncio.run(scenario())

    def test_reinitialize_after_abandoned_load(self):
        async def scenario():
            releases = []
            capabilities = []

            async def slow_loader():
                release = asyncio.Event()
                capability = ControlledCapability()
                releases.append(release)
                capabilities.append(capability)
                await release.wait()
                return capability

            p = build_pipeline(loader=slow_loader)
            first = asyncio.ensure_future(p.controller.initialize())
            await asyncio.sleep(0)
            await p.controller.shutdown()

            second = asyncio.ensure_future(p.controller.initialize())
            await asyncio.sleep(0)
            releases[0].set()
            assert await first is False
            assert p.controller.state is PipelineState.INITIALIZING

            releases[1].set()
            assert await second is True
            assert p.controller.state is PipelineState.READY
            assert capabilities[0].closed
            assert not capabilities[1].closed

        asyncio.run(scenario())


class TestRunLoop:
    """The asyncio tick driver."""

    def test_run_until_stopped(self):
        async def scenario():
            p = await running_pipeline(tick_fps=1000)
            p.source.frame = make_frame(100)
            stop = asyncio.Event()
            ticks = []

            def on_tick(frame):
                ticks.append(frame)
                if len(ticks) == 3:
                    stop.set()

            await asyncio.wait_for(p.controller.run(stop, on_tick=on_tick), timeout=5)
            p.capability.complete(100)
            await p.controller.gate.wait_idle()
            return ticks

        ticks = asyncio.run(scenario())
        assert len(ticks) == 3
        assert all(frame.timestamp_ms == 100 for frame in ticks)
