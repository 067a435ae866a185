"""
Gesture Overlay - Main Application
===================================

Desktop front end: a result panel beside the mirrored camera view with
the landmark skeleton composited on top. SPACE toggles the camera,
q or ESC quits.
"""

import argparse
import asyncio
import logging
import signal
from functools import partial
from typing import Optional

import cv2
import numpy as np

from gesture_overlay.capture.frame_source import CameraConfig, FrameSource
from gesture_overlay.core.events import EventBus, PipelineFault
from gesture_overlay.core.pipeline import PipelineController
from gesture_overlay.core.types import Frame, PipelineState
from gesture_overlay.inference.recognizer import RecognizerConfig, load_recognizer
from gesture_overlay.inference.result_buffer import ResultBuffer
from gesture_overlay.utils.config import Config
from gesture_overlay.utils.logger import setup_logging
from gesture_overlay.utils.performance import PerformanceMonitor
from gesture_overlay.visualization.overlay import OverlayConfig, OverlayRenderer
from gesture_overlay.visualization.result_panel import ResultDisplay
from gesture_overlay.visualization.surface import CanvasSurface

logger = logging.getLogger(__name__)

KEY_SPACE = 32
KEY_ESC = 27
IDLE_VIEW_SIZE = (640, 480)


class GestureOverlayApp:
    """
    Wires the pipeline to an OpenCV window.

    Example:
        >>> app = GestureOverlayApp(Config().load())
        >>> asyncio.run(app.run())
    """

    def __init__(self, config: Config):
        self._config = config
        self._window_name = config.get("visualization.window_name", "Gesture Overlay")
        self._grayscale = config.get("visualization.grayscale_video", True)
        self._panel_width = config.get("visualization.panel_width", 420)

        self.bus = EventBus()
        self.buffer = ResultBuffer()
        self.display = ResultDisplay()
        self.surface = CanvasSurface()
        self.performance = PerformanceMonitor(
            window_size=config.get("pipeline.metrics_window", 100))
        self.renderer = OverlayRenderer(
            self.surface, self.buffer, self.display,
            OverlayConfig.from_dict(config.visualization),
        )
        self.source = FrameSource(CameraConfig.from_dict(config.camera))
        recognizer_config = RecognizerConfig.from_dict(config.recognizer)
        self.controller = PipelineController(
            source=self.source,
            loader=partial(load_recognizer, recognizer_config),
            renderer=self.renderer,
            buffer=self.buffer,
            event_bus=self.bus,
            performance_monitor=self.performance,
            tick_fps=config.get("pipeline.tick_fps", 30),
        )
        self.bus.subscribe(PipelineFault, self._on_fault)

        self._stop_event: Optional[asyncio.Event] = None
        self._init_task: Optional[asyncio.Task] = None
        self._status_message = ""

    def start_initialization(self) -> asyncio.Task:
        """Load the recognizer in the background; SPACE in IDLE retries."""
        if self._init_task is not None and not self._init_task.done():
            return self._init_task
        loop = asyncio.get_running_loop()
        self._init_task = loop.create_task(self.controller.initialize())
        return self._init_task

    def _on_fault(self, event: PipelineFault):
        self._status_message = str(event.error)

    async def run(self) -> None:
        self._stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self._stop_event.set)
            except (NotImplementedError, RuntimeError):
                pass

        self.start_initialization()
        try:
            await self.controller.run(self._stop_event, on_tick=self._present)
        finally:
            if self.controller.gate is not None:
                logger.info("Inference stats: %s", self.controller.gate.stats.as_dict())
            # shutdown() abandons a load still in flight and closes it on arrival
            await self.controller.shutdown()
            if self._init_task is not None and not self._init_task.done():
                await self._init_task
            cv2.destroyAllWindows()
            self.performance.print_report()
            logger.info("Shutdown complete.")

    def _present(self, frame: Optional[Frame]) -> None:
        if frame is not None:
            view = self._compose(frame)
        elif not self.controller.is_running:
            view = self._idle_view()
        else:
            view = None

        if view is not None:
            cv2.imshow(self._window_name, view)
        self._handle_key(cv2.waitKey(1) & 0xFF)

    def _compose(self, frame: Frame) -> np.ndarray:
        video = frame.image
        if self._grayscale:
            video = cv2.cvtColor(cv2.cvtColor(video, cv2.COLOR_BGR2GRAY), cv2.COLOR_GRAY2BGR)
        # Same transform for video and overlay, or the skeleton drifts off the hand
        video = self.renderer.transform.apply_image(video)
        shown = self.surface.composite(video)
        panel = self.display.render_panel(self._panel_width, frame.height)
        return np.hstack([panel, shown])

    def _idle_view(self) -> np.ndarray:
        width, height = IDLE_VIEW_SIZE
        view = np.zeros((height, width + self._panel_width, 3), dtype=np.uint8)
        state = self.controller.state
        if state is PipelineState.INITIALIZING:
            prompt = "Loading gesture recognizer..."
        elif state is PipelineState.READY:
            prompt = "Press SPACE to turn on camera"
        else:
            prompt = "Recognizer unavailable: SPACE to retry, q to quit"
        cv2.putText(view, prompt, (self._panel_width + 40, height // 2),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2)
        if self._status_message:
            cv2.putText(view, self._status_message[:80], (20, height - 30),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 0, 255), 1)
        return view

    def _handle_key(self, key: int) -> None:
        if key in (ord("q"), KEY_ESC):
            self._stop_event.set()
        elif key == KEY_SPACE:
            self._status_message = ""
            if self.controller.state is PipelineState.IDLE:
                self.start_initialization()
                return
            if not self.controller.toggle() and self.controller.state is not PipelineState.READY:
                logger.warning("Gesture recognizer is not ready")
        elif key == ord("p"):
            self.performance.print_report()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Live hand-gesture recognition with a landmark overlay"
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--camera", type=int, default=None, help="Camera device ID")
    parser.add_argument("--model", type=str, default=None,
                        help="Path to gesture_recognizer.task")
    parser.add_argument("--delegate", choices=["CPU", "GPU"], default=None,
                        help="Inference compute delegate")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level")
    return parser.parse_args(argv)


def build_config(args) -> Config:
    config = Config().load(config_path=args.config)
    if args.camera is not None:
        config.set("camera.device_id", args.camera)
    if args.model is not None:
        config.set("recognizer.model_path", args.model)
    if args.delegate is not None:
        config.set("recognizer.delegate", args.delegate)
    if args.log_level is not None:
        config.set("logging.level", args.log_level)
    return config


def main(argv=None):
    args = parse_args(argv)
    config = build_config(args)

    log_cfg = config.get_section("logging")
    setup_logging(
        level=log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
        per_frame_console=log_cfg.get("per_frame_console", False),
    )

    logger.info("=" * 60)
    logger.info("  GESTURE OVERLAY")
    logger.info("  Camera: %d  Delegate: %s", config.get("camera.device_id", 0),
                config.get("recognizer.delegate", "CPU"))
    logger.info("=" * 60)

    app = GestureOverlayApp(config)
    asyncio.run(app.run())


if __name__ == "__main__":
    main()
