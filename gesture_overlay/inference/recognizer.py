"""
Gesture Recognizer - MediaPipe Tasks API
=========================================

Async adapter around MediaPipe's GestureRecognizer. The blocking MediaPipe
calls run on a dedicated single-worker executor so the pipeline event loop
stays responsive; awaiting them is the only suspension point.
"""

import asyncio
import cv2
import logging
import urllib.request
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import mediapipe as mp
from mediapipe.tasks import python as mp_tasks
from mediapipe.tasks.python import vision

from gesture_overlay.core.exceptions import InferenceFailure, InitializationFailure
from gesture_overlay.core.types import Landmark
from gesture_overlay.inference.outcome import Category, RecognizerOutput

logger = logging.getLogger(__name__)

GESTURE_RECOGNIZER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/gesture_recognizer/"
    "gesture_recognizer/float16/1/gesture_recognizer.task"
)
DEFAULT_MODEL_PATH = Path(__file__).parent.parent.parent / "models" / "gesture_recognizer.task"

_DELEGATES = {
    "CPU": mp_tasks.BaseOptions.Delegate.CPU,
    "GPU": mp_tasks.BaseOptions.Delegate.GPU,
}


@dataclass
class RecognizerConfig:
    """Configuration for the gesture recognizer."""
    model_path: str = ""
    model_url: str = GESTURE_RECOGNIZER_MODEL_URL
    delegate: str = "CPU"
    num_hands: int = 1
    min_detection_confidence: float = 0.5
    min_presence_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    @classmethod
    def from_dict(cls, d: dict) -> "RecognizerConfig":
        return cls(
            model_path=d.get("model_path", ""),
            model_url=d.get("model_url", GESTURE_RECOGNIZER_MODEL_URL),
            delegate=str(d.get("delegate", "CPU")).upper(),
            num_hands=d.get("num_hands", 1),
            min_detection_confidence=d.get("min_detection_confidence", 0.5),
            min_presence_confidence=d.get("min_presence_confidence", 0.5),
            min_tracking_confidence=d.get("min_tracking_confidence", 0.5),
        )

    @property
    def resolved_model_path(self) -> Path:
        return Path(self.model_path) if self.model_path else DEFAULT_MODEL_PATH


def download_model(url: str, save_path: Path) -> None:
    """Download the recognizer model if it is not already on disk."""
    if save_path.exists():
        logger.info("Model already exists at %s", save_path)
        return

    save_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Downloading gesture recognizer model to %s...", save_path)
    urllib.request.urlretrieve(url, save_path)
    logger.info("Model download complete")


def to_recognizer_output(result) -> RecognizerOutput:
    """Convert a MediaPipe GestureRecognizerResult into a RecognizerOutput."""
    output = RecognizerOutput()
    for categories in result.gestures or []:
        output.gestures.append(
            [Category(c.category_name, float(c.score)) for c in categories])
    for categories in result.handedness or []:
        output.handedness.append(
            [Category(c.category_name, float(c.score)) for c in categories])
    for hand in result.hand_landmarks or []:
        output.landmarks.append(
            tuple(Landmark(x=lm.x, y=lm.y, z=lm.z) for lm in hand))
    return output


class GestureRecognizerCapability:
    """
    Loaded MediaPipe recognizer exposing ``async infer(image, timestamp_ms)``.

    Example:
        >>> capability = await load_recognizer(RecognizerConfig())
        >>> output = await capability.infer(bgr_image, timestamp_ms)
        >>> capability.close()
    """

    def __init__(self, recognizer, executor: ThreadPoolExecutor):
        self._recognizer = recognizer
        self._executor = executor

    def _recognize(self, image: np.ndarray, timestamp_ms: int) -> RecognizerOutput:
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        result = self._recognizer.recognize_for_video(mp_image, int(timestamp_ms))
        return to_recognizer_output(result)

    async def infer(self, image: np.ndarray, timestamp_ms: int) -> RecognizerOutput:
        """
        Recognize gestures in a BGR image.

        Raises:
            InferenceFailure: if MediaPipe raised for this frame
        """
        if self._recognizer is None:
            raise InferenceFailure("Recognizer is closed")
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                self._executor, self._recognize, image, timestamp_ms)
        except Exception as e:
            raise InferenceFailure(str(e)) from e

    def close(self) -> None:
        """Release MediaPipe resources."""
        if self._recognizer is not None:
            self._recognizer.close()
            self._recognizer = None
        self._executor.shutdown(wait=False)
        logger.info("Gesture recognizer closed")


def _create_recognizer(config: RecognizerConfig):
    model_path = config.resolved_model_path
    download_model(config.model_url, model_path)

    base_options = mp_tasks.BaseOptions(
        model_asset_path=str(model_path),
        delegate=_DELEGATES.get(config.delegate, mp_tasks.BaseOptions.Delegate.CPU),
    )
    options = vision.GestureRecognizerOptions(
        base_options=base_options,
        running_mode=vision.RunningMode.VIDEO,
        num_hands=config.num_hands,
        min_hand_detection_confidence=config.min_detection_confidence,
        min_hand_presence_confidence=config.min_presence_confidence,
        min_tracking_confidence=config.min_tracking_confidence,
    )
    recognizer = vision.GestureRecognizer.create_from_options(options)
    logger.info("GestureRecognizer initialized with model: %s (delegate=%s, hands=%d)",
                model_path, config.delegate, config.num_hands)
    return recognizer


async def load_recognizer(config: Optional[RecognizerConfig] = None) -> GestureRecognizerCapability:
    """
    Load the recognizer without blocking the event loop.

    Raises:
        InitializationFailure: if the model could not be fetched or created
    """
    config = config or RecognizerConfig()
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="recognizer")
    loop = asyncio.get_running_loop()
    try:
        recognizer = await loop.run_in_executor(executor, _create_recognizer, config)
    except Exception as e:
        executor.shutdown(wait=False)
        raise InitializationFailure(f"Failed to initialize GestureRecognizer: {e}") from e
    return GestureRecognizerCapability(recognizer, executor)
