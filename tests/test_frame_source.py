"""
Tests for the Frame Source
===========================
"""

import time

import numpy as np
import pytest
from unittest.mock import MagicMock, patch

from gesture_overlay.capture.frame_source import CameraConfig, FrameSource
from gesture_overlay.core.exceptions import DeviceUnavailable
from gesture_overlay.core.types import Frame


class TestCameraConfig:
    """Test suite for CameraConfig."""

    def test_default_values(self):
        config = CameraConfig()

        assert config.device_id == 0
        assert config.width == 1280
        assert config.height == 720
        assert config.fps == 30
        assert config.buffer_size == 1
        assert config.warmup_frames == 5

    def test_from_dict(self):
        config = CameraConfig.from_dict({
            "device_id": 1,
            "width": 640,
            "height": 480,
            "fps": 60,
        })

        assert config.device_id == 1
        assert config.width == 640
        assert config.height == 480
        assert config.fps == 60

    def test_from_dict_partial(self):
        config = CameraConfig.from_dict({"device_id": 2})

        assert config.device_id == 2
        assert config.width == 1280  # Default


class TestFrame:
    """Test suite for Frame."""

    def test_dimensions_come_from_image(self):
        frame = Frame(image=np.zeros((480, 640, 3), dtype=np.uint8),
                      timestamp_ms=1234, frame_number=42)

        assert frame.width == 640
        assert frame.height == 480
        assert frame.dimensions == (640, 480)
        assert frame.frame_number == 42


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return False


class FakeDevice:
    """Stands in for the device behind VideoCapture.read()."""

    def __init__(self, width=1280, height=720, delay=0.002):
        self.image = np.zeros((height, width, 3), dtype=np.uint8)
        self.delay = delay

    def read(self):
        time.sleep(self.delay)
        return True, self.image


class TestFrameSource:
    """Test suite for FrameSource with a mocked capture device."""

    @pytest.fixture
    def device(self):
        return FakeDevice()

    @pytest.fixture
    def mock_cap(self, device):
        cap = MagicMock()
        cap.isOpened.return_value = True
        cap.read.side_effect = device.read
        cap.get.return_value = 30.0
        return cap

    @pytest.fixture
    def mock_cv2(self, mock_cap):
        with patch('gesture_overlay.capture.frame_source.cv2') as mock:
            mock.VideoCapture.return_value = mock_cap
            yield mock

    @pytest.fixture
    def source(self):
        source = FrameSource(CameraConfig(warmup_frames=0))
        yield source
        source.stop()

    def test_init(self):
        source = FrameSource(CameraConfig(device_id=0))
        assert source.config.device_id == 0
        assert not source.is_running
        assert source.dimensions is None

    def test_current_frame_before_start_raises(self, source):
        with pytest.raises(DeviceUnavailable):
            source.current_frame()

    def test_start_failure_raises(self, mock_cv2, mock_cap, source):
        mock_cap.isOpened.return_value = False

        with pytest.raises(DeviceUnavailable):
            source.start()

        assert not source.is_running
        assert mock_cv2.VideoCapture.call_count == 2
        with pytest.raises(DeviceUnavailable):
            source.current_frame()

    def test_unreadable_backend_falls_back(self, mock_cv2, mock_cap, device, source):
        reads = []

        def first_read_fails():
            reads.append(1)
            if len(reads) == 1:
                return False, None
            return device.read()

        mock_cap.read.side_effect = first_read_fails

        source.start()

        assert source.is_running
        assert mock_cv2.VideoCapture.call_count == 2

    def test_start_success(self, mock_cv2, source):
        source.start()

        assert source.is_running
        assert wait_for(lambda: source.current_frame() is not None)
        assert source.current_frame().dimensions == (1280, 720)

    def test_slow_device_does_not_block_reader(self, mock_cv2, device, source):
        source.start()
        assert wait_for(lambda: source.current_frame() is not None)
        device.delay = 0.2

        started = time.perf_counter()
        for _ in range(5):
            assert source.current_frame() is not None
        elapsed = time.perf_counter() - started

        assert elapsed < 0.05

    def test_timestamps_strictly_increase(self, mock_cv2, source):
        source.start()
        frames = {}

        def collect():
            frame = source.current_frame()
            if frame is not None:
                frames[frame.frame_number] = frame.timestamp_ms
            return len(frames) >= 5

        # A frozen clock still yields strictly increasing timestamps
        with patch('gesture_overlay.capture.frame_source.monotonic_ms', return_value=5000):
            assert wait_for(collect)

        stamps = [frames[n] for n in sorted(frames)]
        assert all(b > a for a, b in zip(stamps, stamps[1:]))

    def test_dimensions_follow_latest_frame(self, mock_cv2, device, source):
        source.start()
        assert wait_for(lambda: source.dimensions == (1280, 720))

        device.image = np.zeros((480, 640, 3), dtype=np.uint8)
        assert wait_for(lambda: source.dimensions == (640, 480))
        assert source.current_frame().dimensions == (640, 480)

    def test_stopped_source_returns_none(self, mock_cv2, source):
        source.start()
        source.stop()

        assert source.current_frame() is None
        assert not source.is_running

    def test_context_manager(self, mock_cv2):
        with FrameSource(CameraConfig(warmup_frames=0)) as source:
            assert source.is_running

        assert not source.is_running


class TestFrameSourceIntegration:
    """Integration tests requiring a real camera."""

    @pytest.mark.skip(reason="Requires physical camera")
    def test_real_camera_capture(self):
        source = FrameSource(CameraConfig(warmup_frames=5))

        try:
            source.start()
            frame = source.current_frame()
            assert frame is None or frame.image.shape[0] > 0
        finally:
            source.stop()
