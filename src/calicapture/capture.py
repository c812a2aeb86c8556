"""
Live capture loop.

One iteration per frame: read, detect, update the session, show the preview,
then wait up to 1000/fps ms for a key. Single threaded; calibration blocks
the loop until the solver returns.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

import cv2
import numpy as np

from .calibration.chessboard import draw_detection
from .errors import DeviceUnavailable
from .input_events import CommandSource
from .session import CalibrationSession
from .types import DetectionResult, PatternGeometry

logger = logging.getLogger(__name__)

Detector = Callable[[np.ndarray], DetectionResult]


class FrameSource(Protocol):
    def read(self) -> np.ndarray | None:
        """Next frame, or None when the stream has ended."""

    def release(self) -> None:
        """Free the device. Safe to call more than once."""


class VideoSource:
    """
    Exclusively owned cv2.VideoCapture handle.

    Use as a context manager so the device is released on every exit path.
    release() frees the handle once; later calls do nothing.
    """

    def __init__(self, device_index: int = 0):
        self.device_index = device_index
        self.capture: cv2.VideoCapture | None = None

    def open(self) -> VideoSource:
        """
        Open the device.

        Raises:
            DeviceUnavailable: If the device can't be opened
        """
        capture = cv2.VideoCapture(self.device_index)
        if not capture.isOpened():
            capture.release()
            raise DeviceUnavailable(
                f"Failed to open camera at index {self.device_index}. "
                "Make sure no other application is using it."
            )

        self.capture = capture
        logger.info(f"Opened camera {self.device_index}")
        return self

    @property
    def is_open(self) -> bool:
        return self.capture is not None

    def read(self) -> np.ndarray | None:
        if self.capture is None:
            return None
        ok, frame = self.capture.read()
        return frame if ok else None

    def release(self) -> None:
        if self.capture is None:
            return
        self.capture.release()
        self.capture = None
        logger.info("Video stream has stopped!")

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


class PreviewWindow:
    """OpenCV window showing the live frame with detected intersections."""

    def __init__(self, geometry: PatternGeometry, name: str = "Camera"):
        self.geometry = geometry
        self.name = name
        self._opened = False

    def show(self, frame: np.ndarray, detection: DetectionResult) -> None:
        if not self._opened:
            cv2.namedWindow(self.name, cv2.WINDOW_AUTOSIZE)
            self._opened = True
        cv2.imshow(self.name, draw_detection(frame, self.geometry, detection))

    def close(self) -> None:
        if self._opened:
            cv2.destroyWindow(self.name)
            self._opened = False


def run_capture_loop(
    session: CalibrationSession,
    frames: FrameSource,
    commands: CommandSource,
    detector: Detector,
    preview: PreviewWindow | None = None,
) -> int:
    """
    Drive the session until it terminates or the stream ends.

    The frame source and preview are released on every exit path.

    Returns:
        Process exit code (0)
    """
    delay_ms = session.config.frame_delay_ms

    try:
        while not session.is_terminated:
            frame = frames.read()
            if frame is None:
                logger.info("Video stream has ended")
                break

            detection = detector(frame)
            session.on_detection(detection)

            if preview is not None:
                preview.show(frame, detection)

            session.handle_command(commands.poll_command(delay_ms))
    finally:
        frames.release()
        if preview is not None:
            preview.close()

    return 0
