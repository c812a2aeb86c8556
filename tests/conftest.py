"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import cv2
import numpy as np
import pytest

from calicapture.errors import DegenerateGeometry
from calicapture.types import (
    CalibrationResult,
    CameraModel,
    DetectionResult,
    PatternGeometry,
    SessionConfig,
)


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that's cleaned up after test."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


@pytest.fixture
def sample_intrinsics_matrix():
    """Typical camera intrinsics matrix."""
    return np.array([
        [800.0, 0.0, 320.0],
        [0.0, 810.0, 240.0],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)


@pytest.fixture
def sample_distortion():
    """Distortion coefficients (k1, k2, p1, p2, k3, k4, k5, k6)."""
    return np.array([0.1, -0.25, 0.001, -0.001, 0.1, 0.0, 0.0, 0.0], dtype=np.float64)


@pytest.fixture
def sample_camera_model(sample_intrinsics_matrix, sample_distortion):
    return CameraModel(matrix=sample_intrinsics_matrix, distortion=sample_distortion)


@pytest.fixture
def pattern_geometry():
    """9 rows x 7 columns of intersections, 2cm apart."""
    return PatternGeometry(rows=9, columns=7, square_edge=0.02)


@pytest.fixture
def session_config(pattern_geometry):
    return SessionConfig(pattern=pattern_geometry, target_fps=20)


@pytest.fixture
def found_detection(pattern_geometry):
    """DetectionResult with a plausible point grid for the pattern."""
    xs, ys = np.meshgrid(
        np.arange(pattern_geometry.columns) * 30.0 + 100.0,
        np.arange(pattern_geometry.rows) * 30.0 + 80.0,
    )
    points = np.stack([xs.ravel(), ys.ravel()], axis=1).astype(np.float32)
    return DetectionResult(found=True, image_points=points, image_size=(640, 480))


@pytest.fixture
def missing_detection():
    return DetectionResult(found=False, image_size=(640, 480))


@pytest.fixture
def synthetic_views(pattern_geometry, sample_intrinsics_matrix):
    """
    Noise-free projections of the pattern from 20 poses.

    Returns (object_points, list of (n, 2) image points, image_size).
    """
    from calicapture.calibration.chessboard import generate_object_points

    object_points = generate_object_points(pattern_geometry).astype(np.float64)
    center = object_points.mean(axis=0)
    rng = np.random.default_rng(7)

    views = []
    for _ in range(20):
        rvec = np.array([
            rng.uniform(-0.4, 0.4),
            rng.uniform(-0.4, 0.4),
            rng.uniform(-0.2, 0.2),
        ])
        rotation, _ = cv2.Rodrigues(rvec)
        # Keep the board centered in front of the camera
        tvec = -rotation @ center + np.array([
            rng.uniform(-0.03, 0.03),
            rng.uniform(-0.03, 0.03),
            rng.uniform(0.45, 0.6),
        ])
        projected, _ = cv2.projectPoints(
            object_points, rvec, tvec, sample_intrinsics_matrix, np.zeros(5)
        )
        views.append(projected.reshape(-1, 2).astype(np.float32))

    return object_points.astype(np.float32), views, (640, 480)


class FakeSolver:
    """CalibrationSolver returning a fixed model, or raising a given error."""

    def __init__(self, model=None, error=None):
        self.model = model or CameraModel(
            matrix=np.array([[700.0, 0.0, 320.0], [0.0, 700.0, 240.0], [0.0, 0.0, 1.0]]),
            distortion=np.array([0.01, -0.02, 0.0, 0.0, 0.003]),
        )
        self.error = error
        self.calls = []
        self.on_solve = None

    def solve(self, correspondences):
        self.calls.append(correspondences)
        if self.on_solve is not None:
            self.on_solve()
        if self.error is not None:
            raise self.error
        return CalibrationResult(
            model=self.model,
            rms_error=0.12,
            rotations=tuple(np.zeros(3) for _ in correspondences),
            translations=tuple(np.array([0.0, 0.0, 0.5]) for _ in correspondences),
        )


class FakeFrameSource:
    """FrameSource yielding a fixed number of frames, counting releases."""

    def __init__(self, frame_count=100, shape=(480, 640, 3)):
        self.remaining = frame_count
        self.shape = shape
        self.release_calls = 0
        self.frames_read = 0

    def read(self):
        if self.remaining <= 0:
            return None
        self.remaining -= 1
        self.frames_read += 1
        return np.zeros(self.shape, dtype=np.uint8)

    def release(self):
        self.release_calls += 1


class ScriptedCommandSource:
    """CommandSource replaying a fixed command list, then None forever."""

    def __init__(self, commands):
        self.commands = list(commands)
        self.timeouts = []

    def poll_command(self, timeout_ms):
        self.timeouts.append(timeout_ms)
        if self.commands:
            return self.commands.pop(0)
        return None


@pytest.fixture
def fake_solver():
    return FakeSolver()


@pytest.fixture
def failing_solver():
    return FakeSolver(error=DegenerateGeometry("views are coplanar"))
