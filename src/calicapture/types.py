"""
Core data structures for calicapture.

All types are frozen dataclasses with slots for immutability and performance.
Logic is in separate pure functions - these are data containers only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np


DISTORTION_LENGTH = 8


# ============================================================================
# Pattern Configuration
# ============================================================================


@dataclass(frozen=True)  # No slots - need properties
class PatternGeometry:
    """
    Planar chessboard pattern.

    rows and columns count inner intersections, not squares.
    square_edge is the distance between adjacent intersections in meters.
    """

    rows: int
    columns: int
    square_edge: float

    def __post_init__(self):
        if self.rows < 2 or self.columns < 2:
            raise ValueError(
                f"Pattern needs at least 2x2 intersections, got {self.rows}x{self.columns}"
            )
        if not self.square_edge > 0:
            raise ValueError(f"square_edge must be positive, got {self.square_edge}")

    @property
    def pattern_size(self) -> tuple[int, int]:
        """OpenCV pattern size (columns, rows)."""
        return (self.columns, self.rows)

    @property
    def point_count(self) -> int:
        return self.rows * self.columns


@dataclass(frozen=True)
class SessionConfig:
    """
    Configuration for an interactive calibration session.
    Corresponds to the TOML session file.
    """

    pattern: PatternGeometry
    target_fps: int = 20
    device_index: int = 0
    file_suffix: str = ".txt"
    log_extrinsics: bool = False

    def __post_init__(self):
        if self.target_fps <= 0:
            raise ValueError(f"target_fps must be positive, got {self.target_fps}")
        if self.device_index < 0:
            raise ValueError(f"device_index must be >= 0, got {self.device_index}")
        if not self.file_suffix.startswith("."):
            raise ValueError(f"file_suffix must start with '.', got {self.file_suffix!r}")

    @property
    def frame_delay_ms(self) -> int:
        """Bounded key-wait per loop iteration (1000/fps)."""
        return max(1, 1000 // self.target_fps)


# ============================================================================
# Point Data
# ============================================================================


@dataclass(frozen=True, slots=True)
class DetectionResult:
    """
    Pattern detector output for a single frame.
    """

    found: bool
    image_points: np.ndarray | None = None  # (n, 2) pixel coordinates
    image_size: tuple[int, int] | None = None  # (width, height)


@dataclass(frozen=True, slots=True)
class CorrespondenceSet:
    """
    One accepted frame: observed image points paired with the object points.

    Index i of image_points is the projection of index i of object_points.
    """

    object_points: np.ndarray  # (n, 3) shared template, read-only
    image_points: np.ndarray  # (n, 2)
    image_size: tuple[int, int] | None = None  # (width, height)


# ============================================================================
# Calibration Data
# ============================================================================


@dataclass(frozen=True, slots=True)
class CameraModel:
    """
    Intrinsic matrix and distortion coefficients.

    The distortion vector always has DISTORTION_LENGTH entries; shorter solver
    output is zero padded.
    """

    matrix: np.ndarray = field(default_factory=lambda: np.eye(3, dtype=np.float64))
    distortion: np.ndarray = field(
        default_factory=lambda: np.zeros(DISTORTION_LENGTH, dtype=np.float64)
    )

    def __post_init__(self):
        matrix = np.asarray(self.matrix, dtype=np.float64)
        if matrix.shape != (3, 3):
            raise ValueError(f"Camera matrix must be 3x3, got {matrix.shape}")

        coefficients = np.asarray(self.distortion, dtype=np.float64).ravel()
        if coefficients.size > DISTORTION_LENGTH:
            raise ValueError(
                f"Expected at most {DISTORTION_LENGTH} distortion coefficients, "
                f"got {coefficients.size}"
            )
        distortion = np.zeros(DISTORTION_LENGTH, dtype=np.float64)
        distortion[: coefficients.size] = coefficients

        object.__setattr__(self, "matrix", matrix)
        object.__setattr__(self, "distortion", distortion)

    @classmethod
    def default(cls) -> CameraModel:
        """Identity matrix and zero distortion, the pre-solve state."""
        return cls()

    @property
    def fx(self) -> float:
        return float(self.matrix[0, 0])

    @property
    def fy(self) -> float:
        return float(self.matrix[1, 1])

    @property
    def cx(self) -> float:
        return float(self.matrix[0, 2])

    @property
    def cy(self) -> float:
        return float(self.matrix[1, 2])


@dataclass(frozen=True, slots=True)
class CalibrationResult:
    """
    Solver output. Extrinsics are per view, in capture order.
    """

    model: CameraModel
    rms_error: float
    rotations: tuple[np.ndarray, ...] = ()  # Rodrigues vectors (3,)
    translations: tuple[np.ndarray, ...] = ()  # (3,)

    @property
    def view_count(self) -> int:
        return len(self.rotations)


# ============================================================================
# Session Protocol
# ============================================================================


class Command(Enum):
    """User commands understood by the session."""

    CAPTURE_FRAME = "capture_frame"
    START_CALIBRATION = "start_calibration"
    EXIT = "exit"


class SessionState(Enum):
    """Lifecycle phase of a calibration session."""

    IDLE = "idle"  # no pattern in the live frame
    ARMED = "armed"  # pattern detected, frame can be captured
    CALIBRATING = "calibrating"
    DONE = "done"
    TERMINATED = "terminated"
