"""
Intrinsic camera calibration.

No threading, no state. The session owns frame collection and hands the
solver an immutable snapshot of correspondence sets.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

import cv2
import numpy as np

from ..errors import DegenerateGeometry, NonConvergence
from ..types import DISTORTION_LENGTH, CalibrationResult, CameraModel, CorrespondenceSet

logger = logging.getLogger(__name__)

# cv2.calibrateCamera needs at least this many views to fit the intrinsics
MIN_SOLVER_VIEWS = 3

# Models with more than DISTORTION_LENGTH coefficients
UNSUPPORTED_FLAGS = cv2.CALIB_THIN_PRISM_MODEL | cv2.CALIB_TILTED_MODEL


class CalibrationSolver(Protocol):
    """Turns correspondence sets into a camera model."""

    def solve(self, correspondences: Sequence[CorrespondenceSet]) -> CalibrationResult:
        """Raise DegenerateGeometry or NonConvergence on failure."""


# ============================================================================
# Calibration
# ============================================================================


class OpenCvSolver:
    """
    CalibrationSolver backed by cv2.calibrateCamera.

    The distortion vector starts zeroed with DISTORTION_LENGTH entries.
    Pass cv2.CALIB_RATIONAL_MODEL in flags to fit all eight coefficients;
    otherwise OpenCV fits k1 k2 p1 p2 k3 and the rest stay zero.

    Raises:
        ValueError: If flags select the thin prism or tilted model
    """

    def __init__(self, flags: int = 0):
        if flags & UNSUPPORTED_FLAGS:
            raise ValueError(
                f"Thin prism and tilted models need more than {DISTORTION_LENGTH} "
                "distortion coefficients"
            )
        self.flags = flags

    def solve(self, correspondences: Sequence[CorrespondenceSet]) -> CalibrationResult:
        if len(correspondences) < MIN_SOLVER_VIEWS:
            raise DegenerateGeometry(
                f"Insufficient views for calibration: {len(correspondences)} "
                f"(need at least {MIN_SOLVER_VIEWS})"
            )

        image_size = correspondences[0].image_size
        if image_size is None:
            raise DegenerateGeometry("Image size unknown for calibration views")

        object_points = [c.object_points.astype(np.float32) for c in correspondences]
        image_points = [
            c.image_points.reshape(-1, 1, 2).astype(np.float32) for c in correspondences
        ]

        matrix = np.eye(3, dtype=np.float64)
        distortion = np.zeros((DISTORTION_LENGTH, 1), dtype=np.float64)

        logger.info("Please wait for the algorithm to finish calibration...")
        try:
            error, matrix, distortion, rvecs, tvecs = cv2.calibrateCamera(
                object_points,
                image_points,
                tuple(image_size),
                matrix,
                distortion,
                flags=self.flags,
            )
        except cv2.error as e:
            raise DegenerateGeometry(str(e)) from e

        if not (
            np.isfinite(error)
            and np.all(np.isfinite(matrix))
            and np.all(np.isfinite(distortion))
        ):
            raise NonConvergence("Calibration produced non-finite parameters")

        # The rational model comes back padded to 14 entries; the tail is fixed at zero
        distortion = distortion.ravel()
        if np.any(distortion[DISTORTION_LENGTH:] != 0):
            raise DegenerateGeometry(
                f"Solver fitted distortion terms beyond the first {DISTORTION_LENGTH} "
                f"({distortion.size} returned)"
            )

        model = CameraModel(matrix=matrix, distortion=distortion[:DISTORTION_LENGTH])
        logger.info(f"Camera has been calibrated from {len(correspondences)} views")

        return CalibrationResult(
            model=model,
            rms_error=round(float(error), 4),
            rotations=tuple(np.asarray(r, dtype=np.float64).ravel() for r in rvecs),
            translations=tuple(np.asarray(t, dtype=np.float64).ravel() for t in tvecs),
        )


def _rms_distance(
    correspondence: CorrespondenceSet,
    model: CameraModel,
    rvec: np.ndarray,
    tvec: np.ndarray,
) -> float:
    object_points = correspondence.object_points.reshape(-1, 3).astype(np.float64)
    detected = correspondence.image_points.reshape(-1, 2).astype(np.float64)

    reprojected, _ = cv2.projectPoints(
        object_points,
        np.asarray(rvec, dtype=np.float64).reshape(3, 1),
        np.asarray(tvec, dtype=np.float64).reshape(3, 1),
        model.matrix,
        model.distortion,
    )
    residual = detected - reprojected.reshape(-1, 2)
    return float(np.sqrt(np.mean(np.sum(residual**2, axis=1))))


def compute_reprojection_error(
    correspondence: CorrespondenceSet,
    model: CameraModel,
) -> float | None:
    """
    RMS pixel distance between detected and reprojected points of one view.

    The board pose is estimated with cv2.solvePnP. Returns None when no
    pose is found.
    """
    found, rvec, tvec = cv2.solvePnP(
        correspondence.object_points.reshape(-1, 3).astype(np.float64),
        correspondence.image_points.reshape(-1, 2).astype(np.float64),
        model.matrix,
        model.distortion,
    )
    if not found:
        return None
    return _rms_distance(correspondence, model, rvec, tvec)


def view_reprojection_errors(
    correspondences: Sequence[CorrespondenceSet],
    result: CalibrationResult,
) -> list[float]:
    """Per-view RMS error using the poses the solver returned."""
    return [
        _rms_distance(c, result.model, rvec, tvec)
        for c, rvec, tvec in zip(correspondences, result.rotations, result.translations)
    ]
