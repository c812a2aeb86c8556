"""
Calibration from still images.

Same policy as the live session: every image where the pattern is found
becomes one correspondence set, and more than 15 are required.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import cv2
import numpy as np

from .accumulator import CorrespondenceAccumulator
from .calibration.chessboard import detect_pattern, generate_object_points
from .calibration.intrinsic import CalibrationSolver, OpenCvSolver, view_reprojection_errors
from .capture import Detector
from .errors import InsufficientSamples, ShapeMismatch
from .result_writer import write_calibration
from .types import CalibrationResult, SessionConfig

logger = logging.getLogger(__name__)


def collect_correspondences(
    image_paths: Iterable[Path | str],
    config: SessionConfig,
    detector: Detector | None = None,
) -> CorrespondenceAccumulator:
    """
    Detect the pattern in each image and accumulate the hits.

    Unreadable images, images without the pattern and detections with the
    wrong point count are logged and skipped.
    """
    if detector is None:

        def detector(frame):
            return detect_pattern(frame, config.pattern)

    accumulator = CorrespondenceAccumulator(generate_object_points(config.pattern))

    for path in image_paths:
        img = cv2.imread(str(path))
        if img is None:
            logger.warning(f"Failed to load image: {path}")
            continue

        detection = detector(img)
        if not detection.found:
            logger.warning(f"No intersections found in: {path}")
            continue

        try:
            accumulator.accept(detection.image_points, detection.image_size)
        except ShapeMismatch as e:
            logger.warning(f"Skipping {path}: {e}")
            continue
        logger.debug(f"Found intersections in: {path}")

    return accumulator


def calibrate_from_images(
    image_paths: Iterable[Path | str],
    config: SessionConfig,
    solver: CalibrationSolver | None = None,
    detector: Detector | None = None,
    output: Path | str | None = None,
) -> CalibrationResult:
    """
    Calibrate from a list of image files.

    Args:
        image_paths: Images of the chessboard
        config: SessionConfig with the pattern geometry
        solver: CalibrationSolver (OpenCvSolver if None)
        detector: Pattern detector (chessboard detection if None)
        output: Save the result here when given

    Returns:
        CalibrationResult

    Raises:
        InsufficientSamples: If 15 or fewer images contain the pattern
        SolverError: If the solver fails
        IOFailure: If the result can't be saved
    """
    accumulator = collect_correspondences(image_paths, config, detector)

    if not accumulator.is_ready():
        raise InsufficientSamples(accumulator.count(), accumulator.minimum_required())

    snapshot = accumulator.snapshot()
    solver = solver or OpenCvSolver()
    result = solver.solve(snapshot)
    logger.info(f"RMS reprojection error: {result.rms_error} px")

    errors = view_reprojection_errors(snapshot, result)
    for i, error in enumerate(errors):
        logger.debug(f"View {i}: reprojection error {error:.4f} px")
    if errors:
        worst = int(np.argmax(errors))
        logger.info(f"Worst view: {worst} ({errors[worst]:.4f} px)")

    if output is not None:
        write_calibration(output, result.model)

    return result
