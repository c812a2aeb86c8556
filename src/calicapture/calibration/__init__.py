"""
Calibration module for calicapture.

Pattern geometry and detection live in chessboard; the solver in intrinsic.
"""

from .chessboard import (
    DETECTION_FLAGS,
    detect_pattern,
    draw_detection,
    generate_object_points,
    generate_pattern_image,
)

from .intrinsic import (
    CalibrationSolver,
    OpenCvSolver,
    compute_reprojection_error,
    view_reprojection_errors,
)

__all__ = [
    # Chessboard
    "DETECTION_FLAGS",
    "detect_pattern",
    "draw_detection",
    "generate_object_points",
    "generate_pattern_image",
    # Intrinsic
    "CalibrationSolver",
    "OpenCvSolver",
    "compute_reprojection_error",
    "view_reprojection_errors",
]
