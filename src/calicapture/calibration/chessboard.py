"""
Chessboard pattern geometry, detection and rendering.

Pure functions - no classes, no state.
"""

from __future__ import annotations

from functools import lru_cache

import cv2
import numpy as np

from ..types import DetectionResult, PatternGeometry


# Adaptive threshold + normalization: grayscale and gamma correction
DETECTION_FLAGS = cv2.CALIB_CB_ADAPTIVE_THRESH | cv2.CALIB_CB_NORMALIZE_IMAGE


# ============================================================================
# Object Points
# ============================================================================


@lru_cache(maxsize=8)
def generate_object_points(geometry: PatternGeometry) -> np.ndarray:
    """
    Get the 3D positions of the pattern intersections in the board frame.

    Row-major: point r * columns + c is (c * edge, r * edge, 0).
    Cached per geometry, so repeated calls return the same read-only array.

    Args:
        geometry: PatternGeometry of the board

    Returns:
        (rows * columns, 3) float32 array
    """
    grid = np.mgrid[0 : geometry.columns, 0 : geometry.rows].T.reshape(-1, 2)

    points = np.zeros((geometry.point_count, 3), dtype=np.float64)
    points[:, :2] = grid * geometry.square_edge

    points = points.astype(np.float32)
    points.setflags(write=False)
    return points


# ============================================================================
# Detection
# ============================================================================


def detect_pattern(frame: np.ndarray, geometry: PatternGeometry) -> DetectionResult:
    """
    Detect the chessboard intersections in a single frame.

    Args:
        frame: BGR (h, w, 3) or grayscale (h, w) image
        geometry: PatternGeometry of the board

    Returns:
        DetectionResult; image_points is (n, 2) when found, None otherwise
    """
    height, width = frame.shape[:2]
    image_size = (width, height)

    if frame.ndim == 3:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    else:
        gray = frame

    found, corners = cv2.findChessboardCorners(
        gray, geometry.pattern_size, None, DETECTION_FLAGS
    )

    if not found or corners is None:
        return DetectionResult(found=False, image_size=image_size)

    return DetectionResult(
        found=True,
        image_points=corners.reshape(-1, 2).astype(np.float32),
        image_size=image_size,
    )


# ============================================================================
# Rendering
# ============================================================================


def generate_pattern_image(
    geometry: PatternGeometry,
    square_px: int = 40,
    margin_px: int = 40,
) -> np.ndarray:
    """
    Render the chessboard for printing or testing.

    A pattern with rows x columns intersections has (rows + 1) x (columns + 1)
    squares.

    Args:
        geometry: PatternGeometry of the board
        square_px: Square edge in pixels
        margin_px: White border around the board

    Returns:
        BGR image as numpy array
    """
    squares_y = geometry.rows + 1
    squares_x = geometry.columns + 1

    height = squares_y * square_px + 2 * margin_px
    width = squares_x * square_px + 2 * margin_px
    img = np.full((height, width), 255, dtype=np.uint8)

    for row in range(squares_y):
        for col in range(squares_x):
            if (row + col) % 2 == 0:
                y0 = margin_px + row * square_px
                x0 = margin_px + col * square_px
                img[y0 : y0 + square_px, x0 : x0 + square_px] = 0

    return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)


def draw_detection(
    frame: np.ndarray,
    geometry: PatternGeometry,
    detection: DetectionResult,
) -> np.ndarray:
    """
    Overlay detected intersections on a copy of the frame.

    Returns the frame unchanged (not copied) when nothing was found.
    """
    if not detection.found or detection.image_points is None:
        return frame

    overlay = frame.copy()
    corners = detection.image_points.reshape(-1, 1, 2).astype(np.float32)
    cv2.drawChessboardCorners(overlay, geometry.pattern_size, corners, True)
    return overlay
