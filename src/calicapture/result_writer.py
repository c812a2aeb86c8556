"""
Calibration result file.

Plain text, tab-separated values, two labelled sections:

    Camera Matrix (Intrinsics: Fx, Fy, Cx, Cy)
    fx  0   cx
    0   fy  cy
    0   0   1
    Distortion Coefficients (k1 k2 p1 p2 k3)
    c0  c1  ... c7
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import numpy as np

from .errors import IOFailure
from .types import DISTORTION_LENGTH, CameraModel

logger = logging.getLogger(__name__)

MATRIX_HEADER = "Camera Matrix (Intrinsics: Fx, Fy, Cx, Cy)"
DISTORTION_HEADER = "Distortion Coefficients (k1 k2 p1 p2 k3)"


def serialize_matrix(values: Iterable[float], rows: int, cols: int) -> str:
    """
    Format values as rows of tab-separated numbers.

    Each number is written with repr() so it reads back to the same double.

    Args:
        values: rows * cols numbers in row-major order
        rows: Number of output lines
        cols: Numbers per line

    Returns:
        Text block, every line terminated by a newline
    """
    flat = np.asarray(list(values), dtype=np.float64).ravel()
    if flat.size != rows * cols:
        raise ValueError(f"Expected {rows * cols} values for {rows}x{cols}, got {flat.size}")

    grid = flat.reshape(rows, cols)
    return "".join("\t".join(repr(float(v)) for v in row) + "\n" for row in grid)


def format_calibration(model: CameraModel) -> str:
    """Render a CameraModel in the two-section file layout."""
    return (
        MATRIX_HEADER
        + "\n"
        + serialize_matrix(model.matrix.ravel(), 3, 3)
        + DISTORTION_HEADER
        + "\n"
        + serialize_matrix(model.distortion, 1, DISTORTION_LENGTH)
    )


def write_calibration(path: Path | str, model: CameraModel) -> Path:
    """
    Save a camera model, replacing any existing file at path.

    Args:
        path: Destination file
        model: Calibrated camera model

    Returns:
        The written path

    Raises:
        IOFailure: If the file can't be removed or written
    """
    path = Path(path)
    text = format_calibration(model)

    try:
        path.unlink(missing_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
    except OSError as e:
        raise IOFailure(f"Could not write calibration to {path}: {e}") from e

    logger.info(f"Calibration parameters have been saved to {path}")
    return path


def read_calibration(path: Path | str) -> CameraModel:
    """
    Load a camera model written by write_calibration.

    Raises:
        ValueError: If the file doesn't follow the two-section layout
    """
    lines = [line for line in Path(path).read_text(encoding="utf-8").splitlines() if line.strip()]

    if len(lines) != 6 or lines[0] != MATRIX_HEADER or lines[4] != DISTORTION_HEADER:
        raise ValueError(f"Not a calibration file: {path}")

    try:
        matrix = np.array(
            [[float(v) for v in line.split("\t") if v] for line in lines[1:4]],
            dtype=np.float64,
        )
        distortion = np.array([float(v) for v in lines[5].split("\t") if v], dtype=np.float64)
    except ValueError as e:
        raise ValueError(f"Malformed number in {path}: {e}") from e

    if matrix.shape != (3, 3) or distortion.size != DISTORTION_LENGTH:
        raise ValueError(f"Unexpected matrix sizes in {path}")

    return CameraModel(matrix=matrix, distortion=distortion)
