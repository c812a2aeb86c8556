"""
Correspondence accumulation.

Collects the image points of every accepted frame and pairs them with the
shared object-point template. Append-only, so a calibration is reproducible
from the capture sequence.
"""

from __future__ import annotations

import logging

import numpy as np

from .errors import ShapeMismatch
from .types import CorrespondenceSet

logger = logging.getLogger(__name__)

# Calibration runs only with more than 15 captured frames
MINIMUM_REQUIRED = 16


class CorrespondenceAccumulator:
    """
    Growing, ordered collection of CorrespondenceSets.

    Args:
        object_points: (n, 3) template shared by every set
        minimum_required: Number of sets needed before calibration may run
    """

    def __init__(self, object_points: np.ndarray, minimum_required: int = MINIMUM_REQUIRED):
        template = np.asarray(object_points, dtype=np.float32)
        # A read-only (n, 3) float32 template is shared as is; anything else is copied
        if template.ndim != 2 or template.shape[1] != 3 or template.flags.writeable:
            template = template.reshape(-1, 3).copy()
            template.setflags(write=False)

        self._object_points = template
        self._minimum_required = minimum_required
        self._sets: list[CorrespondenceSet] = []

    @property
    def object_points(self) -> np.ndarray:
        return self._object_points

    def accept(
        self,
        image_points: np.ndarray,
        image_size: tuple[int, int] | None = None,
    ) -> CorrespondenceSet:
        """
        Append one frame's detections.

        Args:
            image_points: (n, 2) or detector-shaped (n, 1, 2) pixel coordinates
            image_size: (width, height) of the frame

        Returns:
            The appended CorrespondenceSet

        Raises:
            ShapeMismatch: If n differs from the object-point count
        """
        points = np.array(image_points, dtype=np.float32)
        expected = len(self._object_points)

        if points.ndim == 0 or points.shape[-1] != 2:
            raise ShapeMismatch(expected, points.shape[0] if points.ndim else 0)

        points = points.reshape(-1, 2)
        if len(points) != expected:
            raise ShapeMismatch(expected, len(points))
        points.setflags(write=False)

        correspondence = CorrespondenceSet(
            object_points=self._object_points,
            image_points=points,
            image_size=tuple(image_size) if image_size is not None else None,
        )
        self._sets.append(correspondence)

        logger.info(
            f"The image has been saved. Total number of images for calibration: {self.count()}"
        )
        return correspondence

    def count(self) -> int:
        return len(self._sets)

    def minimum_required(self) -> int:
        return self._minimum_required

    def is_ready(self) -> bool:
        """True once count() is strictly greater than minimum_required() - 1."""
        return self.count() > self._minimum_required - 1

    def snapshot(self) -> tuple[CorrespondenceSet, ...]:
        """
        Immutable copy of the collection for handoff to the solver.

        Later captures do not affect a snapshot already taken.
        """
        return tuple(self._sets)

    def __len__(self) -> int:
        return self.count()
