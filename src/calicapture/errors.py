"""
Exceptions raised by calicapture.

Only DeviceUnavailable is fatal. Everything derived from RecoverableError
leaves the session in a continuable state and is reported to the user.
"""

from __future__ import annotations


class CalicaptureError(Exception):
    """Base class for calicapture errors."""


class DeviceUnavailable(CalicaptureError):
    """The frame source could not be opened."""


# ============================================================================
# Recoverable
# ============================================================================


class RecoverableError(CalicaptureError):
    """Error reported to the user without ending the session."""


class ShapeMismatch(RecoverableError):
    """Image point count does not match the object-point template."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Expected {expected} image points, got {actual}")
        self.expected = expected
        self.actual = actual


class InsufficientSamples(RecoverableError):
    """Calibration requested before enough frames were captured."""

    def __init__(self, count: int, required: int):
        super().__init__(
            f"Not enough images for calibration: {count} captured, "
            f"more than {required - 1} needed. Continue capturing images."
        )
        self.count = count
        self.required = required


class CaptureUnavailable(RecoverableError):
    """Capture requested while no pattern is detected in the live frame."""


class CalibrationFailed(RecoverableError):
    """The solver could not produce a camera model."""

    def __init__(self, cause: Exception):
        super().__init__(f"Calibration failed: {cause}")
        self.cause = cause


class IOFailure(RecoverableError):
    """The calibration file could not be written."""


# ============================================================================
# Solver
# ============================================================================


class SolverError(CalicaptureError):
    """Base class for solver failures."""


class DegenerateGeometry(SolverError):
    """The views do not constrain the intrinsics."""


class NonConvergence(SolverError):
    """The optimization did not produce a finite solution."""
