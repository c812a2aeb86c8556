# calicapture - interactive single-camera calibration

__version__ = "0.1.0"

# Core types
from calicapture.types import (
    PatternGeometry,
    SessionConfig,
    DetectionResult,
    CorrespondenceSet,
    CameraModel,
    CalibrationResult,
    Command,
    SessionState,
)

# Errors
from calicapture.errors import (
    CalicaptureError,
    DeviceUnavailable,
    RecoverableError,
    ShapeMismatch,
    InsufficientSamples,
    CaptureUnavailable,
    CalibrationFailed,
    IOFailure,
    SolverError,
    DegenerateGeometry,
    NonConvergence,
)

# Session
from calicapture.accumulator import CorrespondenceAccumulator
from calicapture.session import CalibrationSession

# Configuration
from calicapture.config import (
    load_session_config,
    save_session_config,
    create_default_session_config,
)

# Result file
from calicapture.result_writer import (
    serialize_matrix,
    format_calibration,
    write_calibration,
    read_calibration,
)

__all__ = [
    # Core types
    "PatternGeometry",
    "SessionConfig",
    "DetectionResult",
    "CorrespondenceSet",
    "CameraModel",
    "CalibrationResult",
    "Command",
    "SessionState",
    # Errors
    "CalicaptureError",
    "DeviceUnavailable",
    "RecoverableError",
    "ShapeMismatch",
    "InsufficientSamples",
    "CaptureUnavailable",
    "CalibrationFailed",
    "IOFailure",
    "SolverError",
    "DegenerateGeometry",
    "NonConvergence",
    # Session
    "CorrespondenceAccumulator",
    "CalibrationSession",
    # Configuration
    "load_session_config",
    "save_session_config",
    "create_default_session_config",
    # Result file
    "serialize_matrix",
    "format_calibration",
    "write_calibration",
    "read_calibration",
]
