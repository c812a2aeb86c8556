"""
Interactive calibration session.

CalibrationSession holds the session state and routes two kinds of events:
- detection events, one per polled frame
- user commands (capture, calibrate, exit)

Frame acquisition, detection and solving happen outside; the session only
decides what each event means.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from .accumulator import CorrespondenceAccumulator
from .calibration.chessboard import generate_object_points
from .calibration.intrinsic import CalibrationSolver, view_reprojection_errors
from .errors import (
    CalibrationFailed,
    CaptureUnavailable,
    InsufficientSamples,
    RecoverableError,
)
from .result_writer import write_calibration
from .types import (
    CalibrationResult,
    CameraModel,
    Command,
    CorrespondenceSet,
    DetectionResult,
    SessionConfig,
    SessionState,
)

logger = logging.getLogger(__name__)


class Releasable(Protocol):
    """Resource released when the session ends."""

    def release(self) -> None: ...


class CalibrationSession:
    """
    State machine driving capture and calibration.

    Args:
        config: SessionConfig with the pattern geometry
        solver: CalibrationSolver invoked on StartCalibration
        output_path: Where a successful calibration is saved (None = don't save)
        frame_source: Released on exit
    """

    def __init__(
        self,
        config: SessionConfig,
        solver: CalibrationSolver,
        output_path: Path | str | None = None,
        frame_source: Releasable | None = None,
    ):
        self.config = config
        self.solver = solver
        self.output_path = Path(output_path) if output_path is not None else None
        self.frame_source = frame_source

        self.accumulator = CorrespondenceAccumulator(generate_object_points(config.pattern))
        self.object_points = self.accumulator.object_points

        self._state = SessionState.IDLE
        self._current: DetectionResult | None = None
        self.camera_model: CameraModel | None = None
        self.last_result: CalibrationResult | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_terminated(self) -> bool:
        return self._state is SessionState.TERMINATED

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            logger.debug(f"Session state {self._state.value} -> {state.value}")
            self._state = state

    def _detection_state(self) -> SessionState:
        """ARMED if the last polled frame showed the pattern, else IDLE."""
        if self._current is not None and self._current.found:
            return SessionState.ARMED
        return SessionState.IDLE

    # ------------------------------------------------------------------
    # Detection events
    # ------------------------------------------------------------------

    def on_detection(self, result: DetectionResult) -> None:
        """Process the detector output for the latest polled frame."""
        if self._state in (SessionState.CALIBRATING, SessionState.TERMINATED):
            return

        self._current = result

        if self._state is SessionState.DONE:
            self._set_state(self._detection_state())
        elif result.found and self._state is SessionState.IDLE:
            self._set_state(SessionState.ARMED)
        elif not result.found and self._state is SessionState.ARMED:
            self._set_state(SessionState.IDLE)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def capture(self) -> CorrespondenceSet:
        """
        Store the current frame's image points.

        Raises:
            CaptureUnavailable: If no pattern is detected in the current frame
            ShapeMismatch: If the detector returned the wrong number of points
        """
        if self._state is not SessionState.ARMED or self._current is None:
            raise CaptureUnavailable(
                "Cannot detect the intersections, try to change the position of the pattern"
            )

        return self.accumulator.accept(self._current.image_points, self._current.image_size)

    def start_calibration(self) -> CameraModel:
        """
        Solve for the camera model from every captured frame.

        Saves the result to output_path when one is set.

        Raises:
            InsufficientSamples: If 15 or fewer frames were captured
            CalibrationFailed: If the solver raises; the session returns to
                ARMED or IDLE
            IOFailure: If the result can't be saved (model is kept)
        """
        if self._state is SessionState.TERMINATED:
            raise RuntimeError("Session has been terminated")

        if not self.accumulator.is_ready():
            raise InsufficientSamples(
                self.accumulator.count(), self.accumulator.minimum_required()
            )

        snapshot = self.accumulator.snapshot()
        self._set_state(SessionState.CALIBRATING)

        result = None
        try:
            result = self.solver.solve(snapshot)
        except Exception as e:
            raise CalibrationFailed(e) from e
        finally:
            if result is None and self._state is SessionState.CALIBRATING:
                self._set_state(self._detection_state())

        self.last_result = result
        self.camera_model = result.model

        if self.is_terminated:
            # Exit arrived while solving; keep the model but stay terminated
            logger.info("Session ended during calibration, result not saved")
            return result.model

        self._set_state(SessionState.DONE)

        logger.info("Camera has been successfully calibrated!")
        logger.info(f"RMS reprojection error: {result.rms_error} px")
        if self.config.log_extrinsics:
            self._log_extrinsics(result, snapshot)

        if self.output_path is not None:
            self.save_result()

        return result.model

    def save_result(self, path: Path | str | None = None) -> Path:
        """
        Write the last camera model to disk.

        Raises:
            RuntimeError: If nothing has been calibrated yet
            IOFailure: If the file can't be written
        """
        if self.camera_model is None:
            raise RuntimeError("No camera model to save. Run calibration first.")

        target = Path(path) if path is not None else self.output_path
        if target is None:
            raise RuntimeError("No output path configured")

        return write_calibration(target, self.camera_model)

    def exit(self) -> None:
        """End the session and release the frame source."""
        if self.frame_source is not None:
            self.frame_source.release()
        self._set_state(SessionState.TERMINATED)

    def handle_command(self, command: Command | None) -> None:
        """
        Route a user command.

        Recoverable errors are reported and leave the session continuable.
        """
        if command is None or self.is_terminated:
            return

        try:
            if command is Command.CAPTURE_FRAME:
                self.capture()
            elif command is Command.START_CALIBRATION:
                self.start_calibration()
            elif command is Command.EXIT:
                self.exit()
        except RecoverableError as e:
            logger.warning(str(e))

    # ------------------------------------------------------------------

    def _log_extrinsics(
        self, result: CalibrationResult, snapshot: tuple[CorrespondenceSet, ...]
    ) -> None:
        errors = view_reprojection_errors(snapshot, result)
        for i, (rvec, tvec, error) in enumerate(zip(result.rotations, result.translations, errors)):
            logger.info(
                f"View {i}: rotation={rvec.tolist()} translation={tvec.tolist()} "
                f"error={error:.4f} px"
            )
