#!/usr/bin/env python3
"""
Calicapture CLI - interactive camera calibration.

Usage:
    calicapture           - Run the live calibration session (default)
    calicapture live      - Run the live calibration session
    calicapture images    - Calibrate from saved chessboard images
    calicapture show      - Print a saved calibration file
    calicapture pattern   - Render the chessboard pattern to an image
    calicapture --help    - Show this help

Live session keys:
    SPACE   capture frame for calibration
    ENTER   start calibration
    ESC     stop the video stream and close the program
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TextIO

import cv2

from .calibration.chessboard import detect_pattern, generate_pattern_image
from .calibration.intrinsic import OpenCvSolver
from .capture import PreviewWindow, VideoSource, run_capture_loop
from .config import DEFAULT_CONFIG_PATH, load_session_config
from .errors import DeviceUnavailable, RecoverableError, SolverError
from .input_events import OpenCvKeySource
from .logging_utils import setup_logging
from .result_writer import format_calibration, read_calibration
from .session import CalibrationSession

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_DEVICE_UNAVAILABLE = 3
EXIT_INTERRUPTED = 130

DEFAULT_OUTPUT_NAME = "calibration"


def _common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        default=str(DEFAULT_CONFIG_PATH),
        help=f"Session config file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--log-dir", type=str, default=None, help="Also write a log file here")


def prompt_filename(stream: TextIO | None = None) -> str:
    """
    Ask for the output file name (without extension) on stdin.

    Falls back to DEFAULT_OUTPUT_NAME on an empty line or end of input.
    """
    stream = stream or sys.stdin
    print("Enter a filename to which calibration parameters will be saved:")
    name = stream.readline().strip()
    if not name:
        logger.warning(f"No filename given, using '{DEFAULT_OUTPUT_NAME}'")
        return DEFAULT_OUTPUT_NAME
    return name


# ============================================================================
# Subcommands
# ============================================================================


def live_main(argv: list[str] | None = None) -> int:
    """Interactive capture-and-calibrate session."""
    parser = argparse.ArgumentParser(
        prog="calicapture live", description="Calibrate a camera from live chessboard views"
    )
    _common_arguments(parser)
    parser.add_argument(
        "-o", "--output", type=str, help="Output file name without extension (prompted if omitted)"
    )
    args = parser.parse_args(argv)

    setup_logging(args.debug, args.log_dir)

    try:
        config = load_session_config(args.config)
    except ValueError as e:
        logger.error(f"Config error: {e}")
        return EXIT_ERROR

    print("Welcome to the Camera Calibration Program!")
    name = args.output or prompt_filename()
    output_path = Path(name + config.file_suffix)
    print("SPACE - capture frame for calibration")
    print("ENTER - start calibration")
    print("ESC   - stop video stream and close the program")

    try:
        with VideoSource(config.device_index) as video:
            session = CalibrationSession(
                config, OpenCvSolver(), output_path=output_path, frame_source=video
            )
            return run_capture_loop(
                session,
                video,
                OpenCvKeySource(),
                lambda frame: detect_pattern(frame, config.pattern),
                PreviewWindow(config.pattern),
            )
    except DeviceUnavailable as e:
        logger.error(f"Error capturing the video: {e}")
        return EXIT_DEVICE_UNAVAILABLE
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED


def images_main(argv: list[str] | None = None) -> int:
    """Calibrate from image files."""
    from .batch import calibrate_from_images

    parser = argparse.ArgumentParser(
        prog="calicapture images", description="Calibrate a camera from chessboard images"
    )
    _common_arguments(parser)
    parser.add_argument("images", nargs="+", help="Image files showing the chessboard")
    parser.add_argument(
        "-o", "--output", type=str, default=DEFAULT_OUTPUT_NAME,
        help=f"Output file name without extension (default: {DEFAULT_OUTPUT_NAME})",
    )
    args = parser.parse_args(argv)

    setup_logging(args.debug, args.log_dir)

    try:
        config = load_session_config(args.config)
    except ValueError as e:
        logger.error(f"Config error: {e}")
        return EXIT_ERROR

    try:
        calibrate_from_images(
            args.images, config, output=Path(args.output + config.file_suffix)
        )
    except (RecoverableError, SolverError, ValueError) as e:
        logger.error(f"Calibration failed: {e}")
        return EXIT_ERROR

    return EXIT_OK


def show_main(argv: list[str] | None = None) -> int:
    """Print a saved calibration."""
    parser = argparse.ArgumentParser(prog="calicapture show", description="Print a calibration file")
    parser.add_argument("file", help="Calibration file written by calicapture")
    args = parser.parse_args(argv)

    try:
        model = read_calibration(args.file)
    except (OSError, ValueError) as e:
        print(f"ERROR: {e}")
        return EXIT_ERROR

    print(format_calibration(model), end="")
    print(f"fx={model.fx} fy={model.fy} cx={model.cx} cy={model.cy}")
    return EXIT_OK


def pattern_main(argv: list[str] | None = None) -> int:
    """Render the configured chessboard for printing."""
    parser = argparse.ArgumentParser(
        prog="calicapture pattern", description="Render the chessboard pattern"
    )
    _common_arguments(parser)
    parser.add_argument("output", help="Image file to write (e.g. pattern.png)")
    parser.add_argument("--square-px", type=int, default=100, help="Square size in pixels")
    args = parser.parse_args(argv)

    setup_logging(args.debug, args.log_dir)

    try:
        config = load_session_config(args.config)
    except ValueError as e:
        logger.error(f"Config error: {e}")
        return EXIT_ERROR

    img = generate_pattern_image(config.pattern, square_px=args.square_px, margin_px=args.square_px)
    if not cv2.imwrite(args.output, img):
        logger.error(f"Could not write {args.output}")
        return EXIT_ERROR

    logger.info(f"Pattern written to {args.output}")
    return EXIT_OK


COMMANDS = {
    "live": live_main,
    "images": images_main,
    "show": show_main,
    "pattern": pattern_main,
}


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    if not argv or (argv[0].startswith("-") and argv[0] not in ("-h", "--help")):
        # Default to the live session
        return live_main(argv)

    if argv[0] in ("-h", "--help"):
        print(__doc__)
        return EXIT_OK

    command = argv[0]
    if command not in COMMANDS:
        print(f"Unknown command: {command}")
        print("Run 'calicapture --help' for usage")
        return EXIT_ERROR

    return COMMANDS[command](argv[1:])


if __name__ == "__main__":
    sys.exit(main())
