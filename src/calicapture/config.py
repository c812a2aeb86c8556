"""
Configuration loading/saving.

Pure functions operating on dataclasses. TOML session configuration:

    target_fps = 20
    device_index = 0
    file_suffix = ".txt"
    log_extrinsics = false

    [pattern]
    rows = 9
    columns = 7
    square_edge = 0.02
"""

from __future__ import annotations

import logging
from pathlib import Path

import rtoml

from .types import PatternGeometry, SessionConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("calicapture.toml")


def create_default_session_config() -> SessionConfig:
    """
    Create a default session configuration.

    9x7 intersections with 2cm squares, 20 fps.
    """
    return SessionConfig(
        pattern=PatternGeometry(rows=9, columns=7, square_edge=0.02),
        target_fps=20,
    )


def load_session_config(path: Path | str = DEFAULT_CONFIG_PATH) -> SessionConfig:
    """
    Load session configuration from a TOML file.

    Missing keys take their defaults; a missing file gives the default config.

    Args:
        path: Path to the TOML file

    Returns:
        SessionConfig dataclass

    Raises:
        ValueError: If the file can't be parsed or a value is invalid
    """
    path = Path(path)
    defaults = create_default_session_config()

    if not path.exists():
        logger.info(f"Config file '{path}' not found, using defaults")
        return defaults

    try:
        data = rtoml.load(path)
    except rtoml.TomlParsingError as e:
        raise ValueError(f"Could not parse {path}: {e}") from e

    pattern_data = data.get("pattern", {})
    pattern = PatternGeometry(
        rows=int(pattern_data.get("rows", defaults.pattern.rows)),
        columns=int(pattern_data.get("columns", defaults.pattern.columns)),
        square_edge=float(pattern_data.get("square_edge", defaults.pattern.square_edge)),
    )

    config = SessionConfig(
        pattern=pattern,
        target_fps=int(data.get("target_fps", defaults.target_fps)),
        device_index=int(data.get("device_index", defaults.device_index)),
        file_suffix=str(data.get("file_suffix", defaults.file_suffix)),
        log_extrinsics=bool(data.get("log_extrinsics", defaults.log_extrinsics)),
    )
    logger.info(f"Loaded config from '{path}'")
    return config


def save_session_config(config: SessionConfig, path: Path | str) -> None:
    """
    Save session configuration to a TOML file.

    Args:
        config: SessionConfig dataclass
        path: Path to save the TOML file
    """
    path = Path(path)
    data = {
        "target_fps": config.target_fps,
        "device_index": config.device_index,
        "file_suffix": config.file_suffix,
        "log_extrinsics": config.log_extrinsics,
        "pattern": {
            "rows": config.pattern.rows,
            "columns": config.pattern.columns,
            "square_edge": config.pattern.square_edge,
        },
    }

    # Ensure parent directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        rtoml.dump(data, f)
