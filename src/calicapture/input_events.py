"""
Keyboard command sources.

The session only sees Command values. Each platform gets a KeyMap that
translates raw key codes; OpenCvKeySource polls cv2.waitKey and applies it.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Protocol

import cv2

from .types import Command

KEY_SPACE = 32
KEY_ESCAPE = 27
KEY_CR = 13
KEY_LF = 10


class CommandSource(Protocol):
    """Anything that can be polled for the next user command."""

    def poll_command(self, timeout_ms: int) -> Command | None:
        """Wait at most timeout_ms for a command; None if there was none."""


@dataclass(frozen=True)
class KeyMap:
    """Raw key code -> Command."""

    name: str
    bindings: dict[int, Command]

    def translate(self, code: int) -> Command | None:
        if code < 0:
            return None
        return self.bindings.get(code & 0xFF)


def _bindings(*enter_codes: int) -> dict[int, Command]:
    bindings = {KEY_SPACE: Command.CAPTURE_FRAME, KEY_ESCAPE: Command.EXIT}
    for code in enter_codes:
        bindings[code] = Command.START_CALIBRATION
    return bindings


PLATFORM_KEYMAPS = {
    "win32": KeyMap("win32", _bindings(KEY_CR)),
    "darwin": KeyMap("darwin", _bindings(KEY_CR)),
    "linux": KeyMap("linux", _bindings(KEY_CR, KEY_LF)),
}

# Unknown platforms: accept both carriage return and line feed for enter
FALLBACK_KEYMAP = KeyMap("generic", _bindings(KEY_CR, KEY_LF))


def keymap_for_platform(platform: str | None = None) -> KeyMap:
    """
    Pick the key map for a sys.platform string (current platform if None).
    """
    platform = platform or sys.platform
    for prefix, keymap in PLATFORM_KEYMAPS.items():
        if platform.startswith(prefix):
            return keymap
    return FALLBACK_KEYMAP


class OpenCvKeySource:
    """
    CommandSource reading keys from the OpenCV HighGUI window.

    cv2.waitKey only receives keys while a window created by cv2.imshow
    has focus.
    """

    def __init__(self, keymap: KeyMap | None = None):
        self.keymap = keymap or keymap_for_platform()

    def poll_command(self, timeout_ms: int) -> Command | None:
        code = cv2.waitKey(max(1, timeout_ms))
        return self.keymap.translate(code)
