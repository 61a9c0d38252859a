"""Global toggle hotkey based on pynput."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

logger = logging.getLogger(__name__)


class GlobalHotkeyAdapter:
    """Fires ``on_toggle`` once per press of the configured key.

    Key auto-repeat is ignored until the key is released again.
    """

    def __init__(self, hotkey_name: str = "Key.alt_r") -> None:
        self._hotkey_name = hotkey_name
        self._listener: Optional[object] = None
        self._held = False
        self._lock = threading.Lock()
        self._on_toggle: Optional[Callable[[], None]] = None

    @property
    def hotkey_name(self) -> str:
        return self._hotkey_name

    def start(self, on_toggle: Callable[[], None]) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")
        self._on_toggle = on_toggle
        self._listener = keyboard.Listener(on_press=self._handle_press, on_release=self._handle_release)
        self._listener.start()
        logger.info("listening for hotkey %s", self._hotkey_name)

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None
        self._on_toggle = None

    def _handle_press(self, key: object) -> None:
        if str(key) != self._hotkey_name:
            return
        with self._lock:
            if self._held:
                return
            self._held = True
        if self._on_toggle is not None:
            self._on_toggle()

    def _handle_release(self, key: object) -> None:
        if str(key) != self._hotkey_name:
            return
        with self._lock:
            self._held = False
