"""Put text into the focused application via the clipboard and a paste chord."""

import logging
import sys
import time

import pyperclip

try:
    import pyautogui

    pyautogui.FAILSAFE = False
except Exception:  # pragma: no cover - optional dependency, needs a display
    pyautogui = None  # type: ignore[assignment]

from ghosttype.config import DEFAULT_AUTO_PASTE, DEFAULT_PASTE_DELAY

logger = logging.getLogger(__name__)


class InjectionError(Exception):
    """Raised when text cannot be placed on the clipboard or pasted."""


def paste_modifier(platform: str = sys.platform) -> str:
    return "command" if platform == "darwin" else "ctrl"


class ClipboardInjector:
    """Copies text to the clipboard and, when enabled, sends the paste chord."""

    def __init__(self, auto_paste: bool = DEFAULT_AUTO_PASTE, paste_delay: float = DEFAULT_PASTE_DELAY):
        self.auto_paste = auto_paste
        self.paste_delay = paste_delay

    def inject(self, text: str) -> None:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            raise InjectionError(f"Clipboard unavailable: {e}") from e

        if not self.auto_paste:
            logger.info("Copied %d chars to clipboard (auto-paste off)", len(text))
            return

        if pyautogui is None:
            raise InjectionError("pyautogui not installed; cannot auto-paste")

        # Let the clipboard settle before the target app reads it
        time.sleep(self.paste_delay)
        try:
            pyautogui.hotkey(paste_modifier(), "v")
        except (pyautogui.FailSafeException, pyautogui.PyAutoGUIException) as e:
            raise InjectionError(f"Auto-paste failed: {e}") from e
        logger.info("Pasted %d chars", len(text))
