"""Read text back from the focused input field of the frontmost application.

One ``TextAccessor`` implementation per platform: the macOS Accessibility API
(via pyobjc) and the focused edit control on Windows (via user32). Every read
raises ``TextAccessError`` when the field cannot be reached; callers treat
that as "no information", never as a failure worth surfacing.
"""

from __future__ import annotations

import ctypes
import ctypes.wintypes
import logging
import sys

if sys.platform == "darwin":
    import ApplicationServices as AX
else:
    AX = None

if sys.platform == "win32":
    USER32 = ctypes.windll.user32
else:
    USER32 = None

logger = logging.getLogger(__name__)

# Windows messages
WM_GETTEXT = 0x000D
WM_GETTEXTLENGTH = 0x000E
EM_GETSEL = 0x00B0


class TextAccessError(Exception):
    """Raised when the focused field's text cannot be read."""


class MacAccessibilityTextAccessor:
    """Reads ``AXValue`` and ``AXSelectedTextRange`` of the focused element."""

    def __init__(self) -> None:
        if AX is None:
            raise TextAccessError("macOS Accessibility API is not available")

    def _focused_element(self):
        system = AX.AXUIElementCreateSystemWide()
        err, focused = AX.AXUIElementCopyAttributeValue(
            system, AX.kAXFocusedUIElementAttribute, None
        )
        if err != 0 or focused is None:
            raise TextAccessError(f"No focused element (err={err})")
        return focused

    def _attribute(self, element, attribute):
        err, value = AX.AXUIElementCopyAttributeValue(element, attribute, None)
        if err != 0 or value is None:
            raise TextAccessError(f"Could not read {attribute} (err={err})")
        return value

    def read_value(self) -> str:
        value = self._attribute(self._focused_element(), AX.kAXValueAttribute)
        return str(value)

    def read_range(self, offset: int, length: int) -> str:
        text = self.read_value()
        start = min(max(offset, 0), len(text))
        return text[start : start + max(length, 0)]

    def read_cursor_position(self) -> int:
        selected = self._attribute(self._focused_element(), AX.kAXSelectedTextRangeAttribute)
        ok, text_range = AX.AXValueGetValue(selected, AX.kAXValueCFRangeType, None)
        if not ok or text_range is None:
            raise TextAccessError("Selected text range is not a CFRange")
        # A collapsed selection is the caret; otherwise use its end
        location, length = text_range
        return int(location) + int(length)


class GUITHREADINFO(ctypes.Structure):
    _fields_ = [
        ("cbSize", ctypes.wintypes.DWORD),
        ("flags", ctypes.wintypes.DWORD),
        ("hwndActive", ctypes.wintypes.HWND),
        ("hwndFocus", ctypes.wintypes.HWND),
        ("hwndCapture", ctypes.wintypes.HWND),
        ("hwndMenuOwner", ctypes.wintypes.HWND),
        ("hwndMoveSize", ctypes.wintypes.HWND),
        ("hwndCaret", ctypes.wintypes.HWND),
        ("rcCaret", ctypes.wintypes.RECT),
    ]


class WindowsTextAccessor:
    """Reads the focused edit control of the foreground window."""

    def __init__(self) -> None:
        if USER32 is None:
            raise TextAccessError("user32 is not available")

    def _focused_control(self) -> int:
        hwnd = USER32.GetForegroundWindow()
        if not hwnd:
            raise TextAccessError("No foreground window")
        thread_id = USER32.GetWindowThreadProcessId(hwnd, None)
        info = GUITHREADINFO(cbSize=ctypes.sizeof(GUITHREADINFO))
        if not USER32.GetGUIThreadInfo(thread_id, ctypes.byref(info)) or not info.hwndFocus:
            raise TextAccessError("No focused control")
        return info.hwndFocus

    def read_value(self) -> str:
        control = self._focused_control()
        length = USER32.SendMessageW(control, WM_GETTEXTLENGTH, 0, 0)
        buffer = ctypes.create_unicode_buffer(length + 1)
        USER32.SendMessageW(control, WM_GETTEXT, length + 1, buffer)
        return buffer.value

    def read_range(self, offset: int, length: int) -> str:
        text = self.read_value()
        start = min(max(offset, 0), len(text))
        return text[start : start + max(length, 0)]

    def read_cursor_position(self) -> int:
        control = self._focused_control()
        start = ctypes.wintypes.DWORD()
        end = ctypes.wintypes.DWORD()
        USER32.SendMessageW(control, EM_GETSEL, ctypes.byref(start), ctypes.byref(end))
        return int(end.value)


def get_text_accessor():
    """Return the accessor for this platform, or None when there is none."""
    try:
        if sys.platform == "darwin":
            return MacAccessibilityTextAccessor()
        if sys.platform == "win32":
            return WindowsTextAccessor()
    except TextAccessError as e:
        logger.info("Text read-back unavailable: %s", e)
        return None
    logger.info("Text read-back is not supported on %s", sys.platform)
    return None


def _windows_window_title() -> str | None:
    hwnd = USER32.GetForegroundWindow()
    if not hwnd:
        return None
    length = USER32.GetWindowTextLengthW(hwnd)
    if length == 0:
        return None
    buffer = ctypes.create_unicode_buffer(length + 1)
    if USER32.GetWindowTextW(hwnd, buffer, length + 1):
        return buffer.value.strip() or None
    return None


def _mac_application_title() -> str | None:
    system = AX.AXUIElementCreateSystemWide()
    err, app = AX.AXUIElementCopyAttributeValue(system, AX.kAXFocusedApplicationAttribute, None)
    if err != 0 or app is None:
        return None
    err, title = AX.AXUIElementCopyAttributeValue(app, AX.kAXTitleAttribute, None)
    if err != 0 or not title:
        return None
    return str(title).strip() or None


def describe_active_application() -> str | None:
    """Title of the frontmost application or window, for the cleanup prompt."""
    try:
        if USER32 is not None:
            title = _windows_window_title()
        elif AX is not None:
            title = _mac_application_title()
        else:
            return None
    except Exception:
        logger.debug("Could not describe the active application", exc_info=True)
        return None
    return f"Active window: {title}" if title else None
