"""Tests for reading text back from the focused field."""

import ctypes
from unittest.mock import MagicMock

import pytest

from ghosttype import text_accessor
from ghosttype.text_accessor import (
    EM_GETSEL,
    WM_GETTEXT,
    WM_GETTEXTLENGTH,
    MacAccessibilityTextAccessor,
    TextAccessError,
    WindowsTextAccessor,
    describe_active_application,
    get_text_accessor,
)

FOCUSED = object()


@pytest.fixture
def ax(monkeypatch):
    """Stand-in for the pyobjc ApplicationServices module."""
    mock_ax = MagicMock()
    attributes = {"focused": (0, FOCUSED), "value": (0, "hello world"), "range": (0, "range-ref")}

    def copy_attribute(element, attribute, _out):
        if attribute is mock_ax.kAXFocusedUIElementAttribute:
            return attributes["focused"]
        if attribute is mock_ax.kAXValueAttribute:
            return attributes["value"]
        if attribute is mock_ax.kAXSelectedTextRangeAttribute:
            return attributes["range"]
        return (-25205, None)

    mock_ax.AXUIElementCopyAttributeValue.side_effect = copy_attribute
    mock_ax.AXValueGetValue.return_value = (True, (6, 0))
    mock_ax.attributes = attributes
    monkeypatch.setattr(text_accessor, "AX", mock_ax)
    return mock_ax


class TestMacAccessibilityTextAccessor:
    """Test the Accessibility-backed accessor."""

    def test_read_value(self, ax):
        assert MacAccessibilityTextAccessor().read_value() == "hello world"

    def test_read_range(self, ax):
        accessor = MacAccessibilityTextAccessor()
        assert accessor.read_range(6, 5) == "world"
        assert accessor.read_range(6, 100) == "world"
        assert accessor.read_range(-3, 5) == "hello"

    def test_cursor_is_caret_location(self, ax):
        assert MacAccessibilityTextAccessor().read_cursor_position() == 6

    def test_cursor_uses_selection_end(self, ax):
        ax.AXValueGetValue.return_value = (True, (2, 3))
        assert MacAccessibilityTextAccessor().read_cursor_position() == 5

    def test_no_focused_element(self, ax):
        ax.attributes["focused"] = (-25212, None)

        with pytest.raises(TextAccessError, match="No focused element"):
            MacAccessibilityTextAccessor().read_value()

    def test_element_without_value(self, ax):
        ax.attributes["value"] = (-25205, None)

        with pytest.raises(TextAccessError):
            MacAccessibilityTextAccessor().read_value()

    def test_bad_range_value(self, ax):
        ax.AXValueGetValue.return_value = (False, None)

        with pytest.raises(TextAccessError, match="CFRange"):
            MacAccessibilityTextAccessor().read_cursor_position()

    def test_unavailable_api(self, monkeypatch):
        monkeypatch.setattr(text_accessor, "AX", None)

        with pytest.raises(TextAccessError):
            MacAccessibilityTextAccessor()


@pytest.fixture
def user32(monkeypatch):
    """Stand-in for user32 with a focused edit control holding ``text``."""
    mock_user32 = MagicMock()
    mock_user32.text = "dictated text"
    mock_user32.GetForegroundWindow.return_value = 100
    mock_user32.GetWindowThreadProcessId.return_value = 7

    def gui_thread_info(thread_id, info_ref):
        info_ref._obj.hwndFocus = 200
        return 1

    def send_message(hwnd, msg, wparam, lparam):
        assert hwnd == 200
        if msg == WM_GETTEXTLENGTH:
            return len(mock_user32.text)
        if msg == WM_GETTEXT:
            lparam.value = mock_user32.text
            return len(mock_user32.text)
        if msg == EM_GETSEL:
            wparam._obj.value = 3
            lparam._obj.value = 8
            return 0
        return 0

    mock_user32.GetGUIThreadInfo.side_effect = gui_thread_info
    mock_user32.SendMessageW.side_effect = send_message
    monkeypatch.setattr(text_accessor, "USER32", mock_user32)
    return mock_user32


class TestWindowsTextAccessor:
    """Test the user32-backed accessor."""

    def test_read_value(self, user32):
        assert WindowsTextAccessor().read_value() == "dictated text"

    def test_read_range(self, user32):
        assert WindowsTextAccessor().read_range(9, 4) == "text"

    def test_cursor_is_selection_end(self, user32):
        assert WindowsTextAccessor().read_cursor_position() == 8

    def test_no_foreground_window(self, user32):
        user32.GetForegroundWindow.return_value = 0

        with pytest.raises(TextAccessError, match="No foreground window"):
            WindowsTextAccessor().read_value()

    def test_no_focused_control(self, user32):
        user32.GetGUIThreadInfo.side_effect = None
        user32.GetGUIThreadInfo.return_value = 0

        with pytest.raises(TextAccessError, match="No focused control"):
            WindowsTextAccessor().read_value()

    def test_unavailable_api(self, monkeypatch):
        monkeypatch.setattr(text_accessor, "USER32", None)

        with pytest.raises(TextAccessError):
            WindowsTextAccessor()


class TestGetTextAccessor:
    """Test platform selection."""

    def test_macos(self, ax, monkeypatch):
        monkeypatch.setattr(text_accessor.sys, "platform", "darwin")
        assert isinstance(get_text_accessor(), MacAccessibilityTextAccessor)

    def test_macos_without_pyobjc(self, monkeypatch, caplog):
        monkeypatch.setattr(text_accessor.sys, "platform", "darwin")
        monkeypatch.setattr(text_accessor, "AX", None)

        with caplog.at_level("INFO", logger="ghosttype.text_accessor"):
            assert get_text_accessor() is None
        assert "unavailable" in caplog.text

    def test_windows(self, user32, monkeypatch):
        monkeypatch.setattr(text_accessor.sys, "platform", "win32")
        assert isinstance(get_text_accessor(), WindowsTextAccessor)

    def test_other_platforms(self, monkeypatch):
        monkeypatch.setattr(text_accessor.sys, "platform", "linux")
        assert get_text_accessor() is None


def test_guithreadinfo_size_is_set():
    info = text_accessor.GUITHREADINFO(cbSize=ctypes.sizeof(text_accessor.GUITHREADINFO))
    assert info.cbSize == ctypes.sizeof(text_accessor.GUITHREADINFO)


class TestDescribeActiveApplication:
    """Test the active-application line for the cleanup prompt."""

    def test_windows_title(self, user32, monkeypatch):
        monkeypatch.setattr(text_accessor, "AX", None)
        user32.GetWindowTextLengthW.return_value = 5

        def get_text(hwnd, buffer, size):
            buffer.value = "Slack"
            return 5

        user32.GetWindowTextW.side_effect = get_text

        assert describe_active_application() == "Active window: Slack"

    def test_windows_untitled(self, user32, monkeypatch):
        monkeypatch.setattr(text_accessor, "AX", None)
        user32.GetWindowTextLengthW.return_value = 0

        assert describe_active_application() is None

    def test_macos_application(self, ax, monkeypatch):
        monkeypatch.setattr(text_accessor, "USER32", None)
        app = object()

        def copy_attribute(element, attribute, _out):
            if attribute is ax.kAXFocusedApplicationAttribute:
                return (0, app)
            if element is app and attribute is ax.kAXTitleAttribute:
                return (0, "Xcode")
            return (-25205, None)

        ax.AXUIElementCopyAttributeValue.side_effect = copy_attribute

        assert describe_active_application() == "Active window: Xcode"

    def test_no_platform_api(self, monkeypatch):
        monkeypatch.setattr(text_accessor, "USER32", None)
        monkeypatch.setattr(text_accessor, "AX", None)

        assert describe_active_application() is None

    def test_api_failure_is_swallowed(self, user32, monkeypatch):
        monkeypatch.setattr(text_accessor, "AX", None)
        user32.GetForegroundWindow.side_effect = OSError("access denied")

        assert describe_active_application() is None
