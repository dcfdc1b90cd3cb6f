"""Global keyboard events and the hold-to-talk hotkey."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

try:
    from pynput import keyboard
except Exception:  # pragma: no cover - no keyboard backend available
    keyboard = None  # type: ignore[assignment]

from ghosttype import events
from ghosttype.config import DEFAULT_CANCEL_KEY
from ghosttype.events import EventBus

logger = logging.getLogger(__name__)

MODIFIER_ALIASES = {
    "cmd": "cmd",
    "command": "cmd",
    "win": "cmd",
    "super": "cmd",
    "ctrl": "ctrl",
    "control": "ctrl",
    "alt": "alt",
    "option": "alt",
    "opt": "alt",
    "shift": "shift",
}

KEY_ALIASES = {
    "escape": "esc",
    "return": "enter",
    "spacebar": "space",
}


class HotkeyError(Exception):
    """Raised when the keyboard listener cannot be started."""


@dataclass(frozen=True)
class Hotkey:
    modifiers: frozenset[str]
    key: str

    def __str__(self) -> str:
        order = ["ctrl", "alt", "shift", "cmd"]
        return "+".join([m for m in order if m in self.modifiers] + [self.key])


@dataclass(frozen=True)
class KeyEvent:
    """A key transition with the key reduced to a canonical name (None if unknown)."""

    name: str | None
    pressed: bool


def parse_hotkey_string(s: str) -> Hotkey:
    """
    Parse a hotkey string like 'cmd+shift+space' into modifiers and a main key.

    Args:
        s: Hotkey string (e.g., "ctrl+alt+d", "f9")

    Returns:
        Parsed Hotkey

    Raises:
        ValueError: If hotkey string is invalid
    """
    parts = [p.strip().lower() for p in s.split("+") if p.strip()]
    if not parts:
        raise ValueError("Empty hotkey")

    key = KEY_ALIASES.get(parts[-1], parts[-1])
    if key in MODIFIER_ALIASES:
        raise ValueError(f"Hotkey needs a non-modifier key: {s}")

    modifiers = set()
    for token in parts[:-1]:
        if token not in MODIFIER_ALIASES:
            raise ValueError(f"Unknown modifier: {token}")
        modifiers.add(MODIFIER_ALIASES[token])
    return Hotkey(frozenset(modifiers), key)


def key_name(key) -> str | None:
    """Reduce a pynput key to the names used by ``parse_hotkey_string``."""
    if key is None:
        return None
    name = getattr(key, "name", None)
    if name:
        # Key.cmd_l, Key.shift_r, Key.alt_gr ...
        base = name.split("_")[0]
        if base in MODIFIER_ALIASES:
            return MODIFIER_ALIASES[base]
        return name
    char = getattr(key, "char", None)
    if char:
        return char.lower()
    return None


class KeyboardEventSource:
    """Publishes every global key press/release on the bus as a ``KeyEvent``."""

    def __init__(self, bus: EventBus):
        self._bus = bus
        self._listener = None

    def start(self) -> None:
        if keyboard is None:
            raise HotkeyError("pynput is not installed or has no display backend")
        if self._listener is not None:
            return
        try:
            self._listener = keyboard.Listener(on_press=self._on_press, on_release=self._on_release)
            self._listener.start()
        except Exception as e:
            self._listener = None
            raise HotkeyError(f"Could not start keyboard listener: {e}") from e
        logger.debug("Keyboard listener started")

    def stop(self) -> None:
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.stop()

    def _canonical(self, key):
        # Held modifiers turn characters into control codes (ctrl+d arrives as "\x04")
        listener = self._listener
        return listener.canonical(key) if listener is not None else key

    def _on_press(self, key) -> None:
        self._bus.publish(events.KEY, KeyEvent(key_name(self._canonical(key)), pressed=True))

    def _on_release(self, key) -> None:
        self._bus.publish(events.KEY, KeyEvent(key_name(self._canonical(key)), pressed=False))


class HoldHotkey:
    """Hold-to-talk matcher over ``KeyEvent``s.

    Pressing the full chord activates, releasing the main key deactivates and
    the cancel key aborts while active. Callbacks run on the publishing thread.
    """

    def __init__(
        self,
        hotkey: Hotkey,
        on_activate: Callable[[], None],
        on_deactivate: Callable[[], None],
        on_cancel: Callable[[], None] | None = None,
        cancel_key: str = DEFAULT_CANCEL_KEY,
    ):
        self.hotkey = hotkey
        self._on_activate = on_activate
        self._on_deactivate = on_deactivate
        self._on_cancel = on_cancel
        self._cancel_key = cancel_key
        self._held: set[str] = set()
        self._active = False
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._active

    def attach(self, bus: EventBus) -> Callable[[], None]:
        return bus.subscribe(events.KEY, self.handle)

    def handle(self, event: KeyEvent) -> None:
        if event.name is None:
            return
        callback = None
        with self._lock:
            if event.pressed:
                self._held.add(event.name)
                if self._active and event.name == self._cancel_key and self._on_cancel is not None:
                    self._active = False
                    callback = self._on_cancel
                elif (
                    not self._active
                    and event.name == self.hotkey.key
                    and self.hotkey.modifiers <= self._held
                ):
                    self._active = True
                    callback = self._on_activate
            else:
                self._held.discard(event.name)
                if self._active and event.name == self.hotkey.key:
                    self._active = False
                    callback = self._on_deactivate
        if callback is not None:
            callback()
