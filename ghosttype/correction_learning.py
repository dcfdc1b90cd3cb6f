"""Learn dictionary corrections from edits the user makes after an injection.

The engine is armed with the exact injected text. It waits until the user has
stopped typing for a while (or a hard cap expires), reads the field back,
diffs it against the injection and records plausible word substitutions as
auto-added dictionary corrections. Everything here is best effort: any
failure abandons the pass silently.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass

from ghosttype import events
from ghosttype.config import GhostingConfig
from ghosttype.events import EventBus
from ghosttype.interfaces import DictionaryStore, TextAccessor
from ghosttype.models import GhostingPhase, WordCorrection
from ghosttype.text_accessor import TextAccessError
from ghosttype.word_diff import (
    MIN_REGION_OVERLAP,
    extract_corrections,
    find_pasted_region,
    normalize,
    word_overlap,
)

logger = logging.getLogger(__name__)


@dataclass
class _Armed:
    text: str
    generation: int
    offset: int | None = None


def _correction_key(original: str, replacement: str) -> str:
    return f"{original.lower()}→{replacement.lower()}"


class CorrectionLearningEngine:
    """Arms after each injection and reconciles once the user goes idle."""

    def __init__(
        self,
        accessor: TextAccessor,
        store: DictionaryStore,
        bus: EventBus | None = None,
        config: GhostingConfig | None = None,
    ):
        self._accessor = accessor
        self._store = store
        self._bus = bus
        self._config = config or GhostingConfig()
        self._lock = threading.Lock()
        self._generation = 0
        self._armed: _Armed | None = None
        self._idle_timer: threading.Timer | None = None
        self._max_timer: threading.Timer | None = None
        self._unsubscribers: list = []

    @property
    def is_armed(self) -> bool:
        with self._lock:
            return self._armed is not None

    def update_config(self, config: GhostingConfig) -> None:
        self._config = config
        if not config.learning_enabled:
            self.cancel()

    def attach(self) -> None:
        """Subscribe to injection, phase and keystroke events on the bus."""
        if self._bus is None or self._unsubscribers:
            return
        self._unsubscribers = [
            self._bus.subscribe(events.INJECTED, self.arm),
            self._bus.subscribe(events.PHASE, self._on_phase),
            self._bus.subscribe(events.KEY, lambda _event: self.notify_keystroke()),
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.cancel()

    def arm(self, injected_text: str) -> None:
        """Start watching for edits to ``injected_text``; replaces any earlier arm."""
        if not self._config.learning_enabled or not injected_text or not injected_text.strip():
            return

        with self._lock:
            self._cancel_timers()
            self._generation += 1
            armed = _Armed(injected_text, self._generation)
            self._armed = armed
            self._idle_timer = self._start_timer(self._config.learning_idle_s, armed.generation)
            self._max_timer = self._start_timer(self._config.learning_max_wait_s, armed.generation)

        # The caret sits at the end of the paste right after injection
        try:
            cursor = self._accessor.read_cursor_position()
        except TextAccessError as e:
            logger.debug("Cursor position unavailable: %s", e)
            return
        with self._lock:
            if self._armed is armed:
                armed.offset = max(0, cursor - len(injected_text))

    def notify_keystroke(self) -> None:
        """Restart the idle countdown while armed."""
        with self._lock:
            if self._armed is None:
                return
            if self._idle_timer is not None:
                self._idle_timer.cancel()
            self._idle_timer = self._start_timer(self._config.learning_idle_s, self._armed.generation)

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            self._armed = None
            self._cancel_timers()

    def _on_phase(self, state) -> None:
        if getattr(state, "phase", None) is GhostingPhase.RECORDING:
            self.cancel()

    def _start_timer(self, delay: float, generation: int) -> threading.Timer:
        timer = threading.Timer(delay, self._on_timer, args=(generation,))
        timer.daemon = True
        timer.start()
        return timer

    def _cancel_timers(self) -> None:
        for timer in (self._idle_timer, self._max_timer):
            if timer is not None:
                timer.cancel()
        self._idle_timer = None
        self._max_timer = None

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            armed = self._armed
            if armed is None or armed.generation != generation:
                return
            self._armed = None
            self._generation += 1
            self._cancel_timers()

        try:
            self.reconcile(armed.text, armed.offset)
        except Exception:
            logger.debug("Correction check abandoned", exc_info=True)

    def reconcile(self, injected_text: str, offset: int | None = None) -> list[WordCorrection]:
        """Compare the live field with ``injected_text`` and commit new corrections."""
        edited = self._read_edited_region(injected_text, offset)
        if edited is None:
            return []
        if normalize(edited) == normalize(injected_text):
            return []

        candidates = extract_corrections(injected_text, edited)
        if not candidates:
            return []

        learned = self._commit(candidates)
        if learned and self._bus is not None:
            self._bus.publish(events.CORRECTION_LEARNED, learned)
        return learned

    def _read_edited_region(self, injected_text: str, offset: int | None) -> str | None:
        region = self._read_back(offset, len(injected_text))
        if region is None:
            return None

        if offset is None:
            return find_pasted_region(region, injected_text)

        # Focus moved to an unrelated field since the paste
        if word_overlap(region, injected_text) < MIN_REGION_OVERLAP:
            logger.debug("Read-back text does not resemble the injection, skipping")
            return None
        return region

    def _read_back(self, offset: int | None, length: int) -> str | None:
        window = math.ceil(length * self._config.learning_window_factor)

        if offset is not None:
            try:
                text = self._accessor.read_range(offset, window)
                if text.strip():
                    return text
            except TextAccessError as e:
                logger.debug("Range read failed, reading full value: %s", e)

        try:
            full = self._accessor.read_value()
        except TextAccessError as e:
            logger.debug("Text read-back failed: %s", e)
            return None
        if not full.strip():
            return None
        if offset is not None:
            return full[offset : offset + window]
        return full

    def _commit(self, candidates: list[WordCorrection]) -> list[WordCorrection]:
        known = {
            _correction_key(entry.misspelling, entry.word)
            for entry in self._store.list()
            if entry.is_correction and entry.misspelling
        }

        learned = []
        for correction in candidates:
            key = _correction_key(correction.original, correction.replacement)
            if key in known:
                continue
            self._store.add_auto_correction(correction.original, correction.replacement)
            known.add(key)
            learned.append(correction)
            logger.info("Learned correction: %r -> %r", correction.original, correction.replacement)
        return learned
