"""The dictation state machine: record, transcribe, clean up, inject.

``GhostingController`` owns the single active capture session. A host drives
it with ``start()``/``stop()``/``cancel()`` (typically from hotkey events) and
observes it through the event bus. ``stop()`` runs the whole pipeline on the
calling thread, so hosts call it from a worker thread.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from dataclasses import replace
from typing import Any, Callable

from ghosttype import events
from ghosttype.config import GhostingConfig
from ghosttype.events import EventBus
from ghosttype.hallucination import is_likely_hallucination, strip_noise_markers
from ghosttype.interfaces import AudioCapture, Cleaner, Injector, Transcriber
from ghosttype.models import CaptureSession, GhostingPhase, GhostingState, SessionReport
from ghosttype.speech_gate import wav_has_speech

logger = logging.getLogger(__name__)

IDLE = GhostingPhase.IDLE
RECORDING = GhostingPhase.RECORDING
PROCESSING = GhostingPhase.PROCESSING
ERROR = GhostingPhase.ERROR

ALLOWED_TRANSITIONS: dict[GhostingPhase, frozenset[GhostingPhase]] = {
    IDLE: frozenset({RECORDING, ERROR}),
    ERROR: frozenset({RECORDING, ERROR}),
    RECORDING: frozenset({PROCESSING, IDLE}),
    PROCESSING: frozenset({IDLE, ERROR}),
}


class StageTimeoutError(Exception):
    """Raised when a pipeline stage does not finish within its time budget."""


class GhostingController:
    """Sequences one utterance at a time through the dictation pipeline."""

    def __init__(
        self,
        capture: AudioCapture,
        transcriber: Transcriber,
        injector: Injector,
        cleaner: Cleaner | None = None,
        config: GhostingConfig | None = None,
        bus: EventBus | None = None,
        personalization: Callable[[], Any] | None = None,
    ):
        self._capture = capture
        self._transcriber = transcriber
        self._injector = injector
        self._cleaner = cleaner
        self._config = config or GhostingConfig()
        self._bus = bus or EventBus()
        self._personalization = personalization

        self._lock = threading.RLock()
        self._state = GhostingState()
        self._session: CaptureSession | None = None
        self._starting = False
        self._pending_stop = False
        self._pending_cancel = False
        self._executor = self._new_executor()

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def config(self) -> GhostingConfig:
        return self._config

    def get_state(self) -> GhostingState:
        with self._lock:
            return self._state

    def update_config(self, **changes: Any) -> GhostingConfig:
        """Apply ``changes``; the new config is used from the next utterance on."""
        with self._lock:
            self._config = self._config.with_changes(**changes)
            return self._config

    def shutdown(self) -> None:
        self.cancel()
        with self._lock:
            executor = self._executor
        executor.shutdown(wait=False)

    # Commands

    def start(self) -> bool:
        """Open a capture session. Returns False when nothing was started."""
        with self._lock:
            if self._starting or self._state.phase not in (IDLE, ERROR):
                return False
            self._starting = True
            self._pending_stop = False
            self._pending_cancel = False
            config = self._config

        try:
            device_id = self._run_stage(
                "device lookup", config.device_timeout, self._capture.resolve_device, config.microphone
            )
            session = self._run_stage(
                "capture start", config.device_timeout, self._capture.start_capture, device_id
            )
        except Exception as e:
            logger.error("Could not start recording: %s", e)
            with self._lock:
                self._starting = False
                state = self._transition(ERROR, last_error=str(e))
            self._publish_state(state)
            return False

        with self._lock:
            self._starting = False
            self._session = session
            state = self._transition(RECORDING, last_error=None)
            pending_stop, pending_cancel = self._pending_stop, self._pending_cancel
            self._pending_stop = self._pending_cancel = False
        self._publish_state(state)
        logger.info("Recording started")

        if pending_cancel:
            self.cancel()
        elif pending_stop:
            self.stop()
        return True

    def stop(self) -> None:
        """Finish recording and run the pipeline. Blocks until the utterance is done."""
        with self._lock:
            if self._starting:
                self._pending_stop = True
                return
            if self._state.phase is not RECORDING or self._session is None:
                return
            session, self._session = self._session, None
            config = self._config
            state = self._transition(PROCESSING)
        self._publish_state(state)

        duration_s = max(0.0, time.monotonic() - session.started_at)
        try:
            self._process(session, config, duration_s)
        except Exception as e:
            logger.error("Dictation failed: %s", e)
            self._finish(ERROR, last_error=str(e))
        finally:
            session.audio_path.unlink(missing_ok=True)

    def cancel(self) -> None:
        """Abandon the current recording without running any pipeline stage."""
        with self._lock:
            if self._starting:
                self._pending_cancel = True
                return
            if self._state.phase is not RECORDING or self._session is None:
                return
            # Phase stays RECORDING until the device is released
            session, self._session = self._session, None

        try:
            self._capture.cancel_capture(session)
        except Exception as e:
            logger.warning("Error closing cancelled recording: %s", e)
        finally:
            session.audio_path.unlink(missing_ok=True)
        logger.info("Recording cancelled")
        self._finish(IDLE, last_error=None)

    # Pipeline

    def _process(self, session: CaptureSession, config: GhostingConfig, duration_s: float) -> None:
        self._run_stage("capture stop", config.device_timeout, self._capture.stop_capture, session)

        if not wav_has_speech(
            session.audio_path,
            window_ms=config.gate_window_ms,
            threshold=config.gate_rms_threshold,
            min_windows=config.gate_min_windows,
        ):
            logger.info("No speech detected, skipping transcription")
            self._finish(IDLE, last_raw_text="", last_cleaned_text="")
            return

        raw = self._run_stage(
            "transcription",
            config.transcribe_timeout,
            self._transcriber.transcribe,
            session.audio_path,
            config.language_hint,
        )
        raw = strip_noise_markers(raw or "")
        if not raw or self._is_hallucination(raw, duration_s, config):
            logger.info("Transcription held no usable speech")
            self._finish(IDLE, last_raw_text=raw, last_cleaned_text="")
            return

        cleaned = raw
        if config.cleanup_enabled and self._cleaner is not None:
            context = self._personalization() if self._personalization else None
            result = self._run_stage(
                "cleanup", config.cleanup_timeout, self._cleaner.clean, raw, context
            )
            if result.usage is not None:
                logger.info(
                    "Cleanup tokens: model=%s input=%d output=%d",
                    result.usage.model,
                    result.usage.input_tokens,
                    result.usage.output_tokens,
                )
            cleaned = strip_noise_markers(result.text or "")
            # Cleanup can hallucinate too
            if not cleaned or self._is_hallucination(cleaned, duration_s, config):
                logger.info("Cleanup output held no usable speech")
                self._finish(IDLE, last_raw_text=raw, last_cleaned_text="")
                return

        self._run_stage("injection", config.inject_timeout, self._injector.inject, cleaned)
        logger.debug("Injected text: %s", cleaned)
        self._bus.publish(events.INJECTED, cleaned)

        report = SessionReport(
            word_count=len(cleaned.split()),
            duration_ms=int(duration_s * 1000),
            raw_length=len(raw),
            cleaned_length=len(cleaned),
        )
        self._bus.publish(events.SESSION_REPORT, report)
        self._finish(IDLE, last_raw_text=raw, last_cleaned_text=cleaned)

    @staticmethod
    def _is_hallucination(text: str, duration_s: float, config: GhostingConfig) -> bool:
        return is_likely_hallucination(
            text,
            duration_s,
            min_duration_s=config.hallucination_min_duration_s,
            max_words=config.hallucination_max_words,
            min_words_per_s=config.hallucination_min_words_per_s,
        )

    def _run_stage(self, name: str, timeout: float, fn: Callable[..., Any], *args: Any) -> Any:
        with self._lock:
            executor = self._executor
        started = time.perf_counter()
        future = executor.submit(fn, *args)
        try:
            result = future.result(timeout=timeout)
        except concurrent.futures.TimeoutError as e:
            future.cancel()
            # The stuck call keeps its worker; later stages get a fresh one
            with self._lock:
                if self._executor is executor:
                    self._executor = self._new_executor()
            executor.shutdown(wait=False)
            raise StageTimeoutError(f"{name.capitalize()} timed out after {timeout:g}s") from e
        logger.debug("%s took %.2fs", name.capitalize(), time.perf_counter() - started)
        return result

    @staticmethod
    def _new_executor() -> concurrent.futures.ThreadPoolExecutor:
        return concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="ghosttype-stage")

    # State

    def _transition(self, phase: GhostingPhase, **changes: Any) -> GhostingState:
        current = self._state.phase
        if phase not in ALLOWED_TRANSITIONS[current]:
            raise RuntimeError(f"Invalid phase transition {current.value} -> {phase.value}")
        self._state = replace(self._state, phase=phase, **changes)
        return self._state

    def _finish(self, phase: GhostingPhase, **changes: Any) -> None:
        with self._lock:
            state = self._transition(phase, **changes)
        self._publish_state(state)

    def _publish_state(self, state: GhostingState) -> None:
        logger.debug("Phase -> %s", state.phase.value)
        self._bus.publish(events.PHASE, state)
