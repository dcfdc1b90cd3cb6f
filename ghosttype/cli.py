"""Command-line host for GhostType: hold a hotkey, speak, release to paste."""

from __future__ import annotations

import argparse
import concurrent.futures
import logging
import threading
import time
from typing import Optional

from . import events, settings_store
from .audio import SoundDeviceCapture
from .config import DEFAULT_CANCEL_KEY, WHISPER_MODELS, GhostingConfig
from .correction_learning import CorrectionLearningEngine
from .dictionary_store import JsonDictionaryStore
from .events import EventBus
from .ghosting import GhostingController
from .hotkeys import HoldHotkey, HotkeyError, KeyboardEventSource, parse_hotkey_string
from .injection import ClipboardInjector
from .llm_cleanup import STYLE_INSTRUCTIONS, OpenAICleaner
from .logging_config import LOG_FILE, setup_logging
from .models import GhostingPhase, PersonalizationContext
from .snippet_store import JsonSnippetStore
from .text_accessor import describe_active_application, get_text_accessor
from .transcript_store import JsonTranscriptStore
from .transcription import WhisperTranscriber

logger = logging.getLogger(__name__)


class DictationHost:
    """Wires the controller, adapters and learning engine to the keyboard."""

    def __init__(
        self,
        config: GhostingConfig,
        api_key: str | None = None,
        store: JsonDictionaryStore | None = None,
        snippets: JsonSnippetStore | None = None,
        transcripts: JsonTranscriptStore | None = None,
    ):
        self.config = config
        self.bus = EventBus()
        self.store = store or JsonDictionaryStore()
        self.snippets = snippets or JsonSnippetStore()
        self.transcripts = transcripts or JsonTranscriptStore()
        self._detach_transcripts = None
        # Hotkey edges run one at a time, in the order they were pressed
        self._dispatcher = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="ghosttype-hotkey")

        cleaner = None
        if config.cleanup_enabled:
            cleaner = OpenAICleaner(
                endpoint=config.llm_endpoint,
                model=config.llm_model,
                api_key=api_key,
                prompt=config.llm_prompt,
                temperature=config.llm_temperature,
                timeout=config.cleanup_timeout,
            )

        self.controller = GhostingController(
            capture=SoundDeviceCapture(sample_rate=config.sample_rate, bus=self.bus),
            transcriber=WhisperTranscriber(config.model, config.device, config.compute_type),
            injector=ClipboardInjector(auto_paste=config.auto_paste, paste_delay=config.paste_delay),
            cleaner=cleaner,
            config=config,
            bus=self.bus,
            personalization=self.personalization_context,
        )

        self.learning: CorrectionLearningEngine | None = None
        if config.learning_enabled and config.auto_paste:
            accessor = get_text_accessor()
            if accessor is not None:
                self.learning = CorrectionLearningEngine(accessor, self.store, self.bus, config)

        self.keyboard = KeyboardEventSource(self.bus)
        self.hotkey = HoldHotkey(
            parse_hotkey_string(config.hotkey),
            on_activate=lambda: self._dispatch(self.controller.start),
            on_deactivate=lambda: self._dispatch(self.controller.stop),
            on_cancel=lambda: self._dispatch(self.controller.cancel),
            cancel_key=DEFAULT_CANCEL_KEY,
        )

    def personalization_context(self) -> PersonalizationContext:
        return PersonalizationContext(
            dictionary=tuple(self.store.list()),
            snippets=tuple(self.snippets.list()),
            writing_style=self.config.writing_style,
            app_context=describe_active_application(),
        )

    def start(self) -> None:
        self.bus.subscribe(events.PHASE, self._on_phase)
        self.bus.subscribe(events.CORRECTION_LEARNED, self._on_learned)
        self._detach_transcripts = self.transcripts.attach(self.bus)
        self.hotkey.attach(self.bus)
        if self.learning is not None:
            self.learning.attach()
        self.keyboard.start()

    def stop(self) -> None:
        self.keyboard.stop()
        if self.learning is not None:
            self.learning.detach()
        if self._detach_transcripts is not None:
            self._detach_transcripts()
            self._detach_transcripts = None
        self._dispatcher.shutdown(wait=False, cancel_futures=True)
        self.controller.shutdown()

    def _dispatch(self, command) -> concurrent.futures.Future:
        # The keyboard listener thread must never block on the pipeline
        future = self._dispatcher.submit(command)
        future.add_done_callback(_log_failure)
        return future

    def _on_phase(self, state) -> None:
        stamp = time.strftime("%H:%M:%S", time.localtime())
        if state.phase is GhostingPhase.RECORDING:
            print(f"[{stamp}] [REC] Speak now. Release {self.config.hotkey} to stop, Esc to cancel.")
        elif state.phase is GhostingPhase.PROCESSING:
            print(f"[{stamp}] Transcribing...")
        elif state.phase is GhostingPhase.ERROR:
            print(f"[{stamp}] Error: {state.last_error}")
        elif state.last_cleaned_text:
            print(f"[{stamp}] {state.last_cleaned_text}")

    def _on_learned(self, corrections) -> None:
        for correction in corrections:
            print(f"(learned) {correction.original} -> {correction.replacement}")


def _log_failure(future: concurrent.futures.Future) -> None:
    if not future.cancelled() and future.exception() is not None:
        logger.error("Hotkey action failed", exc_info=future.exception())


def build_parser(defaults: GhostingConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ghosttype",
        description="Hold-to-talk local Whisper dictation with optional LLM cleanup",
    )
    parser.add_argument("--hotkey", default=defaults.hotkey, help="Hold-to-talk chord, e.g. cmd+shift+space")
    parser.add_argument("--model", default=defaults.model, help=f"Whisper model ({', '.join(WHISPER_MODELS)})")
    parser.add_argument("--device", default=defaults.device, choices=["cpu", "cuda"], help="Inference device")
    parser.add_argument("--compute-type", default=defaults.compute_type, help="CTranslate2 compute_type")
    parser.add_argument("--language", default=defaults.language, help='Language code, or "auto" to detect')
    parser.add_argument("--input-device", default=defaults.microphone, help="Input device index or name substring")

    parser.add_argument("--no-llm", action="store_true", help="Disable LLM cleanup entirely")
    parser.add_argument("--llm-endpoint", default=defaults.llm_endpoint, help="OpenAI-compatible base URL")
    parser.add_argument("--llm-model", default=defaults.llm_model, help="Model name served by your endpoint")
    parser.add_argument(
        "--writing-style",
        default=defaults.writing_style,
        choices=sorted(STYLE_INSTRUCTIONS),
        help="Writing style applied by the cleanup model",
    )
    parser.add_argument("--no-paste", action="store_true", help="Only copy to the clipboard, never send the paste chord")
    parser.add_argument("--no-learning", action="store_true", help="Do not learn corrections from your edits")
    parser.add_argument("--save", action="store_true", help="Persist these options as the new defaults")
    parser.add_argument("--debug", action="store_true", help="Verbose console logging")
    return parser


def config_from_args(args: argparse.Namespace, base: GhostingConfig) -> GhostingConfig:
    changes = {
        "hotkey": args.hotkey,
        "model": args.model,
        "device": args.device,
        "compute_type": args.compute_type,
        "language": args.language,
        "microphone": args.input_device,
        "llm_endpoint": args.llm_endpoint,
        "llm_model": args.llm_model,
        "writing_style": args.writing_style,
    }
    if args.no_llm:
        changes["cleanup_enabled"] = False
    if args.no_paste:
        changes["auto_paste"] = False
    if args.no_learning:
        changes["learning_enabled"] = False
    return base.with_changes(**changes)


def run(config: GhostingConfig) -> int:
    host = DictationHost(config, api_key=settings_store.get_api_key())
    print(f"Hotkey: hold {config.hotkey} (Esc cancels)")
    print(f"Whisper: {config.model} on {config.device}")
    if config.cleanup_enabled:
        print(f"(LLM) enabled: {config.llm_model} @ {config.llm_endpoint}")
    else:
        print("(LLM) disabled")
    if host.learning is None:
        print("(learning) off")

    try:
        host.start()
    except HotkeyError as e:
        print(f"Could not listen for the hotkey: {e}")
        return 1

    print("Ready. Ctrl+C to quit.")
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        print("Quitting.")
    finally:
        host.stop()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    saved = settings_store.load_config()
    args = build_parser(saved).parse_args(argv)
    setup_logging(logging.DEBUG if args.debug else logging.INFO)
    logger.debug("Log file: %s", LOG_FILE)

    try:
        config = config_from_args(args, saved)
        parse_hotkey_string(config.hotkey)
    except ValueError as e:
        print(f"Invalid hotkey: {e}")
        return 2

    if args.save and not settings_store.save_config(config):
        print("Could not save settings.")

    return run(config)


if __name__ == "__main__":
    raise SystemExit(main())
