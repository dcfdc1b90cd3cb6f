"""GhostType - hold-to-talk local dictation that learns from your corrections."""

__version__ = "0.1.0"

__all__ = [
    "audio",
    "config",
    "correction_learning",
    "dictionary_store",
    "ghosting",
    "hallucination",
    "hotkeys",
    "injection",
    "snippet_store",
    "llm_cleanup",
    "speech_gate",
    "text_accessor",
    "transcript_store",
    "transcription",
    "word_diff",
]
