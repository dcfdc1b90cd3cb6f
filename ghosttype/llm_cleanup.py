"""LLM cleanup of raw transcriptions via an OpenAI-compatible endpoint."""

import logging
import time
from collections.abc import Iterable

from ghosttype.config import (
    DEFAULT_CLEANUP_PROMPT,
    DEFAULT_LLM_ENDPOINT,
    DEFAULT_LLM_MAX_TOKENS,
    DEFAULT_LLM_MODEL,
    DEFAULT_LLM_TEMP,
    DEFAULT_WRITING_STYLE,
)
from ghosttype.models import (
    CleanupResult,
    DictionaryEntry,
    PersonalizationContext,
    SnippetEntry,
    TokenUsage,
)

try:
    from openai import OpenAI
except ImportError:
    OpenAI = None  # type: ignore


logger = logging.getLogger(__name__)

STYLE_INSTRUCTIONS = {
    "formal": """
Writing style: FORMAL
- Use proper capitalization (start of sentences, proper nouns).
- Use full punctuation: periods, commas, question marks, etc.
- Keep complete sentences.""",
    "casual": """
Writing style: CASUAL
- Use proper capitalization (start of sentences, proper nouns).
- Use lighter punctuation: keep question marks and apostrophes, but you may omit trailing periods and reduce commas where natural.
- Keep a natural conversational tone.""",
    "very-casual": """
Writing style: VERY CASUAL
- Use all lowercase (no capitalization except for proper nouns like names, places, brands).
- Use minimal punctuation: keep question marks and apostrophes, but omit periods and most commas.
- Keep a relaxed, texting-like tone.""",
    "excited": """
Writing style: EXCITED
- Use proper capitalization (start of sentences, proper nouns).
- Use full punctuation: periods, commas, question marks.
- Add exclamation marks where the speaker sounds enthusiastic or positive.
- Keep the energy of the original speech without inventing new content.""",
}

TRANSCRIPTION_START = "[TRANSCRIPTION START]"
TRANSCRIPTION_END = "[TRANSCRIPTION END]"


class LLMCleanupError(Exception):
    """Raised when LLM cleanup fails."""


def format_dictionary(entries: Iterable[DictionaryEntry]) -> str:
    """Render dictionary entries as the "User dictionary" prompt section (may be empty)."""
    vocabulary = []
    corrections = []
    for entry in entries:
        if entry.is_correction and entry.misspelling:
            corrections.append(f'"{entry.misspelling}" → "{entry.word}"')
        else:
            vocabulary.append(f'"{entry.word}"')

    parts = []
    if vocabulary:
        parts.append(
            "The following are known vocabulary words. Always use the exact spelling "
            "and casing shown:\n" + ", ".join(vocabulary)
        )
    if corrections:
        parts.append(
            "The following are known misspelling corrections. When the transcription "
            "contains the misspelling, replace it with the correct form:\n" + "\n".join(corrections)
        )
    if not parts:
        return ""
    return "User dictionary:\n" + "\n\n".join(parts)


def format_snippets(snippets: Iterable[SnippetEntry]) -> str:
    mappings = [f'"{s.snippet}" → "{s.expansion}"' for s in snippets if s.snippet and s.expansion]
    if not mappings:
        return ""
    return (
        "Snippet expansion:\n"
        "When the speaker says one of the following trigger phrases, replace it with the "
        "corresponding expansion text. Match the trigger phrase case-insensitively.\n"
        + "\n".join(mappings)
    )


def build_system_prompt(
    prompt: str = DEFAULT_CLEANUP_PROMPT,
    context: PersonalizationContext | None = None,
) -> str:
    """Combine the base cleanup rules with style, dictionary, snippets and application context."""
    context = context or PersonalizationContext()
    style = STYLE_INSTRUCTIONS.get(context.writing_style, STYLE_INSTRUCTIONS[DEFAULT_WRITING_STYLE])

    system_prompt = f"{prompt.rstrip()}\n{style}"
    dictionary = format_dictionary(context.dictionary)
    if dictionary:
        system_prompt = f"{system_prompt}\n\n{dictionary}"
    snippets = format_snippets(context.snippets)
    if snippets:
        system_prompt = f"{system_prompt}\n\n{snippets}"
    if context.app_context:
        system_prompt = (
            f"{system_prompt}\n\nContext about the active application:\n{context.app_context.strip()}"
        )
    return f"{system_prompt}\n\nOutput the cleaned text only. Nothing else."


def wrap_transcription(raw_text: str) -> str:
    return f"{TRANSCRIPTION_START}\n{raw_text}\n{TRANSCRIPTION_END}"


class OpenAICleaner:
    """Cleaner that streams a chat completion from an OpenAI-compatible server."""

    def __init__(
        self,
        endpoint: str = DEFAULT_LLM_ENDPOINT,
        model: str = DEFAULT_LLM_MODEL,
        api_key: str | None = None,
        prompt: str = DEFAULT_CLEANUP_PROMPT,
        temperature: float = DEFAULT_LLM_TEMP,
        max_tokens: int = DEFAULT_LLM_MAX_TOKENS,
        timeout: float = 15.0,
    ):
        self.endpoint = endpoint
        self.model = model
        self.api_key = api_key
        self.prompt = prompt
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    def clean(self, raw_text: str, personalization_context: PersonalizationContext | None) -> CleanupResult:
        """
        Send raw_text to the LLM for cleanup.

        Args:
            raw_text: Raw transcribed text to clean
            personalization_context: Dictionary, writing style and app context for the prompt

        Returns:
            CleanupResult with the cleaned text and token usage

        Raises:
            LLMCleanupError: If the client is unavailable, the request fails
                or the model returns nothing
        """
        if not raw_text.strip():
            return CleanupResult(text="")

        if OpenAI is None:
            raise LLMCleanupError("OpenAI client not installed. Run: pip install openai")

        messages = [
            {"role": "system", "content": build_system_prompt(self.prompt, personalization_context)},
            {"role": "user", "content": wrap_transcription(raw_text)},
        ]
        logger.debug("LLM prompt payload: endpoint=%s model=%s messages=%s", self.endpoint, self.model, messages)

        try:
            client = OpenAI(base_url=self.endpoint, api_key=self.api_key or "sk-no-key")

            start_time = time.perf_counter()
            first_token_time = None

            stream = client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
                stream=True,
                stream_options={"include_usage": True},
            )

            collected_text = []
            usage_info = None
            for chunk in stream:
                if chunk.choices:
                    content = chunk.choices[0].delta.content
                    if content:
                        if first_token_time is None:
                            first_token_time = time.perf_counter()
                        collected_text.append(content)

                # Usage typically arrives in the last chunk
                if getattr(chunk, "usage", None) is not None:
                    usage_info = chunk.usage

            total_time = time.perf_counter() - start_time
            text = "".join(collected_text).strip()
        except Exception as e:
            raise LLMCleanupError(f"LLM cleanup failed: {e}") from e

        usage = TokenUsage(
            model=self.model,
            input_tokens=getattr(usage_info, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage_info, "completion_tokens", 0) or 0,
        )
        logger.info(
            "LLM statistics: time_to_first_token=%.3fs total_time=%.3fs "
            "input_tokens=%d output_tokens=%d total_tokens=%d",
            (first_token_time - start_time) if first_token_time else 0,
            total_time,
            usage.input_tokens,
            usage.output_tokens,
            usage.total_tokens,
        )
        logger.debug("LLM response: %s", text)

        if not text:
            raise LLMCleanupError("LLM returned empty cleanup output")
        return CleanupResult(text=text, usage=usage)
