"""Word-level diffing and correction harvesting.

After an injection the user may fix a word or two by hand. Comparing the
injected text with what the field holds afterwards yields (original,
replacement) pairs that are worth remembering as dictionary corrections.

The diff is an LCS alignment over case-folded tokens. Its insert/delete
operations are then paired up in two passes: runs of consecutive deletions
that collapse into a single inserted word ("front end" -> "frontend") first,
then single-word substitutions between nearby deletions and insertions.
Candidates that look like alignment noise are filtered out at the end.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from dataclasses import dataclass

from ghosttype.models import EditKind, EditOperation, WordCorrection

# Originals that are almost always alignment noise rather than real fixes
STOP_WORDS = frozenset(
    {
        "a", "an", "the", "is", "it", "in", "on", "at", "to", "of", "or",
        "and", "be", "for", "not", "no", "do", "if", "so", "we", "he", "me",
        "my", "by", "up", "am", "as", "us", "add", "all", "but", "can", "did",
        "get", "got", "had", "has", "her", "him", "his", "how", "its", "let",
        "may", "new", "now", "old", "our", "out", "own", "put", "run", "say",
        "she", "too", "try", "use", "was", "way", "who", "why", "yet", "you",
    }
)  # fmt: skip

MERGE_DISTANCE_RATIO = 0.3
SUBSTITUTION_MAX_GAP = 2
SUBSTITUTION_MIN_LENGTH_RATIO = 0.5
SUBSTITUTION_DISTANCE_RATIO = 0.5
SHORT_WORD_LENGTH = 3
TINY_WORD_LENGTH = 2

REGION_LENGTH_TOLERANCE = 0.3
MIN_REGION_OVERLAP = 0.5

_WHITESPACE = re.compile(r"\s+")
_EDGE_PUNCTUATION = re.compile(r"^\W+|\W+$")


def normalize(text: str) -> str:
    """Collapse whitespace, trim and case-fold."""
    return _WHITESPACE.sub(" ", text).strip().lower()


def tokenize(text: str) -> list[str]:
    """Split into words with leading/trailing punctuation removed. Case is kept."""
    words = (_EDGE_PUNCTUATION.sub("", word) for word in text.split())
    return [word for word in words if word]


def levenshtein(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


def word_diff(original: Sequence[str], edited: Sequence[str]) -> list[EditOperation]:
    """LCS-align two token sequences (case-insensitively).

    Returns insert/delete operations in sequence order. Deletions index
    ``original``; insertions index ``edited``.
    """
    a = [w.lower() for w in original]
    b = [w.lower() for w in edited]
    m, n = len(a), len(b)

    lcs = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(1, m + 1):
        for j in range(1, n + 1):
            if a[i - 1] == b[j - 1]:
                lcs[i][j] = lcs[i - 1][j - 1] + 1
            else:
                lcs[i][j] = max(lcs[i - 1][j], lcs[i][j - 1])

    operations: list[EditOperation] = []
    i, j = m, n
    while i > 0 or j > 0:
        if i > 0 and j > 0 and a[i - 1] == b[j - 1]:
            i -= 1
            j -= 1
        elif j > 0 and (i == 0 or lcs[i][j - 1] >= lcs[i - 1][j]):
            operations.append(EditOperation(EditKind.INSERT, j - 1, edited[j - 1]))
            j -= 1
        else:
            operations.append(EditOperation(EditKind.DELETE, i - 1, original[i - 1]))
            i -= 1

    operations.reverse()
    return operations


def apply_operations(original: Sequence[str], operations: Sequence[EditOperation]) -> list[str]:
    """Replay diff operations against ``original`` to rebuild the edited sequence."""
    deleted = {op.position for op in operations if op.kind is EditKind.DELETE}
    inserted = {op.position: op.word for op in operations if op.kind is EditKind.INSERT}
    kept = iter(word for index, word in enumerate(original) if index not in deleted)

    result: list[str] = []
    while True:
        if len(result) in inserted:
            result.append(inserted[len(result)])
            continue
        word = next(kept, None)
        if word is None:
            break
        result.append(word)
    return result


@dataclass
class _Slot:
    position: int
    word: str
    used: bool = False


def _group_consecutive(deletions: list[_Slot]) -> list[list[_Slot]]:
    groups: list[list[_Slot]] = []
    for slot in deletions:
        if groups and slot.position == groups[-1][-1].position + 1:
            groups[-1].append(slot)
        else:
            groups.append([slot])
    return groups


def _match_merges(groups: list[list[_Slot]], insertions: list[_Slot], exact: bool) -> list[WordCorrection]:
    found = []
    for group in groups:
        if len(group) < 2 or any(slot.used for slot in group):
            continue
        joined = "".join(slot.word for slot in group).lower()
        for ins in insertions:
            if ins.used:
                continue
            if exact:
                matched = joined == ins.word.lower()
            else:
                limit = math.ceil(max(len(joined), len(ins.word)) * MERGE_DISTANCE_RATIO)
                matched = levenshtein(joined, ins.word.lower()) <= limit
            if matched:
                found.append(WordCorrection(" ".join(slot.word for slot in group), ins.word))
                ins.used = True
                for slot in group:
                    slot.used = True
                break
    return found


def _is_substitution(original: str, replacement: str) -> bool:
    longer = max(len(original), len(replacement))
    shorter = min(len(original), len(replacement))
    if longer <= SHORT_WORD_LENGTH:
        return True
    distance = levenshtein(original.lower(), replacement.lower())
    return (
        shorter / longer >= SUBSTITUTION_MIN_LENGTH_RATIO
        and distance <= math.ceil(longer * SUBSTITUTION_DISTANCE_RATIO)
    )


def harvest_corrections(operations: Sequence[EditOperation]) -> list[WordCorrection]:
    """Pair diff operations into candidate corrections (unfiltered)."""
    deletions = sorted(
        (_Slot(op.position, op.word) for op in operations if op.kind is EditKind.DELETE),
        key=lambda slot: slot.position,
    )
    insertions = sorted(
        (_Slot(op.position, op.word) for op in operations if op.kind is EditKind.INSERT),
        key=lambda slot: slot.position,
    )

    groups = _group_consecutive(deletions)
    corrections = _match_merges(groups, insertions, exact=True)
    corrections += _match_merges(groups, insertions, exact=False)

    for deletion in deletions:
        if deletion.used:
            continue
        best: _Slot | None = None
        best_gap = math.inf
        for ins in insertions:
            if ins.used:
                continue
            gap = abs(deletion.position - ins.position)
            if gap < best_gap:
                best, best_gap = ins, gap
        if best is None or best_gap > SUBSTITUTION_MAX_GAP:
            continue
        if _is_substitution(deletion.word, best.word):
            corrections.append(WordCorrection(deletion.word, best.word))
            best.used = True

    return corrections


def is_plausible_correction(correction: WordCorrection) -> bool:
    original = correction.original.lower()
    replacement = correction.replacement.lower()
    # "Let's" -> "et's" is an off-by-one read, not an edit
    if original in replacement or replacement in original:
        return False
    if original in STOP_WORDS:
        return False
    if len(original) <= TINY_WORD_LENGTH and len(replacement) <= TINY_WORD_LENGTH:
        return False
    return True


def filter_corrections(corrections: Sequence[WordCorrection]) -> list[WordCorrection]:
    return [c for c in corrections if is_plausible_correction(c)]


def extract_corrections(original_text: str, edited_text: str) -> list[WordCorrection]:
    """Diff two texts and return the plausible corrections between them."""
    operations = word_diff(tokenize(original_text), tokenize(edited_text))
    return filter_corrections(harvest_corrections(operations))


def word_overlap(read_text: str, injected_text: str) -> float:
    """Share of the injected word count found (as words) in ``read_text``."""
    injected = tokenize(injected_text)
    if not injected:
        return 0.0
    vocabulary = {w.lower() for w in injected}
    hits = sum(1 for w in tokenize(read_text) if w.lower() in vocabulary)
    return hits / len(injected)


def find_pasted_region(full_text: str, pasted: str) -> str | None:
    """Locate the (possibly edited) pasted text inside a whole field.

    Returns None when the paste is still present unchanged or cannot be found.
    """
    norm_full = normalize(full_text)
    norm_pasted = normalize(pasted)
    if norm_full == norm_pasted:
        return full_text.strip()
    if norm_pasted in norm_full:
        return None

    pasted_words = tokenize(pasted)
    full_words = tokenize(full_text)
    if not pasted_words or not full_words:
        return None

    size = len(pasted_words)
    if size * (1 - REGION_LENGTH_TOLERANCE) <= len(full_words) <= size * (1 + REGION_LENGTH_TOLERANCE):
        return full_text.strip()

    vocabulary = {w.lower() for w in pasted_words}
    best_start, best_score = 0, 0
    for start in range(len(full_words) - size + 1):
        score = sum(1 for w in full_words[start : start + size] if w.lower() in vocabulary)
        if score > best_score:
            best_start, best_score = start, score

    if best_score < size * MIN_REGION_OVERLAP:
        return None
    return " ".join(full_words[best_start : best_start + size])
