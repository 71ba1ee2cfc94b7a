from __future__ import annotations

import re
from dataclasses import dataclass

from prompt_dedupe.errors import InputError
from prompt_dedupe.models import PromptRecord

DEFAULT_LENGTH_CUTOFF = 1000
SHINGLE_SIZE = 3

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    if text is None:
        return ""
    if not isinstance(text, str):
        raise TypeError(f"expected text, got {type(text).__name__}")
    return _WHITESPACE_RE.sub(" ", text.lower()).strip()


def levenshtein(left: str, right: str) -> int:
    if left == right:
        return 0
    if not left:
        return len(right)
    if not right:
        return len(left)

    prev = list(range(len(right) + 1))
    for i, c1 in enumerate(left, start=1):
        curr = [i]
        for j, c2 in enumerate(right, start=1):
            cost = 0 if c1 == c2 else 1
            curr.append(min(curr[j - 1] + 1, prev[j] + 1, prev[j - 1] + cost))
        prev = curr
    return prev[-1]


def shingles(text: str, size: int = SHINGLE_SIZE) -> set[str]:
    return {text[index : index + size] for index in range(len(text) - size + 1)}


def edit_similarity(left: str | None, right: str | None) -> float:
    """1 - edit distance / longer length, on normalized text."""
    a, b = normalize_text(left), normalize_text(right)
    fast = _degenerate_similarity(a, b)
    if fast is not None:
        return fast
    return 1.0 - levenshtein(a, b) / max(len(a), len(b))


def shingle_similarity(left: str | None, right: str | None, size: int = SHINGLE_SIZE) -> float:
    """Jaccard index of the character shingle sets of the normalized texts."""
    a, b = normalize_text(left), normalize_text(right)
    fast = _degenerate_similarity(a, b)
    if fast is not None:
        return fast
    left_set, right_set = shingles(a, size), shingles(b, size)
    union = len(left_set | right_set)
    if union == 0:
        return 0.0
    return len(left_set & right_set) / union


def text_similarity(
    left: str | None,
    right: str | None,
    length_cutoff: int = DEFAULT_LENGTH_CUTOFF,
) -> float:
    """Edit similarity for short text, shingle overlap once either side reaches the cutoff."""
    a, b = normalize_text(left), normalize_text(right)
    if max(len(a), len(b)) >= length_cutoff:
        return shingle_similarity(a, b)
    return edit_similarity(a, b)


def _degenerate_similarity(a: str, b: str) -> float | None:
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    return None


@dataclass(frozen=True)
class RecordSimilarity:
    """Weighted blend of title and body similarity."""

    title_weight: float = 0.4
    body_weight: float = 0.6
    length_cutoff: int = DEFAULT_LENGTH_CUTOFF

    def __post_init__(self) -> None:
        if self.title_weight < 0 or self.body_weight < 0:
            raise InputError("similarity weights must be non-negative")
        if abs(self.title_weight + self.body_weight - 1.0) > 1e-9:
            raise InputError(
                f"similarity weights must sum to 1, got {self.title_weight} + {self.body_weight}"
            )
        if self.length_cutoff <= 0:
            raise InputError("length cutoff must be positive")

    def score(self, left: PromptRecord, right: PromptRecord) -> float:
        title = text_similarity(left.title, right.title, self.length_cutoff)
        body = text_similarity(left.body, right.body, self.length_cutoff)
        return self.title_weight * title + self.body_weight * body
