"""Title normalisation and key similarity used for fuzzy duplicate detection.

A *title key* is the first ``max_tokens`` significant words of a lower-cased,
punctuation-free title. Two keys are compared by word-set overlap relative to the
larger of the two sets::

    similarity("openai releases gpt5 today", "openai releases gpt5") == 0.75
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize(title: str) -> str:
    """Lower-case, strip punctuation and collapse whitespace."""

    text = _NON_WORD.sub("", (title or "").lower())
    return _WHITESPACE.sub(" ", text).strip()


def similarity(key_a: str, key_b: str) -> float:
    """Return |A ∩ B| / max(|A|, |B|) over the word sets of two keys."""

    words_a = set(key_a.split())
    words_b = set(key_b.split())
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / max(len(words_a), len(words_b))


@dataclass(frozen=True, slots=True)
class TitleNormalizer:
    """Turn raw titles into comparable keys."""

    max_tokens: int = 8
    min_token_length: int = 3

    def tokens(self, title: str) -> list[str]:
        words = normalize(title).split(" ")
        significant = [word for word in words if len(word) >= self.min_token_length]
        return significant[: self.max_tokens]

    def key(self, title: str) -> str:
        return " ".join(self.tokens(title))


__all__ = ["TitleNormalizer", "normalize", "similarity"]
