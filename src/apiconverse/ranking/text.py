"""Tokenisation and vector helpers shared by the ranking signals.

Pure functions, stdlib only.
"""

from __future__ import annotations

import math
import re
from typing import Optional, Sequence

# Common English stopwords, plus HTTP-ish filler that carries no intent
STOPWORDS = frozenset({
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "is", "are", "was", "were", "be", "been",
    "this", "that", "it", "its", "as", "if", "not", "no", "do", "does",
    "can", "will", "has", "have", "had", "may", "might", "should", "would",
    "all", "each", "every", "any", "some", "you", "your", "please", "want",
    "need", "would", "like", "me", "my", "our", "api",
})

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")


def normalize_query(text: str) -> str:
    """Trim, lower-case and collapse whitespace. Used as the cache key."""
    return _WHITESPACE.sub(" ", (text or "").strip().lower())


def tokenize(text: str, min_length: int = 3) -> list[str]:
    """Split text into lowercase tokens.

    camelCase and snake_case are split; stopwords and tokens shorter than
    `min_length` characters are dropped.
    """
    spaced = _CAMEL_BOUNDARY.sub(" ", text or "")
    words = _NON_ALNUM.split(spaced.lower())
    return [w for w in words if len(w) >= min_length and w not in STOPWORDS]


def stem(token: str) -> str:
    """Crude singular form: pets -> pet, categories -> category."""
    if len(token) > 4 and token.endswith("ies"):
        return token[:-3] + "y"
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


def cosine(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """Cosine similarity clamped to [0, 1]. 0 for missing or mismatched vectors."""
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = na = nb = 0.0
    for x, y in zip(a, b):
        dot += x * y
        na += x * x
        nb += y * y
    if na == 0.0 or nb == 0.0:
        return 0.0
    return max(0.0, min(1.0, dot / (math.sqrt(na) * math.sqrt(nb))))
