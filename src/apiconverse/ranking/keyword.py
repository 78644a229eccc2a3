"""Inverted keyword index over tool names, descriptions, paths and methods.

Scores a query by the fraction of its tokens a tool contains, each token
weighted by inverse popularity across the catalog. Uses only stdlib.
"""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Iterable

from ..models import Tool
from .text import stem, tokenize


def tool_tokens(tool: Tool) -> set[str]:
    """Index tokens for a tool, with singular forms folded in."""
    text = " ".join([
        tool.name,
        tool.description or "",
        tool.endpoint.path.replace("{", " ").replace("}", " "),
        tool.endpoint.method,
    ])
    tokens = tokenize(text)
    return set(tokens) | {stem(t) for t in tokens}


class KeywordIndex:
    """token -> set of tool names, with per-token inverse popularity."""

    def __init__(self) -> None:
        self._postings: dict[str, set[str]] = defaultdict(set)
        self._tool_tokens: dict[str, set[str]] = {}

    def __len__(self) -> int:
        return len(self._tool_tokens)

    def __contains__(self, tool_name: str) -> bool:
        return tool_name in self._tool_tokens

    def rebuild(self, tools: Iterable[Tool]) -> None:
        """Rebuild the index from scratch."""
        self._postings.clear()
        self._tool_tokens.clear()
        for tool in tools:
            self.add(tool)

    def add(self, tool: Tool) -> None:
        """Index a tool, replacing any earlier entry with the same name."""
        self.remove(tool.name)
        tokens = tool_tokens(tool)
        self._tool_tokens[tool.name] = tokens
        for token in tokens:
            self._postings[token].add(tool.name)

    def remove(self, tool_name: str) -> None:
        tokens = self._tool_tokens.pop(tool_name, None)
        if not tokens:
            return
        for token in tokens:
            names = self._postings.get(token)
            if names is None:
                continue
            names.discard(tool_name)
            if not names:
                del self._postings[token]

    def tools_for(self, token: str) -> set[str]:
        return set(self._postings.get(token, ()))

    def weight(self, token: str) -> float:
        """Inverse popularity: tokens found in fewer tools weigh more."""
        df = len(self._postings.get(token, ()))
        return math.log((len(self._tool_tokens) + 1) / (df + 1)) + 1.0

    def score(self, query_tokens: list[str], tool_name: str) -> float:
        """Weighted fraction of query tokens present in the tool's tokens, in [0, 1]."""
        tokens = self._tool_tokens.get(tool_name)
        if not tokens or not query_tokens:
            return 0.0

        matched = 0.0
        total = 0.0
        for qt in query_tokens:
            w = self.weight(qt)
            total += w
            if qt in tokens or stem(qt) in tokens:
                matched += w

        if total <= 0:
            return 0.0
        return min(matched / total, 1.0)
