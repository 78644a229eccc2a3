"""Data records produced by the candidate ranker."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from ..models import Tool


@dataclass
class SignalBreakdown:
    """Per-signal scores, each in [0, 1]."""
    semantic: float = 0.0
    keyword: float = 0.0
    intent: float = 0.0
    path: float = 0.0


@dataclass
class ScoredTool:
    """A tool with its combined score and the signals behind it."""
    tool: Tool
    score: float = 0.0
    details: SignalBreakdown = field(default_factory=SignalBreakdown)

    @property
    def name(self) -> str:
        return self.tool.name


@dataclass
class MatchResult:
    """The selected tool for an utterance plus what the ranker learned."""
    tool: Tool
    confidence: float
    reasoning: str
    parameters: dict[str, Any] = field(default_factory=dict)
    alternatives: list[Tool] = field(default_factory=list)
    source: Literal["scoring", "provider"] = "scoring"


@dataclass
class QueryCacheEntry:
    embedding: list[float]
    last_access: float
    hit_count: int = 0
