"""Candidate ranking for utterance -> tool matching."""

from .intent import IntentClassifier, KeywordIntentClassifier
from .keyword import KeywordIndex
from .models import MatchResult, ScoredTool, SignalBreakdown
from .query_cache import QueryEmbeddingCache
from .ranker import CandidateRanker

__all__ = [
    "CandidateRanker",
    "IntentClassifier",
    "KeywordIndex",
    "KeywordIntentClassifier",
    "MatchResult",
    "QueryEmbeddingCache",
    "ScoredTool",
    "SignalBreakdown",
]
