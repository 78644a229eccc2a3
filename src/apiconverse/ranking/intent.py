"""Keyword-rule intent detection.

The dialogue engine and the ranker only see the IntentClassifier interface,
so a model-backed classifier can replace the regex rules later.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Literal

Operation = Literal["create", "read", "update", "delete", "other"]

# HTTP method -> operation class it serves
METHOD_OPERATIONS: dict[str, Operation] = {
    "POST": "create",
    "GET": "read",
    "HEAD": "read",
    "PUT": "update",
    "PATCH": "update",
    "DELETE": "delete",
}

# Checked in order; the first rule that matches wins
_OPERATION_RULES: list[tuple[Operation, re.Pattern]] = [
    ("delete", re.compile(r"\b(delete|remove|destroy|erase|drop)\b")),
    ("update", re.compile(r"\b(update|modify|change|edit|patch|rename|set)\b")),
    ("create", re.compile(r"\b(create|add|insert|post|new|make|register|place|upload)\b")),
    ("read", re.compile(r"\b(get|fetch|retrieve|find|search|list|show|display|read|look\s+up|lookup|view)\b")),
]

CANCELLATION_PHRASES = (
    "cancel", "stop", "quit", "exit", "nevermind", "never mind", "abort",
    "forget it", "don't do it", "no",
)

EXECUTION_PHRASES = (
    "execute", "proceed", "run", "go ahead", "do it", "submit", "run it",
)


def _phrase_pattern(phrases: tuple[str, ...]) -> re.Pattern:
    alternatives = "|".join(re.escape(p).replace(r"\ ", r"\s+") for p in phrases)
    return re.compile(rf"(?<![\w'])(?:{alternatives})(?![\w'])")


_CANCEL_PATTERN = _phrase_pattern(CANCELLATION_PHRASES)
_EXECUTE_PATTERN = _phrase_pattern(EXECUTION_PHRASES)


class IntentClassifier(ABC):
    """Classifies utterances for ranking and dialogue control."""

    @abstractmethod
    def detect_operation(self, text: str) -> Operation: ...

    @abstractmethod
    def is_cancellation(self, text: str) -> bool: ...

    @abstractmethod
    def is_execution(self, text: str) -> bool: ...


class KeywordIntentClassifier(IntentClassifier):
    """Fixed phrase sets and verb patterns, matched on word boundaries."""

    def detect_operation(self, text: str) -> Operation:
        lowered = (text or "").lower()
        for operation, pattern in _OPERATION_RULES:
            if pattern.search(lowered):
                return operation
        return "other"

    def is_cancellation(self, text: str) -> bool:
        return bool(_CANCEL_PATTERN.search((text or "").lower()))

    def is_execution(self, text: str) -> bool:
        return bool(_EXECUTE_PATTERN.search((text or "").lower()))


def method_operation(method: str) -> Operation:
    return METHOD_OPERATIONS.get((method or "").upper(), "other")


def intent_score(operation: Operation, method: str) -> float:
    """1.0 when the detected operation matches the method's class, else 0.0."""
    if operation == "other":
        return 0.0
    return 1.0 if method_operation(method) == operation else 0.0
