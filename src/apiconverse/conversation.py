"""Per-conversation dialogue state and turn responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional

from .models import ExecutionResult, RequestDescription, Tool


class DialoguePhase(str, Enum):
    NEW = "new"
    AWAITING_PARAMETERS = "awaiting_parameters"
    READY = "ready"
    # Pseudo-phase: a cancelled conversation is immediately reset to NEW
    CANCELLED = "cancelled"


@dataclass
class ConversationState:
    """Mutable state of one conversation. At most one active tool at a time."""
    conversation_id: str
    last_activity: float
    current_tool: Optional[Tool] = None
    collected_parameters: dict[str, Any] = field(default_factory=dict)
    missing_required_fields: list[str] = field(default_factory=list)
    suggested_optional_fields: list[str] = field(default_factory=list)
    match_confidence: float = 0.0
    phase: DialoguePhase = DialoguePhase.NEW

    def touch(self, now: float) -> None:
        self.last_activity = now

    def reset(self) -> None:
        """Drop the active tool and everything collected for it."""
        self.current_tool = None
        self.collected_parameters = {}
        self.missing_required_fields = []
        self.suggested_optional_fields = []
        self.match_confidence = 0.0
        self.phase = DialoguePhase.NEW


@dataclass
class FieldPrompt:
    """One field the user is asked about in a clarification."""
    name: str
    description: str
    kind: Literal["required", "optional"] = "required"
    type: Optional[str] = None
    possible_values: Optional[list[Any]] = None
    examples: list[Any] = field(default_factory=list)


@dataclass
class ClarificationRequest:
    kind: Literal["missing_required", "suggest_optional"]
    message: str
    missing_fields: list[FieldPrompt] = field(default_factory=list)
    suggested_fields: list[FieldPrompt] = field(default_factory=list)


@dataclass
class ToolMatch:
    tool: Tool
    confidence: float
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass
class ChatResponse:
    """What one call to process_message hands back to the caller."""
    conversation_id: str
    message: str
    needs_clarification: bool = False
    phase: DialoguePhase = DialoguePhase.NEW
    clarification: Optional[ClarificationRequest] = None
    tool_match: Optional[ToolMatch] = None
    request: Optional[RequestDescription] = None
    execution: Optional[ExecutionResult] = None
    error: Optional[str] = None

    @property
    def missing_required_fields(self) -> list[str]:
        if self.clarification is None:
            return []
        return [f.name for f in self.clarification.missing_fields]

    @property
    def suggested_optional_fields(self) -> list[str]:
        if self.clarification is None:
            return []
        return [f.name for f in self.clarification.suggested_fields]

    @property
    def executed(self) -> bool:
        return self.request is not None
