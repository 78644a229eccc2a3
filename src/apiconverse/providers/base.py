"""Abstract interfaces for the collaborators the core talks to.

The core owns none of these. Concrete adapters live beside this module;
tests substitute in-memory fakes.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional

from ..errors import ProviderUnavailable
from ..models import ExecutionResult, RequestDescription, Tool

_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*\s*|\s*```$")


def parse_json_object(text: Optional[str]) -> dict[str, Any]:
    """Parse a provider answer into a JSON object without ever raising.

    Strips optional code-fence markers, then falls back to the outermost
    {...} span. Anything that is not a JSON object yields {}.
    """
    parsed = try_parse_json_object(text)
    return parsed if parsed is not None else {}


def try_parse_json_object(text: Optional[str]) -> Optional[dict[str, Any]]:
    if not text:
        return None
    content = _FENCE.sub("", text.strip()).strip()
    candidates = [content]
    start, end = content.find("{"), content.rfind("}")
    if 0 <= start < end:
        candidates.append(content[start:end + 1])
    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


class EmbeddingProvider(ABC):
    """Turns text into a dense vector."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Raise on failure; callers treat any exception as 'no embedding'."""
        ...


class LLMProvider(ABC):
    """Free-text and JSON completions."""

    @abstractmethod
    async def complete(self, prompt: str) -> str: ...

    async def complete_json(self, prompt: str) -> dict[str, Any]:
        """Complete and parse a JSON object. Raises ProviderUnavailable otherwise."""
        text = await self.complete(prompt)
        parsed = try_parse_json_object(text)
        if parsed is None:
            raise ProviderUnavailable("Provider did not return a JSON object")
        return parsed


@dataclass
class Neighbor:
    """One ranked result of a vector store query."""
    id: str
    similarity: float
    metadata: dict[str, Any] = field(default_factory=dict)
    document: str = ""


class VectorStore(ABC):
    """Storage and nearest-neighbour lookup for tool embeddings."""

    @abstractmethod
    async def upsert(
        self,
        id: str,
        embedding: list[float],
        metadata: dict[str, Any],
        document: str,
    ) -> None: ...

    @abstractmethod
    async def query(self, embedding: list[float], k: int) -> list[Neighbor]:
        """Return up to k neighbours, most similar first."""
        ...

    @abstractmethod
    async def get(self, filter: Optional[dict[str, Any]] = None) -> list[Neighbor]: ...

    async def delete(self, id: str) -> None:
        """Remove one entry. Stores that cannot delete may ignore the call."""
        return None


class ToolCatalog(ABC):
    """Supplies the current tool definitions. Never cached by the core."""

    @abstractmethod
    async def list_tools(self) -> list[Tool]: ...


class Executor(ABC):
    """Performs one synthesized request. Single attempt, no retries."""

    @abstractmethod
    async def execute(self, request: RequestDescription) -> ExecutionResult: ...

    async def aclose(self) -> None:
        return None


@dataclass
class ConversationMessage:
    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: datetime


@dataclass
class ConversationSummary:
    id: str
    last_activity: datetime
    message_count: int


class ConversationLog(ABC):
    """Persistence for conversation transcripts. The core only appends."""

    @abstractmethod
    async def append_message(self, conversation_id: str, role: str, content: str) -> None: ...

    @abstractmethod
    async def save(self, conversation_id: str) -> None: ...

    @abstractmethod
    async def load(self, conversation_id: str) -> list[ConversationMessage]: ...

    @abstractmethod
    async def list(self) -> list[ConversationSummary]: ...
