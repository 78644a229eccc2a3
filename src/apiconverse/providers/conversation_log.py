"""Conversation transcript stores: in-memory, and one YAML file per conversation."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from src.utils.logger import get_logger

from .base import ConversationLog, ConversationMessage, ConversationSummary

logger = get_logger("ConversationLog")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryConversationLog(ConversationLog):
    """Keeps transcripts in a dict. save() is a no-op."""

    def __init__(self) -> None:
        self._messages: dict[str, list[ConversationMessage]] = {}

    async def append_message(self, conversation_id: str, role: str, content: str) -> None:
        self._messages.setdefault(conversation_id, []).append(
            ConversationMessage(role=role, content=content, timestamp=_utcnow())
        )

    async def save(self, conversation_id: str) -> None:
        return None

    async def load(self, conversation_id: str) -> list[ConversationMessage]:
        return list(self._messages.get(conversation_id, []))

    async def list(self) -> list[ConversationSummary]:
        return [
            ConversationSummary(
                id=conversation_id,
                last_activity=messages[-1].timestamp,
                message_count=len(messages),
            )
            for conversation_id, messages in self._messages.items()
            if messages
        ]


class _MessageRecord(BaseModel):
    role: str
    content: str
    timestamp: datetime


class _TranscriptFile(BaseModel):
    id: str
    messages: list[_MessageRecord] = Field(default_factory=list)


class YamlConversationLog(InMemoryConversationLog):
    """Buffers in memory; save() writes <directory>/<id>.yaml."""

    def __init__(self, directory: Union[str, Path]) -> None:
        super().__init__()
        self.directory = Path(directory)

    def _path(self, conversation_id: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in conversation_id)
        return self.directory / f"{safe}.yaml"

    async def save(self, conversation_id: str) -> None:
        messages = self._messages.get(conversation_id, [])
        transcript = _TranscriptFile(
            id=conversation_id,
            messages=[
                _MessageRecord(role=m.role, content=m.content, timestamp=m.timestamp)
                for m in messages
            ],
        )
        path = self._path(conversation_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(
                transcript.model_dump(mode="json"),
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )
        logger.debug(f"💾 Saved conversation {conversation_id} ({len(messages)} messages)")

    def _read(self, path: Path) -> _TranscriptFile | None:
        try:
            with open(path) as f:
                raw = yaml.safe_load(f) or {}
            return _TranscriptFile.model_validate(raw)
        except yaml.YAMLError as e:
            logger.error(f"❌ Invalid YAML in {path}: {e}")
        except (ValidationError, TypeError, ValueError) as e:
            logger.error(f"❌ Invalid transcript at {path}: {e}")
        except OSError as e:
            logger.error(f"❌ Could not read {path}: {e}")
        return None

    async def load(self, conversation_id: str) -> list[ConversationMessage]:
        """Messages from disk, or the in-memory buffer if nothing was saved yet."""
        path = self._path(conversation_id)
        if not path.exists():
            return await super().load(conversation_id)
        transcript = self._read(path)
        if transcript is None:
            return []
        messages = [
            ConversationMessage(role=m.role, content=m.content, timestamp=m.timestamp)
            for m in transcript.messages
        ]
        self._messages[conversation_id] = list(messages)
        return messages

    async def list(self) -> list[ConversationSummary]:
        summaries = {s.id: s for s in await super().list()}
        if self.directory.exists():
            for path in sorted(self.directory.glob("*.yaml")):
                transcript = self._read(path)
                if transcript is None or transcript.id in summaries or not transcript.messages:
                    continue
                summaries[transcript.id] = ConversationSummary(
                    id=transcript.id,
                    last_activity=transcript.messages[-1].timestamp,
                    message_count=len(transcript.messages),
                )
        return sorted(summaries.values(), key=lambda s: s.last_activity, reverse=True)
