"""Embedding and completion provider backed by the OpenAI API."""

from __future__ import annotations

from typing import Any, Optional

from openai import AsyncOpenAI

from src.utils.logger import get_logger

from ..errors import ProviderUnavailable
from ..settings import ConverseSettings
from .base import EmbeddingProvider, LLMProvider, try_parse_json_object

logger = get_logger("OpenAIProvider")


class OpenAIProvider(EmbeddingProvider, LLMProvider):
    """One AsyncOpenAI client serving both embeddings and chat completions.

    Without an API key the provider stays constructible but every call
    raises ProviderUnavailable, so callers fall back to their degraded path.
    """

    def __init__(
        self,
        settings: Optional[ConverseSettings] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.settings = settings or ConverseSettings()
        self._client = client
        if self._client is None and self.settings.openai_api_key:
            self._client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                base_url=self.settings.openai_base_url,
            )

    @property
    def available(self) -> bool:
        return self._client is not None

    def _require_client(self) -> AsyncOpenAI:
        if self._client is None:
            raise ProviderUnavailable("No OpenAI API key configured")
        return self._client

    async def embed(self, text: str) -> list[float]:
        client = self._require_client()
        response = await client.embeddings.create(
            input=[text[: self.settings.max_input_chars]],
            model=self.settings.embedding_model,
        )
        if not response.data:
            raise ProviderUnavailable("Embedding response contained no data")
        return list(response.data[0].embedding)

    async def complete(self, prompt: str) -> str:
        client = self._require_client()
        response = await client.chat.completions.create(
            model=self.settings.chat_model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def complete_json(self, prompt: str) -> dict[str, Any]:
        """Ask for a JSON object response, then parse it like any other answer."""
        client = self._require_client()
        response = await client.chat.completions.create(
            model=self.settings.chat_model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content if response.choices else ""
        parsed = try_parse_json_object(content)
        if parsed is None:
            raise ProviderUnavailable("Provider did not return a JSON object")
        return parsed

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            logger.debug("🔌 Closed OpenAI client")
