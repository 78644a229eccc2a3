"""Shared fakes and tool builders for the test suite."""

import zlib
from typing import Any, Callable, Optional, Union

from src.apiconverse.errors import ProviderUnavailable
from src.apiconverse.models import ExecutionResult, RequestDescription, Tool
from src.apiconverse.providers.base import EmbeddingProvider, Executor, LLMProvider
from src.apiconverse.ranking.text import stem, tokenize

DIMENSIONS = 64


def make_tool(
    name: str,
    method: str,
    path: str,
    description: str = "",
    properties: Optional[dict[str, Any]] = None,
    required: Optional[list[str]] = None,
    base_url: str = "https://petstore.example.com/v2",
) -> Tool:
    return Tool.model_validate({
        "name": name,
        "description": description,
        "inputSchema": {
            "type": "object",
            "properties": properties or {},
            "required": required or [],
        },
        "endpoint": {"method": method, "path": path, "baseUrl": base_url},
    })


def petstore_tools() -> list[Tool]:
    """A small slice of the classic petstore catalog."""
    return [
        make_tool(
            "add_pet", "POST", "/pet", "Add a new pet to the store",
            properties={
                "name": {"type": "string", "description": "Name of the pet", "examples": ["doggie"]},
                "status": {
                    "type": "string",
                    "description": "Pet status in the store",
                    "enum": ["available", "pending", "sold"],
                },
                "tags": {"type": "array", "items": {"type": "string"}, "description": "Tags for the pet"},
                "category": {"type": "object", "description": "Category of the pet"},
            },
            required=["name"],
        ),
        make_tool(
            "get_pet_by_id", "GET", "/pet/{petId}", "Find a pet by its ID",
            properties={"petId": {"type": "integer", "description": "ID of the pet to return"}},
        ),
        make_tool(
            "delete_pet", "DELETE", "/pet/{petId}", "Delete a pet from the store",
            properties={"petId": {"type": "integer", "description": "Pet id to delete"}},
            required=["petId"],
        ),
        make_tool(
            "find_pets_by_status", "GET", "/pet/findByStatus", "Find pets by status",
            properties={
                "status": {
                    "type": "string",
                    "description": "Status values to filter by",
                    "enum": ["available", "pending", "sold"],
                },
            },
            required=["status"],
        ),
        make_tool(
            "get_order_by_id", "GET", "/store/order/{orderId}", "Find a purchase order by ID",
            properties={"orderId": {"type": "integer", "description": "ID of the order"}},
        ),
    ]


class BagOfWordsEmbedder(EmbeddingProvider):
    """Deterministic embedding: stemmed token counts hashed into fixed buckets."""

    def __init__(self, fail_on: Optional[str] = None) -> None:
        self.calls: list[str] = []
        self.fail_on = fail_on

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail_on and self.fail_on in text:
            raise ProviderUnavailable(f"refusing to embed text containing {self.fail_on!r}")
        vector = [0.0] * DIMENSIONS
        for token in tokenize(text):
            vector[zlib.crc32(stem(token).encode()) % DIMENSIONS] += 1.0
        return vector


class FailingEmbedder(EmbeddingProvider):
    def __init__(self) -> None:
        self.calls = 0

    async def embed(self, text: str) -> list[float]:
        self.calls += 1
        raise ProviderUnavailable("embedding service down")


class ScriptedLLM(LLMProvider):
    """Returns canned answers in order (the last one repeats) and records prompts."""

    def __init__(self, *answers: Union[str, Exception, Callable[[str], str]]) -> None:
        self.answers = list(answers) or [""]
        self.prompts: list[str] = []
        self.closed = False

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        answer = self.answers[min(len(self.prompts), len(self.answers)) - 1]
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(prompt)
        return answer

    async def aclose(self) -> None:
        self.closed = True


class RecordingExecutor(Executor):
    """Records every request and returns a fixed result (or raises)."""

    def __init__(self, result: Optional[ExecutionResult] = None, error: Optional[Exception] = None) -> None:
        self.result = result or ExecutionResult(status=200, body={"id": 1, "name": "Rex"})
        self.error = error
        self.requests: list[RequestDescription] = []
        self.closed = False

    async def execute(self, request: RequestDescription) -> ExecutionResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result

    async def aclose(self) -> None:
        self.closed = True
