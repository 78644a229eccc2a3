from __future__ import annotations

from typing import Any, Optional

import httpx

from src.utils.logger import get_logger

from ..errors import ExecutionError
from ..models import ExecutionResult, RequestDescription
from .base import Executor

logger = get_logger("HttpxExecutor")


def _decode_body(response: httpx.Response) -> Any:
    """JSON when the payload parses, text otherwise, None when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpxExecutor(Executor):
    """Sends each request once through a shared httpx.AsyncClient."""

    def __init__(self, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def execute(self, request: RequestDescription) -> ExecutionResult:
        content = request.body_text()
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=content.encode("utf-8") if content is not None else None,
            )
        except httpx.HTTPError as e:
            logger.error(f"❌ {request.method} {request.url} failed: {e}")
            raise ExecutionError(f"{type(e).__name__}: {e}") from e

        logger.info(f"📡 {request.method} {request.url} -> {response.status_code}")
        return ExecutionResult(status=response.status_code, body=_decode_body(response))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
