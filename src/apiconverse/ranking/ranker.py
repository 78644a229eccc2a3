"""Candidate ranker: scores every catalog tool against an utterance.

Four signals, each in [0, 1], are blended into one total:

    0.5 * semantic + 0.25 * intent + 0.15 * keyword + 0.10 * path

Candidates at or below the drop threshold are discarded, the rest are
sorted by total (ties by tool name) and the top few may be handed to the
LLM provider for a final pick. Provider failures only ever degrade a signal
or skip the provider step; ranking itself never raises for them.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

from src.utils.logger import get_logger

from ..extraction.sanitize import validate_extracted
from ..models import Tool
from ..providers.base import EmbeddingProvider, LLMProvider, VectorStore, parse_json_object
from ..scheduler import Clock, PeriodicTask
from ..settings import ConverseSettings
from .assembler import render_candidates
from .intent import IntentClassifier, KeywordIntentClassifier, intent_score
from .keyword import KeywordIndex
from .models import MatchResult, ScoredTool, SignalBreakdown
from .query_cache import QueryEmbeddingCache
from .text import cosine, normalize_query, stem, tokenize

logger = get_logger("CandidateRanker")

SEMANTIC_WEIGHT = 0.5
INTENT_WEIGHT = 0.25
KEYWORD_WEIGHT = 0.15
PATH_WEIGHT = 0.10


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _is_indexable(tool: Tool) -> bool:
    return bool(tool.name and tool.name.strip() and tool.endpoint.path and tool.endpoint.method)


def embedding_text(tool: Tool, max_chars: int = 4096) -> str:
    """Serialise the parts of a tool that describe what it does."""
    properties = tool.input_schema.model_dump(mode="json", exclude_none=True).get("properties", {})
    parts = [
        tool.name,
        tool.description,
        f"{tool.endpoint.method} {tool.endpoint.path}",
        json.dumps(properties, sort_keys=True),
    ]
    if tool.annotations.tags:
        parts.append(" ".join(tool.annotations.tags))
    return "\n".join(p for p in parts if p)[:max_chars]


def path_score(tool: Tool, query_tokens: list[str]) -> float:
    """Fraction of literal path segments mentioned in the query."""
    available = set(query_tokens) | {stem(t) for t in query_tokens}
    matched = 0
    total = 0
    for segment in tool.endpoint.path.split("/"):
        if not segment or (segment.startswith("{") and segment.endswith("}")):
            continue
        segment_tokens = tokenize(segment)
        if not segment_tokens:
            continue
        total += 1
        lowered = segment.lower()
        if lowered in available or stem(lowered) in available:
            matched += 1
        elif all(t in available or stem(t) in available for t in segment_tokens):
            matched += 1
    return matched / total if total else 0.0


def build_selection_prompt(query: str, candidates: list[ScoredTool]) -> str:
    return f"""You select the API operation that fulfils a user request.

User request: "{query}"

Candidate operations, most likely first:
{render_candidates(candidates)}

Pick exactly one candidate by its name and fill in any parameters the request
states explicitly, using the exact parameter names listed above.
Return ONLY a JSON object of the form:
{{"tool": "<candidate name>", "parameters": {{}}}}"""


class CandidateRanker:
    """Ranks catalog tools for an utterance and picks the best match."""

    def __init__(
        self,
        embedder: Optional[EmbeddingProvider] = None,
        llm: Optional[LLMProvider] = None,
        vector_store: Optional[VectorStore] = None,
        settings: Optional[ConverseSettings] = None,
        clock: Optional[Clock] = None,
        intent_classifier: Optional[IntentClassifier] = None,
    ) -> None:
        self.settings = settings or ConverseSettings()
        self.embedder = embedder
        self.llm = llm
        self.vector_store = vector_store
        self.intent_classifier = intent_classifier or KeywordIntentClassifier()
        self.cache = QueryEmbeddingCache(
            max_size=self.settings.cache_max_size,
            ttl_seconds=self.settings.cache_ttl,
            clock=clock,
        )
        self.keyword_index = KeywordIndex()
        self.embedding_calls = 0

        self._tools: dict[str, Tool] = {}
        self._hashes: dict[str, str] = {}  # tool name -> content hash
        self._embeddings: dict[str, list[float]] = {}  # content hash -> vector

        self._sweep_task = PeriodicTask(
            "query-cache-sweep", self.settings.cache_sweep_interval, self._sweep_cache
        )

    @property
    def tools(self) -> list[Tool]:
        return list(self._tools.values())

    def has_embedding(self, tool_name: str) -> bool:
        content_hash = self._hashes.get(tool_name)
        return content_hash is not None and content_hash in self._embeddings

    # ------------------------------------------------------------------
    # Index maintenance
    # ------------------------------------------------------------------

    async def _embed(self, text: str) -> Optional[list[float]]:
        if self.embedder is None:
            return None
        self.embedding_calls += 1
        try:
            vector = await self.embedder.embed(text)
        except Exception as e:
            logger.warning(f"⚠️ Embedding failed, semantic signal unavailable: {e}")
            return None
        return list(vector) if vector else None

    async def _upsert(self, tool: Tool, vector: list[float]) -> None:
        if self.vector_store is None:
            return
        try:
            await self.vector_store.upsert(
                tool.name,
                vector,
                {"method": tool.method, "path": tool.endpoint.path, "hash": tool.content_hash()},
                embedding_text(tool, self.settings.max_input_chars),
            )
        except Exception as e:
            logger.warning(f"⚠️ Vector store upsert failed for '{tool.name}': {e}")

    async def _delete(self, tool_name: str) -> None:
        if self.vector_store is None:
            return
        try:
            await self.vector_store.delete(tool_name)
        except Exception as e:
            logger.warning(f"⚠️ Vector store delete failed for '{tool_name}': {e}")

    def _valid_tools(self, tools: list[Tool]) -> list[Tool]:
        valid: dict[str, Tool] = {}
        for tool in tools:
            if not _is_indexable(tool):
                logger.warning(f"⚠️ Skipping tool without name, method or path: {tool!r}")
                continue
            if tool.name in valid:
                logger.warning(f"⚠️ Duplicate tool name '{tool.name}', keeping the first")
                continue
            valid[tool.name] = tool
        return list(valid.values())

    async def initialize(self, tools: list[Tool]) -> None:
        """Index a full tool list. Embeddings of unchanged tools are reused."""
        valid = self._valid_tools(tools)
        pending = [t for t in valid if t.content_hash() not in self._embeddings]

        if self.embedder is not None and pending:
            vectors = await asyncio.gather(
                *(self._embed(embedding_text(t, self.settings.max_input_chars)) for t in pending)
            )
            for tool, vector in zip(pending, vectors):
                if vector:
                    self._embeddings[tool.content_hash()] = vector
                    await self._upsert(tool, vector)

        removed = set(self._tools) - {t.name for t in valid}
        for name in removed:
            await self._delete(name)

        self._tools = {t.name: t for t in valid}
        self._hashes = {t.name: t.content_hash() for t in valid}
        live = set(self._hashes.values())
        self._embeddings = {h: v for h, v in self._embeddings.items() if h in live}
        self.keyword_index.rebuild(valid)

        embedded = sum(1 for name in self._tools if self.has_embedding(name))
        logger.info(f"✅ Indexed {len(self._tools)} tools ({embedded} embedded)")

    async def refresh(self, tools: list[Tool]) -> bool:
        """Re-index only when the catalog changed. Returns True if it did."""
        current = {t.name: t.content_hash() for t in self._valid_tools(tools)}
        if current == self._hashes:
            return False
        logger.debug(f"🔄 Catalog changed, re-indexing {len(current)} tools")
        await self.initialize(tools)
        return True

    async def add_tool(self, tool: Tool) -> bool:
        """Index or replace a single tool."""
        if not _is_indexable(tool):
            logger.warning(f"⚠️ Skipping tool without name, method or path: {tool!r}")
            return False
        content_hash = tool.content_hash()
        if content_hash not in self._embeddings:
            vector = await self._embed(embedding_text(tool, self.settings.max_input_chars))
            if vector:
                self._embeddings[content_hash] = vector
                await self._upsert(tool, vector)
        self._tools[tool.name] = tool
        self._hashes[tool.name] = content_hash
        self.keyword_index.add(tool)
        return True

    async def remove_tool(self, tool_name: str) -> bool:
        if tool_name not in self._tools:
            return False
        del self._tools[tool_name]
        content_hash = self._hashes.pop(tool_name)
        if content_hash not in self._hashes.values():
            self._embeddings.pop(content_hash, None)
        self.keyword_index.remove(tool_name)
        await self._delete(tool_name)
        return True

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    async def _query_embedding(self, normalized: str) -> Optional[list[float]]:
        if self.embedder is None or not normalized:
            return None
        cached = self.cache.get(normalized)
        if cached is not None:
            return cached
        vector = await self._embed(normalized)
        if vector:
            self.cache.put(normalized, vector)
        return vector

    async def _semantic_scores(self, query_vector: Optional[list[float]]) -> dict[str, float]:
        if not query_vector:
            return {}
        if self.vector_store is not None:
            try:
                neighbors = await self.vector_store.query(query_vector, len(self._tools))
                return {n.id: _clamp(n.similarity) for n in neighbors if n.id in self._tools}
            except Exception as e:
                logger.warning(f"⚠️ Vector store query failed, using local similarity: {e}")
        return {
            name: cosine(query_vector, self._embeddings.get(content_hash))
            for name, content_hash in self._hashes.items()
        }

    async def score_tools(self, query: str) -> list[ScoredTool]:
        """Score every indexed tool. Sorted by total descending, then name."""
        normalized = normalize_query(query)
        if not normalized or not self._tools:
            return []
        query_tokens = tokenize(normalized)
        operation = self.intent_classifier.detect_operation(normalized)
        semantic = await self._semantic_scores(await self._query_embedding(normalized))

        scored = []
        for name, tool in self._tools.items():
            details = SignalBreakdown(
                semantic=semantic.get(name, 0.0),
                keyword=self.keyword_index.score(query_tokens, name),
                intent=intent_score(operation, tool.method),
                path=path_score(tool, query_tokens),
            )
            total = _clamp(
                SEMANTIC_WEIGHT * details.semantic
                + INTENT_WEIGHT * details.intent
                + KEYWORD_WEIGHT * details.keyword
                + PATH_WEIGHT * details.path
            )
            scored.append(ScoredTool(tool=tool, score=total, details=details))

        scored.sort(key=lambda s: (-s.score, s.name))
        return scored

    async def _sync(self, tools: Optional[list[Tool]]) -> None:
        if tools is not None:
            await self.refresh(tools)

    async def _select(
        self, query: str, candidates: list[ScoredTool]
    ) -> tuple[ScoredTool, dict[str, Any], str]:
        """Let the LLM pick among candidates; fall back to the top one."""
        top = candidates[0]
        if self.llm is None or not self.settings.llm_rerank:
            return top, {}, "scoring"

        try:
            answer = await self.llm.complete(build_selection_prompt(query, candidates))
        except Exception as e:
            logger.warning(f"⚠️ Provider selection failed, using top candidate: {e}")
            return top, {}, "scoring"

        parsed = parse_json_object(answer)
        name = parsed.get("tool") or parsed.get("name")
        by_name = {c.name: c for c in candidates}
        if not isinstance(name, str) or name not in by_name:
            logger.warning(f"⚠️ Provider named no known candidate ({name!r}), using top candidate")
            return top, {}, "scoring"

        parameters = parsed.get("parameters") or parsed.get("arguments") or {}
        if not isinstance(parameters, dict):
            parameters = {}
        selected = by_name[name]
        return selected, validate_extracted(parameters, selected.tool), "provider"

    async def find_best_match(self, query: str, tools: Optional[list[Tool]] = None) -> Optional[MatchResult]:
        """Best tool for the query, or None when no candidate clears the threshold."""
        await self._sync(tools)
        scored = await self.score_tools(query)
        candidates = [s for s in scored if s.score > self.settings.min_candidate_score]
        candidates = candidates[: self.settings.max_candidates]
        if not candidates:
            logger.info(f"🔍 No tool matched '{query}'")
            return None

        selected, parameters, source = await self._select(query, candidates)
        d = selected.details
        if source == "provider":
            reasoning = (
                f"Selected '{selected.name}' via the language model from "
                f"{len(candidates)} candidates (score {selected.score:.2f})"
            )
        else:
            reasoning = (
                f"Matched '{selected.name}' by scoring: semantic {d.semantic:.2f}, "
                f"intent {d.intent:.2f}, keyword {d.keyword:.2f}, path {d.path:.2f}"
            )

        alternatives = [c.tool for c in candidates if c.name != selected.name]
        logger.info(f"🎯 Matched '{query}' -> {selected.name} ({selected.score:.2f}, {source})")
        return MatchResult(
            tool=selected.tool,
            confidence=selected.score,
            reasoning=reasoning,
            parameters=parameters,
            alternatives=alternatives[: self.settings.max_alternatives],
            source=source,
        )

    async def find_similar_tools(
        self, query: str, limit: int = 3, tools: Optional[list[Tool]] = None
    ) -> list[ScoredTool]:
        """Top `limit` tools by score, without threshold or provider step."""
        await self._sync(tools)
        return (await self.score_tools(query))[: max(limit, 0)]

    # ------------------------------------------------------------------
    # Cache and lifecycle
    # ------------------------------------------------------------------

    def cache_stats(self) -> dict[str, float]:
        stats = self.cache.stats()
        stats["embedding_calls"] = self.embedding_calls
        return stats

    def clear_cache(self) -> None:
        self.cache.clear()

    async def _sweep_cache(self) -> None:
        self.cache.sweep()

    def start(self) -> None:
        self._sweep_task.start()

    async def shutdown(self) -> None:
        """Stop the cache sweep and close the providers this ranker was given."""
        await self._sweep_task.stop()
        seen: set[int] = set()
        for provider in (self.embedder, self.llm, self.vector_store):
            if provider is None or id(provider) in seen:
                continue
            seen.add(id(provider))
            aclose = getattr(provider, "aclose", None)
            if aclose is None:
                continue
            try:
                await aclose()
            except Exception as e:
                logger.warning(f"⚠️ Error closing {type(provider).__name__}: {e}")
