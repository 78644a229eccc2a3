"""Tests for CandidateRanker scoring, thresholds and provider selection."""
import pytest
from unittest.mock import AsyncMock
from src.apiconverse.providers.memory_store import InMemoryVectorStore
from src.apiconverse.ranking.models import ScoredTool, SignalBreakdown
from src.apiconverse.ranking.ranker import CandidateRanker, embedding_text, path_score
from src.apiconverse.ranking.text import tokenize
from src.apiconverse.settings import ConverseSettings
from tests.utils import (
    BagOfWordsEmbedder,
    FailingEmbedder,
    ScriptedLLM,
    make_tool,
    petstore_tools,
)


async def _ranker(**kwargs) -> CandidateRanker:
    kwargs.setdefault("embedder", BagOfWordsEmbedder())
    ranker = CandidateRanker(**kwargs)
    await ranker.initialize(petstore_tools())
    return ranker


class TestPathScore:
    def test_literal_segments_in_query(self):
        tool = make_tool("get_order_by_id", "GET", "/store/order/{orderId}")
        assert path_score(tool, tokenize("show store order 3")) == 1.0
        assert path_score(tool, tokenize("show order 3")) == 0.5

    def test_camel_case_segment(self):
        tool = make_tool("find_pets_by_status", "GET", "/pet/findByStatus")
        assert path_score(tool, tokenize("find pets by status")) == 1.0

    def test_no_literal_segments(self):
        tool = make_tool("root", "GET", "/{id}")
        assert path_score(tool, tokenize("anything at all")) == 0.0


class TestInitialize:
    @pytest.mark.asyncio
    async def test_embeds_every_tool_once(self):
        embedder = BagOfWordsEmbedder()
        ranker = await _ranker(embedder=embedder)
        assert len(embedder.calls) == 5
        assert all(ranker.has_embedding(t.name) for t in petstore_tools())

    @pytest.mark.asyncio
    async def test_unchanged_tools_reuse_embeddings(self):
        embedder = BagOfWordsEmbedder()
        ranker = await _ranker(embedder=embedder)
        changed = await ranker.refresh(petstore_tools())
        assert changed is False
        tools = petstore_tools()
        tools[0] = make_tool("add_pet", "POST", "/pet", "Create a pet record", required=["name"])
        assert await ranker.refresh(tools) is True
        # only the edited tool was embedded again
        assert len(embedder.calls) == 6

    @pytest.mark.asyncio
    async def test_embedding_text_is_truncated(self):
        tool = make_tool("long", "GET", "/long", "x" * 10_000)
        assert len(embedding_text(tool, 4096)) == 4096

    @pytest.mark.asyncio
    async def test_failed_embedding_for_one_tool_does_not_abort(self):
        ranker = await _ranker(embedder=BagOfWordsEmbedder(fail_on="Delete a pet"))
        assert not ranker.has_embedding("delete_pet")
        assert ranker.has_embedding("add_pet")
        scored = await ranker.find_similar_tools("delete the pet", limit=5)
        delete = next(s for s in scored if s.name == "delete_pet")
        assert delete.details.semantic == 0.0
        assert delete.details.intent == 1.0

    @pytest.mark.asyncio
    async def test_vector_store_receives_upserts(self):
        store = InMemoryVectorStore()
        ranker = await _ranker(vector_store=store)
        assert len(store) == 5
        await ranker.remove_tool("delete_pet")
        assert len(store) == 4
        assert [n.id for n in await store.get({"method": "POST"})] == ["add_pet"]


class TestScoring:
    @pytest.mark.asyncio
    async def test_scores_are_in_unit_range(self):
        ranker = await _ranker()
        for query in ["add a pet", "delete pet 5", "what's the weather", "find pets by status sold"]:
            for scored in await ranker.find_similar_tools(query, limit=10):
                assert 0.0 <= scored.score <= 1.0
                for signal in (scored.details.semantic, scored.details.keyword,
                               scored.details.intent, scored.details.path):
                    assert 0.0 <= signal <= 1.0

    @pytest.mark.asyncio
    async def test_add_a_pet_matches_post_pet(self):
        ranker = await _ranker()
        match = await ranker.find_best_match("add a pet")
        assert match is not None
        assert match.tool.name == "add_pet"
        assert match.source == "scoring"
        assert match.confidence > 0.55
        assert "scoring" in match.reasoning
        assert len(match.alternatives) <= 3
        assert all(t.name != "add_pet" for t in match.alternatives)

    @pytest.mark.asyncio
    async def test_delete_intent_prefers_delete_method(self):
        ranker = await _ranker()
        match = await ranker.find_best_match("please remove pet 12 from the store")
        assert match.tool.name == "delete_pet"

    @pytest.mark.asyncio
    async def test_no_match_returns_none(self):
        ranker = CandidateRanker()
        await ranker.initialize([make_tool("get_weather", "GET", "/weather", "Current weather")])
        assert await ranker.find_best_match("zzz qqq") is None
        assert await ranker.find_best_match("   ") is None

    @pytest.mark.asyncio
    async def test_ties_break_by_tool_name(self):
        ranker = CandidateRanker()
        await ranker.initialize([
            make_tool("beta_report", "GET", "/reports", "Download the monthly report"),
            make_tool("alpha_report", "GET", "/reports", "Download the monthly report"),
        ])
        scored = await ranker.find_similar_tools("download monthly report", limit=2)
        assert scored[0].score == scored[1].score
        assert [s.name for s in scored] == ["alpha_report", "beta_report"]

    @pytest.mark.asyncio
    async def test_threshold_boundary(self):
        ranker = CandidateRanker()
        await ranker.initialize(petstore_tools())
        tools = {t.name: t for t in petstore_tools()}
        ranker.score_tools = AsyncMock(return_value=[
            ScoredTool(tool=tools["add_pet"], score=0.10001, details=SignalBreakdown()),
            ScoredTool(tool=tools["delete_pet"], score=0.10000, details=SignalBreakdown()),
        ])
        match = await ranker.find_best_match("anything")
        assert match.tool.name == "add_pet"
        assert match.alternatives == []

        ranker.score_tools = AsyncMock(return_value=[
            ScoredTool(tool=tools["delete_pet"], score=0.1, details=SignalBreakdown()),
        ])
        assert await ranker.find_best_match("anything") is None

    @pytest.mark.asyncio
    async def test_keeps_at_most_five_candidates(self):
        llm = ScriptedLLM('{"tool": "nope"}')
        ranker = CandidateRanker(llm=llm)
        await ranker.initialize([
            make_tool(f"list_items_{i}", "GET", "/items", "List items") for i in range(8)
        ])
        await ranker.find_best_match("list items")
        prompt = llm.prompts[0]
        assert prompt.count("- name: list_items_") == 5

    @pytest.mark.asyncio
    async def test_deterministic_with_cold_cache(self):
        results = []
        for _ in range(2):
            ranker = await _ranker(llm=ScriptedLLM('{"tool": "add_pet", "parameters": {}}'))
            similar = await ranker.find_similar_tools("add a new pet called Rex", limit=5)
            match = await ranker.find_best_match("add a new pet called Rex")
            results.append(([(s.name, s.score) for s in similar], match.tool.name, match.confidence))
        assert results[0] == results[1]

    @pytest.mark.asyncio
    async def test_cache_does_not_change_results(self):
        ranker = await _ranker()
        cold = [(s.name, s.score) for s in await ranker.find_similar_tools("find pets by status", 5)]
        warm = [(s.name, s.score) for s in await ranker.find_similar_tools("find pets by status", 5)]
        assert cold == warm
        stats = ranker.cache_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    @pytest.mark.asyncio
    async def test_all_embeddings_failing_degrades_to_other_signals(self):
        embedder = FailingEmbedder()
        ranker = CandidateRanker(embedder=embedder)
        await ranker.initialize(petstore_tools())
        match = await ranker.find_best_match("delete pet 4")
        assert match is not None
        assert match.tool.name == "delete_pet"
        scored = await ranker.find_similar_tools("delete pet 4", limit=5)
        assert all(s.details.semantic == 0.0 for s in scored)


class TestProviderSelection:
    @pytest.mark.asyncio
    async def test_provider_pick_with_parameters(self):
        llm = ScriptedLLM('```json\n{"tool": "get_pet_by_id", "parameters": {"petId": 5, "x": "N/A"}}\n```')
        ranker = await _ranker(llm=llm)
        scored = {s.name: s.score for s in await ranker.find_similar_tools("show pet 5", limit=5)}
        match = await ranker.find_best_match("show pet 5")
        assert match.tool.name == "get_pet_by_id"
        assert match.source == "provider"
        assert match.parameters == {"petId": 5}
        assert match.confidence == scored["get_pet_by_id"]
        assert "language model" in match.reasoning
        assert "show pet 5" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_provider_parameters_are_validated_against_the_pick(self):
        llm = ScriptedLLM('{"tool": "add_pet", "parameters": {"name": "Rex", "bogus": "x", "status": "SOLD"}}')
        ranker = await _ranker(llm=llm)
        match = await ranker.find_best_match("add a pet")
        assert match.source == "provider"
        assert match.parameters == {"name": "Rex", "status": "sold"}

    @pytest.mark.asyncio
    async def test_unknown_tool_falls_back_to_top_candidate(self):
        ranker = await _ranker(llm=ScriptedLLM('{"tool": "launch_rocket"}'))
        match = await ranker.find_best_match("add a pet")
        assert match.tool.name == "add_pet"
        assert match.source == "scoring"
        assert match.parameters == {}

    @pytest.mark.asyncio
    async def test_provider_error_falls_back(self):
        ranker = await _ranker(llm=ScriptedLLM(RuntimeError("rate limited")))
        match = await ranker.find_best_match("add a pet")
        assert match.tool.name == "add_pet"
        assert match.source == "scoring"

    @pytest.mark.asyncio
    async def test_empty_answer_falls_back(self):
        ranker = await _ranker(llm=ScriptedLLM(""))
        match = await ranker.find_best_match("add a pet")
        assert match.tool.name == "add_pet"

    @pytest.mark.asyncio
    async def test_rerank_disabled_skips_provider(self):
        llm = ScriptedLLM('{"tool": "get_pet_by_id"}')
        ranker = await _ranker(llm=llm, settings=ConverseSettings(llm_rerank=False))
        await ranker.find_best_match("add a pet")
        assert llm.prompts == []


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_add_tool_makes_it_rankable(self):
        ranker = await _ranker()
        await ranker.add_tool(make_tool("place_order", "POST", "/store/order", "Place an order for a pet"))
        scored = await ranker.find_similar_tools("place an order", limit=1)
        assert scored[0].name == "place_order"

    @pytest.mark.asyncio
    async def test_tools_argument_triggers_reindex(self):
        ranker = await _ranker()
        extra = make_tool("get_inventory", "GET", "/store/inventory", "Returns pet inventories")
        scored = await ranker.find_similar_tools("inventory", limit=1, tools=petstore_tools() + [extra])
        assert scored[0].name == "get_inventory"

    @pytest.mark.asyncio
    async def test_clear_cache(self):
        ranker = await _ranker()
        await ranker.find_similar_tools("add a pet")
        assert ranker.cache_stats()["size"] == 1
        ranker.clear_cache()
        assert ranker.cache_stats()["size"] == 0

    @pytest.mark.asyncio
    async def test_shutdown_closes_providers_once(self):
        llm = ScriptedLLM("{}")
        ranker = CandidateRanker(llm=llm)
        ranker.start()
        assert ranker._sweep_task.running
        await ranker.shutdown()
        assert not ranker._sweep_task.running
        assert llm.closed
