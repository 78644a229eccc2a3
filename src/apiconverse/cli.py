from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Callable, Optional

from src.apiconverse.dialogue import DialogueEngine
from src.apiconverse.errors import ConversationNotFound
from src.apiconverse.extraction.extractor import ParameterExtractor
from src.apiconverse.providers.catalog import YamlToolCatalog, load_catalog
from src.apiconverse.providers.conversation_log import InMemoryConversationLog, YamlConversationLog
from src.apiconverse.providers.http_executor import HttpxExecutor
from src.apiconverse.providers.memory_store import InMemoryVectorStore
from src.apiconverse.providers.openai_provider import OpenAIProvider
from src.apiconverse.ranking.ranker import CandidateRanker
from src.apiconverse.settings import ConverseSettings
from src.apiconverse.synthesis import render_curl, synthesize_request
from src.apiconverse.utils.audit import AuditLogger
from src.apiconverse.utils.config import AuditConfig
from src.utils.logger import get_logger

logger = get_logger("cli")
DEFAULT_CATALOG = Path.home() / ".config" / "api-converse" / "tools.yaml"
EXIT_WORDS = {"exit", "quit", ":q"}


def resolve_catalog_path(settings: ConverseSettings, catalog: Optional[Path]) -> Path:
    if catalog is not None:
        return Path(catalog)
    if settings.catalog_path:
        return Path(settings.catalog_path)
    return DEFAULT_CATALOG


def parse_assignment(item: str) -> tuple[str, Any]:
    """key=value, where value is JSON when it parses (5, true, ["a"]) else a string."""
    if "=" not in item:
        raise ValueError(f"Expected key=value, got '{item}'")
    key, raw = item.split("=", 1)
    try:
        value = json.loads(raw)
    except ValueError:
        value = raw
    return key.strip(), value


def build_ranker(settings: ConverseSettings) -> CandidateRanker:
    provider = OpenAIProvider(settings)
    if not provider.available:
        logger.warning("⚠️ No OpenAI API key configured, ranking with keyword signals only")
        return CandidateRanker(settings=settings)
    return CandidateRanker(
        embedder=provider,
        llm=provider if settings.llm_rerank else None,
        vector_store=InMemoryVectorStore(),
        settings=settings,
    )


def build_engine(settings: ConverseSettings, catalog: Optional[Path] = None) -> DialogueEngine:
    """Wire the dialogue engine from settings."""
    ranker = build_ranker(settings)
    conversation_log = (
        YamlConversationLog(settings.conversation_dir)
        if settings.conversation_dir
        else InMemoryConversationLog()
    )
    audit_config = AuditConfig.from_settings(settings)
    audit_logger = AuditLogger(config=audit_config) if audit_config else None
    return DialogueEngine(
        catalog=YamlToolCatalog(resolve_catalog_path(settings, catalog)),
        ranker=ranker,
        extractor=ParameterExtractor(ranker.llm),
        executor=HttpxExecutor(timeout=settings.request_timeout),
        conversation_log=conversation_log,
        settings=settings,
        audit_logger=audit_logger,
    )


def cmd_tools(catalog_path: Path = DEFAULT_CATALOG) -> str:
    tools = load_catalog(catalog_path)
    if not tools:
        return f"No tools found in {catalog_path}"

    lines = [f"{len(tools)} tools in {catalog_path}"]
    for tool in sorted(tools, key=lambda t: t.name):
        required = ", ".join(tool.input_schema.required)
        lines.append(f"  {tool.endpoint.method:<7} {tool.endpoint.path:<30} {tool.name}")
        if required:
            lines.append(f"          required: {required}")
    return "\n".join(lines)


async def cmd_match(
    query: str,
    settings: Optional[ConverseSettings] = None,
    catalog_path: Optional[Path] = None,
    limit: int = 5,
    ranker: Optional[CandidateRanker] = None,
) -> str:
    """Diagnostic table of the top-scoring tools for a query."""
    settings = settings or ConverseSettings()
    path = resolve_catalog_path(settings, catalog_path)
    tools = load_catalog(path)
    if not tools:
        return f"No tools found in {path}"

    ranker = ranker or build_ranker(settings)
    try:
        scored = await ranker.find_similar_tools(query, limit=limit, tools=tools)
    finally:
        await ranker.shutdown()

    lines = [
        f"Top {len(scored)} tools for: {query}",
        f"{'score':>6}  {'sem':>5} {'int':>5} {'kw':>5} {'path':>5}  tool",
    ]
    for s in scored:
        d = s.details
        lines.append(
            f"{s.score:6.3f}  {d.semantic:5.2f} {d.intent:5.2f} {d.keyword:5.2f} {d.path:5.2f}  "
            f"{s.name} ({s.tool.endpoint.method} {s.tool.endpoint.path})"
        )
    return "\n".join(lines)


def cmd_request(
    tool_name: str,
    assignments: list[str],
    catalog_path: Path = DEFAULT_CATALOG,
) -> str:
    """The curl command a tool call would send, without sending it."""
    tools = {t.name: t for t in load_catalog(catalog_path)}
    tool = tools.get(tool_name)
    if tool is None:
        return f"Unknown tool '{tool_name}'"
    try:
        parameters = dict(parse_assignment(a) for a in assignments)
    except ValueError as e:
        return str(e)
    return render_curl(synthesize_request(tool, parameters))


async def run_chat(
    engine: DialogueEngine,
    read: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> None:
    """Interactive loop until an exit word or EOF."""
    engine.start()
    conversation_id = await engine.start_conversation()
    write("Type what you want to do (or 'exit').")
    try:
        while True:
            try:
                text = await asyncio.to_thread(read, "> ")
            except EOFError:
                break
            if text.strip().lower() in EXIT_WORDS:
                break
            if not text.strip():
                continue
            try:
                response = await engine.process_message(conversation_id, text)
            except ConversationNotFound:
                write("Your conversation expired after inactivity, starting a new one.")
                conversation_id = await engine.start_conversation()
                response = await engine.process_message(conversation_id, text)
            write(response.message)
    finally:
        try:
            await engine.save_conversation(conversation_id)
        except OSError as e:
            logger.error(f"❌ Could not save conversation {conversation_id}: {e}")
        await engine.shutdown()
