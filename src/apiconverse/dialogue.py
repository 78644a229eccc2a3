"""Per-conversation dialogue controller.

Sequences ranking, parameter extraction, clarification, cancellation and
execution. Each conversation moves through

    NEW -> AWAITING_PARAMETERS -> READY -> (execute) -> NEW

and a cancellation during collection drops straight back to NEW.

Callers must serialise process_message() per conversation id; the state
map is not locked.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional

from src.utils.logger import get_logger

from .conversation import ChatResponse, ConversationState, DialoguePhase, ToolMatch
from .errors import ConversationNotFound
from .extraction.extractor import ParameterExtractor
from .extraction.sanitize import has_placeholder_values, sanitize
from .extraction.schema import analyze_requirements
from .models import Tool
from .providers.base import ConversationLog, ConversationMessage, ConversationSummary, Executor, ToolCatalog
from .ranking.intent import IntentClassifier, KeywordIntentClassifier
from .ranking.ranker import CandidateRanker
from .responses import (
    CANCELLED_MESSAGE,
    GREETING_MESSAGE,
    build_clarification,
    execution_error_message,
    execution_message,
    no_match_message,
)
from .scheduler import Clock, MonotonicClock, PeriodicTask
from .settings import ConverseSettings
from .synthesis import synthesize_request
from .utils.audit import AuditLogger

logger = get_logger("DialogueEngine")


class DialogueEngine:
    """Turns user messages into API calls, one conversation at a time."""

    def __init__(
        self,
        catalog: ToolCatalog,
        ranker: CandidateRanker,
        extractor: ParameterExtractor,
        executor: Executor,
        conversation_log: Optional[ConversationLog] = None,
        settings: Optional[ConverseSettings] = None,
        clock: Optional[Clock] = None,
        intent_classifier: Optional[IntentClassifier] = None,
        audit_logger: Optional[AuditLogger] = None,
    ) -> None:
        self.catalog = catalog
        self.ranker = ranker
        self.extractor = extractor
        self.executor = executor
        self.conversation_log = conversation_log
        self.settings = settings or ConverseSettings()
        self.clock = clock or MonotonicClock()
        self.intent_classifier = intent_classifier or KeywordIntentClassifier()
        self.audit_logger = audit_logger

        self._states: dict[str, ConversationState] = {}
        self._cleanup_task = PeriodicTask(
            "idle-conversation-cleanup",
            self.settings.cleanup_interval,
            self._cleanup_tick,
        )

    # ------------------------------------------------------------------
    # Conversation lifecycle
    # ------------------------------------------------------------------

    async def start_conversation(self, conversation_id: Optional[str] = None) -> str:
        """Create a conversation in NEW and return its id."""
        conversation_id = conversation_id or uuid.uuid4().hex
        self._states[conversation_id] = ConversationState(
            conversation_id=conversation_id,
            last_activity=self.clock.now(),
        )
        await self._log_message(conversation_id, "assistant", GREETING_MESSAGE)
        logger.debug(f"💬 Started conversation {conversation_id}")
        return conversation_id

    def end_conversation(self, conversation_id: str) -> bool:
        return self._states.pop(conversation_id, None) is not None

    def get_state(self, conversation_id: str) -> ConversationState:
        state = self._states.get(conversation_id)
        if state is None:
            raise ConversationNotFound(conversation_id)
        return state

    def active_conversations(self) -> list[str]:
        return list(self._states)

    def cleanup_idle_conversations(self) -> list[str]:
        """Evict conversations idle for longer than the timeout. Returns their ids."""
        now = self.clock.now()
        expired = [
            cid
            for cid, state in self._states.items()
            if now - state.last_activity > self.settings.conversation_timeout
        ]
        for cid in expired:
            del self._states[cid]
        if expired:
            logger.info(f"🧹 Removed {len(expired)} idle conversation(s)")
        return expired

    async def _cleanup_tick(self) -> None:
        self.cleanup_idle_conversations()

    def start(self) -> None:
        """Start the idle sweep and the ranker's cache sweep."""
        self._cleanup_task.start()
        self.ranker.start()

    async def shutdown(self) -> None:
        """Stop background tasks and release provider and executor connections."""
        await self._cleanup_task.stop()
        await self.ranker.shutdown()
        try:
            await self.executor.aclose()
        except Exception as e:
            logger.warning(f"⚠️ Error closing executor: {e}")
        if self.audit_logger is not None:
            self.audit_logger.close()
        logger.info("✅ Dialogue engine shut down")

    # ------------------------------------------------------------------
    # Conversation log
    # ------------------------------------------------------------------

    async def _log_message(self, conversation_id: str, role: str, content: str) -> None:
        if self.conversation_log is None:
            return
        try:
            await self.conversation_log.append_message(conversation_id, role, content)
        except Exception as e:
            logger.warning(f"⚠️ Could not log message for {conversation_id}: {e}")

    async def save_conversation(self, conversation_id: str) -> None:
        if self.conversation_log is not None:
            await self.conversation_log.save(conversation_id)

    async def load_conversation(self, conversation_id: str) -> list[ConversationMessage]:
        if self.conversation_log is None:
            return []
        return await self.conversation_log.load(conversation_id)

    async def list_conversations(self) -> list[ConversationSummary]:
        if self.conversation_log is None:
            return []
        return await self.conversation_log.list()

    # ------------------------------------------------------------------
    # Turn handling
    # ------------------------------------------------------------------

    async def process_message(self, conversation_id: str, text: str) -> ChatResponse:
        """Handle one user utterance. Raises ConversationNotFound for unknown ids."""
        state = self.get_state(conversation_id)
        state.touch(self.clock.now())
        await self._log_message(conversation_id, "user", text)

        if state.phase == DialoguePhase.AWAITING_PARAMETERS and state.current_tool is not None:
            response = await self._continue_collection(state, text)
        else:
            response = await self._handle_new_request(state, text)

        await self._log_message(conversation_id, "assistant", response.message)
        return response

    async def _handle_new_request(self, state: ConversationState, text: str) -> ChatResponse:
        tools = await self._list_tools()
        if tools is None:
            # Keep the last index; a failed listing is not an empty catalog
            state.reset()
            return ChatResponse(
                conversation_id=state.conversation_id,
                message=no_match_message(self.ranker.tools),
                needs_clarification=True,
                phase=state.phase,
            )
        match = await self.ranker.find_best_match(text, tools=tools)

        if match is None or match.confidence < self.settings.min_confidence:
            if match is not None:
                logger.info(
                    f"🤔 Best match {match.tool.name} ({match.confidence:.2f}) below "
                    f"threshold {self.settings.min_confidence}"
                )
            state.reset()
            return ChatResponse(
                conversation_id=state.conversation_id,
                message=no_match_message(tools),
                needs_clarification=True,
                phase=state.phase,
            )

        extracted = await self.extractor.extract(text, match.tool)
        state.current_tool = match.tool
        state.collected_parameters = {**sanitize(match.parameters), **extracted}
        state.match_confidence = match.confidence
        logger.info(f"🎯 Conversation {state.conversation_id} -> {match.tool.name}")
        return await self._advance(state)

    async def _continue_collection(self, state: ConversationState, text: str) -> ChatResponse:
        if self.intent_classifier.is_cancellation(text):
            logger.info(f"🚫 Conversation {state.conversation_id} cancelled {state.current_tool.name}")
            state.phase = DialoguePhase.CANCELLED
            state.reset()
            return ChatResponse(
                conversation_id=state.conversation_id,
                message=CANCELLED_MESSAGE,
                phase=state.phase,
            )

        if self.intent_classifier.is_execution(text) and not state.missing_required_fields:
            state.phase = DialoguePhase.READY
            return await self._execute(state)

        extracted = await self.extractor.extract(text, state.current_tool)
        state.collected_parameters.update(extracted)
        return await self._advance(state)

    async def _advance(self, state: ConversationState) -> ChatResponse:
        """Clarify while anything is missing, otherwise execute."""
        tool = state.current_tool
        state.collected_parameters = sanitize(state.collected_parameters)
        analysis = analyze_requirements(tool, state.collected_parameters)
        state.missing_required_fields = analysis.missing_required
        state.suggested_optional_fields = analysis.suggested_optional

        if analysis.missing_required or has_placeholder_values(state.collected_parameters):
            state.phase = DialoguePhase.AWAITING_PARAMETERS
            clarification = build_clarification(
                tool,
                state.collected_parameters,
                analysis.missing_required,
                analysis.suggested_optional,
            )
            return ChatResponse(
                conversation_id=state.conversation_id,
                message=clarification.message,
                needs_clarification=True,
                phase=state.phase,
                clarification=clarification,
                tool_match=ToolMatch(tool, state.match_confidence, dict(state.collected_parameters)),
            )

        state.phase = DialoguePhase.READY
        return await self._execute(state)

    async def _execute(self, state: ConversationState) -> ChatResponse:
        """Synthesize and send the request exactly once, then reset to NEW."""
        tool = state.current_tool
        parameters = dict(state.collected_parameters)
        request = synthesize_request(tool, parameters)
        match = ToolMatch(tool, state.match_confidence, parameters)

        try:
            result = await self.executor.execute(request)
        except Exception as e:
            logger.error(f"❌ Execution of {tool.name} failed: {e}")
            self._audit_failure(state.conversation_id, tool, request, parameters, str(e))
            state.reset()
            return ChatResponse(
                conversation_id=state.conversation_id,
                message=execution_error_message(tool, e, request),
                phase=state.phase,
                tool_match=match,
                request=request,
                error=str(e),
            )

        if not result.ok:
            logger.warning(f"⚠️ {tool.name} returned an API error (HTTP {result.status})")
        self._audit_success(state.conversation_id, tool, request, parameters, result.status, result.ok)
        state.reset()
        return ChatResponse(
            conversation_id=state.conversation_id,
            message=execution_message(tool, request, result),
            phase=state.phase,
            tool_match=match,
            request=request,
            execution=result,
            error=None if result.ok else f"HTTP {result.status}",
        )

    async def _list_tools(self) -> Optional[list[Tool]]:
        """The current catalog, or None when it could not be read."""
        try:
            return await self.catalog.list_tools()
        except Exception as e:
            logger.error(f"❌ Could not list tools: {e}")
            return None

    def _audit_success(self, cid: str, tool: Tool, request: Any, parameters: dict, status: int, ok: bool) -> None:
        if self.audit_logger is None:
            return
        try:
            self.audit_logger.log_execution(cid, tool.name, request, parameters, status, ok)
        except Exception as e:
            logger.warning(f"⚠️ Audit write failed: {e}")

    def _audit_failure(self, cid: str, tool: Tool, request: Any, parameters: dict, error: str) -> None:
        if self.audit_logger is None:
            return
        try:
            self.audit_logger.log_execution_failure(cid, tool.name, request, parameters, error)
        except Exception as e:
            logger.warning(f"⚠️ Audit write failed: {e}")
