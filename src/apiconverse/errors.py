"""Error taxonomy for the conversational API core.

Only ConversationNotFound is meant to reach callers in normal operation.
The other classes name degradations that each layer absorbs with a fallback;
some are raised and caught internally, the rest only label the condition.
"""

from __future__ import annotations


class ApiConverseError(Exception):
    """Base class for all errors raised by this package."""


class ExtractionError(ApiConverseError):
    """Provider output could not be parsed into an argument map."""


class ValidationError(ApiConverseError):
    """An extracted value does not fit its schema entry.

    Not raised: validate_extracted() drops such values and the field stays missing.
    """


class MatchNotFound(ApiConverseError):
    """No catalog tool cleared the candidate threshold.

    Not raised: find_best_match() returns None and the dialogue asks the user to rephrase.
    """


class ProviderUnavailable(ApiConverseError):
    """The embedding or LLM provider is unreachable or unconfigured."""


class ExecutionError(ApiConverseError):
    """The executor failed to perform a synthesized request."""


class ConversationNotFound(ApiConverseError):
    """process_message was called with an id the engine does not know."""

    def __init__(self, conversation_id: str) -> None:
        super().__init__(f"Conversation '{conversation_id}' not found")
        self.conversation_id = conversation_id
