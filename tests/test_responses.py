"""Tests for user-facing message text."""
from src.apiconverse.models import ExecutionResult
from src.apiconverse.responses import (
    EXECUTE_HINT,
    MULTI_FIELD_TIP,
    build_clarification,
    execution_error_message,
    execution_message,
    no_match_message,
)
from src.apiconverse.synthesis import synthesize_request
from tests.utils import petstore_tools


def _add_pet():
    return petstore_tools()[0]


def test_no_match_without_tools():
    message = no_match_message([])
    assert "be more specific" in message
    assert "Available operations" not in message


def test_clarification_for_missing_fields():
    clarification = build_clarification(_add_pet(), {"status": "sold"}, ["name"], ["tags"])
    assert clarification.kind == "missing_required"
    assert clarification.message.startswith("I'll help you with **add_pet** - add a new pet to the store.")
    assert "- **status**: sold" in clarification.message
    assert "1. **name**: Name of the pet (Example: doggie)" in clarification.message
    assert MULTI_FIELD_TIP in clarification.message
    assert [f.name for f in clarification.missing_fields] == ["name"]
    assert clarification.suggested_fields == []


def test_clarification_for_optional_fields():
    clarification = build_clarification(_add_pet(), {"name": "Rex"}, [], ["status", "tags"])
    assert clarification.kind == "suggest_optional"
    assert "**Optional fields you might want to add:**" in clarification.message
    assert "1. **status**: Pet status in the store" in clarification.message
    assert "(Options:" not in clarification.message
    assert EXECUTE_HINT in clarification.message
    assert [f.name for f in clarification.suggested_fields] == ["status", "tags"]


def test_placeholders_are_not_listed_as_known():
    clarification = build_clarification(_add_pet(), {"name": "TBD"}, ["name"], [])
    assert "Information I have" not in clarification.message


def test_success_message():
    tool = _add_pet()
    request = synthesize_request(tool, {"name": "Rex"})
    message = execution_message(tool, request, ExecutionResult(status=200, body={"id": 1}))
    assert message.startswith("**Successfully executed add_pet!** (HTTP 200)")
    assert '```json\n{\n  "id": 1\n}\n```' in message


def test_api_error_message_with_text_body():
    tool = _add_pet()
    request = synthesize_request(tool, {"name": "Rex"})
    message = execution_message(tool, request, ExecutionResult(status=500, body="Internal error"))
    assert "**API Error in add_pet:** (HTTP 500)" in message
    assert "```\nInternal error\n```" in message


def test_execution_error_message():
    tool = _add_pet()
    message = execution_error_message(tool, RuntimeError("timed out"))
    assert message.startswith("**Execution Error in add_pet:** timed out")
    assert "cURL" not in message
