"""User-facing message text for every dialogue outcome."""

from __future__ import annotations

import json
from typing import Any, Optional

from .conversation import ClarificationRequest, FieldPrompt
from .extraction.sanitize import is_placeholder
from .extraction.schema import field_prompt
from .models import ExecutionResult, RequestDescription, Tool
from .synthesis import render_curl

CANCELLED_MESSAGE = "Operation cancelled. How else can I help you?"
GREETING_MESSAGE = "Hi! Tell me what you would like to do and I will find the right API call."
MULTI_FIELD_TIP = 'Tip: you can provide several fields at once, like "name: Fluffy, status: available"'
EXECUTE_HINT = 'Say "execute" to proceed with the current information, or provide additional fields.'

_MAX_LISTED_OPERATIONS = 5


def _format_value(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(_format_value(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _format_field(index: int, prompt: FieldPrompt, with_hint: bool) -> str:
    line = f"{index}. **{prompt.name}**: {prompt.description}"
    if with_hint and prompt.possible_values:
        line += f" (Options: {', '.join(map(str, prompt.possible_values))})"
    elif with_hint and prompt.examples:
        line += f" (Example: {prompt.examples[0]})"
    return line


def no_match_message(tools: list[Tool]) -> str:
    message = (
        "I couldn't find a suitable API for your request with sufficient confidence. "
        "Could you please be more specific about what you'd like to do?"
    )
    if tools:
        listed = [
            f"- {t.name}: {t.description}" if t.description else f"- {t.name}"
            for t in tools[:_MAX_LISTED_OPERATIONS]
        ]
        if len(tools) > _MAX_LISTED_OPERATIONS:
            listed.append(f"... and {len(tools) - _MAX_LISTED_OPERATIONS} more")
        message += "\n\nAvailable operations include:\n" + "\n".join(listed)
    return message


def build_clarification(
    tool: Tool,
    collected: dict[str, Any],
    missing_required: list[str],
    suggested_optional: list[str],
) -> ClarificationRequest:
    """Known values, then required fields, then optional ones once nothing is missing."""
    description = tool.description.rstrip(".")
    message = f"I'll help you with **{tool.name}**"
    if description:
        message += f" - {description[0].lower()}{description[1:]}"
    message += "."

    known = [(k, v) for k, v in collected.items() if v is not None and not is_placeholder(v)]
    if known:
        message += "\n\n**Information I have:**\n"
        message += "\n".join(f"- **{k}**: {_format_value(v)}" for k, v in known)

    missing = [field_prompt(tool, name, "required") for name in missing_required]
    suggested: list[FieldPrompt] = []

    if missing:
        message += "\n\n**Required information needed:**\n"
        message += "\n".join(_format_field(i, p, True) for i, p in enumerate(missing, 1))
        message += f"\n\n{MULTI_FIELD_TIP}"
        kind = "missing_required"
    else:
        suggested = [field_prompt(tool, name, "optional") for name in suggested_optional]
        if suggested:
            message += "\n\n**Optional fields you might want to add:**\n"
            message += "\n".join(_format_field(i, p, False) for i, p in enumerate(suggested, 1))
            message += f"\n\n{EXECUTE_HINT}"
        kind = "suggest_optional"

    return ClarificationRequest(
        kind=kind,
        message=message,
        missing_fields=missing,
        suggested_fields=suggested,
    )


def _format_body(body: Any) -> tuple[str, str]:
    """Pretty JSON when the body is (or parses as) JSON, raw text otherwise."""
    if isinstance(body, (dict, list)):
        return "json", json.dumps(body, indent=2, ensure_ascii=False)
    if isinstance(body, str):
        try:
            return "json", json.dumps(json.loads(body), indent=2, ensure_ascii=False)
        except ValueError:
            return "", body
    if body is None:
        return "", ""
    return "", str(body)


def execution_message(tool: Tool, request: RequestDescription, result: ExecutionResult) -> str:
    lang, text = _format_body(result.body)
    command = f"**cURL Command:**\n```bash\n{render_curl(request)}\n```"
    if result.ok:
        return (
            f"**Successfully executed {tool.name}!** (HTTP {result.status})\n\n{command}\n\n"
            f"**Response:**\n```{lang}\n{text}\n```\n\n"
            "Is there anything else you'd like to do?"
        )
    return (
        f"**API Error in {tool.name}:** (HTTP {result.status})\n\n{command}\n\n"
        f"**Error Response:**\n```{lang}\n{text}\n```\n\n"
        "Possible issues:\n- Check if all required fields are provided\n"
        "- Verify field values are in the correct format\n"
        "- Ensure the API endpoint is accessible"
    )


def execution_error_message(tool: Tool, error: Exception, request: Optional[RequestDescription] = None) -> str:
    message = f"**Execution Error in {tool.name}:** {error}"
    if request is not None:
        message += f"\n\n**cURL Command:**\n```bash\n{render_curl(request)}\n```"
    return message + "\n\nPlease check your parameters and try again."
