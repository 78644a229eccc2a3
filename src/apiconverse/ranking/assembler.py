"""Two-tier rendering of ranked candidates for the provider selection prompt.

Full tier: complete description + every input property (top candidates).
Summary tier: first sentence of the description + property names only.
"""

from __future__ import annotations

import re

from .models import ScoredTool

_MAX_SUMMARY_CHARS = 80
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def _truncate_description(desc: str) -> str:
    """Truncate to first sentence or max chars, whichever is shorter."""
    if not desc or len(desc) <= _MAX_SUMMARY_CHARS:
        return desc

    sentences = _SENTENCE_BOUNDARY.split(desc, maxsplit=1)
    if len(sentences) > 1 and len(sentences[0]) <= _MAX_SUMMARY_CHARS:
        return sentences[0]

    return desc[:_MAX_SUMMARY_CHARS].rstrip() + "…"


def _render_full(scored: ScoredTool) -> list[str]:
    tool = scored.tool
    schema = tool.input_schema
    lines = [
        f"- name: {tool.name}",
        f"  endpoint: {tool.endpoint.method} {tool.endpoint.path}",
        f"  description: {tool.description}",
    ]
    if schema.properties:
        lines.append("  parameters:")
        for prop_name, prop in schema.properties.items():
            flag = " (required)" if prop_name in schema.required else ""
            detail = f": {prop.description}" if prop.description else ""
            options = f" [options: {', '.join(map(str, prop.enum))}]" if prop.enum else ""
            lines.append(f"    - {prop_name} ({prop.type or 'string'}){flag}{detail}{options}")
    return lines


def _render_summary(scored: ScoredTool) -> list[str]:
    tool = scored.tool
    params = ", ".join(tool.input_schema.properties) or "none"
    return [
        f"- name: {tool.name}",
        f"  endpoint: {tool.endpoint.method} {tool.endpoint.path}",
        f"  description: {_truncate_description(tool.description)}",
        f"  parameters: {params}",
    ]


def render_candidates(candidates: list[ScoredTool], full_count: int = 3) -> str:
    """Render candidates in rank order; the first `full_count` in full."""
    lines: list[str] = []
    for i, scored in enumerate(candidates):
        lines.extend(_render_full(scored) if i < full_count else _render_summary(scored))
    return "\n".join(lines)
