"""Turns free text into a validated argument map for one tool."""

from __future__ import annotations

import re
from typing import Any, Optional

from src.utils.logger import get_logger

from ..models import FieldSchema, Tool
from ..errors import ExtractionError
from ..providers.base import LLMProvider, try_parse_json_object
from .sanitize import FILLER_WORDS, validate_extracted
from .schema import describe_schema, optional_fields, required_fields

logger = get_logger("ParameterExtractor")

# Generic field words -> phrasings users reach for instead
FIELD_SYNONYMS: dict[str, tuple[str, ...]] = {
    "id": ("identifier", "number", "num"),
    "name": ("title", "label", "fullname", "full name"),
    "email": ("e-mail", "mail", "email address"),
    "phone": ("telephone", "mobile", "cell", "phone number"),
    "url": ("link", "website", "uri", "web address"),
    "address": ("location", "street", "postal address"),
    "date": ("datetime", "timestamp"),
    "description": ("details", "info", "summary"),
    "price": ("cost", "fee"),
    "quantity": ("amount", "count"),
}

_CAMEL = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_URL = r"(https?://[^\s,]+)"


def _mapping_target(tool: Tool, word: str) -> Optional[str]:
    """The one schema field a bare `word` should map to, if unambiguous."""
    names = list(tool.input_schema.properties) + [
        p for p in tool.path_parameters() if p not in tool.input_schema.properties
    ]
    if word in names:
        return None
    candidates = [
        n for n in names
        if n.lower().endswith(word) and n.lower() != word
        and (n.endswith(word.capitalize()) or n.lower().endswith("_" + word))
    ]
    return candidates[0] if len(candidates) == 1 else None


def synonym_mappings(tool: Tool) -> dict[str, str]:
    """Bare id/name/email -> the tool's own canonical field."""
    mappings = {}
    for word in ("id", "name", "email"):
        target = _mapping_target(tool, word)
        if target:
            mappings[word] = target
    return mappings


def apply_mappings(extracted: dict[str, Any], tool: Tool) -> dict[str, Any]:
    """Rename bare synonym keys the tool does not define to their canonical field."""
    mappings = synonym_mappings(tool)
    renamed: dict[str, Any] = {}
    for key, value in extracted.items():
        target = mappings.get(key) if tool.get_field(key) is None else None
        if target and target not in extracted:
            renamed[target] = value
        else:
            renamed[key] = value
    return renamed


def build_prompt(text: str, tool: Tool) -> str:
    mappings = synonym_mappings(tool)
    mapping_lines = "\n".join(f'    - "{k}" -> "{v}"' for k, v in mappings.items()) or "    (none)"
    fillers = ", ".join(f'"{w}"' for w in sorted(FILLER_WORDS))
    return f"""Extract parameters from the user input for the "{tool.name}" API.

API Description: {tool.description}

Available Parameters:
{describe_schema(tool)}

Required Fields: {', '.join(required_fields(tool)) or 'none'}
Optional Fields: {', '.join(optional_fields(tool)) or 'none'}

User Input: "{text}"

Instructions:
1. Extract ONLY parameters that are explicitly mentioned or clearly implied
2. Use EXACT parameter names from the schema (not variations or synonyms)
3. Convert values to appropriate types (string, number, boolean, array)
4. Return ONLY a valid JSON object with the extracted parameters
5. If no parameters are found, return an empty object {{}}
6. IGNORE filler words, they are never parameter names or values: {fillers}
7. Map these field variations to the exact schema names:
{mapping_lines}

Extracted parameters:"""


def field_variations(name: str) -> list[str]:
    """Ways a user may refer to a field: camelCase/snake_case split, synonyms."""
    variations = [name]
    spaced = _CAMEL.sub(" ", name).replace("_", " ").lower()
    if spaced != name:
        variations.append(spaced)
    lowered = name.lower()
    for word in ("id", "name", "email"):
        if name.endswith(word.capitalize()) or lowered.endswith("_" + word):
            variations.append(word)
    for key, synonyms in FIELD_SYNONYMS.items():
        if key in lowered:
            variations.extend(synonyms)
    seen: dict[str, None] = {}
    for v in variations:
        seen.setdefault(v, None)
    return list(seen)


def _patterns(name: str, schema: FieldSchema) -> list[re.Pattern]:
    alt = "|".join(re.escape(v).replace(r"\ ", r"\s+") for v in field_variations(name))
    var = rf"\b(?:{alt})"
    patterns = [
        rf"{var}\s*[:=]?\s*\"([^\"]+)\"",
        rf"{var}\s*[:=]?\s*'([^']+)'",
        rf"{var}\s*[:=]\s*([^\s,;]+)",
        rf"{var}\s+(?:is|of)\s+([^\s,;]+)",
        rf"\b(?:with|for)\s+(?:{alt})\s+([^\s,;]+)",
    ]
    if schema.type in ("integer", "number"):
        patterns += [rf"{var}\s*#?\s*(\d+(?:\.\d+)?)\b", rf"\b(\d+(?:\.\d+)?)\s+(?:{alt})\b"]
    if schema.type == "array" or "url" in name.lower():
        patterns += [rf"{var}\s*[:=]?\s*{_URL}", rf"{_URL}\s+(?:{alt})\b"]
    if schema.enum:
        options = "|".join(re.escape(str(o)) for o in schema.enum)
        patterns += [rf"{var}\s+({options})\b", rf"\b({options})\s+(?:{alt})\b"]
    patterns.append(rf"{var}\s+([^\s,;]+)")
    return [re.compile(p, re.IGNORECASE) for p in patterns]


def fallback_extract(text: str, tool: Tool) -> dict[str, Any]:
    """Pattern-based extraction used when no LLM answer is available."""
    fields = dict(tool.input_schema.properties)
    for param in tool.path_parameters():
        fields.setdefault(param, FieldSchema(type="string"))

    extracted: dict[str, Any] = {}
    for name, schema in fields.items():
        for pattern in _patterns(name, schema):
            match = pattern.search(text)
            if not match:
                continue
            value = match.group(1).strip()
            if value.lower() in FILLER_WORDS:
                continue
            extracted[name] = value
            break
    return extracted


def parse_answer(answer: Optional[str]) -> dict[str, Any]:
    """The JSON object in a provider answer. A blank answer means nothing was found."""
    if not answer or not answer.strip():
        return {}
    parsed = try_parse_json_object(answer)
    if parsed is None:
        raise ExtractionError(f"no JSON object in answer: {answer[:80]!r}")
    return parsed


class ParameterExtractor:
    """LLM-backed extraction with a pattern fallback. Never raises."""

    def __init__(self, llm: Optional[LLMProvider] = None) -> None:
        self.llm = llm

    async def extract(self, text: str, tool: Tool) -> dict[str, Any]:
        if not text or not text.strip():
            return {}
        if self.llm is None:
            return validate_extracted(fallback_extract(text, tool), tool)

        try:
            answer = await self.llm.complete(build_prompt(text, tool))
        except Exception as e:
            logger.warning(f"⚠️ LLM extraction failed for '{tool.name}', using pattern extraction: {e}")
            return validate_extracted(fallback_extract(text, tool), tool)

        try:
            parsed = parse_answer(answer)
        except ExtractionError as e:
            logger.warning(f"⚠️ Could not parse extraction answer for '{tool.name}': {e}")
            return {}
        return validate_extracted(apply_mappings(parsed, tool), tool)
