"""Schema descriptions and requirement analysis for a tool's input fields."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from ..conversation import FieldPrompt
from ..models import FieldSchema, Tool
from .sanitize import is_placeholder


@dataclass
class RequirementAnalysis:
    missing_required: list[str] = field(default_factory=list)
    suggested_optional: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing_required


def is_provided(value: Any) -> bool:
    """A value counts as provided unless it is empty or a placeholder."""
    if value is None:
        return False
    if isinstance(value, (str, list)) and not value:
        return False
    return not is_placeholder(value)


def required_fields(tool: Tool) -> list[str]:
    """schema.required, plus path-template parameters for read operations."""
    required = list(tool.input_schema.required)
    if tool.is_read_operation():
        for name in tool.path_parameters():
            if name not in required:
                required.append(name)
    return required


def _worth_suggesting(schema: FieldSchema) -> bool:
    return bool(
        schema.enum
        or schema.examples
        or schema.description.strip()
        or schema.type in ("object", "array")
    )


def optional_fields(tool: Tool) -> list[str]:
    required = set(required_fields(tool))
    return [
        name
        for name, schema in tool.input_schema.properties.items()
        if name not in required and _worth_suggesting(schema)
    ]


def analyze_requirements(tool: Tool, parameters: dict[str, Any]) -> RequirementAnalysis:
    """Split the tool's fields into missing-required and still-unset optional ones.

    Optional suggestions never block execution.
    """
    missing = [name for name in required_fields(tool) if not is_provided(parameters.get(name))]
    suggested = [name for name in optional_fields(tool) if not is_provided(parameters.get(name))]
    return RequirementAnalysis(missing_required=missing, suggested_optional=suggested)


def describe_field(name: str, schema: FieldSchema) -> str:
    line = f"- {name} ({schema.type or 'string'})"
    if schema.description:
        line += f": {schema.description}"
    if schema.enum:
        line += f" (options: {', '.join(map(str, schema.enum))})"
    if schema.examples:
        line += f" (examples: {', '.join(map(str, schema.examples))})"
    return line


def describe_schema(tool: Tool) -> str:
    """One line per field, path parameters missing from the schema included."""
    lines = [describe_field(name, schema) for name, schema in tool.input_schema.properties.items()]
    for name in tool.path_parameters():
        if name not in tool.input_schema.properties:
            lines.append(describe_field(name, FieldSchema(type="string", description="path parameter")))
    return "\n".join(lines)


def field_prompt(tool: Tool, name: str, kind: Literal["required", "optional"] = "required") -> FieldPrompt:
    schema = tool.get_field(name) or FieldSchema()
    description = schema.description or (
        f"Path parameter '{name}'" if name in tool.path_parameters() else name
    )
    example = schema.examples or ([schema.default] if schema.default is not None else [])
    return FieldPrompt(
        name=name,
        description=description,
        kind=kind,
        type=schema.type,
        possible_values=list(schema.enum) if schema.enum else None,
        examples=list(example),
    )
