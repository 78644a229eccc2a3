"""Catalog and request records shared by every component.

Tool definitions come from an external catalog generator and are read-only
here, so they are frozen pydantic models. Aliases accept the camelCase keys
the catalog files use (inputSchema, baseUrl, readOnlyHint, ...).
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

_PATH_PARAM = re.compile(r"\{([^{}]+)\}")

# Methods whose remaining parameters travel in the query string
QUERY_METHODS = frozenset({"GET", "DELETE", "HEAD", "OPTIONS"})
# Methods treated as read operations for required-field inference
READ_METHODS = frozenset({"GET", "HEAD"})


class FieldSchema(BaseModel):
    """One property of a tool's input schema."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: Optional[str] = None
    description: str = ""
    enum: Optional[list[Any]] = None
    examples: list[Any] = Field(default_factory=list)
    items: Optional[dict[str, Any]] = None
    format: Optional[str] = None
    default: Any = None

    @field_validator("type", mode="before")
    @classmethod
    def _first_type(cls, value: Any) -> Any:
        # JSON schema allows ["string", "null"]; keep the first concrete type
        if isinstance(value, list):
            concrete = [v for v in value if v != "null"]
            return concrete[0] if concrete else None
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, value: Any) -> Any:
        return value or ""


class InputSchema(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    type: str = "object"
    properties: dict[str, FieldSchema] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class Endpoint(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    method: HttpMethod
    path: str
    base_url: str = Field(default="", alias="baseUrl")

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class ToolAnnotations(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    tags: list[str] = Field(default_factory=list)
    title: str = ""
    deprecated: bool = False
    read_only_hint: bool = Field(default=False, alias="readOnlyHint")
    open_world_hint: bool = Field(default=False, alias="openWorldHint")


class Tool(BaseModel):
    """Structured description of one API operation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str
    description: str = ""
    input_schema: InputSchema = Field(default_factory=InputSchema, alias="inputSchema")
    endpoint: Endpoint
    annotations: ToolAnnotations = Field(default_factory=ToolAnnotations)

    @property
    def method(self) -> str:
        return self.endpoint.method

    def path_parameters(self) -> list[str]:
        """Names of the {param} placeholders in template order."""
        return _PATH_PARAM.findall(self.endpoint.path)

    def is_read_operation(self) -> bool:
        return self.endpoint.method in READ_METHODS

    def get_field(self, name: str) -> Optional[FieldSchema]:
        return self.input_schema.properties.get(name)

    def content_hash(self) -> str:
        """Stable hash of the parts that feed the embedding text."""
        payload = json.dumps(
            [
                self.name,
                self.description,
                self.endpoint.method,
                self.endpoint.path,
                self.input_schema.model_dump(mode="json", exclude_none=True),
            ],
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class RequestDescription(BaseModel):
    """An executable HTTP request produced by the synthesizer."""

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None

    @property
    def has_body(self) -> bool:
        return self.body is not None

    def body_text(self) -> Optional[str]:
        if self.body is None:
            return None
        return json.dumps(self.body, separators=(",", ":"), ensure_ascii=False)


class ExecutionResult(BaseModel):
    """Outcome of a single executor call."""

    status: int
    body: Any = None

    @property
    def ok(self) -> bool:
        """False for HTTP errors and for JSON payloads that report an error."""
        if self.status >= 400:
            return False
        if isinstance(self.body, dict) and self.body.get("error"):
            return False
        return True
