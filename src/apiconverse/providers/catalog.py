from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Union

import yaml
from pydantic import ValidationError

from src.utils.logger import get_logger

from ..models import Tool
from .base import ToolCatalog

logger = get_logger("catalog")


def parse_tools(raw: Any, source: str = "catalog") -> list[Tool]:
    """Validate raw tool entries. Accepts a list or a mapping with a 'tools' key.

    Invalid entries are logged and skipped; the rest of the catalog survives.
    """
    if isinstance(raw, dict):
        raw = raw.get("tools", [])
    if not isinstance(raw, list):
        logger.error(f"❌ {source}: expected a list of tools, got {type(raw).__name__}")
        return []

    tools = []
    for index, entry in enumerate(raw):
        try:
            tools.append(Tool.model_validate(entry))
        except (ValidationError, TypeError, ValueError) as e:
            name = entry.get("name", f"#{index}") if isinstance(entry, dict) else f"#{index}"
            logger.warning(f"⚠️ {source}: skipping invalid tool {name}: {e}")
    return tools


def load_catalog(path: Path) -> list[Tool]:
    """Load tools from a YAML (or JSON) file. Returns [] if missing or invalid."""
    if not path.exists():
        logger.warning(f"⚠️ Catalog file not found: {path}")
        return []
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or []
    except yaml.YAMLError as e:
        logger.error(f"❌ Invalid YAML in {path}: {e}")
        return []
    except OSError as e:
        logger.error(f"❌ Could not read catalog {path}: {e}")
        return []
    return parse_tools(raw, source=str(path))


def save_catalog(tools: Iterable[Tool], path: Path) -> None:
    """Write tools to a YAML file, creating parent dirs as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(
            {"tools": [t.model_dump(mode="json", by_alias=True, exclude_none=True) for t in tools]},
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )


class StaticToolCatalog(ToolCatalog):
    """A fixed, in-memory list of tools."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools = list(tools)

    async def list_tools(self) -> list[Tool]:
        return list(self._tools)

    def set_tools(self, tools: Iterable[Tool]) -> None:
        self._tools = list(tools)


class YamlToolCatalog(ToolCatalog):
    """Re-reads its file on every call so edits are picked up immediately."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    async def list_tools(self) -> list[Tool]:
        return load_catalog(self.path)
