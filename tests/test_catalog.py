"""Tests for tool catalog loading and saving."""
import pytest
from src.apiconverse.providers.catalog import (
    StaticToolCatalog,
    YamlToolCatalog,
    load_catalog,
    parse_tools,
    save_catalog,
)
from tests.utils import make_tool, petstore_tools

CATALOG_YAML = """
tools:
  - name: get_pet_by_id
    description: Find a pet by its ID
    inputSchema:
      type: object
      properties:
        petId:
          type: integer
    endpoint:
      method: GET
      path: /pet/{petId}
      baseUrl: https://petstore.example.com/v2
  - description: entry without a name
    endpoint:
      method: GET
"""


class TestParseTools:
    def test_accepts_list_and_mapping(self):
        raw = [{"name": "ping", "endpoint": {"method": "GET", "path": "/ping"}}]
        assert [t.name for t in parse_tools(raw)] == ["ping"]
        assert [t.name for t in parse_tools({"tools": raw})] == ["ping"]

    def test_invalid_entries_are_skipped(self):
        raw = [
            {"name": "ping", "endpoint": {"method": "GET", "path": "/ping"}},
            "not a tool",
            {"description": "missing name"},
        ]
        assert [t.name for t in parse_tools(raw)] == ["ping"]

    def test_wrong_top_level_type(self):
        assert parse_tools("tools") == []


class TestLoadCatalog:
    def test_load_from_yaml(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text(CATALOG_YAML)
        tools = load_catalog(path)
        assert [t.name for t in tools] == ["get_pet_by_id"]
        assert tools[0].method == "GET"
        assert tools[0].endpoint.path == "/pet/{petId}"

    def test_missing_file(self, tmp_path):
        assert load_catalog(tmp_path / "nope.yaml") == []

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("tools: [unclosed")
        assert load_catalog(path) == []

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "nested" / "catalog.yaml"
        save_catalog(petstore_tools(), path)
        loaded = load_catalog(path)
        assert [t.name for t in loaded] == [t.name for t in petstore_tools()]
        assert loaded[0].content_hash() == petstore_tools()[0].content_hash()


class TestCatalogProviders:
    @pytest.mark.asyncio
    async def test_static_catalog(self):
        catalog = StaticToolCatalog(petstore_tools())
        assert len(await catalog.list_tools()) == 5
        catalog.set_tools([make_tool("ping", "GET", "/ping")])
        assert [t.name for t in await catalog.list_tools()] == ["ping"]

    @pytest.mark.asyncio
    async def test_yaml_catalog_picks_up_edits(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        save_catalog([make_tool("ping", "GET", "/ping")], path)
        catalog = YamlToolCatalog(path)
        assert [t.name for t in await catalog.list_tools()] == ["ping"]
        save_catalog(petstore_tools(), path)
        assert len(await catalog.list_tools()) == 5
