"""Tests for request synthesis and curl rendering."""
from src.apiconverse.synthesis import render_curl, synthesize_request
from tests.utils import make_tool

BASE = "https://petstore.example.com/v2"


def test_get_path_and_query():
    tool = make_tool("get_pet_by_id", "GET", "/pet/{petId}")
    request = synthesize_request(tool, {"petId": 5, "extra": "y"})
    assert request.url == f"{BASE}/pet/5?extra=y"
    assert request.body is None
    assert request.headers == {"Accept": "application/json"}


def test_post_body_without_query():
    tool = make_tool("add_pet", "POST", "/pet")
    request = synthesize_request(tool, {"name": "a", "tags": ["t1"]})
    assert request.url == f"{BASE}/pet"
    assert request.body == {"name": "a", "tags": ["t1"]}
    assert request.body_text() == '{"name":"a","tags":["t1"]}'
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["Accept"] == "application/json"


def test_single_body_key_is_unwrapped():
    tool = make_tool("update_pet", "PUT", "/pet")
    request = synthesize_request(tool, {"body": {"id": 1, "name": "Rex"}})
    assert request.body == {"id": 1, "name": "Rex"}


def test_body_key_with_siblings_is_not_unwrapped():
    tool = make_tool("update_pet", "PUT", "/pet")
    request = synthesize_request(tool, {"body": "x", "name": "Rex"})
    assert request.body == {"body": "x", "name": "Rex"}


def test_path_values_are_url_encoded():
    tool = make_tool("get_user", "GET", "/user/{username}")
    request = synthesize_request(tool, {"username": "a b/c"})
    assert request.url == f"{BASE}/user/a%20b%2Fc"


def test_missing_path_value_stays_literal():
    tool = make_tool("get_pet_by_id", "GET", "/pet/{petId}")
    assert synthesize_request(tool, {}).url == f"{BASE}/pet/{{petId}}"


def test_delete_uses_query_string():
    tool = make_tool("delete_pet", "DELETE", "/pet/{petId}")
    request = synthesize_request(tool, {"petId": 3, "force": True, "skip": None})
    assert request.url == f"{BASE}/pet/3?force=true"
    assert not request.has_body


def test_list_values_repeat_the_query_key():
    tool = make_tool("find_pets_by_status", "GET", "/pet/findByStatus")
    request = synthesize_request(tool, {"status": ["available", "sold"], "limit": 2})
    assert request.url == f"{BASE}/pet/findByStatus?status=available&status=sold&limit=2"


def test_object_query_values_are_json_encoded():
    tool = make_tool("search", "GET", "/pet/search")
    request = synthesize_request(tool, {"filter": {"a": 1}, "tags": []})
    assert request.url == f"{BASE}/pet/search?filter=%7B%22a%22%3A1%7D"


def test_path_with_query_string_is_extended():
    tool = make_tool("find_pets", "GET", "/pet/find?format=json")
    request = synthesize_request(tool, {"status": "sold"})
    assert request.url == f"{BASE}/pet/find?format=json&status=sold"


def test_post_without_parameters_has_no_body():
    tool = make_tool("ping", "POST", "/ping")
    request = synthesize_request(tool, {})
    assert request.body is None
    assert "Content-Type" not in request.headers


def test_synthesis_is_deterministic():
    tool = make_tool("add_pet", "POST", "/pet/{petId}/tags")
    params = {"petId": 9, "name": "Rex", "tags": [{"id": 1, "name": "cute"}]}
    first = synthesize_request(tool, params)
    second = synthesize_request(tool, dict(params))
    assert first == second
    assert render_curl(first) == render_curl(second)


def test_no_base_url():
    tool = make_tool("get_pet_by_id", "GET", "/pet/{petId}", base_url="")
    assert synthesize_request(tool, {"petId": 1}).url == "/pet/1"


def test_render_curl():
    tool = make_tool("add_pet", "POST", "/pet")
    curl = render_curl(synthesize_request(tool, {"name": "Rex's"}))
    assert curl == (
        f"curl -X POST {BASE}/pet -H 'Accept: application/json' "
        "-H 'Content-Type: application/json' "
        """-d '{"name":"Rex'"'"'s"}'"""
    )
