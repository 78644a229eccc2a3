"""Builds an executable HTTP request from a tool and its collected arguments.

Deterministic: the same tool and arguments always give the same request.
"""

from __future__ import annotations

import json
import shlex
from typing import Any
from urllib.parse import quote, urlencode

from .models import QUERY_METHODS, RequestDescription, Tool


def _query_value(value: Any) -> str:
    """String form of one query or path value. Booleans are lower-case, objects JSON."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def _query_pairs(parameters: dict[str, Any]) -> list[tuple[str, str]]:
    """key=value pairs in mapping order; a list value repeats its key per item."""
    pairs = []
    for key, value in parameters.items():
        items = value if isinstance(value, (list, tuple)) else [value]
        pairs += [(key, _query_value(item)) for item in items if item is not None]
    return pairs


def _join_url(base_url: str, path: str) -> str:
    if not base_url:
        return path
    return base_url.rstrip("/") + "/" + path.lstrip("/")


def synthesize_request(tool: Tool, parameters: dict[str, Any]) -> RequestDescription:
    """Substitute path parameters, route the rest to query string or JSON body.

    Path values are URL-encoded; a placeholder with no value stays literally
    in the path. GET/DELETE/HEAD/OPTIONS send the remaining parameters as a
    query string (list values repeat the key, and a path that already
    carries a query string is extended with &), other methods as a JSON
    body. A single "body" key is unwrapped into the body itself.
    """
    method = tool.endpoint.method
    path = tool.endpoint.path
    remaining = dict(parameters)

    for name in tool.path_parameters():
        if name in remaining and remaining[name] is not None:
            value = _query_value(remaining.pop(name))
            path = path.replace("{" + name + "}", quote(value, safe=""))

    remaining = {k: v for k, v in remaining.items() if v is not None}
    url = _join_url(tool.endpoint.base_url, path)
    headers = {"Accept": "application/json"}
    body: Any = None

    if method in QUERY_METHODS:
        query = _query_pairs(remaining)
        if query:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{urlencode(query)}"
    elif remaining:
        if list(remaining) == ["body"]:
            body = remaining["body"]
        else:
            body = remaining
        headers["Content-Type"] = "application/json"

    return RequestDescription(method=method, url=url, headers=headers, body=body)


def render_curl(request: RequestDescription) -> str:
    """A single shell-quoted curl command line for display."""
    parts = ["curl", "-X", request.method, shlex.quote(request.url)]
    for key, value in request.headers.items():
        parts += ["-H", shlex.quote(f"{key}: {value}")]
    if request.has_body:
        parts += ["-d", shlex.quote(request.body_text())]
    return " ".join(parts)
