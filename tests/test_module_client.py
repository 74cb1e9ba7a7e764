"""
Tests for the module HTTP client and path helpers
"""

import json

import httpx
import pytest

from chain_gateway.chains.errors import ModuleCallError
from chain_gateway.clients.modules import (
    ModuleHTTPClient,
    ModuleRequest,
    extract_path_params,
    query_params,
    resolve_path,
)

from conftest import run


def test_extract_path_params():
    assert extract_path_params("/character/:userId/:name") == ["userId", "name"]
    assert extract_path_params("/health") == []
    assert extract_path_params("") == []


def test_resolve_path_substitutes_and_escapes():
    assert resolve_path("/character/:userId", {"userId": "user 1"}) == "/character/user%201"
    # Missing values leave the placeholder in place
    assert resolve_path("/character/:userId", {}) == "/character/:userId"


def test_query_params_excludes_path_and_null_values():
    params = {"userId": "u1", "limit": 5, "cursor": None}
    assert query_params("/items/:userId", params) == {"limit": 5}


def make_client(handler, **kwargs):
    return ModuleHTTPClient(
        {"character": "http://character.local/", "scene": "http://scene.local"},
        transport=httpx.MockTransport(handler),
        **kwargs
    )


def test_get_request_builds_url_and_query():
    seen = {}

    def handler(request: httpx.Request):
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"name": "Thorin"})

    client = make_client(handler)
    response = run(client.call(ModuleRequest(
        module="character",
        endpoint="/character/:userId",
        params={"userId": "user1", "detail": "full"},
        headers={"Authorization": "Bearer t"},
    )))

    assert seen["method"] == "GET"
    assert seen["url"] == "http://character.local/character/user1?detail=full"
    assert seen["auth"] == "Bearer t"
    assert response.status == 200
    assert response.is_success
    assert response.data == {"name": "Thorin"}
    assert response.url == seen["url"]


def test_post_sends_json_body():
    seen = {}

    def handler(request: httpx.Request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"created": True})

    client = make_client(handler)
    response = run(client.call(ModuleRequest(
        module="scene", endpoint="/scenes", method="POST", body={"title": "Tavern"},
    )))

    assert seen["body"] == {"title": "Tavern"}
    assert response.status == 201


def test_get_never_sends_body():
    seen = {}

    def handler(request: httpx.Request):
        seen["content"] = request.content
        return httpx.Response(200, json={})

    client = make_client(handler)
    run(client.call(ModuleRequest(module="scene", endpoint="/scenes", body={"ignored": True})))

    assert seen["content"] == b""


def test_error_status_is_a_response_not_an_exception():
    client = make_client(lambda request: httpx.Response(404, json={"error": "no such user"}))
    response = run(client.call(ModuleRequest(module="character", endpoint="/character/x")))

    assert response.status == 404
    assert response.status_text == "Not Found"
    assert not response.is_success
    assert response.data == {"error": "no such user"}


def test_text_and_empty_bodies():
    client = make_client(lambda request: httpx.Response(200, text="plain words"))
    assert run(client.call(ModuleRequest(module="scene", endpoint="/text"))).data == "plain words"

    client = make_client(lambda request: httpx.Response(204))
    assert run(client.call(ModuleRequest(module="scene", endpoint="/empty"))).data is None


def test_transport_failure_raises_module_call_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    with pytest.raises(ModuleCallError) as exc_info:
        run(client.call(ModuleRequest(module="scene", endpoint="/scenes")))

    assert exc_info.value.module == "scene"
    assert "No response from scene module" in str(exc_info.value)


def test_unknown_module_raises():
    client = make_client(lambda request: httpx.Response(200))
    with pytest.raises(ModuleCallError, match="Unknown module"):
        run(client.call(ModuleRequest(module="weather", endpoint="/forecast")))


def test_build_url_for_audit_trail():
    client = make_client(lambda request: httpx.Response(200))
    url = client.build_url("character", "/character/:userId", {"userId": "u1", "verbose": True})
    assert url == "http://character.local/character/u1?verbose=True"


def test_health_check_reports_each_module():
    def handler(request):
        if request.url.host == "character.local":
            return httpx.Response(200, json={"status": "ok"})
        raise httpx.ConnectError("down", request=request)

    client = make_client(handler)

    async def scenario():
        try:
            return await client.health_check()
        finally:
            await client.close()

    assert run(scenario()) == {"character": True, "scene": False}
