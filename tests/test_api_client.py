from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest

from graph_adapters.adapters import GetListAdapter
from graph_adapters.adapters.api import APIError, ResourceAPIClient
from graph_adapters.config import EngineSettings, RateLimitSettings
from graph_adapters.core import ErrorType, Item, LimitBucket, QueryContext, QueryError

BASE_URL = "https://inventory.example.test"
ACCOUNT = "052392120703"


def _client(handler, **kwargs) -> ResourceAPIClient:
    return ResourceAPIClient(base_url=BASE_URL, transport=httpx.MockTransport(handler), **kwargs)


def test_get_json_sends_params_and_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"name": "logs"})

    client = _client(handler, default_headers={"Authorization": "Bearer token"})

    body = client.get_json("/buckets/logs", params={"expand": "tags"})

    assert body == {"name": "logs"}
    assert seen == {"path": "/buckets/logs", "params": {"expand": "tags"}, "auth": "Bearer token"}


def test_not_found_maps_to_notfound():
    client = _client(lambda request: httpx.Response(404, json={"message": "no such bucket"}))

    with pytest.raises(APIError) as excinfo:
        client.get_json("/buckets/ghost")

    assert excinfo.value.error_type is ErrorType.NOTFOUND
    assert excinfo.value.status_code == 404
    assert excinfo.value.cacheable is True


def test_server_error_maps_to_other():
    client = _client(lambda request: httpx.Response(503, text="unavailable"))

    with pytest.raises(APIError) as excinfo:
        client.get_json("/buckets")

    assert excinfo.value.error_type is ErrorType.OTHER
    assert excinfo.value.status_code == 503
    assert "unavailable" in excinfo.value.message


def test_invalid_json_is_reported():
    client = _client(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(APIError) as excinfo:
        client.get_json("/buckets")

    assert excinfo.value.error_type is ErrorType.OTHER
    assert "Failed to decode JSON" in excinfo.value.message


def test_transport_errors_are_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectError("connection reset", request=request)
        return httpx.Response(200, json={"ok": True})

    client = _client(handler)

    assert client.get_json("/health") == {"ok": True}
    assert len(attempts) == 2


def test_cancelled_context_skips_request():
    handler = MagicMock()
    client = _client(handler)
    context = QueryContext()
    context.cancel()

    with pytest.raises(QueryError) as excinfo:
        client.get_json("/buckets", context=context)

    assert excinfo.value.error_type is ErrorType.TIMEOUT
    handler.assert_not_called()


def test_rate_limit_is_acquired_per_request():
    bucket = MagicMock(spec=LimitBucket)
    client = _client(lambda request: httpx.Response(200, json={}), rate_limit=bucket)

    client.get_json("/a")
    client.get_json("/b")

    assert bucket.acquire.call_count == 2


def test_paginate_follows_continuation_tokens():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        params = dict(request.url.params)
        requests.append(params)
        if "cursor" not in params:
            return httpx.Response(200, json={"buckets": ["logs", "assets"], "next": "page-2"})
        return httpx.Response(200, json={"buckets": ["backups"], "next": None})

    client = _client(handler, max_results_per_page=2)
    paginator = client.paginate("/buckets", params={"owner": ACCOUNT}, token_param="cursor", token_field="next", page_size_param="limit")

    names = []
    context = QueryContext()
    while paginator.has_more_pages():
        names.extend(paginator.next_page(context)["buckets"])

    assert names == ["logs", "assets", "backups"]
    assert requests == [
        {"owner": ACCOUNT, "limit": "2"},
        {"owner": ACCOUNT, "limit": "2", "cursor": "page-2"},
    ]


def test_adapter_negative_caches_http_404():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if request.url.path == "/buckets/logs":
            return httpx.Response(200, json={"name": "logs", "region": "eu-west-1"})
        return httpx.Response(404, json={"message": "not found"})

    adapter = GetListAdapter(
        item_type="s3-bucket",
        account_id=ACCOUNT,
        client=_client(handler),
        get_func=lambda context, client, scope, query: client.get_json(f"/buckets/{query}", context=context),
        list_func=lambda context, client, scope: client.get_json("/buckets", context=context),
        item_mapper=lambda scope, raw: Item(type="s3-bucket", unique_attribute="name", attributes=raw, scope=scope),
    )

    assert adapter.get(ACCOUNT, "logs").attributes["region"] == "eu-west-1"
    for _ in range(2):
        with pytest.raises(QueryError) as excinfo:
            adapter.get(ACCOUNT, "ghost")
        assert excinfo.value.error_type is ErrorType.NOTFOUND
        assert excinfo.value.scope == ACCOUNT

    assert calls == ["/buckets/logs", "/buckets/ghost"]


def test_from_settings_builds_a_running_bucket_and_page_size():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(dict(request.url.params))
        return httpx.Response(200, json={"buckets": []})

    settings = EngineSettings(max_results_per_page=25, rate_limit=RateLimitSettings(max_capacity=5, refill_rate=5, refill_duration=0.05))
    lifetime = QueryContext()
    try:
        client = ResourceAPIClient.from_settings(BASE_URL, settings, lifetime=lifetime, transport=httpx.MockTransport(handler))
        paginator = client.paginate("/buckets", page_size_param="limit")
        paginator.next_page(QueryContext().with_timeout(2.0))
    finally:
        lifetime.cancel()

    assert client.max_results_per_page == 25
    assert isinstance(client.rate_limit, LimitBucket)
    assert client.rate_limit.max_capacity == 5
    assert requests == [{"limit": "25"}]


def test_from_settings_keeps_an_explicit_bucket():
    bucket = MagicMock(spec=LimitBucket)

    client = ResourceAPIClient.from_settings(BASE_URL, EngineSettings(), rate_limit=bucket)

    assert client.rate_limit is bucket
    bucket.start.assert_not_called()
