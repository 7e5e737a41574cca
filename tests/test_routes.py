"""Tests for the Notion proxy API routes.

IMPORTANT: API Key Authentication
- All /v1/* endpoints require the X-API-Key header
- Use the api_key_headers fixture in tests

The app is built with a client factory returning a resilient client over a
mocked transport, so no request leaves the process.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from conftest import FakeSleep, make_block, make_database, make_page
from notion_bridge.adapters.notion.base import AbstractNotionTransport
from notion_bridge.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from notion_bridge.core.app_factory import create_app
from notion_bridge.core.config import NotionSettings, RateLimitSettings, RetrySettings, Settings
from notion_bridge.core.errors import ClientError, RateLimitedError, ValidationAppError
from notion_bridge.resilience.backoff import BackoffPolicy
from notion_bridge.resilience.limiter import KeyedRateLimiter
from notion_bridge.resilience.retry import RetryingExecutor
from notion_bridge.services.notion_service import ResilientNotionClient, create_notion_client


@pytest.fixture
def transport() -> AsyncMock:
    return AsyncMock(spec=AbstractNotionTransport)


@pytest.fixture
def notion_client(transport: AsyncMock) -> ResilientNotionClient:
    sleep = FakeSleep()
    store = InMemorySlidingWindowRateLimiter(limit=100, window_seconds=1)
    return ResilientNotionClient(
        transport=transport,
        limiter=KeyedRateLimiter(store, key_prefix="test", sleep=sleep),
        executor=RetryingExecutor(BackoffPolicy(base_delay=1.0), max_retries=2, sleep=sleep),
    )


@pytest.fixture
def client(notion_client: ResilientNotionClient):
    app = create_app(client_factory=lambda _settings: notion_client)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def api_key_headers() -> dict[str, str]:
    return {"X-API-Key": "test-api-key-123"}


class TestAuthentication:
    def test_missing_api_key_returns_403(self, client: TestClient) -> None:
        response = client.get("/v1/pages/p-1")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "missing_api_key"

    def test_invalid_api_key_returns_403(self, client: TestClient) -> None:
        response = client.get("/v1/pages/p-1", headers={"X-API-Key": "wrong"})

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "invalid_api_key"

    def test_health_needs_no_key(self, client: TestClient) -> None:
        assert client.get("/health").json() == {"status": "ok"}


class TestPages:
    def test_get_page(self, client, transport, api_key_headers) -> None:
        transport.retrieve_page.return_value = make_page("p-1")

        response = client.get("/v1/pages/p-1", headers=api_key_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["object"] == "page"
        assert data["id"] == "p-1"
        assert data["properties"]["title"]["type"] == "title"

    def test_create_page(self, client, transport, api_key_headers) -> None:
        transport.create_page.return_value = make_page("p-new")
        body = {"parent": {"page_id": "p-1"}, "properties": {"title": {"title": []}}, "icon": {"emoji": "x"}}

        response = client.post("/v1/pages", json=body, headers=api_key_headers)

        assert response.status_code == 201
        assert response.json()["id"] == "p-new"
        sent = transport.create_page.await_args.args[0]
        assert sent["parent"] == {"page_id": "p-1"}
        assert sent["icon"] == {"emoji": "x"}
        assert "children" not in sent

    def test_create_page_requires_parent(self, client, api_key_headers) -> None:
        response = client.post("/v1/pages", json={"properties": {}}, headers=api_key_headers)

        assert response.status_code == 422

    def test_update_page(self, client, transport, api_key_headers) -> None:
        transport.update_page.return_value = make_page("p-1", archived=True)

        response = client.patch("/v1/pages/p-1", json={"archived": True}, headers=api_key_headers)

        assert response.status_code == 200
        transport.update_page.assert_awaited_once_with("p-1", {"archived": True})

    def test_update_page_forwards_explicit_nulls(self, client, transport, api_key_headers) -> None:
        transport.update_page.return_value = make_page("p-1")
        body = {"icon": None, "properties": {"Due": {"date": None}}}

        response = client.patch("/v1/pages/p-1", json=body, headers=api_key_headers)

        assert response.status_code == 200
        transport.update_page.assert_awaited_once_with("p-1", body)

    def test_wrong_object_kind_returns_502(self, client, transport, api_key_headers) -> None:
        transport.retrieve_page.return_value = make_database("p-1")

        response = client.get("/v1/pages/p-1", headers=api_key_headers)

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "unexpected_object_kind"
        assert error["details"]["actual_kind"] == "database"


class TestSearchAndDatabases:
    def test_search_filters_to_pages(self, client, transport, api_key_headers) -> None:
        transport.search.return_value = {"object": "list", "results": [make_page("p-1"), make_database("d-1")]}

        response = client.post("/v1/search", json={"query": "plan"}, headers=api_key_headers)

        assert response.status_code == 200
        assert [item["id"] for item in response.json()["results"]] == ["p-1"]
        transport.search.assert_awaited_once_with({"query": "plan"})

    def test_search_for_databases(self, client, transport, api_key_headers) -> None:
        transport.search.return_value = {"object": "list", "results": [make_page("p-1"), make_database("d-1")]}

        response = client.post(
            "/v1/search",
            json={"query": "plan", "object_kind": "database"},
            headers=api_key_headers,
        )

        assert [item["id"] for item in response.json()["results"]] == ["d-1"]

    def test_get_database(self, client, transport, api_key_headers) -> None:
        transport.retrieve_database.return_value = make_database("d-1")

        response = client.get("/v1/databases/d-1", headers=api_key_headers)

        assert response.status_code == 200
        assert response.json()["title"][0]["plain_text"] == "Tasks"

    def test_query_database(self, client, transport, api_key_headers) -> None:
        transport.query_database.return_value = {"object": "list", "results": [make_page("p-1")]}

        response = client.post(
            "/v1/databases/d-1/query",
            json={"filter": {"property": "Done", "checkbox": {"equals": True}}},
            headers=api_key_headers,
        )

        assert response.status_code == 200
        assert response.json()["results"][0]["id"] == "p-1"


class TestBlocks:
    def test_get_block(self, client, transport, api_key_headers) -> None:
        transport.retrieve_block.return_value = make_block("b-1")

        response = client.get("/v1/blocks/b-1", headers=api_key_headers)

        assert response.status_code == 200
        assert response.json()["paragraph"] == {"rich_text": []}

    def test_update_block(self, client, transport, api_key_headers) -> None:
        transport.update_block.return_value = make_block("b-1")
        body = {"paragraph": {"rich_text": [{"text": {"content": "hi"}}]}}

        response = client.patch("/v1/blocks/b-1", json=body, headers=api_key_headers)

        assert response.status_code == 200
        transport.update_block.assert_awaited_once_with("b-1", body)

    def test_update_block_forwards_explicit_null_color(self, client, transport, api_key_headers) -> None:
        transport.update_block.return_value = make_block("b-1")
        body = {"to_do": {"checked": True}, "color": None}

        response = client.patch("/v1/blocks/b-1", json=body, headers=api_key_headers)

        assert response.status_code == 200
        transport.update_block.assert_awaited_once_with("b-1", body)

    def test_search_omits_fields_not_sent(self, client, transport, api_key_headers) -> None:
        transport.search.return_value = {"object": "list", "results": []}

        client.post("/v1/search", json={"query": "plan", "object_kind": "page"}, headers=api_key_headers)

        transport.search.assert_awaited_once_with({"query": "plan"})

    def test_delete_block(self, client, transport, api_key_headers) -> None:
        transport.delete_block.return_value = make_block("b-1", archived=True)

        response = client.delete("/v1/blocks/b-1", headers=api_key_headers)

        assert response.status_code == 200
        assert response.json()["archived"] is True

    def test_list_children_forwards_pagination(self, client, transport, api_key_headers) -> None:
        transport.list_block_children.return_value = {"object": "list", "results": [make_block("b-2")]}

        response = client.get(
            "/v1/blocks/b-1/children",
            params={"page_size": 10, "start_cursor": "c-1"},
            headers=api_key_headers,
        )

        assert response.status_code == 200
        transport.list_block_children.assert_awaited_once_with("b-1", {"start_cursor": "c-1", "page_size": 10})

    def test_append_children(self, client, transport, api_key_headers) -> None:
        transport.append_block_children.return_value = {"object": "list", "results": [make_block("b-new")]}
        children = [{"object": "block", "type": "paragraph", "paragraph": {"rich_text": []}}]

        response = client.patch("/v1/blocks/b-1/children", json={"children": children}, headers=api_key_headers)

        assert response.status_code == 200
        assert response.json()["results"][0]["id"] == "b-new"

    def test_append_empty_children_rejected(self, client, transport, api_key_headers) -> None:
        response = client.patch("/v1/blocks/b-1/children", json={"children": []}, headers=api_key_headers)

        assert response.status_code == 422
        transport.append_block_children.assert_not_awaited()


class TestNotionErrors:
    def test_not_found_keeps_status(self, client, transport, api_key_headers) -> None:
        transport.retrieve_page.side_effect = ClientError(
            code="object_not_found", message="Could not find page", status=404
        )

        response = client.get("/v1/pages/missing", headers=api_key_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "object_not_found"

    def test_rate_limit_after_retries_returns_429(self, client, transport, api_key_headers) -> None:
        transport.retrieve_page.side_effect = RateLimitedError(
            code="rate_limited", message="slow down", status=429, retry_after=4.0
        )

        response = client.get("/v1/pages/p-1", headers=api_key_headers)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "4"
        # First attempt plus two retries.
        assert transport.retrieve_page.await_count == 3


class TestInboundRateLimit:
    def test_exceeding_budget_returns_429(self, client, transport) -> None:
        client.app.state.inbound_limiter = InMemorySlidingWindowRateLimiter(limit=2, window_seconds=60)
        transport.retrieve_page.return_value = make_page("p-1")
        headers = {"X-API-Key": "test-api-key-456"}

        assert client.get("/v1/pages/p-1", headers=headers).status_code == 200
        assert client.get("/v1/pages/p-1", headers=headers).status_code == 200
        response = client.get("/v1/pages/p-1", headers=headers)

        assert response.status_code == 429
        assert response.headers["X-RateLimit-Limit"] == "2"
        assert "Retry-After" in response.headers


class TestLifecycle:
    def test_ready_when_store_reachable(self, client: TestClient) -> None:
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["rate_limit_store"] == "ok"

    def test_ready_reports_unreachable_store(self, client, notion_client) -> None:
        notion_client.limiter.store.ping = AsyncMock(return_value=False)

        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["rate_limit_store"] == "unreachable"

    def test_client_closed_on_shutdown(self, notion_client, transport) -> None:
        app = create_app(client_factory=lambda _settings: notion_client)
        with TestClient(app):
            pass

        transport.aclose.assert_awaited_once()

    def test_missing_configuration_still_serves_health(self, api_key_headers) -> None:
        def failing_factory(_settings):
            raise ValidationAppError(code="notion_missing_token", message="no token")

        app = create_app(client_factory=failing_factory)
        with TestClient(app) as test_client:
            assert test_client.get("/health").status_code == 200
            assert test_client.get("/health/ready").status_code == 503

            response = test_client.get("/v1/pages/p-1", headers=api_key_headers)
            assert response.status_code == 503
            assert response.json()["error"]["code"] == "notion_client_not_configured"

    def test_invalid_retry_settings_still_serve_health(self, api_key_headers) -> None:
        bad_settings = Settings(
            notion=NotionSettings(token="secret_xyz"),
            rate_limit=RateLimitSettings(backend="memory"),
            retry=RetrySettings(base_delay_seconds=10, max_delay_seconds=1),
        )

        app = create_app(client_factory=lambda _settings: create_notion_client(bad_settings))
        with TestClient(app) as test_client:
            assert test_client.get("/health").status_code == 200
            assert test_client.get("/health/ready").status_code == 503

            response = test_client.get("/v1/pages/p-1", headers=api_key_headers)
            assert response.status_code == 503


class TestInboundLimiterLifecycle:
    def test_callers_are_budgeted_separately(self, client, transport) -> None:
        client.app.state.inbound_limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=60)
        transport.retrieve_page.return_value = make_page("p-1")

        first = client.get("/v1/pages/p-1", headers={"X-API-Key": "test-api-key-123"})
        second = client.get("/v1/pages/p-1", headers={"X-API-Key": "test-api-key-456"})

        assert first.status_code == 200
        assert second.status_code == 200
