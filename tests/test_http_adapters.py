"""Tests for the HTTP adapters, driven by `httpx.MockTransport`."""

from __future__ import annotations

import json

import httpx
import pytest

from adapters.http_client import build_async_client, request_json
from adapters.profile_api import ProfileSubscriptionClient
from adapters.subscription_service import SubscriptionServiceClient
from adapters.unified_db import UnifiedDbDirectory, build_uuid_search
from core.config import AppSettings
from core.domain.errors import ApiError
from core.domain.models import PaginationState

SUBSCRIPTION = {
    "uuid": "sub-1",
    "type": "enterprise",
    "status": "draft",
    "billingType": "card",
    "hasCustomPricing": True,
    "activationDate": "2026-05-01T09:00:00Z",
    "updatedAt": "2026-04-01T09:00:00Z",
    "actions": [{"action": "activate", "allowed": True, "errors": [{"code": "NO_BILLING_RECORD"}]}],
}


def _settings(**overrides) -> AppSettings:
    return AppSettings(_env_file=None, **overrides)


def _client(handler, **settings) -> httpx.AsyncClient:
    return build_async_client(
        _settings(**settings),
        base_url="http://api.test",
        transport=httpx.MockTransport(handler),
    )


def _service_api(service, sso=None) -> SubscriptionServiceClient:
    return SubscriptionServiceClient(_settings(), service_client=_client(service), sso_client=_client(sso or service))


class TestRequestJson:
    @pytest.mark.asyncio
    async def test_sends_default_headers(self):
        captured: dict[str, httpx.Request] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["request"] = request
            return httpx.Response(200, json={"ok": True})

        async with _client(handler, api_token="secret", user_agent="tests/1.0") as client:
            assert await request_json(client, "GET", "/ping") == {"ok": True}

        request = captured["request"]
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.headers["User-Agent"] == "tests/1.0"
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_error_status_becomes_api_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Subscription not found"})

        async with _client(handler) as client:
            with pytest.raises(ApiError) as excinfo:
                await request_json(client, "GET", "/subscriptions/x")

        assert excinfo.value.status == 404
        assert excinfo.value.is_not_found
        assert excinfo.value.payload == {"message": "Subscription not found"}

    @pytest.mark.asyncio
    async def test_transport_failure_has_no_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(ApiError) as excinfo:
                await request_json(client, "GET", "/subscriptions/x")

        assert excinfo.value.status is None

    @pytest.mark.asyncio
    async def test_non_json_body_is_rejected(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        async with _client(handler) as client:
            with pytest.raises(ApiError, match="non-JSON"):
                await request_json(client, "GET", "/subscriptions/x")


class TestSubscriptionServiceClient:
    @pytest.mark.asyncio
    async def test_subscription_is_parsed_from_camel_case(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/subscriptions/sub-1"
            return httpx.Response(200, json=SUBSCRIPTION)

        async with _service_api(handler) as api:
            entity = await api.get_subscription("sub-1")

        assert entity.has_custom_pricing is True
        assert entity.actions[0].errors[0].code == "NO_BILLING_RECORD"
        assert entity.activation_date.tzinfo is not None

    @pytest.mark.asyncio
    async def test_paginated_routes_send_page_params(self):
        seen: list[httpx.URL] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            return httpx.Response(
                200,
                json={
                    "data": [{"uuid": "br-1", "isCurrent": True}],
                    "currentPage": 2,
                    "pageSize": 5,
                    "totalCount": 6,
                    "totalPages": 2,
                },
            )

        async with _service_api(handler) as api:
            page = await api.get_billing_records("sub-1", PaginationState(current_page=2, page_size=5))

        assert seen[0].path == "/subscriptions/sub-1/billing-records"
        assert dict(seen[0].params) == {"page": "2", "pageSize": "5"}
        assert page.data[0].is_current is True
        assert page.pagination() == PaginationState(current_page=2, page_size=5, total_count=6, total_pages=2)

    @pytest.mark.asyncio
    async def test_payment_method_and_customer_info_use_the_sso_api(self):
        service_paths: list[str] = []
        sso_paths: list[str] = []

        def service(request: httpx.Request) -> httpx.Response:
            service_paths.append(request.url.path)
            return httpx.Response(200, json={})

        def sso(request: httpx.Request) -> httpx.Response:
            sso_paths.append(request.url.path)
            return httpx.Response(200, json={"name": "ACME", "billingAddress": {"city": "Lyon"}})

        async with _service_api(service, sso) as api:
            await api.get_payment_method("sub-1")
            info = await api.get_customer_info("sub-1")
            await api.get_pricing_terms("sub-1")

        assert sso_paths == ["/subscriptions/sub-1/payment-method", "/subscriptions/sub-1/customer-info"]
        assert service_paths == ["/subscriptions/sub-1/custom-pricing-terms"]
        assert info.billing_address.city == "Lyon"

    @pytest.mark.asyncio
    async def test_malformed_payload_becomes_api_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"type": "enterprise"})

        async with _service_api(handler) as api:
            with pytest.raises(ApiError) as excinfo:
                await api.get_subscription("sub-1")

        assert excinfo.value.status is None

    @pytest.mark.asyncio
    async def test_identifier_is_escaped(self):
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.raw_path.decode())
            return httpx.Response(200, json={})

        async with _service_api(handler) as api:
            await api.get_usage("a/b")

        assert paths == ["/subscriptions/a%2Fb/renewal-index"]


class TestProfileSubscriptionClient:
    @pytest.mark.asyncio
    async def test_routes_live_under_the_profile_prefix(self):
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            if request.url.path.endswith("/users"):
                return httpx.Response(200, json={"data": [{"userUuid": "u-1"}], "currentPage": 1, "pageSize": 15})
            return httpx.Response(200, json={"activeUsers": 3})

        async with ProfileSubscriptionClient(_settings(), client=_client(handler)) as api:
            usage = await api.get_usage("sub-1")
            page = await api.get_users("sub-1", PaginationState(page_size=15))

        assert paths == ["/profile/subscriptions/sub-1/usage", "/profile/subscriptions/sub-1/users"]
        assert usage.active_users == 3
        assert page.data[0].user_uuid == "u-1"


class TestUnifiedDbDirectory:
    def test_uuid_search_body(self):
        body = build_uuid_search(["u-1", "u-2"], fields=["email", "jobInfo"], page_size=15)

        assert body == {
            "filterBy": {"filters": [{"name": "uuid", "value": ["u-1", "u-2"], "comparison": "anyOf"}]},
            "pageSize": 15,
            "fields": ["email", "jobInfo"],
        }

    @pytest.mark.asyncio
    async def test_search_posts_and_parses_users(self):
        captured: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["method"] = request.method
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content.decode("utf-8"))
            return httpx.Response(
                200,
                json={"data": [{"uuid": "u-2", "email": "two@acme.test", "jobInfo": {"title": "CTO"}}]},
            )

        async with UnifiedDbDirectory(_settings(), client=_client(handler)) as directory:
            found = await directory.search_users(["u-1", "u-2"], fields=["email"], page_size=10)

        assert captured["method"] == "POST"
        assert captured["path"] == "/users/search"
        assert captured["body"]["filterBy"]["filters"][0]["value"] == ["u-1", "u-2"]
        assert [(user.uuid, user.email) for user in found] == [("u-2", "two@acme.test")]
        assert found[0].job_info == {"title": "CTO"}
