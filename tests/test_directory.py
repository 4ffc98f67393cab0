"""Tests for Clerk member name resolution (mocked HTTP)."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest

from src.directory.clerk import ClerkNameResolver, display_name


def _member(user_id: str, **fields: Any) -> dict[str, Any]:
    return {"public_user_data": {"user_id": user_id, **fields}}


def _resolver(pages: list[Any], status: int = 200, page_size: int = 2):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if status != 200:
            return httpx.Response(status, json={"errors": []})
        index = int(request.url.params["offset"]) // page_size
        page = pages[index] if index < len(pages) else []
        return httpx.Response(200, json=page)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    resolver = ClerkNameResolver("sk_test", page_size=page_size, client=client)
    return resolver, requests


class TestDisplayName:
    @pytest.mark.parametrize(
        ("user", "expected"),
        [
            ({"first_name": "Ada", "last_name": "Lovelace"}, "Ada Lovelace"),
            ({"first_name": " Ada ", "last_name": None}, "Ada"),
            ({"firstName": "Grace", "lastName": "Hopper"}, "Grace Hopper"),
            ({"username": "ghopper"}, "ghopper"),
            ({"identifier": "alan@example.com"}, "alan"),
            ({"identifier": "+15550100"}, "+15550100"),
            ({}, "Member"),
        ],
    )
    def test_fallback_order(self, user: dict[str, Any], expected: str) -> None:
        assert display_name(user) == expected


class TestResolveNames:
    def test_pages_until_short_page(self) -> None:
        pages = [
            [_member("u1", first_name="Ada"), _member("u2", username="bob")],
            {"data": [_member("u3", identifier="carol@example.com")]},
        ]
        resolver, requests = _resolver(pages)

        names = asyncio.run(resolver.resolve_names("org_1"))

        assert names == {"u1": "Ada", "u2": "bob", "u3": "carol"}
        assert len(requests) == 2
        assert requests[0].url.path == "/v1/organizations/org_1/memberships"
        assert requests[0].url.params["limit"] == "2"
        assert requests[1].url.params["offset"] == "2"
        assert requests[0].headers["Authorization"] == "Bearer sk_test"

    def test_stops_on_empty_page(self) -> None:
        pages = [[_member("u1", first_name="Ada"), _member("u2", first_name="Bo")], []]
        resolver, requests = _resolver(pages)
        names = asyncio.run(resolver.resolve_names("org_1"))
        assert set(names) == {"u1", "u2"}
        assert len(requests) == 2

    def test_camel_case_payload(self) -> None:
        pages = [[{"publicUserData": {"userId": "u9", "firstName": "Zed"}}]]
        resolver, _ = _resolver(pages)
        assert asyncio.run(resolver.resolve_names("org_1")) == {"u9": "Zed"}

    def test_skips_members_without_user_id(self) -> None:
        pages = [[{"public_user_data": {"first_name": "Nobody"}}]]
        resolver, _ = _resolver(pages)
        assert asyncio.run(resolver.resolve_names("org_1")) == {}

    def test_http_error_returns_empty(self) -> None:
        resolver, requests = _resolver([], status=401)
        assert asyncio.run(resolver.resolve_names("org_1")) == {}
        assert len(requests) == 1

    def test_no_org_id_makes_no_request(self) -> None:
        resolver, requests = _resolver([])
        assert asyncio.run(resolver.resolve_names(None)) == {}
        assert requests == []

    def test_no_secret_key(self) -> None:
        resolver = ClerkNameResolver("")
        assert asyncio.run(resolver.resolve_names("org_1")) == {}

    def test_transport_error_returns_empty(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        resolver = ClerkNameResolver("sk_test", client=client)
        assert asyncio.run(resolver.resolve_names("org_1")) == {}

    @pytest.mark.parametrize("body", ["not a membership list", 42, None, {"data": "oops"}])
    def test_unexpected_body_ends_listing(self, body: Any) -> None:
        resolver, requests = _resolver([body])
        assert asyncio.run(resolver.resolve_names("org_1")) == {}
        assert len(requests) == 1

    def test_skips_non_object_members(self) -> None:
        pages = [["stray", {"public_user_data": "u1"}, _member("u2", first_name="Bo")]]
        resolver, _ = _resolver(pages, page_size=5)
        assert asyncio.run(resolver.resolve_names("org_1")) == {"u2": "Bo"}
