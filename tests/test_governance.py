"""Tests for origin policy, admission control and the API-key gate."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient

from conftest import client_for, make_settings
from enshub.core.exceptions import AdmissionRejected, Unauthorized
from enshub.core.governance import (
    ALLOW_HEADERS,
    ALLOW_METHODS,
    AccessGovernor,
    OriginPolicy,
)
from enshub.core.rate_limiter import FixedWindowRateLimiter
from enshub.repositories import events_orm


class TestOriginPolicy:
    """Access-Control-Allow-Origin computation."""

    def test_wildcard_echoes_request_origin(self):
        policy = OriginPolicy.from_origins(["*"])
        assert policy.allowed_origin("https://app.example") == "https://app.example"

    def test_missing_origin_defaults_to_wildcard(self):
        policy = OriginPolicy.from_origins(["*"])
        assert policy.allowed_origin(None) == "*"

    def test_listed_origin_echoed(self):
        policy = OriginPolicy.from_origins(["https://a.example", "https://b.example"])
        assert policy.allowed_origin("https://b.example") == "https://b.example"

    def test_unlisted_origin_gets_empty_value(self):
        policy = OriginPolicy.from_origins(["https://a.example"])
        assert policy.allowed_origin("https://evil.example") == ""

    def test_missing_origin_without_wildcard_gets_empty_value(self):
        policy = OriginPolicy.from_origins(["https://a.example"])
        assert policy.allowed_origin(None) == ""

    def test_headers_always_include_allow_lists(self):
        headers = OriginPolicy.from_origins(["https://a.example"]).headers("https://x.example")
        assert headers["Access-Control-Allow-Headers"] == ALLOW_HEADERS
        assert headers["Access-Control-Allow-Methods"] == ALLOW_METHODS
        assert headers["Access-Control-Allow-Origin"] == ""


class TestAccessGovernor:
    """Ordering of admission control and the credential gate."""

    def test_open_gate_admits_without_key(self):
        governor = AccessGovernor(OriginPolicy.from_origins(["*"]))
        assert governor.admit("c", None) is None
        assert governor.credentials_required is False

    def test_missing_key_rejected_when_keys_configured(self):
        governor = AccessGovernor(OriginPolicy.from_origins(["*"]), api_keys={"k1"})
        with pytest.raises(Unauthorized):
            governor.admit("c", None)

    def test_unknown_key_rejected(self):
        governor = AccessGovernor(OriginPolicy.from_origins(["*"]), api_keys={"k1"})
        with pytest.raises(Unauthorized):
            governor.admit("c", "k2")

    def test_known_key_admitted(self):
        limiter = FixedWindowRateLimiter(limit=5, window=60)
        governor = AccessGovernor(OriginPolicy.from_origins(["*"]), limiter, api_keys={"k1", "k2"})
        result = governor.admit("c", "k2", now=0.0)
        assert result is not None and result.allowed

    def test_rejected_credentials_still_consume_quota(self):
        limiter = FixedWindowRateLimiter(limit=2, window=60)
        governor = AccessGovernor(OriginPolicy.from_origins(["*"]), limiter, api_keys={"k1"})
        for t in (0.0, 1.0):
            with pytest.raises(Unauthorized):
                governor.admit("c", "bad", now=t)
        with pytest.raises(AdmissionRejected):
            governor.admit("c", "k1", now=2.0)

    def test_from_settings(self):
        config = make_settings(
            cors_allowlist=["https://a.example"],
            api_keys={"secret"},
            rate_limit_enabled=True,
            rate_limit="10/second",
        )
        governor = AccessGovernor.from_settings(config)
        assert governor.rate_limiter.limit == 10
        assert governor.rate_limiter.window == 1
        assert governor.api_keys == frozenset({"secret"})
        assert governor.origin_policy.allow_any is False

    def test_from_settings_without_rate_limit(self):
        governor = AccessGovernor.from_settings(make_settings(rate_limit_enabled=False))
        assert governor.rate_limiter is None


class TestGovernanceMiddleware:
    """Governance as seen by HTTP clients."""

    @pytest.mark.asyncio
    async def test_preflight_answered_with_204(self, make_app):
        app = make_app(make_settings(api_keys={"k1"}))
        async with client_for(app) as client:
            response = await client.options(
                "/registrations", headers={"Origin": "https://app.example"}
            )
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "https://app.example"
        assert response.headers["access-control-allow-methods"] == ALLOW_METHODS

    @pytest.mark.asyncio
    async def test_preflight_does_not_consume_quota(self, make_app):
        limiter = FixedWindowRateLimiter(limit=1, window=60)
        governor = AccessGovernor(OriginPolicy.from_origins(["*"]), limiter)
        app = make_app(governor=governor)
        async with client_for(app) as client:
            for _ in range(3):
                await client.options("/registrations")
            response = await client.get("/registrations")
        assert response.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_cors_headers_on_success(self, make_app):
        app = make_app(make_settings(cors_allowlist=["https://a.example"]))
        async with client_for(app) as client:
            allowed = await client.get("/registrations", headers={"Origin": "https://a.example"})
            denied = await client.get("/registrations", headers={"Origin": "https://b.example"})
        assert allowed.headers["access-control-allow-origin"] == "https://a.example"
        assert denied.status_code == status.HTTP_200_OK
        assert denied.headers["access-control-allow-origin"] == ""

    @pytest.mark.asyncio
    async def test_missing_key_returns_401(self, make_app):
        app = make_app(make_settings(api_keys={"k1"}))
        async with client_for(app) as client:
            response = await client.get("/registrations", headers={"Origin": "https://a.example"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": "Unauthorized"}
        assert response.headers["access-control-allow-origin"] == "https://a.example"
        assert response.headers["access-control-allow-headers"] == ALLOW_HEADERS

    @pytest.mark.asyncio
    async def test_valid_key_admitted(self, make_app):
        app = make_app(make_settings(api_keys={"k1", "k2"}))
        async with client_for(app) as client:
            response = await client.get("/registrations", headers={"X-API-Key": "k2"})
        assert response.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_101st_request_returns_429(self, make_app):
        limiter = FixedWindowRateLimiter(limit=100, window=60, clock=lambda: 0.0)
        governor = AccessGovernor(OriginPolicy.from_origins(["*"]), limiter)
        app = make_app(governor=governor)
        async with client_for(app) as client:
            for _ in range(100):
                response = await client.get("/health/live")
                assert response.status_code == status.HTTP_200_OK
            response = await client.get("/health/live")
        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.json() == {"error": "Too Many Requests"}
        assert response.headers["access-control-allow-origin"] == "*"

    @pytest.mark.asyncio
    async def test_rate_limit_checked_before_credentials(self, make_app):
        limiter = FixedWindowRateLimiter(limit=1, window=60, clock=lambda: 0.0)
        governor = AccessGovernor(OriginPolicy.from_origins(["*"]), limiter, api_keys={"k1"})
        app = make_app(governor=governor)
        async with client_for(app) as client:
            first = await client.get("/registrations")
            second = await client.get("/registrations", headers={"X-API-Key": "k1"})
        assert first.status_code == status.HTTP_401_UNAUTHORIZED
        assert second.status_code == status.HTTP_429_TOO_MANY_REQUESTS

    @pytest.mark.asyncio
    async def test_rate_limit_headers_on_admitted_response(self, make_app):
        limiter = FixedWindowRateLimiter(limit=10, window=60, clock=lambda: 0.0)
        app = make_app(governor=AccessGovernor(OriginPolicy.from_origins(["*"]), limiter))
        async with client_for(app) as client:
            response = await client.get("/health/live")
        assert response.headers["x-ratelimit-limit"] == "10"
        assert response.headers["x-ratelimit-remaining"] == "9"

    @pytest.mark.asyncio
    async def test_proxy_headers_ignored_unless_trusted(self, make_app):
        limiter = FixedWindowRateLimiter(limit=1, window=60, clock=lambda: 0.0)
        app = make_app(governor=AccessGovernor(OriginPolicy.from_origins(["*"]), limiter))
        async with client_for(app) as client:
            await client.get("/health/live", headers={"X-Forwarded-For": "10.0.0.1"})
            response = await client.get("/health/live", headers={"X-Forwarded-For": "10.0.0.2"})
        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS

    @pytest.mark.asyncio
    async def test_proxy_headers_identify_clients_when_trusted(self, make_app):
        limiter = FixedWindowRateLimiter(limit=1, window=60, clock=lambda: 0.0)
        app = make_app(
            make_settings(trust_proxy_headers=True),
            AccessGovernor(OriginPolicy.from_origins(["*"]), limiter),
        )
        async with client_for(app) as client:
            await client.get("/health/live", headers={"X-Forwarded-For": "10.0.0.1"})
            response = await client.get("/health/live", headers={"X-Forwarded-For": "10.0.0.2"})
        assert response.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_rejections_carry_request_id(self, make_app):
        app = make_app(make_settings(api_keys={"k1"}))
        async with client_for(app) as client:
            response = await client.get("/registrations", headers={"X-Request-ID": "req-1"})
        assert response.headers["x-request-id"] == "req-1"


class TestUnhandledErrors:
    """Unexpected failures still carry the origin headers."""

    @pytest.mark.asyncio
    async def test_500_has_cors_headers(self, make_app, mocker):
        mocker.patch.object(events_orm, "fetch_page", AsyncMock(side_effect=RuntimeError("boom")))
        app = make_app(make_settings(cors_allowlist=["https://dash.example"]))
        transport = ASGITransport(app=app, raise_app_exceptions=False)

        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get(
                "/registrations", headers={"Origin": "https://dash.example"}
            )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "Internal Server Error"}
        assert response.headers["access-control-allow-origin"] == "https://dash.example"
        assert response.headers["access-control-allow-headers"] == ALLOW_HEADERS
