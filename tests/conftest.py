"""Shared pytest fixtures.

Discord itself is replaced by an ``httpx.MockTransport`` so no test touches
the network.
"""

from __future__ import annotations

import json
from typing import Any, Callable
from urllib.parse import urlsplit

import httpx
import pytest
from starlette.requests import Request

from discord_strategy.oauth2 import VerifyParams
from discord_strategy.schemas import DiscordStrategyOptions

CALLBACK_URL = "https://example.app/auth/discord/callback"


# ---------------------------------------------------------------------------
# Canned Discord responses
# ---------------------------------------------------------------------------


@pytest.fixture()
def discord_user() -> dict[str, Any]:
    return {
        "id": "80351110224678912",
        "username": "nelly",
        "discriminator": "0",
        "global_name": "Nelly",
        "avatar": "8342729096ea3675442027381ff50dfe",
        "verified": True,
        "email": "nelly@discord.com",
        "flags": 64,
        "banner": None,
        "accent_color": 16711680,
        "premium_type": 1,
        "public_flags": 64,
        "locale": "en-US",
        "mfa_enabled": True,
    }


@pytest.fixture()
def token_body() -> dict[str, Any]:
    return {
        "access_token": "6qrZcUqja7812RVdnEKjpzOL4CvHBFG",
        "token_type": "Bearer",
        "expires_in": 604800,
        "refresh_token": "D43f5y0ahjqew82jZ4NViEr2YafMKhue",
        "scope": "identify email",
    }


@pytest.fixture()
def discord_requests() -> list[httpx.Request]:
    """Every request the mock Discord API received, in order."""
    return []


@pytest.fixture()
def discord_transport(
    discord_user: dict[str, Any],
    token_body: dict[str, Any],
    discord_requests: list[httpx.Request],
) -> httpx.MockTransport:
    guilds = [
        {
            "id": "80351110224678912",
            "name": "1337 Krew",
            "icon": "8342729096ea3675442027381ff50dfe",
            "owner": True,
            "permissions": "36953089",
            "features": ["COMMUNITY", "NEWS"],
        }
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        discord_requests.append(request)
        path = request.url.path
        if path == "/api/v10/oauth2/token":
            return httpx.Response(200, json=token_body)
        if path == "/api/v10/users/@me":
            return httpx.Response(200, json=discord_user)
        if path == "/api/v10/users/@me/guilds":
            return httpx.Response(200, json=guilds)
        return httpx.Response(404, json={"message": "404: Not Found", "code": 0})

    return httpx.MockTransport(handler)


# ---------------------------------------------------------------------------
# Strategy inputs
# ---------------------------------------------------------------------------


@pytest.fixture()
def options() -> DiscordStrategyOptions:
    return DiscordStrategyOptions(
        client_id="CLIENT_ID",
        client_secret="CLIENT_SECRET",
        callback_url=CALLBACK_URL,
    )


@pytest.fixture()
def verify_calls() -> list[VerifyParams]:
    return []


@pytest.fixture()
def verify(verify_calls: list[VerifyParams]) -> Callable[[VerifyParams], dict[str, Any]]:
    def _verify(params: VerifyParams) -> dict[str, Any]:
        verify_calls.append(params)
        return {"id": params.profile.id}

    return _verify


@pytest.fixture()
def make_request() -> Callable[[str], Request]:
    """Build a Starlette ``Request`` for an absolute URL."""

    def _make(url: str) -> Request:
        parts = urlsplit(url)
        port = parts.port or (443 if parts.scheme == "https" else 80)
        scope = {
            "type": "http",
            "method": "GET",
            "scheme": parts.scheme,
            "server": (parts.hostname, port),
            "root_path": "",
            "path": parts.path,
            "query_string": parts.query.encode(),
            "headers": [(b"host", parts.netloc.encode())],
        }
        return Request(scope)

    return _make


@pytest.fixture()
def make_token_response() -> Callable[[dict[str, Any]], httpx.Response]:
    """A token endpoint response as the engine hands it to the provider."""

    def _make(body: dict[str, Any]) -> httpx.Response:
        return httpx.Response(
            200,
            content=json.dumps(body).encode(),
            headers={"Content-Type": "application/json"},
            request=httpx.Request("POST", "https://discord.com/api/v10/oauth2/token"),
        )

    return _make
