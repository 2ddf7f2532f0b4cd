"""Discord login endpoints for a FastAPI host application."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from discord_strategy.oauth2 import AuthenticateOptions, VerifyParams
from discord_strategy.schemas import DiscordProfile
from discord_strategy.strategy import DiscordStrategy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

SESSION_USER_KEY = "user"


def get_strategy(request: Request) -> DiscordStrategy:
    return request.app.state.discord_strategy


def default_verify(params: VerifyParams) -> dict[str, Any]:
    """Keep a JSON-safe summary of the profile in the session."""
    profile: DiscordProfile = params.profile
    return {
        "id": profile.id,
        "display_name": profile.display_name,
        "email": profile.emails[0]["value"] if profile.emails else None,
        "avatar_url": profile.avatar_url,
        "scope": params.tokens.extra_params.scope,
    }


def _options() -> AuthenticateOptions:
    return AuthenticateOptions(session_key=SESSION_USER_KEY, success_redirect="/auth/me")


# ---------------------------------------------------------------------------
# GET /auth/discord
# ---------------------------------------------------------------------------


@router.get("/discord", response_model=None, summary="Redirect to Discord's authorize page")
async def discord_login(
    request: Request,
    strategy: DiscordStrategy = Depends(get_strategy),
) -> Any:
    return await strategy.authenticate(request, request.session, _options())


# ---------------------------------------------------------------------------
# GET /auth/discord/callback
# ---------------------------------------------------------------------------


@router.get("/discord/callback", response_model=None, summary="Discord OAuth callback")
async def discord_callback(
    request: Request,
    strategy: DiscordStrategy = Depends(get_strategy),
) -> Any:
    return await strategy.authenticate(request, request.session, _options())


# ---------------------------------------------------------------------------
# GET /auth/me
# ---------------------------------------------------------------------------


@router.get("/me", summary="Current session user")
async def me(request: Request) -> dict[str, Any]:
    user = request.session.get(SESSION_USER_KEY)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


# ---------------------------------------------------------------------------
# POST /auth/logout
# ---------------------------------------------------------------------------


@router.post("/logout", summary="Forget the session user")
async def logout(request: Request) -> dict[str, bool]:
    if SESSION_USER_KEY in request.session:
        logger.info("Session cleared", extra={"path": request.url.path})
    request.session.clear()
    return {"ok": True}
