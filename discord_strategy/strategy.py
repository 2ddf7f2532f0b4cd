"""Discord provider for the OAuth2 authorization code flow."""

from __future__ import annotations

import logging
from typing import Any, MutableMapping

import httpx
from starlette.requests import Request

from discord_strategy.oauth2 import (
    AuthenticateOptions,
    OAuth2Engine,
    TokenResponse,
    VerifyCallback,
)
from discord_strategy.schemas import (
    DiscordExtraParams,
    DiscordGuild,
    DiscordIntegrationType,
    DiscordProfile,
    DiscordPrompt,
    DiscordScope,
    DiscordStrategyOptions,
    DiscordUserPayload,
    scope_value,
)

logger = logging.getLogger(__name__)

DISCORD_API = "https://discord.com/api/v10"
DISCORD_AUTHORIZE_URL = f"{DISCORD_API}/oauth2/authorize"
DISCORD_TOKEN_URL = f"{DISCORD_API}/oauth2/token"
DISCORD_USER_URL = f"{DISCORD_API}/users/@me"
DISCORD_USER_GUILDS_URL = f"{DISCORD_API}/users/@me/guilds"

DEFAULT_SCOPE = "identify email"

_KNOWN_TOKEN_FIELDS = ("access_token", "refresh_token", "scope", "token_type", "expires_in")


class DiscordConfigurationError(ValueError):
    """Raised when ``DiscordStrategyOptions`` cannot produce a usable strategy."""


class DiscordStrategy:
    """Log users in with Discord.

    Builds Discord's authorize parameters, parses its token response and
    normalizes ``/users/@me`` into a ``DiscordProfile``. The redirect, state
    and code exchange are run by an ``OAuth2Engine`` that holds this object
    as its provider.

    Parameters
    ----------
    options:
        Client credentials, callback URL and the Discord-specific settings.
    verify:
        Called with a ``VerifyParams`` once tokens and profile are in hand;
        whatever it returns is the authenticated user.
    transport:
        Optional httpx transport for every outbound request (tests pass a
        ``httpx.MockTransport``).
    """

    name = "discord"
    authorization_url = DISCORD_AUTHORIZE_URL
    token_url = DISCORD_TOKEN_URL
    user_info_url = DISCORD_USER_URL

    def __init__(
        self,
        options: DiscordStrategyOptions,
        verify: VerifyCallback,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if isinstance(options.scope, str):
            raise DiscordConfigurationError("scope must be a list of scopes, not a string")
        scopes = [scope_value(s) for s in options.scope] if options.scope else None

        if (
            scopes is not None
            and DiscordScope.APPLICATIONS_COMMANDS.value in scopes
            and options.integration_type is None
        ):
            raise DiscordConfigurationError(
                "integrationType is required when scope contains applications.commands"
            )

        self.integration_type: DiscordIntegrationType | None = None
        if options.integration_type is not None:
            self.integration_type = _parse_integration_type(options.integration_type)

        self.scope: str = " ".join(scopes) if scopes else DEFAULT_SCOPE
        self.prompt: DiscordPrompt | None = options.prompt
        self._transport = transport

        self._engine = OAuth2Engine(
            self,
            client_id=options.client_id,
            client_secret=options.client_secret,
            callback_url=options.callback_url,
            verify=verify,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Flow entry points
    # ------------------------------------------------------------------

    async def authenticate(
        self,
        request: Request,
        session: MutableMapping[str, Any],
        options: AuthenticateOptions | None = None,
    ) -> Any:
        return await self._engine.authenticate(request, session, options)

    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        return await self._engine.refresh_token(refresh_token)

    # ------------------------------------------------------------------
    # Provider hooks
    # ------------------------------------------------------------------

    def build_authorization_params(self) -> dict[str, str]:
        """Query parameters Discord needs on the authorize redirect."""
        params = {"scope": self.scope}
        if self.integration_type is not None:
            params["integration_type"] = str(int(self.integration_type))
        if self.prompt:
            params["prompt"] = self.prompt
        return params

    async def fetch_user_profile(self, access_token: str) -> DiscordProfile:
        """Fetch ``/users/@me`` and map it onto a ``DiscordProfile``.

        The body is not validated; missing fields come through as ``None``.
        """
        async with httpx.AsyncClient(transport=self._transport) as client:
            resp = await client.get(
                self.user_info_url,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            raw: DiscordUserPayload = resp.json()

        profile = profile_from_payload(raw)
        logger.debug("Fetched Discord profile for user %s", profile.id)
        return profile

    async def parse_token_response(self, response: httpx.Response) -> TokenResponse:
        """Split a token endpoint response into tokens and ``DiscordExtraParams``."""
        await response.aread()
        data: dict[str, Any] = response.json()

        scope = data.get("scope")
        extra_params = DiscordExtraParams(
            scope=scope.split(" ") if scope else [],
            token_type=data.get("token_type"),
            expires_in=data.get("expires_in"),
            extra={k: v for k, v in data.items() if k not in _KNOWN_TOKEN_FIELDS},
        )
        return TokenResponse(
            access_token=data.get("access_token"),  # type: ignore[arg-type]
            refresh_token=data.get("refresh_token"),  # type: ignore[arg-type]
            extra_params=extra_params,
        )

    # ------------------------------------------------------------------
    # Extra API calls
    # ------------------------------------------------------------------

    async def fetch_user_guilds(self, access_token: str) -> list[DiscordGuild]:
        """List the guilds the user is in. Needs the ``guilds`` scope."""
        async with httpx.AsyncClient(transport=self._transport) as client:
            resp = await client.get(
                DISCORD_USER_GUILDS_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            resp.raise_for_status()
            return resp.json()


def _parse_integration_type(value: DiscordIntegrationType | int) -> DiscordIntegrationType:
    # bool is an int subclass; True must not pass as USER_INSTALL
    if isinstance(value, bool) or not isinstance(value, int):
        raise DiscordConfigurationError("integrationType must be a valid DiscordIntegrationType")
    try:
        return DiscordIntegrationType(value)
    except ValueError:
        raise DiscordConfigurationError(
            "integrationType must be a valid DiscordIntegrationType"
        ) from None


def profile_from_payload(raw: DiscordUserPayload) -> DiscordProfile:
    """Normalize a raw Discord user object.

    Bodies that are not JSON objects map to a profile with every field unset.
    """
    fields: dict[str, Any] = raw if isinstance(raw, dict) else {}
    global_name = fields.get("global_name")
    email = fields.get("email")
    avatar = fields.get("avatar")
    return DiscordProfile(
        id=fields.get("id"),  # type: ignore[arg-type]
        display_name=global_name if global_name is not None else fields.get("username"),  # type: ignore[arg-type]
        emails=[{"value": email}] if email else None,
        photos=[{"value": avatar}] if avatar else None,
        raw=raw,
    )
