"""Generic OAuth2 authorization code flow.

The engine owns the parts every provider shares: the redirect to the
provider, CSRF state kept in the session, the code-for-token exchange and
the verify callback. Provider specifics come from an ``OAuth2Provider``
passed in at construction.
"""

from __future__ import annotations

import inspect
import logging
import secrets
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, MutableMapping, Protocol, Union
from urllib.parse import urlencode, urljoin, urlparse

import httpx
from fastapi import HTTPException
from starlette.requests import Request

logger = logging.getLogger(__name__)

SESSION_STATE_KEY = "oauth2:state"


class AuthorizationError(Exception):
    """Raised when an authorization attempt cannot be completed."""


@dataclass(frozen=True)
class TokenResponse:
    """Tokens pulled out of a token endpoint response."""

    access_token: str
    refresh_token: str
    extra_params: Any


@dataclass(frozen=True)
class VerifyParams:
    """Everything the verify callback gets to decide who the user is."""

    tokens: TokenResponse
    profile: Any
    request: Request


VerifyCallback = Callable[[VerifyParams], Union[Any, Awaitable[Any]]]


@dataclass
class AuthenticateOptions:
    session_key: str = "user"
    session_error_key: str = "auth:error"
    session_strategy_key: str = "strategy"
    success_redirect: str | None = None
    failure_redirect: str | None = None


class OAuth2Provider(Protocol):
    """Hooks a provider plugs into ``OAuth2Engine``."""

    name: str
    authorization_url: str
    token_url: str

    def build_authorization_params(self) -> dict[str, str]: ...

    async def fetch_user_profile(self, access_token: str) -> Any: ...

    async def parse_token_response(self, response: httpx.Response) -> TokenResponse: ...


def redirect(url: str) -> HTTPException:
    """Build the exception used to send the browser elsewhere."""
    return HTTPException(status_code=302, detail="Redirecting", headers={"Location": url})


class OAuth2Engine:
    """Drive the authorization code flow for a single provider."""

    def __init__(
        self,
        provider: OAuth2Provider,
        *,
        client_id: str,
        client_secret: str,
        callback_url: str,
        verify: VerifyCallback,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.provider = provider
        self.client_id = client_id
        self.client_secret = client_secret
        self.callback_url = callback_url
        self._verify = verify
        self._transport = transport

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def authenticate(
        self,
        request: Request,
        session: MutableMapping[str, Any],
        options: AuthenticateOptions | None = None,
    ) -> Any:
        """Run one step of the flow for *request*.

        Outside the callback path this always raises a redirect to the
        provider. On the callback path it returns the verified user, or
        raises a redirect when ``options.success_redirect`` is set.
        """
        if options is None:
            options = AuthenticateOptions()

        user = session.get(options.session_key)
        if user is not None:
            if options.success_redirect:
                raise redirect(options.success_redirect)
            return user

        redirect_uri = self._redirect_uri(request)

        if request.url.path != urlparse(redirect_uri).path:
            state = secrets.token_urlsafe(24)
            session[SESSION_STATE_KEY] = state
            logger.info("Redirecting to %s authorization endpoint", self.provider.name)
            raise redirect(self.authorization_url(redirect_uri, state))

        try:
            user = await self._complete(request, session, redirect_uri)
        except AuthorizationError as exc:
            logger.warning("%s authorization failed: %s", self.provider.name, exc)
            if options.failure_redirect:
                session[options.session_error_key] = {"message": str(exc)}
                raise redirect(options.failure_redirect)
            raise

        session[options.session_key] = user
        session[options.session_strategy_key] = self.provider.name

        if options.success_redirect:
            raise redirect(options.success_redirect)
        return user

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        """Build the provider authorize URL for a given state."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "state": state,
        }
        params.update(self.provider.build_authorization_params())
        return f"{self.provider.authorization_url}?{urlencode(params)}"

    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        """Trade a refresh token for a fresh token set."""
        response = await self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
        )
        return await self.provider.parse_token_response(response)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _redirect_uri(self, request: Request) -> str:
        # Relative callback URLs resolve against the incoming request
        return urljoin(str(request.url), self.callback_url)

    async def _complete(
        self,
        request: Request,
        session: MutableMapping[str, Any],
        redirect_uri: str,
    ) -> Any:
        params = request.query_params

        error = params.get("error")
        if error:
            description = params.get("error_description")
            raise AuthorizationError(f"{error}: {description}" if description else error)

        state = params.get("state")
        if not state:
            raise AuthorizationError("Missing state on URL")

        stored_state = session.pop(SESSION_STATE_KEY, None)
        if not stored_state:
            raise AuthorizationError("Missing state on session")
        if not secrets.compare_digest(state.encode(), stored_state.encode()):
            raise AuthorizationError("State doesn't match")

        code = params.get("code")
        if not code:
            raise AuthorizationError("Missing code")

        response = await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            }
        )
        tokens = await self.provider.parse_token_response(response)
        profile = await self.provider.fetch_user_profile(tokens.access_token)

        result = self._verify(VerifyParams(tokens=tokens, profile=profile, request=request))
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _token_request(self, data: dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(transport=self._transport) as client:
            resp = await client.post(
                self.provider.token_url,
                data={
                    **data,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/x-www-form-urlencoded",
                },
            )
            resp.raise_for_status()
            return resp
