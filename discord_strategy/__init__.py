"""
Discord login for Python web applications.

``DiscordStrategy`` supplies Discord's endpoints, scopes and profile mapping
to a generic OAuth2 authorization code engine.
"""

from .oauth2 import (
    AuthenticateOptions,
    AuthorizationError,
    OAuth2Engine,
    OAuth2Provider,
    TokenResponse,
    VerifyParams,
)
from .schemas import (
    DiscordExtraParams,
    DiscordGuild,
    DiscordIntegrationType,
    DiscordProfile,
    DiscordScope,
    DiscordStrategyOptions,
    DiscordUserPayload,
)
from .strategy import DiscordConfigurationError, DiscordStrategy

__all__ = [
    "DiscordStrategy",
    "DiscordStrategyOptions",
    "DiscordConfigurationError",
    "DiscordScope",
    "DiscordIntegrationType",
    "DiscordProfile",
    "DiscordExtraParams",
    "DiscordGuild",
    "DiscordUserPayload",
    "OAuth2Engine",
    "OAuth2Provider",
    "AuthenticateOptions",
    "AuthorizationError",
    "TokenResponse",
    "VerifyParams",
]
