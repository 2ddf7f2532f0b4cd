"""Strategy configuration via pydantic-settings."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from discord_strategy.schemas import DiscordStrategyOptions

_logger = logging.getLogger(__name__)

_INSECURE_DEFAULT_SECRET = "CHANGE-ME-in-production"  # nosec B105; validated in model_post_init

PRODUCTION_ENVS = ("production", "prod", "staging")


class Settings(BaseSettings):
    """Settings loaded from environment variables.

    All variables are prefixed with ``DISCORD_`` (e.g. ``DISCORD_CLIENT_ID``).
    ``DISCORD_SCOPE`` is a JSON list, e.g. ``'["identify", "guilds"]'``.
    """

    env: str = "development"

    # OAuth application
    client_id: str = ""
    client_secret: str = ""
    callback_url: str = "http://localhost:8000/auth/discord/callback"

    # Authorize parameters
    scope: list[str] | None = None
    integration_type: int | None = None
    prompt: Literal["none", "consent"] | None = None

    # Signs the session cookie of the bundled FastAPI app
    session_secret: str = _INSECURE_DEFAULT_SECRET

    model_config = SettingsConfigDict(
        env_prefix="DISCORD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def model_post_init(self, __context: object) -> None:
        """Refuse the default session secret outside development."""
        if self.session_secret == _INSECURE_DEFAULT_SECRET:
            if self.is_production:
                raise ValueError(
                    "DISCORD_SESSION_SECRET must be set to a secure value in production. "
                    'Generate one with: python -c "import secrets; print(secrets.token_urlsafe(64))"'
                )
            _logger.warning(
                "Using insecure default session secret. Set DISCORD_SESSION_SECRET for production."
            )

    @property
    def is_production(self) -> bool:
        return self.env.lower() in PRODUCTION_ENVS

    def strategy_options(self) -> DiscordStrategyOptions:
        """Build the options ``DiscordStrategy`` is constructed with."""
        return DiscordStrategyOptions(
            client_id=self.client_id,
            client_secret=self.client_secret,
            callback_url=self.callback_url,
            scope=self.scope,
            integration_type=self.integration_type,
            prompt=self.prompt,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance."""
    return Settings()
