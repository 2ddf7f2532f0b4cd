"""Discord OAuth2 value types: scopes, options, raw payloads and profiles."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Literal, Sequence, TypedDict

DISCORD_CDN = "https://cdn.discordapp.com"

# ---------------------------------------------------------------------------
# Scopes & install context
# ---------------------------------------------------------------------------


class DiscordScope(str, Enum):
    """Scopes Discord accepts on the authorize endpoint.

    See https://discord.com/developers/docs/topics/oauth2#shared-resources-oauth2-scopes
    """

    ACTIVITIES_READ = "activities.read"
    ACTIVITIES_WRITE = "activities.write"
    APPLICATIONS_BUILDS_READ = "applications.builds.read"
    APPLICATIONS_BUILDS_UPLOAD = "applications.builds.upload"
    APPLICATIONS_COMMANDS = "applications.commands"
    APPLICATIONS_COMMANDS_UPDATE = "applications.commands.update"
    APPLICATIONS_COMMANDS_PERMISSIONS_UPDATE = "applications.commands.permissions.update"
    APPLICATIONS_ENTITLEMENTS = "applications.entitlements"
    APPLICATIONS_STORE_UPDATE = "applications.store.update"
    BOT = "bot"
    CONNECTIONS = "connections"
    DM_CHANNELS_READ = "dm_channels.read"
    EMAIL = "email"
    GDM_JOIN = "gdm.join"
    GUILDS = "guilds"
    GUILDS_JOIN = "guilds.join"
    GUILDS_MEMBERS_READ = "guilds.members.read"
    IDENTIFY = "identify"
    MESSAGES_READ = "messages.read"
    RELATIONSHIPS_READ = "relationships.read"
    ROLE_CONNECTIONS_WRITE = "role_connections.write"
    RPC = "rpc"
    RPC_ACTIVITIES_WRITE = "rpc.activities.write"
    RPC_NOTIFICATIONS_READ = "rpc.notifications.read"
    RPC_VOICE_READ = "rpc.voice.read"
    RPC_VOICE_WRITE = "rpc.voice.write"
    VOICE = "voice"
    WEBHOOK_INCOMING = "webhook.incoming"


class DiscordIntegrationType(IntEnum):
    """Installation context, required alongside ``applications.commands``."""

    GUILD_INSTALL = 0
    USER_INSTALL = 1


DiscordPrompt = Literal["none", "consent"]


def scope_value(scope: DiscordScope | str) -> str:
    """Return the wire string for a scope given as enum member or plain string."""
    if isinstance(scope, DiscordScope):
        return scope.value
    return scope


# ---------------------------------------------------------------------------
# Strategy configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DiscordStrategyOptions:
    """What the strategy needs from the host application."""

    client_id: str
    client_secret: str
    callback_url: str
    scope: Sequence[DiscordScope | str] | None = None  # default: identify email
    integration_type: DiscordIntegrationType | int | None = None
    prompt: DiscordPrompt | None = None


# ---------------------------------------------------------------------------
# Raw Discord payloads
# ---------------------------------------------------------------------------


class DiscordUserPayload(TypedDict, total=False):
    """``GET /users/@me`` response body.

    See https://discord.com/developers/docs/resources/user#user-object
    """

    id: str
    username: str
    discriminator: str
    global_name: str | None
    avatar: str | None
    bot: bool
    system: bool
    mfa_enabled: bool
    banner: str | None
    accent_color: int | None
    locale: str
    verified: bool
    email: str | None
    flags: int
    premium_type: int
    public_flags: int
    avatar_decoration: str | None


class DiscordGuild(TypedDict):
    """Partial guild returned by ``GET /users/@me/guilds`` (``guilds`` scope)."""

    id: str
    name: str
    icon: str | None
    owner: bool
    permissions: str
    features: list[str]


# ---------------------------------------------------------------------------
# Normalized results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DiscordProfile:
    """Discord user mapped onto the generic OAuth2 profile shape."""

    id: str
    display_name: str
    emails: list[dict[str, str]] | None = None
    photos: list[dict[str, str]] | None = None
    raw: DiscordUserPayload = field(default_factory=dict)  # type: ignore[assignment]
    provider: str = "discord"

    @property
    def avatar_url(self) -> str | None:
        """CDN URL for the user's avatar, ``None`` when no avatar is set."""
        if not self.photos:
            return None
        avatar = self.photos[0]["value"]
        ext = "gif" if avatar.startswith("a_") else "png"
        return f"{DISCORD_CDN}/avatars/{self.id}/{avatar}.{ext}"


@dataclass(frozen=True)
class DiscordExtraParams:
    """Token-exchange fields other than the access and refresh tokens.

    ``scope`` arrives space-delimited and is stored split. Fields Discord
    adds beyond the known ones are kept in ``extra`` rather than merged in.
    """

    scope: list[str]
    token_type: str | None = None
    expires_in: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)
