"""
Game metadata enrichment from IGDB.

IGDB authenticates through Twitch client credentials. The bearer token
lives in an explicitly owned TokenCache with an injected clock, so the
process shares one token without any module-level state.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import httpx

from subscription_catalog.catalog.resolver import EntityResolver
from subscription_catalog.config import IgdbConfig, Settings
from subscription_catalog.context import Clock, SystemClock
from subscription_catalog.domain.models import ExternalRef, PlatformTag
from subscription_catalog.errors import APIError, ConfigurationError
from subscription_catalog.ingestion.contracts.igdb import IgdbGame, IgdbGameList, TwitchToken
from subscription_catalog.ingestion.providers.base import BaseHttpClient
from subscription_catalog.logger import get_logger

GAME_FIELDS = "fields name, slug, cover.url, first_release_date, platforms.name, summary;"


@dataclass(frozen=True)
class CachedToken:
    token: str
    expires_at: datetime


class TokenCache:
    """
    Single cached bearer token with an expiry.

    Example:
        >>> cache = TokenCache(clock)
        >>> cache.store("abc", expires_in=5_000_000, safety_margin=3600)
        >>> cache.get()
        'abc'
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._token: CachedToken | None = None

    def get(self) -> str | None:
        """The cached token, or None when absent or expired."""
        if self._token is None or self._token.expires_at <= self._clock.now():
            return None
        return self._token.token

    def store(self, token: str, *, expires_in: int, safety_margin: int = 0) -> CachedToken:
        """Cache a token, shortening its lifetime by the safety margin."""
        lifetime = max(expires_in - safety_margin, 0)
        self._token = CachedToken(
            token=token,
            expires_at=self._clock.now() + timedelta(seconds=lifetime),
        )
        return self._token

    def clear(self) -> None:
        self._token = None

    @property
    def expires_at(self) -> datetime | None:
        return self._token.expires_at if self._token else None


def normalize_igdb_platform(name: str) -> PlatformTag | None:
    """Map an IGDB platform name onto a canonical tag."""
    lower = name.lower()
    if "playstation 5" in lower:
        return PlatformTag.PS5
    if "playstation 4" in lower:
        return PlatformTag.PS4
    if "playstation" in lower:
        return PlatformTag.CONSOLE
    if "xbox" in lower:
        return PlatformTag.XBOX
    if "switch" in lower:
        return PlatformTag.SWITCH
    if any(k in lower for k in ("pc", "windows", "linux", "mac")):
        return PlatformTag.PC
    return None


def igdb_platform_tags(game: IgdbGame) -> set[PlatformTag]:
    tags = (normalize_igdb_platform(p.name) for p in game.platforms)
    return {t for t in tags if t is not None}


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class IgdbClient(BaseHttpClient):
    """
    Minimal IGDB client.

    Example:
        >>> async with IgdbClient(token_cache=TokenCache()) as igdb:
        ...     game = await igdb.find_game("Hollow Knight")
    """

    source_name = "igdb"

    def __init__(
        self,
        *,
        token_cache: TokenCache | None = None,
        config: IgdbConfig | None = None,
        settings: Settings | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(settings=settings, **kwargs)
        self._config = config or self._settings.igdb
        self._token_cache = token_cache or TokenCache()

    def _requests_per_minute(self) -> int:
        return self._settings.igdb.requests_per_minute

    def _timeout_seconds(self) -> float:
        return float(self._settings.igdb.timeout_seconds)

    def _credentials(self) -> tuple[str, str]:
        if not self._config.has_credentials:
            raise ConfigurationError("TWITCH_CLIENT_ID and TWITCH_CLIENT_SECRET must be set")
        assert self._config.client_id is not None and self._config.client_secret is not None
        return self._config.client_id, self._config.client_secret.get_secret_value()

    async def access_token(self) -> str:
        """Cached bearer token, refreshed when missing or expired."""
        cached = self._token_cache.get()
        if cached is not None:
            return cached

        client_id, client_secret = self._credentials()
        url = self._config.token_url
        payload = await self._request_json(
            "POST",
            url,
            data={
                "client_id": client_id,
                "client_secret": client_secret,
                "grant_type": "client_credentials",
            },
        )
        token = self._parse(TwitchToken, payload, endpoint=url)
        cached_token = self._token_cache.store(
            token.access_token,
            expires_in=token.expires_in,
            safety_margin=self._config.token_safety_margin_seconds,
        )
        self._logger.info("Obtained access token", expires_at=cached_token.expires_at.isoformat())
        return token.access_token

    async def query_games(self, body: str) -> list[IgdbGame]:
        """Run an Apicalypse query against /games."""
        client_id, _ = self._credentials()
        token = await self.access_token()
        url = f"{self._config.api_url.rstrip('/')}/games"

        try:
            payload = await self._request_json(
                "POST",
                url,
                content=body,
                headers={
                    "Client-ID": client_id,
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "text/plain",
                },
            )
        except APIError as e:
            if e.status_code == 401:
                self._token_cache.clear()
            raise
        return self._parse(IgdbGameList, payload, endpoint=url).root

    async def find_game(self, title: str) -> IgdbGame | None:
        """Exact (case-insensitive) name match first, then a fuzzy search."""
        quoted = _quote(title)
        games = await self.query_games(f'where name ~ "{quoted}"; {GAME_FIELDS} limit 1;')
        if not games:
            games = await self.query_games(f'search "{quoted}"; {GAME_FIELDS} limit 1;')
        return games[0] if games else None


class MetadataEnricher:
    """
    Attaches IGDB ids and metadata to canonical games.

    Example:
        >>> enricher = MetadataEnricher(igdb, resolver)
        >>> await enricher.enrich(game_id, "Hollow Knight")
        True
    """

    def __init__(self, client: IgdbClient, resolver: EntityResolver) -> None:
        self._client = client
        self._resolver = resolver
        self._logger = get_logger(__name__, component="enrichment")

    async def enrich(self, game_id: str, title: str) -> bool:
        """Look a game up on IGDB; returns False when nothing matched."""
        match = await self._client.find_game(title)
        if match is None:
            self._logger.debug("No IGDB match", game_id=game_id, title=title)
            return False

        self._resolver.attach_preferred_ref(
            game_id,
            ExternalRef(source="igdb", id=str(match.id)),
            cover_url=match.cover_url,
            description=match.summary,
            release_date=match.release_date,
            platforms=igdb_platform_tags(match),
        )
        self._logger.debug("Enriched game", game_id=game_id, igdb_id=match.id)
        return True

    async def close(self) -> None:
        await self._client.close()


def build_enricher(
    resolver: EntityResolver,
    *,
    settings: Settings,
    clock: Clock | None = None,
    client: httpx.AsyncClient | None = None,
) -> MetadataEnricher | None:
    """An enricher when IGDB credentials are configured, otherwise None."""
    if not settings.igdb.has_credentials:
        return None
    igdb = IgdbClient(token_cache=TokenCache(clock), settings=settings, client=client)
    return MetadataEnricher(igdb, resolver)
