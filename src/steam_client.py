"""
Steam Web API client for player presence.

Fetches player summaries from ISteamUser/GetPlayerSummaries and normalizes
them into PresenceRecord objects. Every failure mode collapses to None so a
single bad profile never breaks an update cycle.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp
import structlog

logger = structlog.get_logger()

PLAYER_SUMMARIES_URL = "https://api.steampowered.com/ISteamUser/GetPlayerSummaries/v2/"
NOT_PLAYING = "Not playing anything"


@dataclass(frozen=True)
class PresenceRecord:
    """Normalized presence of a single Steam profile."""

    steam_id: str
    display_name: str
    avatar_url: str
    current_activity: str
    game_id: Optional[str] = None


class SteamClient:
    """Async Steam Web API client (one shared HTTP session)."""

    def __init__(
        self,
        api_key: str,
        request_timeout: float = 10.0,
        base_url: str = PLAYER_SUMMARIES_URL,
    ):
        """
        Initialize Steam client.

        Args:
            api_key: Steam Web API key
            request_timeout: Total timeout per request (seconds)
            base_url: GetPlayerSummaries endpoint
        """
        self.api_key = api_key
        self.request_timeout = request_timeout
        self.base_url = base_url
        self.session: Optional[aiohttp.ClientSession] = None

    async def connect(self) -> None:
        """Initialize HTTP session."""
        if self.session is None:
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            self.session = aiohttp.ClientSession(timeout=timeout)
            logger.info("steam_client_connected", timeout=self.request_timeout)

    async def close(self) -> None:
        """Close HTTP session."""
        if self.session is not None:
            await self.session.close()
            self.session = None
            logger.info("steam_client_closed")

    async def fetch(self, steam_id: str) -> Optional[PresenceRecord]:
        """
        Fetch current presence for a Steam profile.

        The id is passed through as-is; Steam decides whether it is valid.

        Args:
            steam_id: SteamID64 of the profile

        Returns:
            PresenceRecord, or None if the profile could not be fetched
        """
        if self.session is None:
            raise RuntimeError("Steam client not connected - call connect() first")

        params = {"key": self.api_key, "steamids": steam_id}

        try:
            async with self.session.get(self.base_url, params=params) as response:
                if response.status != 200:
                    logger.warning(
                        "steam_fetch_bad_status",
                        steam_id=steam_id,
                        status=response.status,
                    )
                    return None
                data = await response.json(content_type=None)
        except asyncio.TimeoutError:
            logger.warning("steam_fetch_timeout", steam_id=steam_id, timeout=self.request_timeout)
            return None
        except aiohttp.ClientError as e:
            logger.warning("steam_fetch_http_error", steam_id=steam_id, error=str(e))
            return None
        except ValueError as e:
            # Covers json.JSONDecodeError
            logger.warning("steam_fetch_invalid_json", steam_id=steam_id, error=str(e))
            return None

        return parse_player_summary(steam_id, data)


def parse_player_summary(steam_id: str, data: Any) -> Optional[PresenceRecord]:
    """
    Normalize a GetPlayerSummaries payload into a PresenceRecord.

    Args:
        steam_id: Requested SteamID64
        data: Decoded JSON body

    Returns:
        PresenceRecord, or None if the payload is malformed or has no player
    """
    try:
        players = data["response"]["players"]
    except (KeyError, TypeError):
        logger.warning("steam_fetch_malformed_response", steam_id=steam_id)
        return None

    if not isinstance(players, list) or not players:
        logger.warning("steam_profile_not_found", steam_id=steam_id)
        return None

    player: Dict[str, Any] = players[0]
    if not isinstance(player, dict) or "personaname" not in player:
        logger.warning("steam_fetch_malformed_player", steam_id=steam_id)
        return None

    game_id = player.get("gameid")

    return PresenceRecord(
        steam_id=steam_id,
        display_name=str(player["personaname"]),
        avatar_url=str(player.get("avatarfull", "")),
        current_activity=player.get("gameextrainfo") or NOT_PLAYING,
        game_id=str(game_id) if game_id else None,
    )
