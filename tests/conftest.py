"""Shared pytest fixtures for Steam Watch tests.

This module provides:
- src/ on sys.path for flat-layout imports
- Mock Discord interactions with guild, channel and permission context
- A file-backed StateStore in a temp directory
- PresenceRecord factory and a scripted fake Steam fetcher
- Mock channel/message objects for the update cycle

Async tests are marked with @pytest.mark.asyncio.
"""

from unittest.mock import MagicMock, AsyncMock
from typing import Callable, Dict, Optional
import sys
from pathlib import Path
import pytest
import discord

# Add src/ to Python path for absolute imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from state_store import StateStore  # noqa: E402
from steam_client import PresenceRecord, NOT_PLAYING  # noqa: E402


GUILD_ID = 111111111111111111
CHANNEL_ID = 222222222222222222


# ════════════════════════════════════════════════════════════════════════════
# STATE FIXTURES
# ════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    """Location of the JSON state file for one test."""
    return tmp_path / "tracked_users.json"


@pytest.fixture
def store(state_path: Path) -> StateStore:
    """Empty StateStore writing to a temp file."""
    store = StateStore(state_path)
    store.load()
    return store


@pytest.fixture
def make_record() -> Callable[..., PresenceRecord]:
    """Factory for PresenceRecord objects."""

    def _make(
        steam_id: str = "76561197960287930",
        display_name: Optional[str] = None,
        activity: str = NOT_PLAYING,
        game_id: Optional[str] = None,
    ) -> PresenceRecord:
        return PresenceRecord(
            steam_id=steam_id,
            display_name=display_name or f"player-{steam_id[-4:]}",
            avatar_url=f"https://avatars.example/{steam_id}.jpg",
            current_activity=activity,
            game_id=game_id,
        )

    return _make


class FakeFetcher:
    """Scripted presence fetcher: ids missing from `records` fail."""

    def __init__(self, records: Dict[str, PresenceRecord]) -> None:
        self.records = records
        self.calls: list = []

    async def fetch(self, steam_id: str) -> Optional[PresenceRecord]:
        self.calls.append(steam_id)
        return self.records.get(steam_id)


@pytest.fixture
def fake_fetcher_factory() -> Callable[[Dict[str, PresenceRecord]], FakeFetcher]:
    return FakeFetcher


# ════════════════════════════════════════════════════════════════════════════
# DISCORD MOCKS
# ════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def mock_interaction() -> MagicMock:
    """Create a mock Discord interaction invoked in a guild by a channel manager.

    Type Contract:
        - guild_id: int = GUILD_ID
        - channel_id: int = CHANNEL_ID
        - permissions.manage_channels: bool = True
        - user.name: str = "testuser"
        - response.send_message / response.defer: AsyncMock
        - response.is_done: returns False
        - followup.send: AsyncMock
    """
    interaction: MagicMock = MagicMock(spec=discord.Interaction)

    interaction.guild_id = GUILD_ID
    interaction.channel_id = CHANNEL_ID

    interaction.user = MagicMock()
    interaction.user.id = 123456789
    interaction.user.name = "testuser"

    interaction.permissions = MagicMock()
    interaction.permissions.manage_channels = True

    interaction.response = MagicMock()
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.response.is_done = MagicMock(return_value=False)

    interaction.followup = MagicMock()
    interaction.followup.send = AsyncMock()

    return interaction


@pytest.fixture
def mock_channel() -> MagicMock:
    """Create a mock text channel whose send() returns a message with id 9001.

    Type Contract:
        - send: AsyncMock -> message (id=9001)
        - fetch_message: AsyncMock (raises NotFound unless configured)
    """
    channel: MagicMock = MagicMock(spec=discord.TextChannel)
    channel.id = CHANNEL_ID

    sent_message = MagicMock(spec=discord.Message)
    sent_message.id = 9001
    sent_message.edit = AsyncMock()
    channel.send = AsyncMock(return_value=sent_message)

    not_found_response = MagicMock(status=404, reason="Not Found")
    channel.fetch_message = AsyncMock(
        side_effect=discord.NotFound(not_found_response, "Unknown Message")
    )
    return channel


@pytest.fixture
def mock_bot(mock_channel: MagicMock) -> MagicMock:
    """Create a mock bot resolving CHANNEL_ID to mock_channel."""
    bot: MagicMock = MagicMock()
    bot._connected = True
    bot.guilds = [MagicMock(), MagicMock()]
    bot.get_channel = MagicMock(
        side_effect=lambda cid: mock_channel if cid == CHANNEL_ID else None
    )
    bot.change_presence = AsyncMock()
    return bot
