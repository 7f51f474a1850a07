"""Per-guild status message update cycle."""

from typing import Any, List, Optional, Set

import discord
import structlog

from discord_interface import render_presence_cards
from state_store import StateStore, StateStoreError
from steam_client import PresenceRecord

logger = structlog.get_logger()

# Discord rejects messages carrying more than 10 embeds
MAX_EMBEDS_PER_MESSAGE = 10


class StatusUpdater:
    """Fetch presence for a guild's tracked profiles and post or edit its status message."""

    def __init__(self, bot: Any, store: StateStore, fetcher: Any) -> None:
        """
        Initialize status updater.

        Args:
            bot: Discord client used to resolve channels
            store: Guild tracking state
            fetcher: Object with async fetch(steam_id) -> Optional[PresenceRecord]
        """
        self.bot = bot
        self.store = store
        self.fetcher = fetcher
        self._in_flight: Set[int] = set()
        self._rerun: Set[int] = set()

    def is_running(self, guild_id: int) -> bool:
        return guild_id in self._in_flight

    async def run_update(self, guild_id: int) -> bool:
        """
        Run one update cycle for a guild.

        A cycle requested while another is still running for the same
        guild does not overlap it. The running cycle is asked to go round
        once more, so profiles added meanwhile are picked up.

        Returns:
            True if the status message was edited or sent, False otherwise
        """
        if guild_id in self._in_flight:
            self._rerun.add(guild_id)
            logger.debug("update_cycle_rerun_requested", guild_id=guild_id)
            return False

        self._in_flight.add(guild_id)
        try:
            posted = await self._run_cycle(guild_id)
            while guild_id in self._rerun:
                self._rerun.discard(guild_id)
                posted = await self._run_cycle(guild_id) or posted
            return posted
        finally:
            self._in_flight.discard(guild_id)
            self._rerun.discard(guild_id)

    async def _run_cycle(self, guild_id: int) -> bool:
        state = self.store.get(guild_id)
        if state is None:
            logger.error("update_cycle_no_guild_state", guild_id=guild_id)
            return False

        channel = self.bot.get_channel(state.channel_id)
        if channel is None or not isinstance(channel, discord.abc.Messageable):
            logger.error(
                "update_cycle_channel_not_found",
                guild_id=guild_id,
                channel_id=state.channel_id,
            )
            return False

        records = await self._collect_presence(list(state.users))
        embeds = render_presence_cards(records)

        if not embeds:
            logger.info("update_cycle_nothing_to_post", guild_id=guild_id)
            return False

        if len(embeds) > MAX_EMBEDS_PER_MESSAGE:
            logger.warning(
                "update_cycle_embeds_truncated",
                guild_id=guild_id,
                rendered=len(embeds),
                limit=MAX_EMBEDS_PER_MESSAGE,
            )
            embeds = embeds[:MAX_EMBEDS_PER_MESSAGE]

        message = await self._fetch_existing_message(channel, guild_id, state.message_id)
        if message is not None:
            try:
                await message.edit(embeds=embeds)
            except discord.HTTPException as e:
                logger.error(
                    "status_message_edit_failed",
                    guild_id=guild_id,
                    message_id=message.id,
                    error=str(e),
                )
                return False
            logger.info(
                "status_message_edited",
                guild_id=guild_id,
                message_id=message.id,
                cards=len(embeds),
            )
            return True

        try:
            sent = await channel.send(embeds=embeds)
        except discord.HTTPException as e:
            logger.error(
                "status_message_send_failed",
                guild_id=guild_id,
                channel_id=state.channel_id,
                error=str(e),
            )
            return False

        self.store.set_message_id(guild_id, sent.id)
        try:
            self.store.save()
        except StateStoreError as e:
            logger.error(
                "status_message_id_not_persisted",
                guild_id=guild_id,
                message_id=sent.id,
                error=str(e),
            )

        logger.info(
            "status_message_sent",
            guild_id=guild_id,
            message_id=sent.id,
            cards=len(embeds),
        )
        return True

    async def _collect_presence(self, steam_ids: List[str]) -> List[PresenceRecord]:
        """Fetch profiles in order, dropping the ones that fail."""
        records: List[PresenceRecord] = []
        for steam_id in steam_ids:
            record = await self.fetcher.fetch(steam_id)
            if record is None:
                logger.debug("presence_fetch_skipped", steam_id=steam_id)
                continue
            records.append(record)
        return records

    async def _fetch_existing_message(
        self,
        channel: Any,
        guild_id: int,
        message_id: Optional[int],
    ) -> Optional[discord.Message]:
        """Return the guild's stored status message, or None if it is gone."""
        if message_id is None:
            return None

        try:
            return await channel.fetch_message(message_id)
        except discord.NotFound:
            logger.warning(
                "status_message_missing",
                guild_id=guild_id,
                message_id=message_id,
            )
        except discord.HTTPException as e:
            # Forbidden is a subclass of HTTPException
            logger.warning(
                "status_message_fetch_failed",
                guild_id=guild_id,
                message_id=message_id,
                error=str(e),
            )
        return None
