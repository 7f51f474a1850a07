# Copyright (c) 2025 Stephen Clau
#
# This file is part of Steam Watch.
#
# Steam Watch is dual-licensed:
#
# 1. GNU Affero General Public License v3.0 (AGPL-3.0)
#    See LICENSE file for full terms
#
# 2. Commercial License
#    For proprietary use without AGPL requirements
#    Contact: licensing@laudiversified.com
#
# SPDX-License-Identifier: AGPL-3.0-only OR Commercial

"""Discord bot client.

Delegates concerns to specialized modules:
- bot.status_updater: Per-guild fetch/render/post cycle
- bot.scheduler: One repeating update task per guild
- bot.helpers: Rotating presence label
- bot.commands.steam: All /steam slash commands

The bot owns the application state (store, Steam client, scheduler) and
hands it to the command handlers; there are no module-level singletons.
"""

import asyncio
from typing import Optional

import discord
from discord import app_commands
import structlog

from bot import PresenceManager, StatusUpdater, UpdateScheduler
from bot.commands import register_steam_commands
from state_store import StateStore
from steam_client import SteamClient

logger = structlog.get_logger()


class DiscordBot(discord.Client):
    """Discord bot client posting Steam presence cards per guild."""

    def __init__(
        self,
        token: str,
        store: StateStore,
        steam_client: SteamClient,
        *,
        default_update_interval: int = 60,
        presence_rotation_interval: float = 15.0,
        intents: Optional[discord.Intents] = None,
    ):
        """
        Initialize Discord bot.

        Args:
            token: Discord bot token
            store: Loaded guild tracking state
            steam_client: Presence fetcher shared by every guild
            default_update_interval: Seconds between cycles for guilds without an override
            presence_rotation_interval: Seconds between presence label changes
            intents: Discord intents (auto-configured if None)
        """
        # Slash commands only need guild events
        if intents is None:
            intents = discord.Intents.none()
            intents.guilds = True

        super().__init__(intents=intents)

        self.token = token
        self.store = store
        self.steam_client = steam_client
        self.tree = app_commands.CommandTree(self)
        self._ready = asyncio.Event()
        self._connected = False
        self._resumed = False
        self._connection_task: Optional[asyncio.Task] = None

        self.status_updater = StatusUpdater(bot=self, store=store, fetcher=steam_client)
        self.scheduler = UpdateScheduler(
            run_update=self.status_updater.run_update,
            default_interval=default_update_interval,
        )
        self.presence_manager = PresenceManager(
            bot=self,
            rotation_interval=presence_rotation_interval,
        )

        logger.info(
            "discord_bot_initialized",
            guilds_tracked=len(store.guild_ids()),
            default_update_interval=default_update_interval,
        )

    # ========================================================================
    # Bot Lifecycle
    # ========================================================================

    async def setup_hook(self) -> None:
        """Called when the bot is starting up. Set up commands here."""
        register_steam_commands(self)
        logger.info("discord_bot_setup_complete")

    # ========================================================================
    # Discord Event Handlers
    # ========================================================================

    async def on_ready(self) -> None:
        """Called when bot is ready (fires on initial connect AND reconnects)."""
        if self.user is None:
            logger.error("discord_bot_ready_but_no_user")
            return

        logger.info(
            "discord_bot_ready",
            bot_name=self.user.name,
            bot_id=self.user.id,
            guilds=len(self.guilds),
        )

        self._connected = True
        self._ready.set()

        # Restart presence rotation if not running (handles reconnects)
        await self.presence_manager.start()

        try:
            synced = await self.tree.sync()
            logger.info(
                "commands_synced_globally",
                count=len(synced),
                commands=[cmd.name for cmd in synced],
            )
        except Exception as e:
            logger.error("command_sync_failed", error=str(e), exc_info=True)

        # Resume stored guilds once per process, not on every reconnect
        if not self._resumed:
            self._resumed = True
            self.scheduler.resume(self.store.guild_ids())

    async def on_disconnect(self) -> None:
        """Called when bot disconnects."""
        self._connected = False
        logger.warning("discord_bot_disconnected")

    async def on_error(self, event: str, *args, **kwargs) -> None:
        """Called when an error occurs."""
        logger.error("discord_bot_error", event=event, exc_info=True)

    # ========================================================================
    # Connection Management
    # ========================================================================

    async def connect_bot(self) -> None:
        """Connect the bot to Discord and wait for the ready event."""
        try:
            logger.info("connecting_to_discord")
            await self.login(self.token)
            self._connection_task = asyncio.create_task(self.connect())

            try:
                await asyncio.wait_for(self._ready.wait(), timeout=30.0)
                logger.info("discord_bot_connected")
                self._connected = True
            except asyncio.TimeoutError:
                logger.error("discord_bot_connection_timeout")
                if self._connection_task is not None:
                    self._connection_task.cancel()
                    try:
                        await self._connection_task
                    except asyncio.CancelledError:
                        pass
                raise ConnectionError("Discord bot connection timed out after 30 seconds")
        except discord.errors.LoginFailure as e:
            logger.error("discord_login_failed", error=str(e))
            raise ConnectionError(f"Discord login failed: {e}")
        except Exception as e:
            logger.error("discord_bot_connection_failed", error=str(e), exc_info=True)
            raise

    async def disconnect_bot(self) -> None:
        """Stop timers and presence rotation, then disconnect from Discord."""
        if self._connected or self._connection_task is not None:
            logger.info("disconnecting_from_discord")

            # Set flag FIRST - allows loops to exit gracefully
            self._connected = False

            await self.scheduler.stop()
            await self.presence_manager.stop()

            if self._connection_task is not None:
                if not self._connection_task.done():
                    self._connection_task.cancel()
                    try:
                        await self._connection_task
                    except asyncio.CancelledError:
                        pass
                self._connection_task = None

            if not self.is_closed():
                await self.close()
            logger.info("discord_bot_disconnected")

    @property
    def is_connected(self) -> bool:
        """Check if bot is connected to Discord."""
        return self._connected


class DiscordBotFactory:
    """Factory for creating Discord bot instances."""

    @staticmethod
    def create_bot(config, store: StateStore, steam_client: SteamClient) -> DiscordBot:
        """Create a Discord bot instance from application config."""
        return DiscordBot(
            token=config.discord_bot_token,
            store=store,
            steam_client=steam_client,
            default_update_interval=config.default_update_interval,
            presence_rotation_interval=config.presence_rotation_interval,
        )
