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

"""Helper utilities for Discord bot operations.

Includes the rotating presence label and duration formatting for replies.
"""

import asyncio
from datetime import timedelta
from typing import Any, List, Optional
import discord
import structlog

logger = structlog.get_logger()

PRESENCE_TEMPLATES = (
    "👀 Tracking {tracked} Steam profiles",
    "🌍 Active in {guilds} servers",
    "🕹️ Type /steam track to track a profile!",
)


class PresenceManager:
    """Rotate the bot's "Watching ..." activity through fixed templates."""

    def __init__(self, bot: Any, rotation_interval: float = 15.0) -> None:
        """
        Initialize presence manager.

        Args:
            bot: DiscordBot instance (needs guilds and store)
            rotation_interval: Seconds between label changes
        """
        self.bot = bot
        self.rotation_interval = rotation_interval
        self._index = 0
        self._presence_task: Optional[asyncio.Task] = None

    def build_statuses(self) -> List[str]:
        """Render the templates with current counts."""
        tracked = self.bot.store.total_tracked() if self.bot.store is not None else 0
        guilds = len(self.bot.guilds)
        return [t.format(tracked=tracked, guilds=guilds) for t in PRESENCE_TEMPLATES]

    async def update(self) -> None:
        """Show the next label in the rotation (one-shot)."""
        if not self.bot._connected or not hasattr(self.bot, "user") or self.bot.user is None:
            return

        statuses = self.build_statuses()
        status_text = statuses[self._index % len(statuses)]
        self._index = (self._index + 1) % len(statuses)

        try:
            activity = discord.Activity(
                type=discord.ActivityType.watching,
                name=status_text,
            )
            await self.bot.change_presence(activity=activity)
            logger.debug("presence_updated", status=status_text)
        except Exception as e:
            logger.warning("presence_update_failed", error=str(e))

    async def _update_presence_loop(self) -> None:
        """Background loop rotating the presence label.

        Runs while the bot is connected; on_ready() restarts it after a
        reconnect.
        """
        logger.info("presence_update_loop_started", interval=self.rotation_interval)
        try:
            while self.bot._connected:
                await self.update()
                await asyncio.sleep(self.rotation_interval)
        except asyncio.CancelledError:
            logger.info("presence_update_loop_cancelled")
            raise
        except Exception as e:
            logger.error("presence_update_loop_error", error=str(e), exc_info=True)
        finally:
            logger.info("presence_update_loop_stopped")

    async def start(self) -> None:
        """Start the presence update loop if not already running."""
        if self._presence_task is None or self._presence_task.done():
            self._presence_task = asyncio.create_task(self._update_presence_loop())
            logger.info("presence_updater_started")
        else:
            logger.debug("presence_updater_already_running")

    async def stop(self) -> None:
        """Stop the presence update loop."""
        if self._presence_task:
            self._presence_task.cancel()
            try:
                await self._presence_task
            except asyncio.CancelledError:
                pass
            self._presence_task = None
            logger.info("presence_updater_stopped")


# ========================================================================
# MODULE-LEVEL HELPER FUNCTIONS
# ========================================================================

def format_interval(seconds: int) -> str:
    """
    Format an update interval as a short human-readable string.

    Args:
        seconds: Interval in seconds

    Returns:
        Formatted string (e.g., "1m", "1h 30m", "1d")
    """
    delta = timedelta(seconds=seconds)
    total_seconds = int(delta.total_seconds())

    days = total_seconds // 86400
    hours = (total_seconds % 86400) // 3600
    minutes = (total_seconds % 3600) // 60
    secs = total_seconds % 60

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")

    return " ".join(parts)
