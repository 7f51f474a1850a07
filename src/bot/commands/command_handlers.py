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

"""Tracking Command Handlers.

Handlers behind the /steam slash commands:
- TrackCommandHandler: Start tracking a Steam profile in this guild
- UntrackCommandHandler: Stop tracking a Steam profile
- SetIntervalCommandHandler: Change how often this guild's status refreshes

Handlers never touch interaction.response; they return a CommandResult that
the registration layer sends.
"""

from typing import Optional, Protocol
from dataclasses import dataclass
import discord
import structlog

from bot.helpers import format_interval
from config import MIN_UPDATE_INTERVAL, MAX_UPDATE_INTERVAL
from state_store import StateStore, StateStoreError

logger = structlog.get_logger()


# ============================================================================
# Protocols (Type-safe dependency contracts)
# ============================================================================

class StatusUpdaterProtocol(Protocol):
    """Protocol for the per-guild update cycle."""

    async def run_update(self, guild_id: int) -> bool:
        """Run one update cycle for a guild."""
        ...


class SchedulerProtocol(Protocol):
    """Protocol for the per-guild timer registry."""

    def schedule(self, guild_id: int, interval: Optional[int] = None) -> None:
        """Install or replace a guild's timer."""
        ...

    def ensure_scheduled(self, guild_id: int) -> bool:
        """Install a default timer unless one exists."""
        ...


class EmbedBuilderType(Protocol):
    """Protocol for embed builder."""

    @staticmethod
    def error_embed(message: str) -> discord.Embed:
        """Create error embed."""
        ...

    @staticmethod
    def warning_embed(message: str) -> discord.Embed:
        """Create warning embed."""
        ...

    @staticmethod
    def success_embed(message: str) -> discord.Embed:
        """Create success embed."""
        ...


# ============================================================================
# Result Type
# ============================================================================

@dataclass
class CommandResult:
    """Standard result type for command handlers."""

    success: bool
    embed: Optional[discord.Embed] = None
    error_embed: Optional[discord.Embed] = None
    ephemeral: bool = True


def _check_invocation(
    interaction: discord.Interaction,
    embed_builder: type[EmbedBuilderType],
) -> Optional[CommandResult]:
    """Reject invocations outside a guild or without Manage Channels."""
    if interaction.guild_id is None:
        return CommandResult(
            success=False,
            error_embed=embed_builder.error_embed("This command can only be used in a server."),
        )

    permissions = getattr(interaction, "permissions", None)
    if permissions is None or not permissions.manage_channels:
        logger.info(
            "command_permission_denied",
            user=getattr(interaction.user, "name", None),
            guild_id=interaction.guild_id,
        )
        return CommandResult(
            success=False,
            error_embed=embed_builder.error_embed(
                "You do not have permission to use these commands (Manage Channels)."
            ),
        )

    return None


# ============================================================================
# Track Command Handler
# ============================================================================

class TrackCommandHandler:
    """Start tracking a Steam profile in the invoking guild.

    Dependencies:
    - store: Guild tracking state (mutated synchronously)
    - updater: Runs the immediate refresh after a profile is added
    - scheduler: Gives the guild a timer on its first tracked profile
    - embed_builder_type: Discord embed formatting
    """

    def __init__(
        self,
        store: StateStore,
        updater: StatusUpdaterProtocol,
        scheduler: SchedulerProtocol,
        embed_builder_type: type[EmbedBuilderType],
    ):
        """Initialize handler with dependencies."""
        self.store = store
        self.updater = updater
        self.scheduler = scheduler
        self.embed_builder = embed_builder_type

    async def execute(self, interaction: discord.Interaction, steam_id: str) -> CommandResult:
        """Execute track command.

        Args:
            interaction: Discord interaction context
            steam_id: SteamID64 to track (validated by Steam, not here)

        Returns:
            CommandResult with success status and embed
        """
        rejected = _check_invocation(interaction, self.embed_builder)
        if rejected is not None:
            return rejected

        guild_id = interaction.guild_id
        steam_id = steam_id.strip()
        if not steam_id:
            logger.info("track_empty_steam_id", guild_id=guild_id)
            return CommandResult(
                success=False,
                error_embed=self.embed_builder.warning_embed("Please provide a Steam ID to track."),
            )

        # Read-modify-write without awaiting
        added = self.store.add_profile(guild_id, interaction.channel_id, steam_id)
        if not added:
            logger.info("track_already_tracked", guild_id=guild_id, steam_id=steam_id)
            return CommandResult(
                success=False,
                error_embed=self.embed_builder.warning_embed(
                    f"Steam ID {steam_id} is already being tracked."
                ),
            )

        try:
            self.store.save()
        except StateStoreError as e:
            logger.error("track_command_save_failed", guild_id=guild_id, error=str(e))
            return CommandResult(
                success=False,
                error_embed=self.embed_builder.error_embed(
                    f"Steam ID {steam_id} was added but could not be saved: {e}"
                ),
            )

        await self.updater.run_update(guild_id)
        self.scheduler.ensure_scheduled(guild_id)

        logger.info(
            "profile_tracked",
            guild_id=guild_id,
            steam_id=steam_id,
            moderator=getattr(interaction.user, "name", None),
        )
        return CommandResult(
            success=True,
            embed=self.embed_builder.success_embed(
                f"Added Steam ID {steam_id} to tracked profiles."
            ),
        )


# ============================================================================
# Untrack Command Handler
# ============================================================================

class UntrackCommandHandler:
    """Stop tracking a Steam profile in the invoking guild."""

    def __init__(
        self,
        store: StateStore,
        embed_builder_type: type[EmbedBuilderType],
    ):
        """Initialize handler with dependencies."""
        self.store = store
        self.embed_builder = embed_builder_type

    async def execute(self, interaction: discord.Interaction, steam_id: str) -> CommandResult:
        """Execute untrack command."""
        rejected = _check_invocation(interaction, self.embed_builder)
        if rejected is not None:
            return rejected

        guild_id = interaction.guild_id
        steam_id = steam_id.strip()

        if not self.store.remove_profile(guild_id, steam_id):
            logger.info("untrack_not_tracked", guild_id=guild_id, steam_id=steam_id)
            return CommandResult(
                success=False,
                error_embed=self.embed_builder.warning_embed(
                    f"Steam ID {steam_id} is not being tracked."
                ),
            )

        try:
            self.store.save()
        except StateStoreError as e:
            logger.error("untrack_command_save_failed", guild_id=guild_id, error=str(e))
            return CommandResult(
                success=False,
                error_embed=self.embed_builder.error_embed(
                    f"Steam ID {steam_id} was removed but could not be saved: {e}"
                ),
            )

        logger.info(
            "profile_untracked",
            guild_id=guild_id,
            steam_id=steam_id,
            moderator=getattr(interaction.user, "name", None),
        )
        return CommandResult(
            success=True,
            embed=self.embed_builder.success_embed(
                f"Removed Steam ID {steam_id} from tracked profiles."
            ),
        )


# ============================================================================
# Set-Interval Command Handler
# ============================================================================

class SetIntervalCommandHandler:
    """Replace the invoking guild's update timer."""

    def __init__(
        self,
        scheduler: SchedulerProtocol,
        embed_builder_type: type[EmbedBuilderType],
    ):
        """Initialize handler with dependencies."""
        self.scheduler = scheduler
        self.embed_builder = embed_builder_type

    async def execute(self, interaction: discord.Interaction, seconds: int) -> CommandResult:
        """Execute set-interval command.

        Args:
            interaction: Discord interaction context
            seconds: New interval, must be within [60, 86400]

        Returns:
            CommandResult with success status and embed
        """
        rejected = _check_invocation(interaction, self.embed_builder)
        if rejected is not None:
            return rejected

        if seconds < MIN_UPDATE_INTERVAL or seconds > MAX_UPDATE_INTERVAL:
            logger.info("set_interval_out_of_range", guild_id=interaction.guild_id, seconds=seconds)
            return CommandResult(
                success=False,
                error_embed=self.embed_builder.warning_embed(
                    f"The update interval must be between {MIN_UPDATE_INTERVAL} "
                    f"and {MAX_UPDATE_INTERVAL} seconds."
                ),
            )

        self.scheduler.schedule(interaction.guild_id, seconds)

        logger.info(
            "update_interval_set",
            guild_id=interaction.guild_id,
            seconds=seconds,
            moderator=getattr(interaction.user, "name", None),
        )
        return CommandResult(
            success=True,
            embed=self.embed_builder.success_embed(
                f"Update interval set to {seconds} seconds ({format_interval(seconds)})."
            ),
        )
