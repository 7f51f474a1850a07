"""Steam slash command group registration.

/steam track <steamid>       - Track a Steam profile in this server
/steam untrack <steamid>     - Stop tracking a Steam profile
/steam set-interval <secs>   - Change this server's refresh interval (60-86400)

The group is guild-only and hidden from members without Manage Channels;
handlers re-check the permission at invocation time.
"""

from typing import Any, Protocol, runtime_checkable

import discord
from discord import app_commands
import structlog

from discord_interface import EmbedBuilder
from bot.commands.command_handlers import (
    CommandResult,
    TrackCommandHandler,
    UntrackCommandHandler,
    SetIntervalCommandHandler,
)

logger = structlog.get_logger()


# ════════════════════════════════════════════════════════════════════════════
# TYPE PROTOCOL: SteamWatchBot (for type safety)
# ════════════════════════════════════════════════════════════════════════════

@runtime_checkable
class SteamWatchBot(Protocol):
    """Protocol defining expected bot attributes for Steam commands."""
    store: Any
    status_updater: Any
    scheduler: Any
    tree: app_commands.CommandTree


# ════════════════════════════════════════════════════════════════════════════
# 🔧 HELPER: Response Handler
# ════════════════════════════════════════════════════════════════════════════

async def send_command_response(
    interaction: discord.Interaction,
    result: CommandResult,
) -> None:
    """
    Send a handler result, via followup if the interaction was deferred.
    """
    if result.success and result.embed:
        embed = result.embed
    else:
        embed = result.error_embed or EmbedBuilder.error_embed(
            "An unexpected error occurred. Please try again later."
        )

    if interaction.response.is_done():
        await interaction.followup.send(embed=embed, ephemeral=result.ephemeral)
    else:
        await interaction.response.send_message(embed=embed, ephemeral=result.ephemeral)


def build_steam_group(bot: SteamWatchBot) -> app_commands.Group:
    """
    Create the /steam command group with handlers bound to the bot's state.

    Args:
        bot: SteamWatchBot instance with store, status_updater, scheduler

    Returns:
        app_commands.Group ready to add to the command tree
    """
    track_handler = TrackCommandHandler(
        store=bot.store,
        updater=bot.status_updater,
        scheduler=bot.scheduler,
        embed_builder_type=EmbedBuilder,
    )
    untrack_handler = UntrackCommandHandler(
        store=bot.store,
        embed_builder_type=EmbedBuilder,
    )
    interval_handler = SetIntervalCommandHandler(
        scheduler=bot.scheduler,
        embed_builder_type=EmbedBuilder,
    )

    steam_group = app_commands.Group(
        name="steam",
        description="Track Steam profiles and post their status in this channel",
        guild_only=True,
        default_permissions=discord.Permissions(manage_channels=True),
    )

    @steam_group.command(name="track", description="Add Steam ID (type 64) to track")
    @app_commands.describe(steamid="Steam ID 64 of user")
    async def track_command(interaction: discord.Interaction, steamid: str) -> None:
        try:
            # Immediate refresh hits Steam and Discord; keep the token alive
            await interaction.response.defer(ephemeral=True)
            result = await track_handler.execute(interaction, steamid)
            await send_command_response(interaction, result)
        except Exception as e:
            logger.error("track_command_exception", error=str(e), exc_info=True)
            await send_command_response(
                interaction,
                CommandResult(
                    success=False,
                    error_embed=EmbedBuilder.error_embed(f"Track command error: {str(e)}"),
                ),
            )

    @steam_group.command(name="untrack", description="Remove Steam ID (type 64) from tracking")
    @app_commands.describe(steamid="Steam ID 64 of user")
    async def untrack_command(interaction: discord.Interaction, steamid: str) -> None:
        result = await untrack_handler.execute(interaction, steamid)
        await send_command_response(interaction, result)

    @steam_group.command(name="set-interval", description="Set update frequency for Steam status")
    @app_commands.describe(seconds="Update interval in seconds (60-86400)")
    async def set_interval_command(interaction: discord.Interaction, seconds: int) -> None:
        result = await interval_handler.execute(interaction, seconds)
        await send_command_response(interaction, result)

    return steam_group


def register_steam_commands(bot: SteamWatchBot) -> None:
    """
    Register the /steam command group on the bot's command tree.

    Args:
        bot: SteamWatchBot instance
    """
    steam_group = build_steam_group(bot)
    bot.tree.add_command(steam_group)
    logger.info(
        "steam_commands_registered",
        commands=[cmd.name for cmd in steam_group.commands],
    )
