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

"""
Discord embed construction.

EmbedBuilder holds the color scheme and the reply embeds used by slash
commands. render_presence_cards() turns PresenceRecords into the status
cards posted by the update loop.
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import List, Optional, Sequence

import discord

from steam_client import PresenceRecord

STEAM_PROFILE_URL = "https://steamcommunity.com/profiles/{steam_id}"
STEAM_GAME_HEADER_URL = "https://steamcdn-a.akamaihd.net/steam/apps/{game_id}/header.jpg"


class EmbedBuilder:
    """Helper class for creating rich Discord embeds."""

    # Color scheme - EXPLICITLY TYPED AS INT to satisfy protocol invariance
    COLOR_SUCCESS: int = 0x00FF00      # Green
    COLOR_INFO: int = 0x3498DB         # Blue
    COLOR_WARNING: int = 0xFFA500      # Orange
    COLOR_ERROR: int = 0xFF0000        # Red

    @staticmethod
    def create_base_embed(
        title: str,
        description: Optional[str] = None,
        color: Optional[int] = None
    ) -> discord.Embed:
        """Create a base embed with standard styling."""
        embed = discord.Embed(
            title=title,
            description=description,
            color=color or EmbedBuilder.COLOR_INFO,
            timestamp=discord.utils.utcnow()
        )
        embed.set_footer(text="Steam Watch")
        return embed

    @staticmethod
    def success_embed(message: str) -> discord.Embed:
        return EmbedBuilder.create_base_embed(
            title="✅ Done",
            description=message,
            color=EmbedBuilder.COLOR_SUCCESS
        )

    @staticmethod
    def warning_embed(message: str) -> discord.Embed:
        return EmbedBuilder.create_base_embed(
            title="⚠️ Notice",
            description=message,
            color=EmbedBuilder.COLOR_WARNING
        )

    @staticmethod
    def error_embed(message: str) -> discord.Embed:
        """Create error embed.

        Args:
            message: Error message to display

        Returns:
            discord.Embed with error styling
        """
        return EmbedBuilder.create_base_embed(
            title="❌ Error",
            description=message,
            color=EmbedBuilder.COLOR_ERROR
        )

    @staticmethod
    def info_embed(title: str, message: str) -> discord.Embed:
        """Create generic info embed."""
        return EmbedBuilder.create_base_embed(
            title=title,
            description=message,
            color=EmbedBuilder.COLOR_INFO
        )

    @staticmethod
    def random_color() -> int:
        """Decorative card color; has no meaning."""
        return random.randint(0, 0xFFFFFF)

    @staticmethod
    def presence_card(record: PresenceRecord, now: datetime) -> discord.Embed:
        """
        Create the status card for one Steam profile.

        Args:
            record: Presence to display
            now: Time of this update (aware datetime)

        Returns:
            discord.Embed for the profile
        """
        embed = discord.Embed(
            title=f"👤  {record.display_name}",
            color=EmbedBuilder.random_color(),
            timestamp=now,
        )
        if record.avatar_url:
            embed.set_thumbnail(url=record.avatar_url)
        if record.game_id:
            embed.set_image(url=STEAM_GAME_HEADER_URL.format(game_id=record.game_id))

        embed.add_field(
            name="Profile",
            value=f"[Link]({STEAM_PROFILE_URL.format(steam_id=record.steam_id)})",
            inline=False,
        )
        embed.add_field(
            name="Currently Playing",
            value=record.current_activity,
            inline=False,
        )
        embed.set_footer(text=f"Last update — {now.strftime('%H:%M')} UTC")
        return embed


def render_presence_cards(
    records: Sequence[PresenceRecord],
    now: Optional[datetime] = None,
) -> List[discord.Embed]:
    """
    Render presence records into status cards, one per record, same order.

    No I/O. An empty input yields an empty list, which callers treat as
    "nothing to post".

    Args:
        records: Presence records in display order
        now: Update time shared by every card (defaults to current UTC time)

    Returns:
        List of discord.Embed
    """
    if now is None:
        now = discord.utils.utcnow()
    return [EmbedBuilder.presence_card(record, now) for record in records]
