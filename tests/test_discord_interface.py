"""Tests for discord_interface.py: EmbedBuilder and presence card rendering."""

from datetime import datetime, timezone
from unittest.mock import patch

import discord

from discord_interface import EmbedBuilder, render_presence_cards
from steam_client import NOT_PLAYING

NOW = datetime(2025, 3, 14, 9, 26, tzinfo=timezone.utc)


class TestRenderPresenceCards:
    """render_presence_cards() contract."""

    def test_empty_input_gives_empty_output(self) -> None:
        assert render_presence_cards([]) == []

    def test_length_and_order_preserved(self, make_record) -> None:
        records = [make_record(steam_id=str(i), display_name=f"P{i}") for i in range(5)]

        cards = render_presence_cards(records, now=NOW)

        assert len(cards) == 5
        assert [c.title for c in cards] == [f"👤  P{i}" for i in range(5)]

    def test_card_contents(self, make_record) -> None:
        record = make_record(display_name="Gabe", activity="Dota 2", game_id="570")

        card = render_presence_cards([record], now=NOW)[0]

        assert isinstance(card, discord.Embed)
        assert card.title == "👤  Gabe"
        assert card.thumbnail.url == record.avatar_url
        assert card.image.url == "https://steamcdn-a.akamaihd.net/steam/apps/570/header.jpg"
        assert [(f.name, f.value) for f in card.fields] == [
            ("Profile", f"[Link](https://steamcommunity.com/profiles/{record.steam_id})"),
            ("Currently Playing", "Dota 2"),
        ]
        assert card.timestamp == NOW
        assert card.footer.text == "Last update — 09:26 UTC"

    def test_no_image_without_game(self, make_record) -> None:
        card = render_presence_cards([make_record(activity=NOT_PLAYING)], now=NOW)[0]
        assert card.image.url is None
        assert card.fields[1].value == NOT_PLAYING

    def test_profile_link_is_deterministic(self, make_record) -> None:
        record = make_record(steam_id="76561197960287930")
        first = render_presence_cards([record], now=NOW)[0]
        second = render_presence_cards([record], now=NOW)[0]
        assert first.fields[0].value == second.fields[0].value

    def test_color_comes_from_random(self, make_record) -> None:
        with patch("discord_interface.random.randint", return_value=0x123456):
            card = render_presence_cards([make_record()], now=NOW)[0]
        assert card.colour.value == 0x123456

    def test_defaults_to_current_time(self, make_record) -> None:
        with patch("discord_interface.discord.utils.utcnow", return_value=NOW):
            card = render_presence_cards([make_record()])[0]
        assert card.timestamp == NOW


class TestEmbedBuilder:
    """Reply embeds used by command handlers."""

    def test_error_embed(self) -> None:
        embed = EmbedBuilder.error_embed("nope")
        assert embed.title == "❌ Error"
        assert embed.description == "nope"
        assert embed.colour.value == EmbedBuilder.COLOR_ERROR

    def test_warning_and_success_colors(self) -> None:
        assert EmbedBuilder.warning_embed("w").colour.value == EmbedBuilder.COLOR_WARNING
        assert EmbedBuilder.success_embed("s").colour.value == EmbedBuilder.COLOR_SUCCESS

    def test_base_embed_footer(self) -> None:
        embed = EmbedBuilder.info_embed("Title", "Body")
        assert embed.footer.text == "Steam Watch"
        assert embed.colour.value == EmbedBuilder.COLOR_INFO
