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

"""Tests for state_store.py: JSON persistence and guild mutations."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from state_store import (
    CorruptStateError,
    GuildState,
    StateStore,
    StateStoreError,
)

GUILD = 111
CHANNEL = 222
STEAM_A = "76561197960287930"
STEAM_B = "76561198000000001"


class TestLoad:
    """Tests for StateStore.load()."""

    def test_missing_file_is_empty_state(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "absent.json")
        assert store.load() == {}
        assert store.guild_ids() == []

    def test_reads_legacy_format(self, state_path: Path) -> None:
        """Files written by earlier releases (string ids, camelCase keys) load."""
        state_path.write_text(json.dumps({
            "111": {"users": [STEAM_A, STEAM_B], "channelId": "222", "messageId": "333"},
            "444": {"users": [], "channelId": "555"},
        }))

        guilds = StateStore(state_path).load()

        assert guilds[111] == GuildState(
            guild_id=111, channel_id=222, users=[STEAM_A, STEAM_B], message_id=333
        )
        assert guilds[444].message_id is None
        assert guilds[444].users == []

    def test_accepts_integer_ids(self, state_path: Path) -> None:
        state_path.write_text(json.dumps({"111": {"users": [], "channelId": 222, "messageId": 333}}))
        guilds = StateStore(state_path).load()
        assert guilds[111].channel_id == 222
        assert guilds[111].message_id == 333

    def test_invalid_json_raises_corrupt(self, state_path: Path) -> None:
        state_path.write_text("{not json")
        with pytest.raises(CorruptStateError):
            StateStore(state_path).load()

    def test_non_object_root_raises_corrupt(self, state_path: Path) -> None:
        state_path.write_text(json.dumps([1, 2, 3]))
        with pytest.raises(CorruptStateError):
            StateStore(state_path).load()

    @pytest.mark.parametrize(
        "entry",
        [
            "not-an-object",
            {"users": "76561197960287930", "channelId": "222"},
            {"users": [123], "channelId": "222"},
            {"users": []},
            {"users": [], "channelId": "abc"},
        ],
    )
    def test_malformed_guild_entry_raises_corrupt(self, state_path: Path, entry) -> None:
        state_path.write_text(json.dumps({"111": entry}))
        with pytest.raises(CorruptStateError):
            StateStore(state_path).load()

    def test_non_numeric_guild_key_raises_corrupt(self, state_path: Path) -> None:
        state_path.write_text(json.dumps({"guild": {"users": [], "channelId": "1"}}))
        with pytest.raises(CorruptStateError):
            StateStore(state_path).load()

    def test_corrupt_error_is_a_store_error(self) -> None:
        assert issubclass(CorruptStateError, StateStoreError)


class TestSave:
    """Tests for StateStore.save()."""

    def test_save_writes_full_mapping(self, store: StateStore, state_path: Path) -> None:
        store.add_profile(GUILD, CHANNEL, STEAM_A)
        store.set_message_id(GUILD, 999)
        store.save()

        data = json.loads(state_path.read_text())
        assert data == {
            "111": {"users": [STEAM_A], "channelId": "222", "messageId": "999"}
        }

    def test_save_then_load_round_trip(self, store: StateStore, state_path: Path) -> None:
        store.add_profile(GUILD, CHANNEL, STEAM_A)
        store.add_profile(GUILD, CHANNEL, STEAM_B)
        store.save()

        reloaded = StateStore(state_path).load()
        assert reloaded[GUILD].users == [STEAM_A, STEAM_B]

    def test_save_leaves_no_temp_file(self, store: StateStore, state_path: Path) -> None:
        store.add_profile(GUILD, CHANNEL, STEAM_A)
        store.save()
        assert not state_path.with_name(state_path.name + ".tmp").exists()

    def test_save_creates_parent_directory(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "nested" / "dir" / "state.json")
        store.add_profile(GUILD, CHANNEL, STEAM_A)
        store.save()
        assert (tmp_path / "nested" / "dir" / "state.json").exists()

    def test_save_failure_raises_and_keeps_memory(self, store: StateStore) -> None:
        store.add_profile(GUILD, CHANNEL, STEAM_A)

        with patch("state_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StateStoreError, match="disk full"):
                store.save()

        assert store.get(GUILD).users == [STEAM_A]


class TestMutations:
    """Tests for add_profile / remove_profile / set_message_id."""

    def test_first_add_creates_guild_with_channel(self, store: StateStore) -> None:
        assert store.add_profile(GUILD, CHANNEL, STEAM_A) is True

        state = store.get(GUILD)
        assert state.channel_id == CHANNEL
        assert state.users == [STEAM_A]
        assert state.message_id is None

    def test_duplicate_add_is_noop(self, store: StateStore) -> None:
        store.add_profile(GUILD, CHANNEL, STEAM_A)
        assert store.add_profile(GUILD, CHANNEL, STEAM_A) is False
        assert store.get(GUILD).users == [STEAM_A]

    def test_later_add_keeps_first_channel(self, store: StateStore) -> None:
        store.add_profile(GUILD, CHANNEL, STEAM_A)
        store.add_profile(GUILD, 999, STEAM_B)
        assert store.get(GUILD).channel_id == CHANNEL

    def test_add_preserves_insertion_order(self, store: StateStore) -> None:
        for steam_id in ("3", "1", "2"):
            store.add_profile(GUILD, CHANNEL, steam_id)
        assert store.get(GUILD).users == ["3", "1", "2"]

    def test_remove_after_add_restores_list(self, store: StateStore) -> None:
        store.add_profile(GUILD, CHANNEL, STEAM_A)
        before = list(store.get(GUILD).users)

        store.add_profile(GUILD, CHANNEL, STEAM_B)
        assert store.remove_profile(GUILD, STEAM_B) is True

        assert store.get(GUILD).users == before

    def test_remove_untracked_returns_false(self, store: StateStore) -> None:
        assert store.remove_profile(GUILD, STEAM_A) is False
        store.add_profile(GUILD, CHANNEL, STEAM_A)
        assert store.remove_profile(GUILD, STEAM_B) is False
        assert store.get(GUILD).users == [STEAM_A]

    def test_remove_last_profile_keeps_guild(self, store: StateStore) -> None:
        store.add_profile(GUILD, CHANNEL, STEAM_A)
        store.remove_profile(GUILD, STEAM_A)
        assert GUILD in store.guild_ids()
        assert store.get(GUILD).users == []

    def test_set_message_id_unknown_guild(self, store: StateStore) -> None:
        with pytest.raises(KeyError):
            store.set_message_id(GUILD, 1)

    def test_total_tracked_and_is_tracked(self, store: StateStore) -> None:
        store.add_profile(1, CHANNEL, STEAM_A)
        store.add_profile(2, CHANNEL, STEAM_A)
        store.add_profile(2, CHANNEL, STEAM_B)

        assert store.total_tracked() == 3
        assert store.is_tracked(2, STEAM_B)
        assert not store.is_tracked(1, STEAM_B)
        assert not store.is_tracked(3, STEAM_A)
