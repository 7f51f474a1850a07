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
Persistent per-guild tracking state.

The whole mapping lives in memory and is written back to a single JSON file
on every mutation. File layout (kept compatible with earlier releases):

    {
      "<guild_id>": {
        "users": ["<steam_id>", ...],
        "channelId": "<channel_id>",
        "messageId": "<message_id>"
      }
    }

Mutators never await, so a command handler can read and modify a guild's
state atomically with respect to other tasks on the event loop.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import structlog

logger = structlog.get_logger()


class StateStoreError(Exception):
    """Raised when tracking state cannot be read or written."""


class CorruptStateError(StateStoreError):
    """Raised when the state file exists but does not hold valid state."""


@dataclass
class GuildState:
    """Tracking state for a single guild."""

    guild_id: int
    channel_id: int
    users: List[str] = field(default_factory=list)
    message_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "users": list(self.users),
            "channelId": str(self.channel_id),
        }
        if self.message_id is not None:
            data["messageId"] = str(self.message_id)
        return data

    @classmethod
    def from_dict(cls, guild_id: int, data: Any) -> "GuildState":
        """
        Build a GuildState from its JSON representation.

        Raises:
            CorruptStateError: If the entry is not a valid guild object
        """
        if not isinstance(data, dict):
            raise CorruptStateError(
                f"Guild {guild_id}: expected object, got {type(data).__name__}"
            )

        users = data.get("users", [])
        if not isinstance(users, list) or not all(isinstance(u, str) for u in users):
            raise CorruptStateError(f"Guild {guild_id}: 'users' must be a list of strings")

        return cls(
            guild_id=guild_id,
            channel_id=_parse_id(data.get("channelId"), f"Guild {guild_id} channelId"),
            users=list(dict.fromkeys(users)),
            message_id=(
                _parse_id(data["messageId"], f"Guild {guild_id} messageId")
                if data.get("messageId") is not None
                else None
            ),
        )


def _parse_id(value: Any, field_name: str) -> int:
    """Convert a snowflake stored as str or int into an int."""
    if isinstance(value, bool):
        raise CorruptStateError(f"Invalid id for {field_name}: {value!r}")

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            raise CorruptStateError(f"Invalid id for {field_name}: {value!r}")

    raise CorruptStateError(f"Missing or invalid id for {field_name}")


class StateStore:
    """In-memory guild tracking state backed by a JSON file."""

    def __init__(self, path: Union[str, Path]) -> None:
        """
        Initialize state store.

        Args:
            path: Location of the JSON state file
        """
        self.path = Path(path)
        self.guilds: Dict[int, GuildState] = {}

    def load(self) -> Dict[int, GuildState]:
        """
        Load state from disk, replacing anything held in memory.

        A missing file is treated as empty state.

        Returns:
            Mapping of guild id -> GuildState

        Raises:
            CorruptStateError: If the file exists but is not valid state
            StateStoreError: If the file exists but cannot be read
        """
        if not self.path.exists():
            logger.info("state_file_not_found", path=str(self.path))
            self.guilds = {}
            return self.guilds

        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StateStoreError(f"Cannot read state file {self.path}: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptStateError(f"State file {self.path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise CorruptStateError(
                f"State file {self.path} must contain an object, got {type(data).__name__}"
            )

        guilds: Dict[int, GuildState] = {}
        for key, entry in data.items():
            guild_id = _parse_id(key, "guild id")
            guilds[guild_id] = GuildState.from_dict(guild_id, entry)

        self.guilds = guilds
        logger.info(
            "state_loaded",
            path=str(self.path),
            guilds=len(guilds),
            profiles=self.total_tracked(),
        )
        return self.guilds

    def save(self) -> None:
        """
        Write the full state to disk, synchronously.

        Writes to a sibling temp file first and swaps it into place.

        Raises:
            StateStoreError: If the file cannot be written. In-memory state
                is left untouched.
        """
        payload = {str(gid): state.to_dict() for gid, state in self.guilds.items()}
        tmp_path = self.path.with_name(self.path.name + ".tmp")

        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error("state_save_failed", path=str(self.path), error=str(e))
            raise StateStoreError(f"Cannot write state file {self.path}: {e}") from e

        logger.debug("state_saved", path=str(self.path), guilds=len(self.guilds))

    # ========================================================================
    # Queries
    # ========================================================================

    def get(self, guild_id: int) -> Optional[GuildState]:
        return self.guilds.get(guild_id)

    def guild_ids(self) -> List[int]:
        return list(self.guilds.keys())

    def is_tracked(self, guild_id: int, steam_id: str) -> bool:
        state = self.guilds.get(guild_id)
        return state is not None and steam_id in state.users

    def total_tracked(self) -> int:
        """Number of tracked profiles summed across every guild."""
        return sum(len(state.users) for state in self.guilds.values())

    # ========================================================================
    # Mutations (synchronous - never yield between read and write)
    # ========================================================================

    def add_profile(self, guild_id: int, channel_id: int, steam_id: str) -> bool:
        """
        Track a profile in a guild, creating the guild entry on first use.

        The output channel is fixed when the guild entry is created.

        Returns:
            True if the profile was added, False if it was already tracked
        """
        state = self.guilds.get(guild_id)
        if state is None:
            state = GuildState(guild_id=guild_id, channel_id=channel_id)
            self.guilds[guild_id] = state
            logger.info("guild_state_created", guild_id=guild_id, channel_id=channel_id)

        if steam_id in state.users:
            return False

        state.users.append(steam_id)
        return True

    def remove_profile(self, guild_id: int, steam_id: str) -> bool:
        """
        Stop tracking a profile in a guild.

        Returns:
            True if the profile was removed, False if it was not tracked
        """
        state = self.guilds.get(guild_id)
        if state is None or steam_id not in state.users:
            return False

        state.users = [user for user in state.users if user != steam_id]
        return True

    def set_message_id(self, guild_id: int, message_id: int) -> None:
        """Record the status message posted for a guild."""
        state = self.guilds.get(guild_id)
        if state is None:
            raise KeyError(guild_id)
        state.message_id = message_id
