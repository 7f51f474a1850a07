"""Discord slash command registration.

Exports register_steam_commands() which registers the /steam command group.
"""

from .steam import register_steam_commands

__all__ = ["register_steam_commands"]
