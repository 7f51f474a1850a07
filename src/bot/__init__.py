"""Discord bot module - components wired together by DiscordBot."""

from .helpers import PresenceManager
from .scheduler import UpdateScheduler
from .status_updater import StatusUpdater

__all__ = [
    "PresenceManager",
    "UpdateScheduler",
    "StatusUpdater",
]
