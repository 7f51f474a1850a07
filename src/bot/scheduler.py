"""Per-guild repeating update timers."""

import asyncio
from typing import Awaitable, Callable, Dict, Iterable, Optional

import structlog

from config import MIN_UPDATE_INTERVAL

logger = structlog.get_logger()


class UpdateScheduler:
    """Own one repeating update task per guild.

    Replacing a guild's interval cancels the running task before installing
    the new one, so a guild never has two timers. Intervals live in memory
    only and revert to the default on restart.
    """

    def __init__(
        self,
        run_update: Callable[[int], Awaitable[object]],
        default_interval: int = MIN_UPDATE_INTERVAL,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            run_update: Coroutine function running one cycle for a guild id
            default_interval: Interval in seconds for guilds without an override
        """
        self.run_update = run_update
        self.default_interval = default_interval
        self._tasks: Dict[int, asyncio.Task] = {}
        self._intervals: Dict[int, int] = {}
        self._immediate: Dict[int, asyncio.Task] = {}

    def is_scheduled(self, guild_id: int) -> bool:
        task = self._tasks.get(guild_id)
        return task is not None and not task.done()

    def get_interval(self, guild_id: int) -> Optional[int]:
        """Active interval in seconds, or None if the guild has no timer."""
        if not self.is_scheduled(guild_id):
            return None
        return self._intervals.get(guild_id)

    def schedule(self, guild_id: int, interval: Optional[int] = None) -> None:
        """
        Install (or replace) the repeating update task for a guild.

        Args:
            guild_id: Guild to schedule
            interval: Seconds between cycles (default interval if None)
        """
        seconds = interval if interval is not None else self.default_interval

        previous = self._tasks.pop(guild_id, None)
        if previous is not None and not previous.done():
            previous.cancel()

        self._intervals[guild_id] = seconds
        self._tasks[guild_id] = asyncio.create_task(
            self._update_loop(guild_id, seconds),
            name=f"steam-watch-update-{guild_id}",
        )
        logger.info(
            "guild_update_scheduled",
            guild_id=guild_id,
            interval=seconds,
            replaced=previous is not None,
        )

    def ensure_scheduled(self, guild_id: int) -> bool:
        """
        Schedule a guild at the default interval unless it already has a timer.

        Returns:
            True if a new timer was installed
        """
        if self.is_scheduled(guild_id):
            return False
        self.schedule(guild_id)
        return True

    def resume(self, guild_ids: Iterable[int]) -> None:
        """Schedule every stored guild and give each one an immediate update."""
        count = 0
        for guild_id in guild_ids:
            if not self.is_scheduled(guild_id):
                self.schedule(guild_id)
            self._immediate[guild_id] = asyncio.create_task(
                self._run_safely(guild_id),
                name=f"steam-watch-resume-{guild_id}",
            )
            count += 1
        logger.info("guild_updates_resumed", guilds=count, interval=self.default_interval)

    async def stop(self) -> None:
        """Cancel every timer (process shutdown only)."""
        tasks = list(self._tasks.values()) + list(self._immediate.values())
        self._tasks.clear()
        self._immediate.clear()
        self._intervals.clear()

        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("guild_updates_stopped", tasks=len(tasks))

    async def _update_loop(self, guild_id: int, interval: int) -> None:
        """Sleep, update, repeat - until cancelled."""
        try:
            while True:
                await asyncio.sleep(interval)
                await self._run_safely(guild_id)
        except asyncio.CancelledError:
            logger.debug("guild_update_loop_cancelled", guild_id=guild_id)
            raise

    async def _run_safely(self, guild_id: int) -> None:
        try:
            await self.run_update(guild_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("update_cycle_error", guild_id=guild_id, error=str(e), exc_info=True)
        finally:
            task = self._immediate.get(guild_id)
            if task is not None and task is asyncio.current_task():
                del self._immediate[guild_id]
