"""
Steam Watch - Main Entry Point

Discord bot posting Steam presence cards per guild.

- Credentials from environment / .env / Docker secrets (fatal if missing)
- Guild tracking state loaded from JSON at startup (fatal if corrupt)
- One Steam API client shared by every guild's update timer
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import Any, Dict, Optional

import structlog

from config import Config, load_config
from discord_bot import DiscordBot, DiscordBotFactory
from health import HealthCheckServer
from state_store import StateStore
from steam_client import SteamClient

logger = structlog.get_logger()


def setup_logging(log_level: str, log_format: str) -> None:
    """
    Configure structured logging.

    Args:
        log_level: Logging level (debug, info, warning, error, critical)
        log_format: Output format ("json" or "console")
    """
    level_map: dict[str, int] = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }

    min_level = level_map.get(log_level.lower(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logger.info("logging_configured", level=log_level, format=log_format)


class Application:
    """Main application orchestrator."""

    def __init__(self) -> None:
        """Initialize application components."""
        self.config: Optional[Config] = None
        self.store: Optional[StateStore] = None
        self.steam_client: Optional[SteamClient] = None
        self.bot: Optional[DiscordBot] = None
        self.health_server: Optional[HealthCheckServer] = None
        self.shutdown_event: asyncio.Event = asyncio.Event()

    async def setup(self) -> None:
        """Load configuration and state; any failure here aborts startup."""
        logger.info("application_starting")

        try:
            self.config = load_config()
        except Exception as e:
            logger.error("config_load_failed", error=str(e))
            raise

        setup_logging(self.config.log_level, self.config.log_format)

        self.store = StateStore(self.config.data_file)
        try:
            self.store.load()
        except Exception as e:
            logger.error("state_load_failed", path=str(self.config.data_file), error=str(e))
            raise

        self.steam_client = SteamClient(
            api_key=self.config.steam_api_key,
            request_timeout=self.config.request_timeout,
        )

        self.bot = DiscordBotFactory.create_bot(self.config, self.store, self.steam_client)

        if self.config.health_check_enabled:
            self.health_server = HealthCheckServer(
                host=self.config.health_check_host,
                port=self.config.health_check_port,
                status_provider=self.health_status,
            )

        logger.info(
            "application_configured",
            guilds=len(self.store.guild_ids()),
            profiles=self.store.total_tracked(),
        )

    def health_status(self) -> Dict[str, Any]:
        """Extra fields reported by /health."""
        return {
            "discord_connected": bool(self.bot and self.bot.is_connected),
            "guilds_tracked": len(self.store.guild_ids()) if self.store else 0,
            "profiles_tracked": self.store.total_tracked() if self.store else 0,
        }

    async def start(self) -> None:
        """Start all application components."""
        assert self.config is not None, "Config not loaded"
        assert self.steam_client is not None, "Steam client not initialized"
        assert self.bot is not None, "Bot not initialized"

        if self.health_server is not None:
            await self.health_server.start()

        await self.steam_client.connect()

        # Stored guilds are resumed by the bot's on_ready
        await self.bot.connect_bot()

        logger.info("application_running")

    async def stop(self) -> None:
        """Gracefully stop all components."""
        logger.info("application_stopping")

        if self.bot is not None:
            try:
                await self.bot.disconnect_bot()
            except Exception as e:
                logger.error("discord_disconnect_failed", error=str(e))

            logger.debug("discord_disconnected")

        if self.steam_client is not None:
            try:
                await self.steam_client.close()
            except Exception as e:
                logger.error("steam_client_close_failed", error=str(e))

        if self.health_server is not None:
            try:
                await self.health_server.stop()
            except Exception as e:
                logger.error("health_server_stop_failed", error=str(e))

            logger.debug("health_server_stopped")

        logger.info("application_stopped")

    async def run(self) -> None:
        """Main application run loop."""
        try:
            await self.setup()
            await self.start()
            await self.shutdown_event.wait()
        except KeyboardInterrupt:
            logger.info("received_keyboard_interrupt")
        except Exception as e:
            logger.error("application_error", error=str(e), exc_info=True)
            raise
        finally:
            await self.stop()


async def main() -> None:
    """Main async entry point."""
    app = Application()

    # Signal handlers for graceful shutdown
    def _signal_handler(signum: int, frame: Any) -> None:
        logger.info("received_signal", signal=signal.Signals(signum).name)
        app.shutdown_event.set()

    # Only register signals on real OS (not always available on Windows/threads)
    try:
        signal.signal(signal.SIGINT, _signal_handler)
        signal.signal(signal.SIGTERM, _signal_handler)
    except (ValueError, OSError) as e:
        logger.debug("signal_handlers_unavailable", error=str(e))

    try:
        await app.run()
    except Exception as e:
        logger.error("fatal_error", error=str(e), exc_info=True)
        sys.exit(1)


def cli() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutdown complete.")
        sys.exit(0)


if __name__ == "__main__":
    cli()
