"""
Main entry point for the anonymous pairing relay bot.

This module builds the pairing engine over the configured state store, wires
the relay dispatcher and deletion correlator to the Telegram transport, and
runs the bot until a shutdown signal arrives.
"""

import asyncio
import logging
import signal
import sys
from typing import Optional

import structlog

from relaybot.clients import BotClientManager
from relaybot.config import Settings, get_settings
from relaybot.core import DeletionCorrelator, PairingEngine, RelayDispatcher, create_state_store
from relaybot.core.state_store import StateStore
from relaybot.database import DatabaseManager, ProfileRepository
from relaybot.handlers import HandlerRegistry

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


def configure_logging(settings: Settings) -> None:
    """Set up Python logging from settings."""
    level = logging.DEBUG if settings.debug_mode else getattr(logging, settings.log_level)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            *([logging.FileHandler(settings.log_file, encoding='utf-8')] if settings.log_file else [])
        ]
    )
    # httpx logs every Bot API request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


class RelayBotApplication:
    """Main application class for the relay bot."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.db_manager: Optional[DatabaseManager] = None
        self.store: Optional[StateStore] = None
        self.engine: Optional[PairingEngine] = None
        self.bot_client: Optional[BotClientManager] = None
        self.handler_registry: Optional[HandlerRegistry] = None
        self._shutdown_event = asyncio.Event()

    async def initialize(self) -> None:
        """Initialize all components of the bot application."""
        logger.info("Initializing relay bot...")

        # Profile database
        self.db_manager = DatabaseManager(self.settings.database_url)
        await self.db_manager.init()
        profiles = ProfileRepository(self.db_manager)
        logger.info("Database initialized")

        # Pairing state
        self.store = create_state_store(
            self.settings.state_backend,
            redis_url=self.settings.redis_url,
            key_prefix=self.settings.state_key_prefix,
        )
        await self.store.start()
        self.engine = PairingEngine(self.store, profile_gate=profiles.is_complete)
        logger.info("Pairing engine initialized", backend=self.settings.state_backend)

        # Transport and relay
        self.bot_client = BotClientManager(self.settings.bot_token, protect_content=self.settings.protect_content)
        await self.bot_client.initialize()
        correlator = DeletionCorrelator(self.bot_client)
        dispatcher = RelayDispatcher(self.bot_client, self.settings.oversight_chat_id, correlator)

        self.handler_registry = HandlerRegistry(
            self.bot_client, self.engine, dispatcher, correlator, profiles, self.settings
        )
        self.handler_registry.register_handlers(self.bot_client.application)
        logger.info("Bot application initialization complete")

    async def run(self) -> None:
        """Run the bot until shutdown signal."""
        await self.initialize()
        await self.bot_client.start()
        logger.info("🚀 Relay bot is now running!")

        stats = await self.engine.statistics()
        logger.info("Pairing state", **stats)

        await self._shutdown_event.wait()

    async def shutdown(self) -> None:
        """Gracefully shutdown the bot application."""
        logger.info("Shutting down relay bot...")

        if self.bot_client:
            await self.bot_client.stop()
        if self.store:
            await self.store.stop()
            logger.info("State store closed")
        if self.db_manager:
            await self.db_manager.close()

        logger.info("Relay bot shutdown complete")

    def setup_signal_handlers(self) -> None:
        """Set the shutdown event on SIGINT/SIGTERM."""
        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, initiating shutdown...")
            self._shutdown_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)


async def main():
    """Main entry point for the bot application."""
    settings = get_settings()
    configure_logging(settings)

    app = RelayBotApplication(settings)
    app.setup_signal_handlers()

    try:
        await app.run()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error("Fatal error in main application", error=str(e), exc_info=e)
        sys.exit(1)
    finally:
        await app.shutdown()


if __name__ == "__main__":
    # uvloop for better performance on Unix systems
    if sys.platform != 'win32':
        import uvloop
        uvloop.install()

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Application terminated by user")
