"""
Main entry point for the temperature scrapper.
Initializes all components and starts the scheduler and the Telegram bot.
"""

import argparse
import asyncio
import logging
import signal
from datetime import datetime
from typing import Optional

from telegram import Update
from telegram.ext import (
    Application,
    CommandHandler,
    MessageHandler,
    filters
)
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
import pytz

from .config import Config
from .database import Database
from .handlers import CommandHandlers
from .notifications import Notifier
from .weather import (
    BatchCoordinator,
    BatchResult,
    FakeSource,
    OpenWeatherSource,
    Source,
    yesterday,
)

logger = logging.getLogger(__name__)


class TemperatureScrapper:
    """
    Main application class that coordinates all components.
    """

    def __init__(self, config_path: Optional[str] = None):
        """Initialize the application."""
        self.config_path = config_path
        self.db: Database = None
        self.source: Source = None
        self.coordinator: BatchCoordinator = None
        self.notifier: Notifier = None
        self.scheduler: AsyncIOScheduler = None
        self.application: Application = None
        self.timezone = pytz.UTC
        self._update_lock = asyncio.Lock()
        self._running = False

    async def initialize(self) -> None:
        """
        Initialize all components.
        Configuration is read from the environment and the TOML config file.
        """
        Config.load_file(self.config_path)
        Config.setup_logging()
        logger.debug("Initializing temperature scrapper...")

        errors = Config.validate()
        if errors:
            for error in errors:
                logger.error(f"Config error: {error}")
            raise ValueError("Invalid configuration. Check the config file or .env.")

        Config.ensure_data_dir()
        self.timezone = Config.get_timezone()

        self.db = Database(Config.DATABASE_PATH)
        await self.db.connect()

        await self._setup_source()
        self.coordinator = BatchCoordinator(self.source)

        # Build telegram application
        self.application = (
            Application.builder()
            .token(Config.BOT_TOKEN)
            .build()
        )

        self.notifier = Notifier(bot=self.application.bot, db=self.db)

        self._setup_handlers()
        self._setup_scheduler()

        logger.info(
            f"Temperature scrapper initialized: {len(Config.LOCATIONS)} locations, "
            f"source={self.source.name}"
        )

    async def _setup_source(self) -> None:
        """Create the temperature source and check that it answers."""
        if Config.USE_FAKE_SOURCE:
            logger.warning("Using fake temperature source")
            self.source = FakeSource()
            return

        source = OpenWeatherSource(
            Config.OPENWEATHER_API_KEY,
            timeout_seconds=Config.HTTP_TIMEOUT_SECONDS
        )
        await source.check_connection()
        self.source = source

    def _setup_handlers(self) -> None:
        """Setup Telegram command handlers."""
        cmd_handlers = CommandHandlers(self.db, self.update)

        self.application.add_handler(
            CommandHandler("start", cmd_handlers.start_command)
        )
        self.application.add_handler(
            CommandHandler("help", cmd_handlers.help_command)
        )
        self.application.add_handler(
            CommandHandler("subscribe", cmd_handlers.subscribe_command)
        )
        self.application.add_handler(
            CommandHandler("unsubscribe", cmd_handlers.unsubscribe_command)
        )
        self.application.add_handler(
            CommandHandler("last", cmd_handlers.last_command)
        )
        self.application.add_handler(
            CommandHandler("update", cmd_handlers.update_command)
        )

        # Handle unknown commands
        self.application.add_handler(
            MessageHandler(filters.COMMAND, cmd_handlers.unknown_command)
        )

        logger.debug("Command handlers registered")

    def _setup_scheduler(self) -> None:
        """Setup the periodic update job."""
        self.scheduler = AsyncIOScheduler(timezone=self.timezone)

        self.scheduler.add_job(
            self._scheduled_update,
            trigger=CronTrigger.from_crontab(Config.SCHEDULE, timezone=self.timezone),
            id="temperature_update",
            name="Daily temperature update",
            replace_existing=True
        )

        logger.debug(f"Scheduler configured: update at '{Config.SCHEDULE}'")

    async def _scheduled_update(self) -> None:
        """Scheduled job fetching yesterday's temperatures."""
        logger.info("Starting scheduled temperature update")
        try:
            await self.update()
        except Exception as e:
            logger.error(f"Error in scheduled update: {e}")

    async def update(self) -> BatchResult:
        """
        Run one batch for yesterday, store and announce the result.

        Returns:
            Result of the batch
        """
        async with self._update_lock:
            when = yesterday(datetime.now(self.timezone))
            result = await self.coordinator.run(
                Config.LOCATIONS,
                timeout=Config.BATCH_TIMEOUT_SECONDS,
                when=when
            )

            if result.ok:
                await self.db.save_temperatures(result.samples, when.date())
                logger.info("Temperature data received and stored")
            else:
                logger.error(f"Could not get temperature data: {result.error}")

            await self.notifier.emit_result(result, when.date())
            return result

    async def start(self) -> None:
        """Start the scheduler and bot polling."""
        if self._running:
            logger.warning("Scrapper is already running")
            return

        self._running = True
        logger.debug("Starting temperature scrapper...")

        self.scheduler.start()

        await self.application.initialize()
        await self.application.start()
        await self.application.updater.start_polling(
            allowed_updates=Update.ALL_TYPES
        )

        logger.info("Temperature scrapper is running")

        # Keep running until stopped
        while self._running:
            await asyncio.sleep(1)

    async def stop(self) -> None:
        """Stop the application gracefully."""
        logger.debug("Stopping temperature scrapper...")
        self._running = False

        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)

        if self.application:
            try:
                if self.application.updater:
                    await self.application.updater.stop()
            except RuntimeError:
                pass
            try:
                await self.application.stop()
                await self.application.shutdown()
            except RuntimeError:
                pass

        if isinstance(self.source, OpenWeatherSource):
            await self.source.close()

        if self.db:
            await self.db.close()

        logger.debug("Temperature scrapper stopped")


async def main(config_path: Optional[str] = None) -> None:
    """Main entry point."""
    scrapper = TemperatureScrapper(config_path)

    # Setup signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.debug("Received shutdown signal")
        asyncio.create_task(scrapper.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await scrapper.initialize()
        await scrapper.start()
    except KeyboardInterrupt:
        logger.debug("Interrupted by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        raise
    finally:
        await scrapper.stop()


def run() -> None:
    """Run the scrapper (blocking)."""
    parser = argparse.ArgumentParser(description="Daily average temperature scrapper")
    parser.add_argument("-f", "--config", default=None, help="Path to the TOML config file")
    args = parser.parse_args()

    try:
        asyncio.run(main(args.config))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
