"""
Command line entry point.

Loads configuration, sets up logging, loads the persisted state and runs
the bot until it is stopped with SIGINT or SIGTERM. Configuration problems,
including an unreadable state file, exit with status 1 before connecting to
Discord.
"""

import asyncio
import signal
import sys

from pydantic import ValidationError

from racetime_announcer import __version__
from racetime_announcer.bot.client import RaceAnnouncerBot
from racetime_announcer.config import AppConfig, load_config
from racetime_announcer.utils.exceptions import ConfigurationError, StateStoreError
from racetime_announcer.utils.logging import get_logger, setup_logging

SHUTDOWN_TIMEOUT = 5.0

logger = get_logger(__name__)


async def create_bot(config: AppConfig) -> RaceAnnouncerBot:
    """
    Build the bot and load its persisted state.

    Raises:
        ConfigurationError: If the state file cannot be loaded
    """
    logger.info("Creating bot instance",
                racetime_url=config.racetime.base_url,
                state_path=str(config.state.path))

    bot = RaceAnnouncerBot(config)
    try:
        await bot.setup()
    except StateStoreError as e:
        raise ConfigurationError(
            "Failed to load persisted state",
            context={"path": str(config.state.path)},
            original_error=e
        )
    return bot


async def run_bot(config: AppConfig) -> None:
    """Run the bot until it exits or a shutdown signal arrives."""
    bot = await create_bot(config)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    bot_task = asyncio.create_task(bot.start(config.discord.token), name="discord-bot")
    stop_task = asyncio.create_task(stop.wait(), name="shutdown-signal")

    try:
        done, _ = await asyncio.wait(
            {bot_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if stop_task in done:
            logger.info("Shutdown signal received")
        elif bot_task.exception() is not None:
            raise bot_task.exception()
    finally:
        stop_task.cancel()
        logger.info("Closing bot")
        try:
            await asyncio.wait_for(bot.close(), timeout=SHUTDOWN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("Bot shutdown timed out, forcing close",
                           timeout=SHUTDOWN_TIMEOUT)
        if not bot_task.done():
            bot_task.cancel()
            try:
                await bot_task
            except asyncio.CancelledError:
                pass


async def main_async() -> None:
    try:
        config = load_config()
    except ValidationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.logging)
    logger.info("racetime.gg announcer starting", version=__version__, debug_mode=config.debug)

    try:
        await run_bot(config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        logger.info("racetime.gg announcer stopped")


def main() -> None:
    """
    Console script entry point.

    Example:
        ```bash
        DISCORD_TOKEN=... racetime-announcer
        ```
    """
    try:
        asyncio.run(main_async())
    except KeyboardInterrupt:
        sys.exit(0)
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
