"""
Polling loops.

Two independent ``discord.ext.tasks`` loops drive the tracker: a frequent
refresh that announces and updates races, and a slower cleanup that removes
announcements of finished races. Both start once the bot is ready; the
first refresh waits for the first cleanup so stale entries from a previous
run are gone before anything is announced.
"""

import asyncio

from discord.ext import commands, tasks

from racetime_announcer.utils.logging import get_logger, log_error


class RaceScheduler(commands.Cog):
    """Runs the refresh and cleanup passes on fixed intervals."""

    def __init__(self, bot) -> None:
        self.bot = bot
        self.logger = get_logger(__name__)
        self._first_cleanup_done = asyncio.Event()
        self.refresh_races.change_interval(seconds=bot.config.racetime.refresh_interval)
        self.cleanup_races.change_interval(seconds=bot.config.racetime.cleanup_interval)

    async def cog_load(self) -> None:
        self.cleanup_races.start()
        self.refresh_races.start()

    async def cog_unload(self) -> None:
        self.refresh_races.cancel()
        self.cleanup_races.cancel()

    @tasks.loop(seconds=10)
    async def refresh_races(self) -> None:
        # A loop stops for good on an unhandled exception
        try:
            await self.bot.tracker.refresh()
        except Exception as e:
            log_error(e, {"operation": "refresh_races"})

    @tasks.loop(seconds=120)
    async def cleanup_races(self) -> None:
        try:
            await self.bot.tracker.cleanup()
        except Exception as e:
            log_error(e, {"operation": "cleanup_races"})
        finally:
            self._first_cleanup_done.set()

    @refresh_races.before_loop
    async def before_refresh(self) -> None:
        await self.bot.wait_until_ready()
        await self._first_cleanup_done.wait()
        self.logger.info("Race refresh loop started")

    @cleanup_races.before_loop
    async def before_cleanup(self) -> None:
        await self.bot.wait_until_ready()
        self.logger.info("Race cleanup loop started")
