"""
Discord bot client implementation.

This module contains the bot that owns every long-lived component: the
state store, the racetime.gg client, the channel directory, the announcer
registry and the race tracker. Commands, event handlers and the polling
loops reach them through the bot instance.
"""

import discord
from discord.ext import commands

from racetime_announcer.bot.channels import ChannelDirectory
from racetime_announcer.config import AppConfig
from racetime_announcer.core.registry import AnnouncerRegistry
from racetime_announcer.core.tracker import RaceTracker
from racetime_announcer.racetime.client import RaceApiClient
from racetime_announcer.state.store import StateStore
from racetime_announcer.utils.logging import get_logger, log_discord_event


class RaceAnnouncerBot(commands.Bot):
    """
    Discord bot announcing racetime.gg races.

    Attributes:
        config: Application configuration
        store: Persisted announcers and tracked races
        race_api: racetime.gg client
        directory: Channel lookups
        registry: Announcer queries and updates
        tracker: Race reconciliation
    """

    def __init__(self, config: AppConfig) -> None:
        """
        Initialize the bot.

        Args:
            config: Application configuration containing all settings
        """
        intents = discord.Intents.default()
        # Required to read prefix commands
        intents.message_content = True
        intents.guilds = True
        intents.guild_messages = True

        super().__init__(
            command_prefix=config.discord.command_prefix,
            intents=intents,
            case_insensitive=True,
            help_command=None,
        )

        self.config = config
        self.logger = get_logger(__name__)

        self.store = StateStore(config.state.path)
        self.race_api = RaceApiClient(config.racetime)
        self.directory = ChannelDirectory(self)
        self.registry = AnnouncerRegistry(self.store)
        self.tracker = RaceTracker(
            api=self.race_api,
            store=self.store,
            registry=self.registry,
            directory=self.directory,
            config=config.racetime,
        )

        self._setup_complete = False

    async def setup(self) -> None:
        """
        Load persisted state.

        Must be called before starting the bot so a broken state file is
        reported before connecting to Discord.

        Raises:
            StateStoreError: If the state file cannot be read
        """
        if self._setup_complete:
            return

        self.logger.info("Setting up race announcer components")
        self.store.load()
        self._setup_complete = True

    async def setup_hook(self) -> None:
        """Register commands, events and polling loops once logged in."""
        from racetime_announcer.bot.commands import setup_commands
        from racetime_announcer.bot.events import setup_events
        from racetime_announcer.bot.scheduler import RaceScheduler

        await setup_commands(self)
        await setup_events(self)
        await self.add_cog(RaceScheduler(self))
        self.logger.info("Bot setup completed successfully")

    async def on_ready(self) -> None:
        """Called when the bot is ready and connected to Discord."""
        log_discord_event(
            "bot_ready",
            bot_user=str(self.user),
            bot_id=self.user.id if self.user else None,
            guild_count=len(self.guilds),
        )

        try:
            await self.change_presence(
                activity=discord.Activity(
                    type=discord.ActivityType.watching,
                    name="racetime.gg"
                )
            )
        except Exception as e:
            self.logger.warning("Failed to set bot presence", error=str(e))

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return
        await self.process_commands(message)

    async def close(self) -> None:
        """Clean up resources and close the bot."""
        self.logger.info("Shutting down race announcer")
        try:
            await self.race_api.close()
            await super().close()
        finally:
            self.logger.info("Bot shutdown complete")
