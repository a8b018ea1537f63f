"""
Text commands for managing race announcers.

Administrative commands need the Manage Server permission and only work
inside a server. ``list-active-races`` is open to everyone. Each command
also answers to the short name used by the original racetime bot.
"""

from typing import Optional

from discord.ext import commands

from racetime_announcer.bot.channels import ChannelHandle
from racetime_announcer.utils.logging import get_logger, log_discord_event

ADD_USAGE = (
    "{prefix}add-announcer - Add a race announcer.\n"
    "Usage: `{prefix}add-announcer <channel> <category>`\n"
    "* `<channel>` - Text channel in this server\n"
    "* `<category>` - Category URL slug (e.g. \"ootr\", \"gtasa\" or \"sm64\")"
)

CLEAR_USAGE = (
    "{prefix}clear-channel-announcers - Clear all announcers from a channel.\n"
    "Usage: `{prefix}clear-channel-announcers <channel>`\n"
    "* `<channel>` - Text channel in this server"
)


class NotDebugChannel(commands.CheckFailure):
    """Raised when a debug-only command is used outside the debug channel."""


def debug_channel_only():
    """Restrict a command to the configured debug channel."""
    async def predicate(ctx: commands.Context) -> bool:
        debug_channel_id = ctx.bot.config.discord.debug_channel_id
        if debug_channel_id is None or ctx.channel.id != debug_channel_id:
            raise NotDebugChannel()
        return True
    return commands.check(predicate)


class AnnouncerCommands(commands.Cog):
    """Announcer management commands."""

    def __init__(self, bot) -> None:
        self.bot = bot
        self.logger = get_logger(__name__)

    @property
    def prefix(self) -> str:
        return self.bot.config.discord.command_prefix

    @commands.command(name="add-announcer", aliases=["rtadd"])
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def add_announcer(
        self,
        ctx: commands.Context,
        channel: Optional[str] = None,
        category: Optional[str] = None,
    ) -> None:
        """Subscribe a channel to announcements for a category."""
        if channel is None or category is None:
            await ctx.send(ADD_USAGE.format(prefix=self.prefix))
            return

        handle = self.bot.directory.resolve_channel(channel)
        if handle is None:
            await ctx.send("Channel not found.")
            return

        race_category = await self.bot.race_api.fetch_category(category)
        if race_category is None:
            await ctx.send("Unrecognised category slug.")
            return

        if not self.bot.registry.add(str(ctx.guild.id), handle.id, race_category.slug):
            await ctx.send(
                f"I'm already configured to announce {race_category.name} races in {handle.mention}"
            )
            return

        self.bot.store.commit()
        log_discord_event(
            "announcer_added",
            guild_id=ctx.guild.id,
            channel_id=handle.id,
            category=race_category.slug,
        )
        await ctx.send(
            f"Added automatic race announcer for {race_category.name} to {handle.mention}"
        )

    @commands.command(name="list-all-announcers", aliases=["rtlistall"])
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    @debug_channel_only()
    async def list_all_announcers(self, ctx: commands.Context) -> None:
        """List every announcer on every server."""
        await ctx.send("Here are all the race categories I am currently announcing:")

        for announcer in self.bot.registry.all_announcers():
            race_category = await self.bot.race_api.fetch_category(announcer.category)
            if race_category is None:
                continue
            handle = self.bot.directory.get_channel(announcer.channel)
            guild_name = handle.guild_name if handle else None
            channel_text = handle.mention if handle else f"<#{announcer.channel}>"
            await ctx.send(
                f"{guild_name or 'Unknown server'} - {channel_text} - "
                f"{race_category.name} ({race_category.slug})"
            )

    @commands.command(name="clear-channel-announcers", aliases=["rtclear"])
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def clear_channel_announcers(
        self, ctx: commands.Context, channel: Optional[str] = None
    ) -> None:
        """Remove every announcer of a channel."""
        if channel is None:
            await ctx.send(CLEAR_USAGE.format(prefix=self.prefix))
            return

        handle = self.bot.directory.resolve_channel(channel)
        if handle is None:
            await ctx.send("Channel not found.")
            return

        removed = self.bot.registry.remove_for_channel(handle.id)
        self.bot.store.commit()
        log_discord_event("announcers_cleared", channel_id=handle.id, removed=removed)
        await ctx.send(f"Cleared all race announcers for {handle.mention}")

    @commands.command(name="list-server-announcers", aliases=["rtlist"])
    @commands.guild_only()
    @commands.has_permissions(manage_guild=True)
    async def list_server_announcers(self, ctx: commands.Context) -> None:
        """List the announcers of the current server."""
        announcers = self.bot.registry.announcers_for_server(str(ctx.guild.id))
        if not announcers:
            await ctx.send(
                "There are no race announcers on this server. "
                f"Use {self.prefix}add-announcer to create one."
            )
            return

        await ctx.send("Here are all the race categories I am currently announcing on this server:")
        for announcer in announcers:
            race_category = await self.bot.race_api.fetch_category(announcer.category)
            name = race_category.name if race_category else announcer.category
            await ctx.send(f"<#{announcer.channel}> - {name} ({announcer.category})")

    @commands.command(name="list-active-races", aliases=["races"])
    async def list_active_races(self, ctx: commands.Context) -> None:
        """Post the live races of the categories announced in this channel."""
        categories = self.bot.registry.categories_for_channel(str(ctx.channel.id))
        if not categories:
            return

        races = self.bot.tracker.live_races_for_categories(categories)
        if not races:
            await ctx.send("There are no races going on at the moment.")
            return

        handle = ChannelHandle(ctx.channel)
        for summary in races:
            race = await self.bot.race_api.fetch_race_detail(summary)
            if race is None:
                continue
            await self.bot.tracker.announce(race, handle, include_author=False)


async def setup_commands(bot) -> None:
    """
    Register the command cogs.

    Args:
        bot: The Discord bot instance
    """
    logger = get_logger(__name__)
    await bot.add_cog(AnnouncerCommands(bot))
    logger.info("Bot commands setup complete", commands=[c.name for c in bot.commands])
