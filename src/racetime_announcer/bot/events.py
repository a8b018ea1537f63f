"""Command error handling."""

from discord.ext import commands

from racetime_announcer.bot.commands import NotDebugChannel
from racetime_announcer.utils.logging import log_error

# Failures that get a fixed reply instead of being logged
ERROR_REPLIES = {
    commands.MissingPermissions: "❌ You need the Manage Server permission to use this command.",
    commands.NoPrivateMessage: "❌ This command can only be used in a server.",
}


async def setup_events(bot) -> None:
    """Register the bot's ``on_command_error`` handler."""

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError) -> None:
        # Unknown commands and debug commands outside the debug channel stay silent
        if isinstance(error, (commands.CommandNotFound, NotDebugChannel)):
            return

        for error_type, reply in ERROR_REPLIES.items():
            if isinstance(error, error_type):
                await ctx.send(reply)
                return

        log_error(getattr(error, "original", error), {
            "command": ctx.command.qualified_name if ctx.command else "unknown",
            "user_id": ctx.author.id,
            "channel_id": ctx.channel.id,
            "guild_id": ctx.guild.id if ctx.guild else None,
        })
        await ctx.send("❌ An unexpected error occurred while processing your command.")
