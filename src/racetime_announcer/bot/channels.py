"""
Channel lookup and announcement message operations.

``ChannelDirectory`` turns channel mentions and stored channel IDs into
``ChannelHandle`` objects. A handle exposes exactly the three operations the
announcer needs (post, edit, delete) and reports every Discord failure as a
``DiscordAPIError`` so callers deal with one exception type.
"""

import re
from typing import Optional

import discord

from racetime_announcer.utils.exceptions import DiscordAPIError

MENTION_PATTERN = re.compile(r"^<#!?(\d+)>$")


class ChannelHandle:
    """A postable channel."""

    def __init__(self, channel: discord.abc.Messageable) -> None:
        self.channel = channel

    @property
    def id(self) -> str:
        return str(self.channel.id)

    @property
    def mention(self) -> str:
        return getattr(self.channel, "mention", f"<#{self.id}>")

    @property
    def guild_name(self) -> Optional[str]:
        guild = getattr(self.channel, "guild", None)
        return guild.name if guild else None

    def __str__(self) -> str:
        return self.mention

    async def post(self, embed: discord.Embed) -> str:
        """Send an embed and return the new message ID."""
        try:
            message = await self.channel.send(embed=embed)
        except discord.HTTPException as e:
            raise DiscordAPIError(
                "Failed to send announcement",
                context={"channel_id": self.id},
                original_error=e,
            )
        return str(message.id)

    async def edit(self, message_id: str, embed: discord.Embed) -> None:
        try:
            message = await self.channel.fetch_message(int(message_id))
            await message.edit(embed=embed)
        except (discord.HTTPException, ValueError) as e:
            raise DiscordAPIError(
                "Failed to edit announcement",
                context={"channel_id": self.id, "message_id": message_id},
                original_error=e,
            )

    async def delete(self, message_id: str) -> None:
        try:
            message = await self.channel.fetch_message(int(message_id))
            await message.delete()
        except (discord.HTTPException, ValueError) as e:
            raise DiscordAPIError(
                "Failed to delete announcement",
                context={"channel_id": self.id, "message_id": message_id},
                original_error=e,
            )


class ChannelDirectory:
    """Resolve channels from the bot's channel cache."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    def get_channel(self, channel_id: str) -> Optional[ChannelHandle]:
        try:
            channel = self.client.get_channel(int(channel_id))
        except (TypeError, ValueError):
            return None
        if channel is None or not isinstance(channel, discord.abc.Messageable):
            return None
        return ChannelHandle(channel)

    def resolve_channel(self, mention: Optional[str]) -> Optional[ChannelHandle]:
        """
        Resolve a channel mention such as ``<#1234>``.

        Returns:
            A handle, or None if the token is not a mention or the channel
            is not visible to the bot
        """
        if not mention:
            return None
        match = MENTION_PATTERN.match(mention.strip())
        if not match:
            return None
        return self.get_channel(match.group(1))
