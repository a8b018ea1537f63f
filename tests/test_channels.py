"""Tests for channel resolution and message operations."""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from racetime_announcer.bot.channels import ChannelDirectory, ChannelHandle
from racetime_announcer.utils.exceptions import DiscordAPIError


def make_channel(channel_id=10):
    channel = MagicMock(spec=discord.TextChannel)
    channel.id = channel_id
    channel.mention = f"<#{channel_id}>"
    return channel


def not_found():
    return discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Message")


@pytest.fixture
def directory():
    channels = {10: make_channel(10)}
    client = MagicMock()
    client.get_channel.side_effect = channels.get
    return ChannelDirectory(client)


@pytest.mark.parametrize("mention", ["<#10>", "<#!10>", " <#10> "])
def test_resolve_channel_mentions(directory, mention):
    handle = directory.resolve_channel(mention)

    assert handle is not None
    assert handle.id == "10"
    assert handle.mention == "<#10>"


@pytest.mark.parametrize("mention", [None, "", "10", "#general", "<@10>", "<#11>"])
def test_resolve_channel_rejects(directory, mention):
    assert directory.resolve_channel(mention) is None


def test_get_channel_by_stored_id(directory):
    assert directory.get_channel("10").id == "10"
    assert directory.get_channel("not-a-number") is None


@pytest.mark.asyncio
async def test_post_returns_message_id():
    channel = make_channel()
    channel.send = AsyncMock(return_value=MagicMock(id=123456))
    embed = discord.Embed(title="race")

    message_id = await ChannelHandle(channel).post(embed)

    assert message_id == "123456"
    channel.send.assert_awaited_once_with(embed=embed)


@pytest.mark.asyncio
async def test_edit_and_delete_fetch_the_message():
    message = MagicMock()
    message.edit = AsyncMock()
    message.delete = AsyncMock()
    channel = make_channel()
    channel.fetch_message = AsyncMock(return_value=message)
    handle = ChannelHandle(channel)
    embed = discord.Embed(title="race")

    await handle.edit("42", embed)
    await handle.delete("42")

    channel.fetch_message.assert_awaited_with(42)
    message.edit.assert_awaited_once_with(embed=embed)
    message.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_discord_failures_are_wrapped():
    channel = make_channel()
    channel.send = AsyncMock(side_effect=discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Missing Access"))
    channel.fetch_message = AsyncMock(side_effect=not_found())
    handle = ChannelHandle(channel)

    with pytest.raises(DiscordAPIError):
        await handle.post(discord.Embed())
    with pytest.raises(DiscordAPIError):
        await handle.edit("42", discord.Embed())
    with pytest.raises(DiscordAPIError):
        await handle.delete("42")
