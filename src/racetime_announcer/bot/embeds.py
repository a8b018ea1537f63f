"""Discord embeds for race announcements."""

import discord

from racetime_announcer.racetime.models import RaceDetail

ANNOUNCEMENT_COLOR = discord.Color(0x26DD9A)


def build_race_embed(
    race: RaceDetail,
    include_author: bool,
    base_url: str = "https://racetime.gg",
) -> discord.Embed:
    """
    Build the announcement embed for a race.

    Args:
        race: Full race document
        include_author: Add a "Race room opened by" line; only used for
            announcements made by the polling loop
        base_url: racetime.gg site root, for the race link and footer icon

    Returns:
        The embed to post or edit in
    """
    embed = discord.Embed(
        title=f"{race.category.name} ~ {race.goal.name}",
        url=race.absolute_url(base_url),
        description=race.status.help_text or None,
        color=ANNOUNCEMENT_COLOR,
    )
    embed.add_field(
        name="Entrants",
        value=f"{race.entrants_count} total, {race.entrants_count_inactive} inactive",
        inline=False,
    )
    embed.set_footer(text="racetime.gg", icon_url=f"{base_url.rstrip('/')}/icon.svg")

    if race.category.image:
        embed.set_thumbnail(url=race.category.image)

    if include_author and race.opened_by:
        embed.set_author(
            name=f"Race room opened by {race.opened_by.full_name}",
            icon_url=race.opened_by.avatar or None,
        )

    return embed
