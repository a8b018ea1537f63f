"""Discord-facing parts of the announcer: client, commands, loops and embeds."""
