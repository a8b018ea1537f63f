"""
racetime.gg announcer - a Discord bot that announces live races.

The bot polls racetime.gg for open race rooms and keeps an announcement
embed for each race up to date in every channel subscribed to the race's
category, deleting it once the race is over. Subscriptions are managed with
text commands by members with the Manage Server permission.

Example:
    ```python
    from racetime_announcer.main import main

    if __name__ == "__main__":
        main()
    ```
"""

__version__ = "0.1.0"


# Only import main lazily to avoid pulling in discord.py on package import
def main():
    """Main entry point for the racetime.gg announcer."""
    from racetime_announcer.main import main as _main
    return _main()


__all__ = ["main", "__version__"]
