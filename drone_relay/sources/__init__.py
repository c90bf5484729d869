"""
Chat message sources.

The Discord source is imported lazily by create_source() so the console
source works without a Discord client installed.
"""

from ..exceptions import ConfigurationError
from .base import MessageHandler, MessageSource
from .console import ConsoleSource

__all__ = ['MessageHandler', 'MessageSource', 'ConsoleSource', 'create_source']


def create_source(config) -> MessageSource:
    """
    Create the message source named in the configuration.

    Args:
        config: RelayConfig

    Returns:
        MessageSource instance
    """
    source_type = config.chat_source.lower()

    if source_type == 'discord':
        from .discord_source import DiscordSource
        return DiscordSource(config.chat_token)
    elif source_type == 'console':
        return ConsoleSource()
    else:
        raise ConfigurationError(f"Unknown chat source: {source_type}")
