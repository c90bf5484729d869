"""
Message interpreter.

Owns the chat source, turns each incoming message into at most one Command,
and publishes the commands on a one-way channel.
"""

import logging
from typing import Optional

from .channel import HandoffChannel
from .commands import CommandInterpreter
from .config import RelayConfig
from .sources import MessageSource, create_source


class MessageInterpreter:
    """
    Bridges a chat message source to a command channel.

    Unrecognized messages are dropped without error.
    """

    def __init__(self, config: RelayConfig, source: Optional[MessageSource] = None):
        """
        Initialize the message interpreter.

        Args:
            config: Service configuration
            source: Message source to use instead of the one named in the config
        """
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.source = source if source is not None else create_source(config)
        self.interpreter = CommandInterpreter()
        self.commands: Optional[HandoffChannel] = None

    def command_channel(self) -> HandoffChannel:
        """
        Start the message source and return the channel commands appear on.
        """
        if self.commands is None:
            self.commands = HandoffChannel("chat-commands")
            self.source.start(self.handle_message)
        return self.commands

    def handle_message(self, text: str):
        """
        Interpret one chat message and publish its command, if any.

        Blocks until the relay takes the command.

        Raises:
            ChannelClosed: If the interpreter was closed
        """
        self.logger.info(f"Handling message {text!r}")

        command = self.interpreter.interpret(text)
        if command is None:
            return

        self.commands.send(command)

    def close(self):
        """Stop reading chat and close the command channel."""
        if self.commands is not None:
            self.commands.close()
        self.source.close()
