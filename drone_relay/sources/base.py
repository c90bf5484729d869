"""
Abstract base class for chat message sources.
"""

from abc import ABC, abstractmethod
from typing import Callable

MessageHandler = Callable[[str], None]


class MessageSource(ABC):
    """
    A stream of raw chat messages.

    The source calls the handler once per message, in the order the
    messages arrive, and waits for it to return before delivering the next.
    """

    @abstractmethod
    def start(self, handler: MessageHandler):
        """
        Start delivering messages in the background.

        Args:
            handler: Called with each message body
        """
        pass

    @abstractmethod
    def close(self):
        pass
