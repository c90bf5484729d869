"""
Console message source: one chat message per input line.
"""

import logging
import sys
import threading
from typing import Optional, TextIO

from ..exceptions import ChannelClosed
from .base import MessageHandler, MessageSource


class ConsoleSource(MessageSource):
    """
    Reads messages from a text stream (stdin by default).

    Only the line terminator is removed; other whitespace is part of the
    message.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.logger = logging.getLogger(__name__)
        self.stream = stream if stream is not None else sys.stdin
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self, handler: MessageHandler):
        self._thread = threading.Thread(
            target=self._read_loop, args=(handler,), name="ConsoleSource", daemon=True
        )
        self._thread.start()
        self.logger.info("Reading commands from console")

    def _read_loop(self, handler: MessageHandler):
        for line in self.stream:
            if self._stopped.is_set():
                break
            try:
                handler(line.rstrip("\r\n"))
            except ChannelClosed:
                break
        self.logger.info("Console input closed")

    def join(self, timeout: Optional[float] = None):
        """Wait for the reader to finish (end of stream or close())."""
        if self._thread is not None:
            self._thread.join(timeout)

    def close(self):
        self._stopped.set()
