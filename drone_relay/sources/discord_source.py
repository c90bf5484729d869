"""
Discord message source.

Runs a ``discord.py`` client in its own thread and event loop and hands
each incoming message body to the relay. Handling is offloaded to a single
worker thread: the handler may block on the command channel, and the
Discord event loop must keep servicing its gateway meanwhile.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import discord

from ..exceptions import ChannelClosed
from .base import MessageHandler, MessageSource

logger = logging.getLogger(__name__)


class _RelayClient(discord.Client):
    """Discord client that forwards every message it can read."""

    def __init__(self, handler: MessageHandler, executor: ThreadPoolExecutor) -> None:
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(intents=intents)
        self.handler = handler
        self.executor = executor

    async def on_ready(self) -> None:
        logger.info(f"Discord bot ready: logged in as {self.user} (ID: {self.user.id})")

    async def on_message(self, message: discord.Message) -> None:
        # Ignore messages sent by the bot itself
        if message.author == self.user:
            return
        text = message.content
        if not text:
            return
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self.executor, self.handler, text)
        except ChannelClosed:
            logger.debug(f"Relay closed, dropping Discord message {text!r}")
        except Exception as e:
            logger.error(f"Failed to handle Discord message: {e}", exc_info=True)


class DiscordSource(MessageSource):
    """
    Message source backed by a Discord bot.

    Args:
        token: The bot's authentication token. It is not checked here; an
            invalid or missing token is reported by Discord when the client
            logs in.
    """

    def __init__(self, token: str) -> None:
        self.token = token
        self.client: Optional[_RelayClient] = None
        # One worker keeps messages in arrival order
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="DiscordHandler")
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    def start(self, handler: MessageHandler) -> None:
        if self._thread is not None:
            logger.debug("Discord source already running.")
            return
        self.client = _RelayClient(handler, self._executor)
        self._thread = threading.Thread(target=self._run, name="DiscordThread", daemon=True)
        self._thread.start()
        logger.info("Discord source started.")

    def _run(self) -> None:
        """Run the Discord client until it is closed."""
        try:
            logger.info("Starting Discord bot…")
            asyncio.run(self._serve())
        except Exception as e:
            logger.error(f"Error while running Discord bot: {e}", exc_info=True)

    async def _serve(self) -> None:
        self._loop = asyncio.get_running_loop()
        async with self.client:
            await self.client.start(self.token)

    def close(self) -> None:
        """Log the bot out and stop its thread."""
        if self.client is None:
            return
        loop = self._loop
        if loop is not None and not loop.is_closed() and not self.client.is_closed():
            try:
                future = asyncio.run_coroutine_threadsafe(self.client.close(), loop)
                future.result(timeout=5.0)
            except Exception as e:
                logger.warning(f"Error closing Discord client: {e}")
        if self._thread is not None:
            self._thread.join(timeout=5.0)
        self._executor.shutdown(wait=False)
        logger.info("Discord source stopped.")
