"""
Unbuffered one-directional hand-off channel between relay threads.

A send blocks until a receiver has taken the item, so at most one item is
ever in flight and a slow consumer pushes back on its producer.
"""

import threading
import time
from typing import Any, Iterator, Optional

from .exceptions import ChannelClosed


class HandoffChannel:
    """
    Rendezvous channel.

    send() returns only once a receiver has taken the item. Items are
    delivered in the order they were sent. Closing the channel wakes every
    waiter; a send still waiting for a receiver raises ChannelClosed and its
    item is discarded.
    """

    def __init__(self, name: str = "channel"):
        self.name = name
        self._cond = threading.Condition()
        self._item: Any = None
        self._full = False
        self._sent = 0
        self._taken = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def send(self, item: Any):
        """
        Hand an item to the receiver, blocking until it is taken.

        Raises:
            ChannelClosed: If the channel is closed before the hand-off
        """
        with self._cond:
            while self._full and not self._closed:
                self._cond.wait()
            if self._closed:
                raise ChannelClosed(f"{self.name} is closed")

            self._item = item
            self._full = True
            self._sent += 1
            ticket = self._sent
            self._cond.notify_all()

            while self._taken < ticket and not self._closed:
                self._cond.wait()
            if self._taken < ticket:
                raise ChannelClosed(f"{self.name} closed before {item!r} was received")

    def receive(self, timeout: Optional[float] = None,
                cancel: Optional[threading.Event] = None) -> Any:
        """
        Take the next item.

        The cancel event is checked under the channel lock before an item is
        taken, so once it is set no further item leaves the channel and the
        pending sender stays blocked.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely
            cancel: Event that, once set, makes receive return None

        Returns:
            The item, or None if the timeout expired or cancel was set first

        Raises:
            ChannelClosed: If the channel is closed
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        with self._cond:
            while True:
                if cancel is not None and cancel.is_set():
                    return None
                if self._closed or self._full:
                    break
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._cond.wait(remaining)

            if self._closed:
                raise ChannelClosed(f"{self.name} is closed")

            item = self._item
            self._item = None
            self._full = False
            self._taken += 1
            self._cond.notify_all()
            return item

    def wake(self):
        """Wake waiting receivers so they re-check their cancel event."""
        with self._cond:
            self._cond.notify_all()

    def close(self):
        """Close the channel and wake all waiting senders and receivers."""
        with self._cond:
            self._closed = True
            self._item = None
            self._full = False
            self._cond.notify_all()

    def __iter__(self) -> Iterator[Any]:
        """Yield received items until the channel is closed."""
        while True:
            try:
                yield self.receive()
            except ChannelClosed:
                return
