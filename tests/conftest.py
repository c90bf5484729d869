import threading
import time

import pytest

from drone_relay.config import RelayConfig
from drone_relay.drivers import VehicleDriver
from drone_relay.exceptions import DriverError
from drone_relay.sources import MessageSource

# Calls that are part of the connection lifecycle, not maneuvers
LIFECYCLE_CALLS = {"connect", "takeoff", "close"}


class FakeDriver(VehicleDriver):
    """
    Records every call. Maneuvers can be held open with ``release``, and
    ``latency`` delays a maneuver before it is recorded.
    """

    def __init__(self, connected: bool = True) -> None:
        super().__init__("fake", 0, 1.0)
        self.calls: list[tuple] = []
        self.failing: set[str] = set()
        self.release = threading.Event()
        self.release.set()
        self.latency = 0.0
        self._calls_lock = threading.Lock()
        self._connected = threading.Event()
        self._settled = threading.Event()
        if connected:
            self.mark_connected()

    def mark_connected(self) -> None:
        self._connected.set()
        self._settled.set()

    def _record(self, *call) -> None:
        if self.latency and call[0] not in LIFECYCLE_CALLS and call[0] != "land":
            time.sleep(self.latency)
        with self._calls_lock:
            self.calls.append(call)
        if call[0] not in LIFECYCLE_CALLS and call[0] != "land":
            self.release.wait(5.0)
        if call[0] in self.failing:
            raise DriverError(f"{call[0]} refused")

    @property
    def maneuvers(self) -> list[tuple]:
        with self._calls_lock:
            return [c for c in self.calls if c[0] not in LIFECYCLE_CALLS]

    def connect(self) -> None:
        self._record("connect")

    def wait_connected(self, timeout=None) -> bool:
        self._settled.wait(timeout)
        return self._connected.is_set()

    def takeoff(self) -> None:
        self._record("takeoff")

    def land(self) -> None:
        self._record("land")

    def move(self, direction, distance) -> None:
        self._record("move", direction, distance)

    def rotate_clockwise(self, degrees) -> None:
        self._record("cw", degrees)

    def rotate_counter_clockwise(self, degrees) -> None:
        self._record("ccw", degrees)

    def hover(self) -> None:
        self._record("hover")

    def flip(self, direction) -> None:
        self._record("flip", direction)

    def close(self) -> None:
        self._settled.set()
        self._record("close")


class FakeSource(MessageSource):
    """Delivers messages on the caller's thread."""

    def __init__(self) -> None:
        self.handler = None
        self.closed = False

    def start(self, handler) -> None:
        self.handler = handler

    def deliver(self, text: str) -> None:
        self.handler(text)

    def close(self) -> None:
        self.closed = True


def wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def config() -> RelayConfig:
    return RelayConfig(chat_source="console", poll_interval=0.02)


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()
