"""Tests for the Tello SDK driver against a local UDP peer."""

import socket
import threading

import pytest

from drone_relay.drivers import TelloDriver
from drone_relay.exceptions import DriverError

from .conftest import wait_for


class FakeTello:
    """UDP peer that answers SDK commands like a Tello."""

    def __init__(self, answer_handshake: bool = True) -> None:
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.settimeout(0.05)
        self.port = self.sock.getsockname()[1]
        self.answer_handshake = answer_handshake
        self.received: list[str] = []
        self.refuse: set[str] = set()
        # command -> seconds to hold the reply back
        self.delay: dict[str, float] = {}
        # commands preceded by an "ok" from a different address
        self.spoof: set[str] = set()
        self.late_replies = 0
        self._stranger = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._stranger.bind(("127.0.0.1", 0))
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        while not self._stopped.is_set():
            try:
                data, addr = self.sock.recvfrom(1024)
            except socket.timeout:
                continue
            except OSError:
                return
            command = data.decode("ascii")
            self.received.append(command)
            if command == "command" and not self.answer_handshake:
                continue
            if command in self.spoof:
                self._stranger.sendto(b"ok", addr)
            reply = "error" if command in self.refuse else "ok"
            if command in self.delay:
                timer = threading.Timer(self.delay[command], self._reply_late, (reply, addr))
                timer.daemon = True
                timer.start()
                continue
            self.sock.sendto(reply.encode("ascii"), addr)

    def _reply_late(self, reply: str, addr) -> None:
        try:
            self.sock.sendto(reply.encode("ascii"), addr)
        except OSError:
            return
        self.late_replies += 1

    def close(self) -> None:
        self._stopped.set()
        self._thread.join(1.0)
        self.sock.close()
        self._stranger.close()


@pytest.fixture
def tello():
    peer = FakeTello()
    yield peer
    peer.close()


@pytest.fixture
def driver(tello):
    driver = TelloDriver("127.0.0.1", tello.port, timeout=1.0, local_port=0)
    driver.connect()
    assert driver.wait_connected(2.0)
    yield driver
    driver.close()


def test_handshake_enters_sdk_mode(tello, driver):
    assert tello.received[0] == "command"


@pytest.mark.parametrize(
    "call,expected",
    [
        (lambda d: d.takeoff(), "takeoff"),
        (lambda d: d.land(), "land"),
        (lambda d: d.move("up", 20), "up 20"),
        (lambda d: d.move("back", 500), "back 500"),
        (lambda d: d.rotate_clockwise(10), "cw 10"),
        (lambda d: d.rotate_counter_clockwise(360), "ccw 360"),
        (lambda d: d.hover(), "stop"),
        (lambda d: d.flip("r"), "flip r"),
    ],
)
def test_sdk_command_text(tello, driver, call, expected):
    call(driver)
    assert wait_for(lambda: tello.received[-1] == expected)


@pytest.mark.parametrize(
    "call",
    [
        lambda d: d.move("up", 19),
        lambda d: d.move("up", 501),
        lambda d: d.move("sideways", 20),
        lambda d: d.rotate_clockwise(0),
        lambda d: d.rotate_counter_clockwise(361),
        lambda d: d.flip("x"),
    ],
)
def test_out_of_range_values_are_not_sent(tello, driver, call):
    sent_before = len(tello.received)
    with pytest.raises(DriverError):
        call(driver)
    assert len(tello.received) == sent_before


def test_error_reply_raises(tello, driver):
    tello.refuse.add("flip f")
    with pytest.raises(DriverError, match="rejected"):
        driver.flip("f")


def test_silent_drone_never_connects():
    peer = FakeTello(answer_handshake=False)
    driver = TelloDriver("127.0.0.1", peer.port, timeout=0.1, local_port=0, retry_interval=0.05)
    try:
        driver.connect()
        assert not driver.wait_connected(0.3)
        # The handshake keeps retrying
        assert wait_for(lambda: peer.received.count("command") >= 2)
    finally:
        driver.close()
        peer.close()


def test_close_releases_waiters():
    peer = FakeTello(answer_handshake=False)
    driver = TelloDriver("127.0.0.1", peer.port, timeout=0.1, local_port=0)
    try:
        driver.connect()
        driver.close()
        assert driver.wait_connected() is False
    finally:
        peer.close()


def test_commands_after_close_raise(tello, driver):
    driver.close()
    with pytest.raises(DriverError):
        driver.land()


def test_late_reply_is_not_taken_for_the_next_command(tello):
    driver = TelloDriver("127.0.0.1", tello.port, timeout=0.2, local_port=0)
    driver.connect()
    try:
        assert driver.wait_connected(2.0)
        tello.delay["takeoff"] = 0.4
        with pytest.raises(DriverError, match="No reply"):
            driver.takeoff()
        assert wait_for(lambda: tello.late_replies == 1)

        # The queued "ok" for takeoff must not answer the land command
        tello.refuse.add("land")
        with pytest.raises(DriverError, match="rejected"):
            driver.land()
    finally:
        driver.close()


def test_reply_from_another_sender_is_ignored(tello, driver):
    tello.spoof.add("stop")
    tello.refuse.add("stop")
    with pytest.raises(DriverError, match="rejected"):
        driver.hover()


def test_unexpected_sender_alone_times_out(tello):
    driver = TelloDriver("127.0.0.1", tello.port, timeout=0.3, local_port=0)
    driver.connect()
    try:
        assert driver.wait_connected(2.0)
        tello.spoof.add("up 20")
        tello.delay["up 20"] = 1.0
        with pytest.raises(DriverError, match="No reply"):
            driver.move("up", 20)
    finally:
        driver.close()
