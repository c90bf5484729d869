"""
DJI Tello driver implementation.

Speaks the Tello SDK text protocol over UDP.

Every command is a single ASCII datagram sent to the drone's command port
(8889 by default); the drone answers each one with "ok" or "error".

Handshake:
    "command"           enter SDK mode, repeated until the drone answers "ok"

Motion:
    "takeoff", "land"
    "up|down|left|right|forward|back <cm>"   20-500
    "cw|ccw <deg>"                           1-360
    "flip <f|b|l|r>"
    "stop"                                   hover in place
"""

import logging
import socket
import threading
import time
from typing import Optional

from ..exceptions import DriverError
from .base import VehicleDriver


class TelloDriver(VehicleDriver):
    """
    Driver for the DJI Tello over its UDP text SDK.

    Exchanges are serialized: one command is sent and its reply read before
    the next command goes out. Datagrams still queued from an earlier
    exchange are discarded first, and only the drone's own address counts
    as a reply.
    """

    # SDK limits
    MIN_DISTANCE = 20
    MAX_DISTANCE = 500
    MIN_DEGREES = 1
    MAX_DEGREES = 360

    BUFFER_SIZE = 1024

    def __init__(self, address: str = "192.168.10.1", port: int = 8889, timeout: float = 7.0,
                 local_port: int = 8889, retry_interval: float = 1.0):
        """
        Initialize Tello driver.

        Args:
            address: IP address of the drone
            port: Command port of the drone
            timeout: Seconds to wait for each reply
            local_port: Local UDP port to bind (0 for any free port)
            retry_interval: Pause between handshake attempts after a refusal
        """
        super().__init__(address, port, timeout)
        self.logger = logging.getLogger(__name__)

        self.local_port = local_port
        self.retry_interval = retry_interval

        self.socket: Optional[socket.socket] = None
        self._peer = (address, port)
        self._lock = threading.Lock()
        self._connected = threading.Event()
        self._closed = threading.Event()
        # Set once the handshake either succeeds or is abandoned
        self._settled = threading.Event()
        self._handshake_thread: Optional[threading.Thread] = None

    def connect(self):
        """
        Bind the local socket and start the SDK handshake in the background.

        Raises:
            DriverError: If the address cannot be resolved or the local socket bound
        """
        try:
            self._peer = (socket.gethostbyname(self.address), self.port)
        except OSError as e:
            raise DriverError(f"Cannot resolve drone address {self.address}: {e}")

        try:
            self.socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            self.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self.socket.bind(("0.0.0.0", self.local_port))
            self.socket.settimeout(self.timeout)
        except OSError as e:
            self.socket = None
            raise DriverError(f"Failed to bind local port {self.local_port}: {e}")

        self.logger.info(f"Tello driver connecting to {self.address}:{self.port}")

        self._handshake_thread = threading.Thread(
            target=self._handshake, name="TelloHandshake", daemon=True
        )
        self._handshake_thread.start()

    def _handshake(self):
        """Send "command" until the drone accepts it or the driver is closed."""
        while not self._closed.is_set():
            try:
                self._send_command("command")
            except DriverError as e:
                if self._closed.is_set():
                    break
                self.logger.debug(f"Handshake attempt failed: {e}")
                self._closed.wait(self.retry_interval)
                continue

            self.logger.info("Tello connection established")
            self._connected.set()
            self._settled.set()
            return

    def wait_connected(self, timeout: float = None) -> bool:
        self._settled.wait(timeout)
        return self._connected.is_set() and not self._closed.is_set()

    def _send_command(self, command: str) -> str:
        """
        Send one SDK command and wait for its reply.

        Args:
            command: SDK command text

        Returns:
            The reply text ("ok")

        Raises:
            DriverError: On socket failure, timeout or an "error" reply
        """
        sock = self.socket
        if sock is None:
            raise DriverError(f"Cannot send {command!r}: driver not connected")

        with self._lock:
            try:
                self._discard_pending(sock)
                sock.sendto(command.encode("ascii"), self._peer)
                data = self._receive_reply(sock)
            except socket.timeout:
                raise DriverError(f"No reply to {command!r} within {self.timeout}s")
            except OSError as e:
                raise DriverError(f"Failed to send {command!r}: {e}")

        reply = data.decode("ascii", errors="replace").strip()
        self.logger.debug(f"Sent {command!r}, reply {reply!r}")

        if reply.lower() != "ok":
            raise DriverError(f"Drone rejected {command!r}: {reply}")

        return reply

    def _discard_pending(self, sock: socket.socket):
        """Drop datagrams already queued, such as a reply that arrived after its timeout."""
        sock.setblocking(False)
        try:
            while True:
                try:
                    data, addr = sock.recvfrom(self.BUFFER_SIZE)
                except BlockingIOError:
                    return
                self.logger.debug(f"Discarding stale datagram {data!r} from {addr}")
        finally:
            sock.settimeout(self.timeout)

    def _receive_reply(self, sock: socket.socket) -> bytes:
        """
        Wait for the drone's reply, ignoring datagrams from any other sender.

        Raises:
            socket.timeout: If no reply from the drone arrives within the timeout
        """
        deadline = time.monotonic() + self.timeout
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise socket.timeout("timed out")
                sock.settimeout(remaining)
                data, addr = sock.recvfrom(self.BUFFER_SIZE)
                if addr[:2] == self._peer:
                    return data
                self.logger.warning(f"Ignoring datagram from unexpected sender {addr}")
        finally:
            sock.settimeout(self.timeout)

    def takeoff(self):
        self._send_command("takeoff")

    def land(self):
        self._send_command("land")

    def move(self, direction: str, distance: int):
        if direction not in self.DIRECTIONS:
            raise DriverError(f"Invalid move direction: {direction}")
        if not (self.MIN_DISTANCE <= distance <= self.MAX_DISTANCE):
            raise DriverError(
                f"Invalid distance {distance}, must be {self.MIN_DISTANCE}-{self.MAX_DISTANCE} cm"
            )
        self._send_command(f"{direction} {distance}")

    def _check_degrees(self, degrees: int):
        if not (self.MIN_DEGREES <= degrees <= self.MAX_DEGREES):
            raise DriverError(
                f"Invalid rotation {degrees}, must be {self.MIN_DEGREES}-{self.MAX_DEGREES} degrees"
            )

    def rotate_clockwise(self, degrees: int):
        self._check_degrees(degrees)
        self._send_command(f"cw {degrees}")

    def rotate_counter_clockwise(self, degrees: int):
        self._check_degrees(degrees)
        self._send_command(f"ccw {degrees}")

    def hover(self):
        self._send_command("stop")

    def flip(self, direction: str):
        if direction not in self.FLIP_DIRECTIONS:
            raise DriverError(f"Invalid flip direction: {direction}")
        self._send_command(f"flip {direction}")

    def close(self):
        """Stop the handshake and close the UDP socket."""
        self._closed.set()
        self._settled.set()

        if self.socket:
            try:
                self.socket.close()
                self.logger.info("Tello driver closed")
            except OSError as e:
                self.logger.error(f"Error closing socket: {e}")
            finally:
                self.socket = None
