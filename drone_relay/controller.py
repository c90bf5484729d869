"""
Vehicle controller.

Owns the driver connection lifecycle and executes commands one at a time,
in the order they arrive on the controller's command channel.
"""

import logging
import threading
import time
from enum import Enum
from typing import Optional

from .channel import HandoffChannel
from .commands import Command
from .config import RelayConfig
from .drivers import TelloDriver, VehicleDriver
from .exceptions import DriverError, RelayServiceError, VehicleNotStartedError
from .telemetry import CommandTelemetry

# Fixed magnitudes for every maneuver
MOVE_DISTANCE_CM = 20
ROTATE_DEGREES = 10

MOVE_DIRECTIONS = {
    Command.MOVE_UP: "up",
    Command.MOVE_DOWN: "down",
    Command.MOVE_LEFT: "left",
    Command.MOVE_RIGHT: "right",
    Command.MOVE_FORWARD: "forward",
    Command.MOVE_BACKWARD: "back",
}

# A bare "flip" is a front flip
FLIP_DIRECTIONS = {
    Command.FLIP: "f",
    Command.FRONT_FLIP: "f",
    Command.RIGHT_FLIP: "r",
}


class ControllerState(Enum):
    """Connection state of the vehicle controller."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"


class VehicleController:
    """
    Executes commands against a vehicle driver.

    start() begins connecting without blocking. A connection-manager thread
    waits once for the driver to report the connection, takes off, and then
    marks the controller ready. Commands are read from a single hand-off
    channel by one consumer thread, so they never run concurrently.
    """

    def __init__(self, config: RelayConfig, driver: Optional[VehicleDriver] = None,
                 telemetry: Optional[CommandTelemetry] = None):
        """
        Initialize the vehicle controller.

        Args:
            config: Service configuration
            driver: Driver to use instead of the one named in the config
            telemetry: Optional command telemetry sink
        """
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.telemetry = telemetry

        self.driver: Optional[VehicleDriver] = None
        self._driver_override = driver

        self.commands: Optional[HandoffChannel] = None

        # Single-assignment readiness signal
        self._ready = threading.Event()
        self._state = ControllerState.DISCONNECTED
        self._state_lock = threading.Lock()

        self._connection_thread: Optional[threading.Thread] = None
        self._consumer_thread: Optional[threading.Thread] = None

    @property
    def state(self) -> ControllerState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: ControllerState):
        with self._state_lock:
            self._state = state
        self.logger.debug(f"Vehicle controller {state.value}")

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._ready.wait(timeout)

    def _create_driver(self) -> VehicleDriver:
        """
        Create vehicle driver based on configuration.

        Raises:
            RelayServiceError: If driver type is unknown
        """
        driver_type = self.config.vehicle_driver.lower()

        if driver_type == 'tello':
            return TelloDriver(
                self.config.drone_ip,
                self.config.drone_port,
                self.config.response_timeout,
                local_port=self.config.local_port
            )
        else:
            raise RelayServiceError(f"Unknown vehicle driver type: {driver_type}")

    def start(self):
        """Create the driver and begin connecting in the background."""
        if self.driver is not None:
            self.logger.warning("Vehicle controller already started")
            return

        self.driver = self._driver_override or self._create_driver()
        self._set_state(ControllerState.CONNECTING)
        self.driver.connect()

        self._connection_thread = threading.Thread(
            target=self._await_connection, args=(self.driver,), name="VehicleConnection", daemon=True
        )
        self._connection_thread.start()

    def _await_connection(self, driver: VehicleDriver):
        if not driver.wait_connected():
            self.logger.warning("Vehicle connection abandoned before it was established")
            return

        self.logger.info("Vehicle connected, taking off")
        try:
            driver.takeoff()
        except DriverError as e:
            self.logger.error(f"Takeoff failed: {e}")

        self._ready.set()
        self._set_state(ControllerState.READY)

    def command_channel(self) -> HandoffChannel:
        """
        Return the channel the controller consumes commands from.

        The consumer thread is started on first call.
        """
        if self.commands is None:
            self.commands = HandoffChannel("vehicle-commands")
            self._consumer_thread = threading.Thread(
                target=self._consume, name="VehicleCommands", daemon=True
            )
            self._consumer_thread.start()
        return self.commands

    def _consume(self):
        for command in self.commands:
            try:
                self.execute(command)
            except Exception as e:
                self.logger.error(f"Unexpected error executing {command}: {e}", exc_info=True)
        self.logger.debug("Command consumer stopped")

    def execute(self, command: Command) -> bool:
        """
        Execute one command against the driver.

        Driver failures are logged, not raised.

        Returns:
            True if the driver accepted the command, False otherwise
        """
        self.logger.info(f"Executing command {command.value}")

        if self.driver is None:
            self.logger.error(f"Cannot execute {command.value}: vehicle controller not started")
            return False

        if self.config.gate_until_ready and not self._ready.is_set():
            self.logger.warning(f"Vehicle not ready, dropping command {command.value}")
            return False

        started = time.monotonic()
        try:
            self._dispatch(command)
            ok = True
        except DriverError as e:
            self.logger.error(f"Driver failed command {command.value}: {e}")
            ok = False

        if self.telemetry:
            self.telemetry.record(command.value, time.monotonic() - started, ok)

        return ok

    def _dispatch(self, command: Command):
        """Issue the single driver operation for a command."""
        if command in MOVE_DIRECTIONS:
            self.driver.move(MOVE_DIRECTIONS[command], MOVE_DISTANCE_CM)
        elif command == Command.ROTATE_CLOCKWISE:
            self.driver.rotate_clockwise(ROTATE_DEGREES)
        elif command == Command.ROTATE_COUNTER_CLOCKWISE:
            self.driver.rotate_counter_clockwise(ROTATE_DEGREES)
        elif command == Command.HOVER:
            self.driver.hover()
        elif command in FLIP_DIRECTIONS:
            self.driver.flip(FLIP_DIRECTIONS[command])
        else:
            raise DriverError(f"No driver operation for {command}")

    def stop(self):
        """
        Land the vehicle and release the driver.

        Raises:
            VehicleNotStartedError: If start() was never called
            DriverError: If the driver fails to land
        """
        if self.driver is None:
            raise VehicleNotStartedError("drone not started")

        if self.commands is not None:
            self.commands.close()

        # A command already taken from the channel finishes before landing
        consumer = self._consumer_thread
        if consumer is not None and consumer is not threading.current_thread():
            consumer.join()

        self.logger.info("Landing")
        try:
            self.driver.land()
        finally:
            self.driver.close()
            self._set_state(ControllerState.DISCONNECTED)
            self.logger.info("Vehicle controller stopped")
