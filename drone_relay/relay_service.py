"""
Main relay service for chat-controlled drone flight.

This service forwards every command the message interpreter produces to the
vehicle controller until it is told to stop, then lands the drone.
"""

import logging
import signal
import sys
import threading
from typing import Optional

from .channel import HandoffChannel
from .config import RelayConfig, load_configuration
from .controller import VehicleController
from .exceptions import ChannelClosed, DriverError, VehicleNotStartedError
from .interpreter import MessageInterpreter
from .telemetry import CommandTelemetry


class RelayService:
    """
    Top-level relay loop.

    Each cycle checks for a stop request first, then waits up to
    poll_interval for the next command from the interpreter and forwards it
    to the controller. A stop request cancels that wait, so no command is
    taken after it. Forwarding blocks while the controller is busy, which
    in turn holds back the interpreter.
    """

    def __init__(self, config: RelayConfig, interpreter: MessageInterpreter,
                 controller: VehicleController, telemetry: Optional[CommandTelemetry] = None):
        """
        Initialize the relay service.

        Args:
            config: Service configuration
            interpreter: Source of commands
            controller: Executor of commands, already started
            telemetry: Optional telemetry to start and close with the service
        """
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.interpreter = interpreter
        self.controller = controller
        self.telemetry = telemetry

        self.inbound: Optional[HandoffChannel] = None
        self.outbound: Optional[HandoffChannel] = None

        self._stop_requested = threading.Event()
        self._shutdown_lock = threading.Lock()
        self._shutdown_done = False
        self.forwarded = 0

    def request_stop(self):
        """Ask the relay loop to exit. No command is taken from the interpreter after this."""
        self._stop_requested.set()
        if self.inbound is not None:
            self.inbound.wake()

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    def install_signal_handlers(self):
        """Route SIGINT and SIGTERM to request_stop(). Must run on the main thread."""
        def handle_signal(signum, frame):
            self.logger.info(f"Received signal {signum}, initiating shutdown")
            self.request_stop()

        signal.signal(signal.SIGTERM, handle_signal)
        signal.signal(signal.SIGINT, handle_signal)

    def _relay_loop(self):
        """Forward commands until a stop is requested or the inbound channel closes."""
        self.logger.info("Entering relay loop")

        while not self._stop_requested.is_set():
            try:
                command = self.inbound.receive(timeout=self.config.poll_interval,
                                               cancel=self._stop_requested)
            except ChannelClosed:
                self.logger.warning("Command source closed")
                break

            if command is None:
                continue

            self.logger.debug(f"Forwarding command {command.value}")
            try:
                self.outbound.send(command)
            except ChannelClosed:
                self.logger.warning(f"Vehicle channel closed, dropping command {command.value}")
                break
            self.forwarded += 1

        self.logger.info("Exited relay loop")

    def run(self):
        """
        Run the relay until stopped, then shut down.

        This method blocks until the service is stopped.

        Raises:
            VehicleNotStartedError: If the controller was never started
            DriverError: If landing fails
        """
        self.logger.info("Starting drone relay service")
        self.logger.info(f"Configuration: {self.config}")

        if self.telemetry:
            self.telemetry.start()

        self.outbound = self.controller.command_channel()
        self.inbound = self.interpreter.command_channel()

        try:
            self._relay_loop()
        finally:
            self.shutdown()

    def shutdown(self):
        """Stop reading chat, then land. Runs at most once."""
        with self._shutdown_lock:
            if self._shutdown_done:
                return
            self._shutdown_done = True

        self.logger.info("Stopping relay service")
        self._stop_requested.set()

        self.interpreter.close()
        try:
            self.controller.stop()
        finally:
            if self.telemetry:
                self.telemetry.close()
            self.logger.info("Relay service stopped")


def setup_logging(log_level: str, log_file: Optional[str] = None,
                  log_format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'):
    """
    Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        log_format: Format string for all handlers
    """
    level = getattr(logging, log_level.upper())

    formatter = logging.Formatter(log_format)

    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove any existing handlers
    logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def main():
    """Main entry point for the relay service."""
    try:
        config = load_configuration()

        setup_logging(config.log_level, config.log_file, config.log_format)

        logger = logging.getLogger(__name__)
        logger.info("Chat Drone Relay Service")

        telemetry = CommandTelemetry(config)

        controller = VehicleController(config, telemetry=telemetry)
        controller.start()

        interpreter = MessageInterpreter(config)

        service = RelayService(config, interpreter, controller, telemetry)
        service.install_signal_handlers()
        service.run()

        return 0

    except (VehicleNotStartedError, DriverError) as e:
        logging.critical(f"Drone failure: {e}", exc_info=True)
        return 1

    except KeyboardInterrupt:
        logging.info("Keyboard interrupt received")
        return 0

    except Exception as e:
        logging.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
