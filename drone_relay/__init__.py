"""
Drone Relay - chat-controlled drone flight

This package relays short chat messages to a drone:
- Chat messages (Discord, or console lines) -> Command vocabulary
- Commands -> Vehicle controller, one at a time, in arrival order
- SIGINT/SIGTERM -> Landing and shutdown

The vehicle link is abstracted behind a driver interface so different
drones can be supported; the DJI Tello text SDK is provided.
"""

__version__ = "1.0.0"

from .channel import HandoffChannel
from .commands import Command, CommandInterpreter, PHRASES
from .config import RelayConfig, load_configuration
from .controller import ControllerState, VehicleController
from .drivers import TelloDriver, VehicleDriver
from .exceptions import (
    RelayServiceError,
    ConfigurationError,
    VehicleNotStartedError,
    DriverError,
    ChannelClosed
)
from .interpreter import MessageInterpreter
from .relay_service import RelayService
from .sources import ConsoleSource, MessageSource

__all__ = [
    '__version__',
    'HandoffChannel',
    'Command',
    'CommandInterpreter',
    'PHRASES',
    'RelayConfig',
    'load_configuration',
    'ControllerState',
    'VehicleController',
    'TelloDriver',
    'VehicleDriver',
    'RelayServiceError',
    'ConfigurationError',
    'VehicleNotStartedError',
    'DriverError',
    'ChannelClosed',
    'MessageInterpreter',
    'RelayService',
    'ConsoleSource',
    'MessageSource',
]
