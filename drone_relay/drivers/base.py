"""
Abstract base class for vehicle drivers.

A driver turns discrete motion primitives into whatever the vehicle's own
link expects. This base class defines the interface the vehicle controller
relies on.
"""

from abc import ABC, abstractmethod


class VehicleDriver(ABC):
    """
    Abstract base class for a vehicle link.

    Motion primitives block until the vehicle acknowledges them and raise
    DriverError when it refuses.
    """

    # Valid move directions
    DIRECTIONS = ("up", "down", "left", "right", "forward", "back")

    # Valid flip directions: front, back, left, right
    FLIP_DIRECTIONS = ("f", "b", "l", "r")

    def __init__(self, address: str, port: int, timeout: float):
        """
        Initialize the driver.

        Args:
            address: Address of the vehicle
            port: Command port of the vehicle
            timeout: Response timeout in seconds
        """
        self.address = address
        self.port = port
        self.timeout = timeout

    @abstractmethod
    def connect(self):
        """
        Begin connecting to the vehicle without blocking.

        Completion is reported through wait_connected().
        """
        pass

    @abstractmethod
    def wait_connected(self, timeout: float = None) -> bool:
        """
        Wait for the connection to be established.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely

        Returns:
            True once connected, False if the timeout expired or the driver
            was closed first
        """
        pass

    @abstractmethod
    def takeoff(self):
        pass

    @abstractmethod
    def land(self):
        pass

    @abstractmethod
    def move(self, direction: str, distance: int):
        """
        Move in a straight line.

        Args:
            direction: One of DIRECTIONS
            distance: Distance in centimetres
        """
        pass

    @abstractmethod
    def rotate_clockwise(self, degrees: int):
        pass

    @abstractmethod
    def rotate_counter_clockwise(self, degrees: int):
        pass

    @abstractmethod
    def hover(self):
        """Stop moving and hold position."""
        pass

    @abstractmethod
    def flip(self, direction: str):
        """
        Flip in the given direction.

        Args:
            direction: One of FLIP_DIRECTIONS
        """
        pass

    @abstractmethod
    def close(self):
        """
        Clean up resources (close socket, etc.).
        """
        pass
