"""
Custom exceptions for the drone relay service.
"""


class RelayServiceError(Exception):
    """Base exception for all relay service errors."""
    pass


class ConfigurationError(RelayServiceError):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


class VehicleNotStartedError(RelayServiceError):
    """Raised when the vehicle controller is stopped before it was started."""
    pass


class DriverError(RelayServiceError):
    """Raised when the vehicle driver rejects or fails a command."""
    pass


class ChannelClosed(RelayServiceError):
    """Raised when sending on, or receiving from, a closed channel."""
    pass
