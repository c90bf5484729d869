"""
Vehicle drivers.

Each vehicle speaks its own link protocol. This package provides the
driver interface the controller depends on and the concrete drivers.
"""

from .base import VehicleDriver
from .tello import TelloDriver

__all__ = ['VehicleDriver', 'TelloDriver']
