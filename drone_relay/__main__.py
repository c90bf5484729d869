"""
Entry point for running drone_relay as a module.

Usage:
    python -m drone_relay
"""

import sys
from .relay_service import main

if __name__ == "__main__":
    sys.exit(main())
