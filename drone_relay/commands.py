"""
Command vocabulary for the drone relay.

This module only handles mapping chat text to a Command. Executing a
Command is the job of the vehicle controller.
"""

import logging
from enum import Enum
from typing import Optional


class Command(Enum):
    """Discrete vehicle maneuver."""
    MOVE_UP = "up"
    MOVE_DOWN = "down"
    MOVE_LEFT = "left"
    MOVE_RIGHT = "right"
    MOVE_FORWARD = "forward"
    MOVE_BACKWARD = "backward"
    ROTATE_CLOCKWISE = "clockwise"
    ROTATE_COUNTER_CLOCKWISE = "counter_clockwise"
    FLIP = "flip"
    FRONT_FLIP = "front_flip"
    RIGHT_FLIP = "right_flip"
    HOVER = "hover"


# Lower-case chat phrase -> Command
PHRASES = {
    "up": Command.MOVE_UP,
    "down": Command.MOVE_DOWN,
    "left": Command.MOVE_LEFT,
    "right": Command.MOVE_RIGHT,
    "forward": Command.MOVE_FORWARD,
    "backward": Command.MOVE_BACKWARD,
    "rotate": Command.ROTATE_CLOCKWISE,
    "rotate clockwise": Command.ROTATE_CLOCKWISE,
    "rotate cc": Command.ROTATE_COUNTER_CLOCKWISE,
    "flip": Command.FLIP,
    "right flip": Command.RIGHT_FLIP,
    "front flip": Command.FRONT_FLIP,
    "halt": Command.HOVER,
    "hover": Command.HOVER,
    "steady": Command.HOVER,
}


class CommandInterpreter:
    """
    Maps chat text to a Command.

    Matching is case-insensitive and exact: whitespace is significant, so
    " up" and "up " are not recognized.
    """

    def __init__(self, phrases=None):
        self.logger = logging.getLogger(__name__)
        self.phrases = dict(PHRASES if phrases is None else phrases)

    def interpret(self, text: str) -> Optional[Command]:
        """
        Look up the command for a chat message.

        Args:
            text: Raw message body

        Returns:
            Command, or None if the text is not in the vocabulary
        """
        command = self.phrases.get(text.lower())
        if command is None:
            self.logger.debug(f"No command for message {text!r}")
        return command
