# tchat_core/commands/light_commands.py
import logging
from typing import List, Optional, Tuple

logger = logging.getLogger("tchat.commands.light")

Color = Tuple[float, float, float]

RED: Color = (1.0, 0.0, 0.0)
GREEN: Color = (0.0, 1.0, 0.0)
BLUE: Color = (0.0, 0.0, 1.0)
WHITE: Color = (1.0, 1.0, 1.0)

COMMAND_DEFINITIONS = [
    {
        "name": "!red",
        "handler": "handle_red_command",
        "help": {"usage": None, "description": "Turns the light red."},
    },
    {
        "name": "!green",
        "handler": "handle_green_command",
        "help": {"usage": None, "description": "Turns the light green."},
    },
    {
        "name": "!blue",
        "handler": "handle_blue_command",
        "help": {"usage": None, "description": "Turns the light blue."},
    },
    {
        "name": "!color",
        "handler": "handle_color_command",
        "help": {
            "usage": "<red> <green> <blue>",
            "description": "Sets the light to an RGB colour, each channel 0 to 1.",
        },
    },
]


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def _parse_channel(name: str, raw_value: str) -> Optional[float]:
    try:
        return float(raw_value)
    except ValueError:
        logger.info(f"Failed to parse {name} from '{raw_value}'")
        return None


class LightCommands:
    """A light whose colour chat can change."""

    def __init__(self, color: Color = WHITE):
        self.color: Color = color

    def handle_red_command(self, sender: str, arguments: List[str]):
        logger.info(f"{sender} turned the light red.")
        self.color = RED

    def handle_green_command(self, sender: str, arguments: List[str]):
        logger.info(f"{sender} turned the light green.")
        self.color = GREEN

    def handle_blue_command(self, sender: str, arguments: List[str]):
        logger.info(f"{sender} turned the light blue.")
        self.color = BLUE

    def handle_color_command(self, sender: str, arguments: List[str]):
        """Handles `!color <r> <g> <b>`; bad input leaves the colour unchanged."""
        if len(arguments) < 3:
            logger.debug(f"!color from {sender} needs three values, got {arguments}")
            return

        channels = []
        for name, raw_value in zip(("red", "green", "blue"), arguments):
            value = _parse_channel(name, raw_value)
            if value is None:
                return
            channels.append(value)

        red, green, blue = channels
        logger.info(f"{sender} turned the light to RGB ({red}, {green}, {blue}).")
        self.color = (_clamp(red), _clamp(green), _clamp(blue))
