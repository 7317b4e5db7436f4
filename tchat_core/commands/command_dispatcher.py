import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Sequence

from tchat_core.config_defs import DEFAULT_HELP_COMMAND
from tchat_core.event_manager import MESSAGE_RECEIVED, EventManager

if TYPE_CHECKING:
    from tchat_core.chat_connector import ChatConnector

logger = logging.getLogger("tchat.commands")

CommandHandlerCallable = Callable[[str, List[str]], Any]


@dataclass(frozen=True)
class CommandSpec:
    """
    A chat command, e.g. `!color <r> <g> <b> - Sets the light colour`.

    Attributes:
        verb (str): What chatters type, matched case-insensitively.
        argument_description (Optional[str]): Usage hint shown by the help listing.
        description (Optional[str]): What the command does.
        handler (Callable[[str, List[str]], Any]): Called with (sender, arguments).
    """

    verb: str
    argument_description: Optional[str]
    description: Optional[str]
    handler: CommandHandlerCallable

    def render(self) -> str:
        result = self.verb
        if self.argument_description:
            result += f" {self.argument_description}"
        if self.description:
            result += f" - {self.description}"
        return result

    def __str__(self) -> str:
        return self.render()


class CommandDispatcher:
    """Routes received chat messages to the first command whose verb they start with."""

    def __init__(
        self,
        connector: "ChatConnector",
        event_manager: EventManager,
        commands: Sequence[CommandSpec],
        help_command: str = DEFAULT_HELP_COMMAND,
    ):
        self.connector = connector
        self.event_manager = event_manager
        self.commands: List[CommandSpec] = list(commands)
        self.help_command = help_command
        logger.info(f"CommandDispatcher initialized with {len(self.commands)} command(s), help verb '{help_command}'.")

    @classmethod
    def from_definitions(
        cls,
        connector: "ChatConnector",
        event_manager: EventManager,
        definitions: Iterable[Dict[str, Any]],
        receiver: Any,
        help_command: str = DEFAULT_HELP_COMMAND,
    ) -> "CommandDispatcher":
        """
        Builds a dispatcher from COMMAND_DEFINITIONS-style dicts:
        {"name": "!color", "handler": "handle_color_command",
         "help": {"usage": "<r> <g> <b>", "description": "..."}}
        where "handler" names a method on `receiver`.
        """
        commands: List[CommandSpec] = []
        for cmd_def in definitions:
            cmd_name = cmd_def["name"]
            handler_name_str = cmd_def["handler"]
            handler_func = getattr(receiver, handler_name_str, None)
            if not callable(handler_func):
                logger.error(f"Could not find or call handler '{handler_name_str}' for command '{cmd_name}'.")
                continue
            help_info = cmd_def.get("help") or {}
            commands.append(
                CommandSpec(
                    verb=cmd_name,
                    argument_description=help_info.get("usage"),
                    description=help_info.get("description"),
                    handler=handler_func,
                )
            )
            logger.debug(f"Registered command '{cmd_name}' handled by {handler_name_str}.")
        return cls(connector, event_manager, commands, help_command=help_command)

    def attach(self) -> None:
        self.event_manager.subscribe(MESSAGE_RECEIVED, self.on_message)

    def detach(self) -> None:
        self.event_manager.unsubscribe(MESSAGE_RECEIVED, self.on_message)

    def on_message(self, sender: str, text: str) -> None:
        possible_command = text.split(" ", 1)[0]
        possible_command_lower = possible_command.lower()

        if possible_command_lower == self.help_command.lower():
            self.print_commands()
            return

        for command in self.commands:
            if possible_command_lower != command.verb.lower():
                continue

            substring_start = len(possible_command) + 1
            if len(text) > substring_start:
                arguments = text[substring_start:].split(" ")
            else:
                arguments = []

            logger.info(f"Dispatching '{command.verb}' from {sender} with arguments {arguments}")
            try:
                command.handler(sender, arguments)
            except Exception as e_handler:
                logger.error(f"Error executing handler for command '{command.verb}': {e_handler}", exc_info=True)
            return

    def print_commands(self) -> None:
        for command in self.commands:
            self.connector.send_chat_message(command.render())
