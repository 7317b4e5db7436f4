# tchat_core/irc/irc_protocol.py
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Dict

from tchat_core.irc.irc_message import IRCMessage, MalformedLineError
from tchat_core.irc.handlers import message_handlers, protocol_flow_handlers

if TYPE_CHECKING:
    from tchat_core.chat_connector import ChatConnector

logger = logging.getLogger("tchat.protocol")

HandlerFunction = Callable[["ChatConnector", IRCMessage], Awaitable[None]]


COMMAND_HANDLERS: Dict[str, HandlerFunction] = {
    "PING": protocol_flow_handlers._handle_ping,
    "PRIVMSG": message_handlers._handle_privmsg,
}


async def handle_server_message(connector: "ChatConnector", raw_line: str) -> None:
    """
    Parses a raw line and dispatches it to the handler for its command.
    Malformed lines and commands without a handler are dropped.
    """
    try:
        parsed_msg = IRCMessage.parse(raw_line)
    except MalformedLineError as e:
        logger.warning(f"Dropping malformed line: {e}")
        return

    command_upper = parsed_msg.command.upper()
    handler = COMMAND_HANDLERS.get(command_upper)
    if handler is None:
        logger.debug(f"No handler for command: {command_upper}. Raw: {parsed_msg.raw_line}")
        return

    await handler(connector, parsed_msg)
