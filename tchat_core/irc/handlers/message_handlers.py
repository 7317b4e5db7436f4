# tchat_core/irc/handlers/message_handlers.py
import logging
from typing import TYPE_CHECKING

from tchat_core.irc.irc_message import IRCMessage

if TYPE_CHECKING:
    from tchat_core.chat_connector import ChatConnector

logger = logging.getLogger("tchat.handlers.message")


async def _handle_privmsg(connector: "ChatConnector", parsed_msg: IRCMessage):
    """Handles PRIVMSG commands by publishing them as received chat messages."""
    if not parsed_msg.source:
        logger.debug(f"PRIVMSG without a sender nick, ignoring. Raw: {parsed_msg.raw_line}")
        return

    message_content = parsed_msg.parameters or ""
    logger.debug(f"<{parsed_msg.source}> {message_content}")
    connector.event_manager.dispatch_message_received(parsed_msg.source, message_content)
