# tchat_core/irc/handlers/protocol_flow_handlers.py
import logging
from typing import TYPE_CHECKING

from tchat_core.irc.irc_message import IRCMessage

if TYPE_CHECKING:
    from tchat_core.chat_connector import ChatConnector

logger = logging.getLogger("tchat.handlers.protocol_flow")


async def _handle_ping(connector: "ChatConnector", parsed_msg: IRCMessage):
    """Handles PING keepalives; the PONG bypasses the outbound queue."""
    if parsed_msg.parameters is not None:
        reply = f"PONG :{parsed_msg.parameters}"
    else:
        reply = "PONG"
    await connector.send_line(reply, force=True)
    logger.debug(f"Responded to PING ({parsed_msg.parameters}) with PONG.")
