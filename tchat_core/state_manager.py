import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, FrozenSet, List, Optional

from tchat_core.config_defs import DEFAULT_PORT, DEFAULT_SERVER

logger = logging.getLogger("tchat.state")


class ConnectionState(Enum):
    """Possible connection states."""

    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()
    DISCONNECTING = auto()


# CONNECTED -> DISCONNECTED is only taken when initialize() replaces a live
# transport; every other shutdown goes through DISCONNECTING.
ALLOWED_TRANSITIONS: Dict[ConnectionState, FrozenSet[ConnectionState]] = {
    ConnectionState.DISCONNECTED: frozenset({ConnectionState.CONNECTING}),
    ConnectionState.CONNECTING: frozenset(
        {
            ConnectionState.CONNECTED,
            ConnectionState.DISCONNECTING,
            ConnectionState.DISCONNECTED,
        }
    ),
    ConnectionState.CONNECTED: frozenset(
        {ConnectionState.DISCONNECTING, ConnectionState.DISCONNECTED}
    ),
    ConnectionState.DISCONNECTING: frozenset({ConnectionState.DISCONNECTED}),
}


class InvalidStateTransitionError(RuntimeError):
    def __init__(self, old_state: ConnectionState, new_state: ConnectionState):
        super().__init__(f"Invalid connection state transition {old_state.name} -> {new_state.name}")
        self.old_state = old_state
        self.new_state = new_state


class ConnectionConfigError(ValueError):
    def __init__(self, errors: List[str]):
        super().__init__("Invalid connection configuration: " + "; ".join(errors))
        self.errors = errors


def check_transition(old_state: ConnectionState, new_state: ConnectionState) -> None:
    if new_state not in ALLOWED_TRANSITIONS[old_state]:
        raise InvalidStateTransitionError(old_state, new_state)


@dataclass
class ConnectionInfo:
    """
    Holds the credentials and endpoint for the single chat connection.

    Attributes:
        server (str): Chat service hostname.
        port (int): Plain TCP port of the chat service.
        username (Optional[str]): Login name, also used as nick. Stored lower-case.
        access_code (Optional[str]): OAuth token sent as `PASS oauth:<token>`.
        channel (Optional[str]): Channel to join, without the leading '#'. Stored lower-case.

        # Runtime state (not from config)
        last_error (Optional[str]): The last transport error seen on this connection.
    """

    server: str = DEFAULT_SERVER
    port: int = DEFAULT_PORT
    username: Optional[str] = None
    access_code: Optional[str] = None
    channel: Optional[str] = None
    last_error: Optional[str] = None

    def __post_init__(self):
        self.username = self.username.lower() if self.username else self.username
        self.channel = _normalize_channel(self.channel)

    def update_credentials(
        self,
        username: Optional[str] = None,
        access_code: Optional[str] = None,
        channel: Optional[str] = None,
    ) -> None:
        if username is not None:
            self.username = username.lower()
        if access_code is not None:
            self.access_code = access_code
        if channel is not None:
            self.channel = _normalize_channel(channel)

    def validate(self) -> List[str]:
        """Returns human-readable configuration errors; empty when valid."""
        errors: List[str] = []
        if not self.server:
            errors.append("Server address is required.")
        if not self.port or not (1 <= self.port <= 65535):
            errors.append(f"Port must be between 1 and 65535 (got {self.port}).")
        if not self.username:
            errors.append("Username is required.")
        if not self.access_code:
            errors.append("Access code (oauth token) is required.")
        if not self.channel:
            errors.append("Channel is required.")
        return errors


def _normalize_channel(channel: Optional[str]) -> Optional[str]:
    if not channel:
        return channel
    return channel.lstrip("#").lower()
