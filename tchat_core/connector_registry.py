# tchat_core/connector_registry.py
import logging
from typing import Any, Optional

from tchat_core.chat_connector import ChatConnector
from tchat_core.event_manager import EventManager
from tchat_core.state_manager import ConnectionInfo

logger = logging.getLogger("tchat.registry")


class ConnectorRegistry:
    """
    Owns the one live ChatConnector of a session. Created once when the
    session starts and released when it ends; duplicate acquisitions are
    redirected to the live instance, which keeps its own connection info.
    Callers must share the live connector's event manager; acquiring with a
    different one raises ValueError.
    """

    def __init__(self):
        self._connector: Optional[ChatConnector] = None

    @property
    def active(self) -> Optional[ChatConnector]:
        return self._connector

    def acquire(
        self,
        connection_info: ConnectionInfo,
        event_manager: EventManager,
        **connector_kwargs: Any,
    ) -> ChatConnector:
        if self._connector is not None:
            if event_manager is not self._connector.event_manager:
                raise ValueError(
                    "A connector is already live for this session with a different event manager; "
                    "release it first or share its event manager."
                )
            if connection_info is not self._connector.connection_info:
                logger.warning("acquire: ignoring new connection info, the live connector keeps its own.")
            logger.warning("A connector is already live for this session; returning the existing instance.")
            return self._connector

        self._connector = ChatConnector(connection_info, event_manager, **connector_kwargs)
        logger.info("Connector created.")
        return self._connector

    async def release(self) -> None:
        connector = self._connector
        if connector is None:
            logger.debug("release: no live connector.")
            return
        self._connector = None
        await connector.stop()
        logger.info("Connector released.")
