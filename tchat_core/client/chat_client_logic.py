# tchat_core/client/chat_client_logic.py
import asyncio
import logging
from typing import Optional

from tchat_core.app_config import AppConfig
from tchat_core.chat_connector import ChatConnector, OpenConnection
from tchat_core.commands import light_commands
from tchat_core.commands.command_dispatcher import CommandDispatcher
from tchat_core.connector_registry import ConnectorRegistry
from tchat_core.event_manager import CLIENT_DISCONNECTED, EventManager
from tchat_core.state_manager import ConnectionConfigError, ConnectionInfo

logger = logging.getLogger("tchat.logic")


class ChatClientLogic:
    """
    Wires the connector, the command dispatcher and the sample light
    commands together, and drives the connector's rate-limited queue from
    a fixed-period main loop.
    """

    def __init__(
        self,
        config: AppConfig,
        registry: ConnectorRegistry,
        connection_info: Optional[ConnectionInfo] = None,
        open_connection: Optional[OpenConnection] = None,
    ):
        self.config = config
        self.registry = registry
        self.event_manager = EventManager()
        connector_kwargs = {
            "num_lines_per_interval": config.lines_per_interval,
            "interval": config.interval,
        }
        if open_connection is not None:
            connector_kwargs["open_connection"] = open_connection
        self.connector: ChatConnector = registry.acquire(
            connection_info or config.get_connection_info(),
            self.event_manager,
            **connector_kwargs,
        )
        self.light = light_commands.LightCommands()
        self.dispatcher = CommandDispatcher.from_definitions(
            self.connector,
            self.event_manager,
            light_commands.COMMAND_DEFINITIONS,
            self.light,
            help_command=config.help_command,
        )
        self.should_quit = asyncio.Event()
        self.event_manager.subscribe(CLIENT_DISCONNECTED, self._on_client_disconnected)

    def _on_client_disconnected(self, server: str, port: int, error: Optional[BaseException]):
        if error is not None:
            logger.error(f"Disconnected from {server}:{port}: {error}. Call initialize() to reconnect.")
        else:
            logger.info(f"Disconnected from {server}:{port}.")

    def request_shutdown(self, reason: str = "Client shutting down") -> None:
        logger.info(f"Shutdown requested: {reason}")
        self.should_quit.set()

    async def run_main_loop(self) -> None:
        logger.info("Starting main client loop.")
        self.dispatcher.attach()
        try:
            if self.config.initialize_on_start:
                try:
                    await self.connector.initialize()
                except ConnectionConfigError as e:
                    logger.error(f"Cannot connect: {e}")
                    return
                except OSError as e:
                    logger.error(f"Initial connection failed: {e}")
                    return

            loop = asyncio.get_running_loop()
            last_tick = loop.time()
            while not self.should_quit.is_set():
                now = loop.time()
                await self.connector.tick(now - last_tick)
                last_tick = now
                try:
                    await asyncio.wait_for(self.should_quit.wait(), timeout=self.config.tick_interval)
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            logger.info("run_main_loop task itself was cancelled. Proceeding to cleanup.")
            self.should_quit.set()
            raise
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        self.dispatcher.detach()
        self.event_manager.unsubscribe(CLIENT_DISCONNECTED, self._on_client_disconnected)
        await self.registry.release()
        logger.info("Client shutdown sequence complete.")
