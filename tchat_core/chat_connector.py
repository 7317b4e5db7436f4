# tchat_core/chat_connector.py
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from tchat_core.config_defs import (
    DEFAULT_INTERVAL,
    DEFAULT_LINES_PER_INTERVAL,
    HANDSHAKE_LINE_COUNT,
)
from tchat_core.event_manager import EventManager
from tchat_core.irc import irc_protocol
from tchat_core.outbound_queue import OutboundQueue
from tchat_core.state_manager import (
    ConnectionConfigError,
    ConnectionInfo,
    ConnectionState,
    check_transition,
)

logger = logging.getLogger("tchat.network")

OpenConnection = Callable[[str, int], Awaitable[Tuple[asyncio.StreamReader, asyncio.StreamWriter]]]

TRANSPORT_ERRORS = (ConnectionError, OSError, asyncio.IncompleteReadError)


def _mask_line(line: str) -> str:
    if line.upper().startswith("PASS "):
        return "PASS ******"
    return line


class ChatConnector:
    """
    Owns the chat-service transport and its connection state machine.

    Incoming lines are read by a cooperative asyncio task and handed to the
    protocol layer one at a time. Outgoing chat lines go through an
    `OutboundQueue` that is drained by `tick()`, which the owner calls once
    per scheduling period with the elapsed time.
    """

    def __init__(
        self,
        connection_info: ConnectionInfo,
        event_manager: EventManager,
        num_lines_per_interval: int = DEFAULT_LINES_PER_INTERVAL,
        interval: float = DEFAULT_INTERVAL,
        open_connection: OpenConnection = asyncio.open_connection,
    ):
        self.connection_info = connection_info
        self.event_manager = event_manager
        self.outbound_queue = OutboundQueue(num_lines_per_interval, interval)
        self.last_error: Optional[BaseException] = None
        self._open_connection = open_connection
        self._state = ConnectionState.DISCONNECTED
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._read_task: Optional[asyncio.Task] = None
        # Bumped by every teardown; initialize() compares it across its awaits
        self._teardown_generation = 0
        self._teardown_idle = asyncio.Event()
        self._teardown_idle.set()

    @property
    def connection_state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def read_task(self) -> Optional[asyncio.Task]:
        return self._read_task

    def _set_state(self, new_state: ConnectionState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        check_transition(old_state, new_state)
        self._state = new_state
        logger.info(f"Connection state: {old_state.name} -> {new_state.name}")
        self.event_manager.dispatch_connection_state_changed(old_state, new_state)

    def _is_active(self) -> bool:
        return self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED)

    def _torn_down_since(self, generation: int) -> bool:
        return self._teardown_generation != generation

    async def initialize(
        self,
        username: Optional[str] = None,
        access_code: Optional[str] = None,
        channel: Optional[str] = None,
    ) -> None:
        """
        Connects, authenticates and joins the channel. Credentials that are
        not given fall back to the ones configured earlier. Calling this while
        connected replaces the current transport. A teardown that lands while
        this is in progress wins: the call returns without connecting.
        """
        self.connection_info.update_credentials(username, access_code, channel)
        errors = self.connection_info.validate()
        if errors:
            raise ConnectionConfigError(errors)

        if not self._teardown_idle.is_set():
            logger.info("Waiting for teardown in progress before connecting.")
            await self._teardown_idle.wait()
        generation = self._teardown_generation

        if self._reader is not None or self._writer is not None:
            logger.info("Closing previous transport before re-initializing.")
            await self._close_transport()
            if self._torn_down_since(generation):
                logger.info("Connector stopped while closing the previous transport, not reconnecting.")
                return
            self.outbound_queue.clear()
            if self._state is not ConnectionState.DISCONNECTED:
                self._set_state(ConnectionState.DISCONNECTED)

        self._set_state(ConnectionState.CONNECTING)
        info = self.connection_info
        logger.info(f"Connecting to {info.server}:{info.port} as {info.username}, channel #{info.channel}")
        try:
            reader, writer = await self._open_connection(info.server, info.port)
        except (OSError, asyncio.TimeoutError) as e:
            logger.error(f"Connection error to {info.server}:{info.port}: {e}", exc_info=True)
            self.last_error = e
            info.last_error = str(e)
            if self._state is not ConnectionState.DISCONNECTED:
                self._set_state(ConnectionState.DISCONNECTED)
            raise

        if self._torn_down_since(generation) or self._state is not ConnectionState.CONNECTING:
            # Torn down while the connection was being opened
            logger.info("Connector stopped during connect, discarding new transport.")
            self._reader, self._writer = reader, writer
            await self._close_transport()
            return

        self._reader, self._writer = reader, writer
        try:
            await self._write_lines(
                [
                    f"PASS oauth:{info.access_code}",
                    f"NICK {info.username}",
                    f"USER {info.username} 8 *:{info.username}",
                    f"JOIN #{info.channel}",
                ]
            )
        except TRANSPORT_ERRORS as e:
            if self._torn_down_since(generation):
                logger.info(f"Connector stopped during handshake: {e}")
                return
            logger.error(f"Failed to send handshake: {e}", exc_info=True)
            self.last_error = e
            info.last_error = str(e)
            await self._close_transport()
            if self._state is not ConnectionState.DISCONNECTED:
                self._set_state(ConnectionState.DISCONNECTED)
            raise

        if self._torn_down_since(generation):
            # teardown() already released the transport
            logger.info("Connector stopped during handshake, not marking connected.")
            return

        self.outbound_queue.restart_window(HANDSHAKE_LINE_COUNT)
        self.last_error = None
        info.last_error = None
        # Optimistic: the service's acknowledgement is not awaited
        self._set_state(ConnectionState.CONNECTED)
        self.event_manager.dispatch_client_connected(info.server, info.port, info.username, info.channel)

        if self._read_task is None or self._read_task.done():
            self._read_task = asyncio.create_task(self._read_loop())

    def send_chat_message(self, text: str) -> None:
        if self._state is not ConnectionState.CONNECTED or not text:
            return
        self.outbound_queue.enqueue(f"PRIVMSG #{self.connection_info.channel} :{text}")

    async def send_line(self, line: str, force: bool = False) -> None:
        """
        Queues a raw line, or with `force` writes and flushes it immediately.
        Forced lines still count against the current rate window.
        """
        if not force:
            self.outbound_queue.enqueue(line)
            return

        if self._state is not ConnectionState.CONNECTED or self._writer is None:
            logger.warning(f"send_line: Not connected. Dropping forced line: {_mask_line(line)}")
            return
        try:
            await self._write_lines([line])
        except TRANSPORT_ERRORS as e:
            await self._handle_transport_failure(e)
            return
        self.outbound_queue.record_forced_send()

    async def tick(self, elapsed: float) -> None:
        """Advances the rate window by `elapsed` seconds and sends what it allows."""
        if self._state is not ConnectionState.CONNECTED or self._writer is None:
            return
        lines = self.outbound_queue.drain_ready(elapsed)
        if not lines:
            return
        try:
            await self._write_lines(lines)
        except TRANSPORT_ERRORS as e:
            await self._handle_transport_failure(e)

    async def _write_lines(self, lines: List[str]) -> None:
        writer = self._writer
        if writer is None:
            raise ConnectionResetError("Transport already released")
        for line in lines:
            writer.write(f"{line}\n".encode("utf-8", errors="replace"))
            logger.debug(f"C >> {_mask_line(line)}")
        # One flush per batch
        await writer.drain()

    async def step(self) -> bool:
        """
        Runs one read-loop iteration. Returns False once the loop should end.
        """
        if self._state is ConnectionState.CONNECTING:
            await asyncio.sleep(0)
            return True
        if self._state is not ConnectionState.CONNECTED:
            return False
        if self._reader is None:
            # initialize() is swapping the transport
            await asyncio.sleep(0)
            return self._is_active()

        reader = self._reader
        try:
            data = await reader.readline()
        except ValueError as e:
            # Line longer than the stream limit; the reader already discarded it
            logger.warning(f"Dropping oversized line: {e}")
            return self._is_active()
        except TRANSPORT_ERRORS as e:
            if reader is self._reader and self._state is ConnectionState.CONNECTED:
                await self._handle_transport_failure(e)
            return self._is_active()

        # Torn down or re-initialized while suspended in readline()
        if reader is not self._reader or self._state is not ConnectionState.CONNECTED:
            return self._is_active()

        if not data:
            await self._handle_transport_failure(ConnectionResetError("Connection closed by server"))
            return False

        line = data.decode("utf-8", errors="replace").rstrip("\r\n")
        if line:
            logger.debug(f"S << {line}")
            await irc_protocol.handle_server_message(self, line)
        return self._is_active()

    async def _read_loop(self) -> None:
        logger.info("Read loop started.")
        try:
            while await self.step():
                await asyncio.sleep(0)
        except asyncio.CancelledError:
            logger.info("Read loop task cancelled.")
            raise
        except Exception as e:
            logger.critical(f"Unhandled error in read loop: {e}", exc_info=True)
            await self._handle_transport_failure(e)
        finally:
            logger.info(f"Read loop ending in state {self._state.name}.")

    async def _handle_transport_failure(self, error: BaseException) -> None:
        logger.error(f"Transport failure, ending session: {error}")
        self.last_error = error
        self.connection_info.last_error = str(error)
        await self.teardown(error=error)

    async def _close_transport(self) -> None:
        reader, writer = self._reader, self._writer
        self._reader = None
        self._writer = None

        if reader is not None and not reader.at_eof():
            # Wakes a read loop suspended in readline()
            reader.feed_eof()

        if writer is None:
            return
        try:
            if not writer.is_closing():
                logger.debug("Closing transport.")
                writer.close()
            await asyncio.wait_for(writer.wait_closed(), timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning("Timeout waiting for transport to close.")
        except TRANSPORT_ERRORS as e:
            logger.debug(f"Error while closing transport: {e}")

    async def teardown(self, error: Optional[BaseException] = None) -> None:
        """
        Closes the transport and ends in DISCONNECTED. Safe to call repeatedly,
        concurrently with initialize() and while the read loop is suspended.
        """
        if not self._teardown_idle.is_set():
            await self._teardown_idle.wait()
            return

        self._teardown_generation += 1
        was_active = self._state is not ConnectionState.DISCONNECTED
        if not was_active and self._reader is None and self._writer is None:
            logger.debug("teardown: already disconnected.")
            return

        self._teardown_idle.clear()
        try:
            if was_active:
                self._set_state(ConnectionState.DISCONNECTING)
            await self._close_transport()
            self.outbound_queue.clear()

            if self._state is not ConnectionState.DISCONNECTED:
                self._set_state(ConnectionState.DISCONNECTED)
                self.event_manager.dispatch_client_disconnected(
                    self.connection_info.server, self.connection_info.port, error
                )
        finally:
            self._teardown_idle.set()

    async def stop(self) -> None:
        """Tears down and waits briefly for the read loop to finish."""
        await self.teardown()

        task = self._read_task
        if task is None or task is asyncio.current_task():
            return
        try:
            await asyncio.wait_for(task, timeout=1.0)
        except asyncio.TimeoutError:
            logger.warning("Read loop did not stop in time and was cancelled.")
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            logger.info("Read loop was cancelled.")
        self._read_task = None
