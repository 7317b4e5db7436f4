"""
Shared fixtures: an in-memory transport for the connector and a polling
helper for conditions reached by the background read loop.
"""

import asyncio
from typing import Callable, List, Optional, Tuple

import pytest
import pytest_asyncio

from tchat_core.chat_connector import ChatConnector
from tchat_core.event_manager import EventManager
from tchat_core.state_manager import ConnectionInfo


class FakeStreamWriter:
    """Records written bytes; each drain() is one flush."""

    def __init__(self):
        self._pending: List[str] = []
        self.flushes: List[str] = []
        self.close_count = 0
        self.drain_calls = 0
        self.fail_on_drain: Optional[BaseException] = None
        # When set, drain() suspends until the event is set
        self.drain_gate: Optional[asyncio.Event] = None
        self.close_delay = 0.0
        self._closing = False

    def write(self, data: bytes) -> None:
        self._pending.append(data.decode("utf-8"))

    async def drain(self) -> None:
        self.drain_calls += 1
        if self.drain_gate is not None:
            await self.drain_gate.wait()
        if self.fail_on_drain is not None:
            raise self.fail_on_drain
        self.flushes.append("".join(self._pending))
        self._pending = []

    @property
    def drain_count(self) -> int:
        return len(self.flushes)

    @property
    def lines(self) -> List[str]:
        return [line for flush in self.flushes for line in flush.split("\n") if line]

    def close(self) -> None:
        self.close_count += 1
        self._closing = True

    def is_closing(self) -> bool:
        return self._closing

    async def wait_closed(self) -> None:
        if self.close_delay:
            await asyncio.sleep(self.close_delay)


class RecordingStreamReader(asyncio.StreamReader):
    """StreamReader that counts readline() calls."""

    def __init__(self):
        super().__init__()
        self.readline_calls = 0

    async def readline(self) -> bytes:
        self.readline_calls += 1
        return await super().readline()


class FakeTransport:
    """Stands in for asyncio.open_connection, one reader/writer pair per call."""

    def __init__(self):
        self.connections: List[Tuple[str, int, RecordingStreamReader, FakeStreamWriter]] = []
        self.fail_with: Optional[BaseException] = None
        self.open_delay = 0.0
        # Applied to every writer opened from now on
        self.drain_gate: Optional[asyncio.Event] = None

    async def open_connection(self, host: str, port: int):
        if self.open_delay:
            await asyncio.sleep(self.open_delay)
        if self.fail_with is not None:
            raise self.fail_with
        reader = RecordingStreamReader()
        writer = FakeStreamWriter()
        writer.drain_gate = self.drain_gate
        self.connections.append((host, port, reader, writer))
        return reader, writer

    @property
    def reader(self) -> RecordingStreamReader:
        return self.connections[-1][2]

    @property
    def writer(self) -> FakeStreamWriter:
        return self.connections[-1][3]

    def feed(self, *lines: str) -> None:
        for line in lines:
            self.reader.feed_data(f"{line}\r\n".encode("utf-8"))


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def event_manager() -> EventManager:
    return EventManager()


@pytest.fixture
def connection_info() -> ConnectionInfo:
    return ConnectionInfo(
        server="irc.example.test",
        port=6667,
        username="TestBot",
        access_code="secret-token",
        channel="#MyChannel",
    )


@pytest_asyncio.fixture
async def make_connector(transport, event_manager, connection_info):
    """Builds connectors on the fake transport and stops them after the test."""
    created: List[ChatConnector] = []

    def _make(**kwargs) -> ChatConnector:
        kwargs.setdefault("open_connection", transport.open_connection)
        connector = ChatConnector(connection_info, event_manager, **kwargs)
        created.append(connector)
        return connector

    yield _make

    for connector in created:
        await connector.stop()


@pytest.fixture
def wait_until():
    async def _wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Condition not met before timeout")
            await asyncio.sleep(0.001)

    return _wait_until
