"""Shared fixtures: a scriptable in-process AMI server."""

import asyncio
from typing import Awaitable, Callable, Optional

import pytest
import pytest_asyncio

from amibridge.io import Packet, ReadResult
from amibridge.io.framing import PacketReader

GREETING = "Asterisk Call Manager/5.0.0"


class AmiSession:
    """Server side of one accepted AMI connection"""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.packets = PacketReader(reader, timeout=2.0)
        self.writer = writer
        self.actions: list[Packet] = []

    async def read_action(self) -> Optional[Packet]:
        result = await self.packets.read_packet()
        if isinstance(result, ReadResult):
            return None
        self.actions.append(result)
        return result

    async def send(self, text: str) -> None:
        self.writer.write(text.encode())
        await self.writer.drain()

    async def send_packet(self, **fields: str) -> None:
        await self.send("".join(f"{k}: {v}\r\n" for k, v in fields.items()) + "\r\n")

    async def reply(self, action: Packet, response: str = "Success", **fields: str) -> None:
        await self.send_packet(Response=response, ActionID=action["ActionID"], **fields)

    async def greet(self, greeting: str = GREETING) -> None:
        await self.send(greeting + "\r\n")

    async def accept_login(self, response: str = "Success") -> Packet:
        action = await self.read_action()
        assert action is not None and action["Action"] == "Login"
        await self.reply(action, response, Message="Authentication accepted")
        return action

    async def serve_actions(self) -> None:
        """Answer every action with Success until the client goes away"""
        while True:
            action = await self.read_action()
            if action is None:
                return
            await self.reply(action)
            if action.get("Action") == "Logoff":
                return

    async def close(self) -> None:
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError:
            pass


SessionScript = Callable[[AmiSession], Awaitable[None]]


class FakeAmiServer:
    """Runs `script` for each accepted connection, in order; the last script repeats"""

    def __init__(self, *scripts: SessionScript):
        self.scripts = list(scripts)
        self.sessions: list[AmiSession] = []
        self.server: Optional[asyncio.base_events.Server] = None
        self.host = "127.0.0.1"
        self.port = 0

    async def start(self) -> "FakeAmiServer":
        self.server = await asyncio.start_server(self._handle, self.host, 0)
        self.port = self.server.sockets[0].getsockname()[1]
        return self

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        session = AmiSession(reader, writer)
        index = min(len(self.sessions), len(self.scripts) - 1)
        self.sessions.append(session)
        try:
            await self.scripts[index](session)
        except (ConnectionError, asyncio.CancelledError):
            pass
        finally:
            await session.close()

    async def stop(self) -> None:
        if self.server:
            self.server.close()
            await self.server.wait_closed()


@pytest_asyncio.fixture
async def ami_server():
    """Factory fixture: `server = await ami_server(script, ...)`"""
    servers: list[FakeAmiServer] = []

    async def factory(*scripts: SessionScript) -> FakeAmiServer:
        server = await FakeAmiServer(*scripts).start()
        servers.append(server)
        return server

    yield factory
    for server in servers:
        await server.stop()


@pytest_asyncio.fixture
async def closed_port():
    """A local port with nothing listening on it"""
    server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()
    return port


@pytest.fixture
def stream_reader():
    """StreamReader fed directly by the test"""
    def factory(data: bytes = b"", eof: bool = False) -> asyncio.StreamReader:
        reader = asyncio.StreamReader()
        if data:
            reader.feed_data(data)
        if eof:
            reader.feed_eof()
        return reader
    return factory
