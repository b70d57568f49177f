"""Pytest configuration for mail-sink tests."""

import asyncio

import pytest

from mailsink.config import Settings
from mailsink.smtp.server import SinkServer
from mailsink.workers.attachments import create_attachment_pool


REPLY_TIMEOUT = 2.0


class SinkClient:
    """Minimal line-oriented client for talking to a running sink."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.reader = reader
        self.writer = writer

    async def send(self, line: str):
        self.writer.write((line + "\r\n").encode("utf-8"))
        await self.writer.drain()

    async def reply(self) -> str:
        data = await asyncio.wait_for(self.reader.readline(), REPLY_TIMEOUT)
        return data.decode("utf-8").rstrip("\r\n")

    async def command(self, line: str) -> str:
        await self.send(line)
        return await self.reply()

    async def at_eof(self) -> bool:
        data = await asyncio.wait_for(self.reader.read(), REPLY_TIMEOUT)
        return data == b""

    async def close(self):
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except ConnectionError:
            pass


@pytest.fixture
def settings(tmp_path):
    """Settings bound to a free loopback port, saving into tmp_path."""
    return Settings(
        _env_file=None,
        SINK_HOST="127.0.0.1",
        SINK_PORT=0,
        SINK_HOSTNAME="sink.test",
        SAVE_ATTACHMENTS=True,
        ATTACHMENT_DIR=tmp_path,
    )


@pytest.fixture
async def sink(settings):
    """A running sink server with its attachment pool."""
    pool = create_attachment_pool(settings)
    if pool is not None:
        await pool.start()
    server = SinkServer(settings, attachment_pool=pool)
    await server.start()
    yield server
    await server.stop()
    if pool is not None:
        await pool.stop()


@pytest.fixture
async def connect(sink):
    """Factory opening client connections to the running sink."""
    clients = []

    async def _connect() -> SinkClient:
        reader, writer = await asyncio.open_connection("127.0.0.1", sink.port)
        client = SinkClient(reader, writer)
        clients.append(client)
        return client

    yield _connect

    for client in clients:
        await client.close()
