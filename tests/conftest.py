import asyncio

import pytest
import pytest_asyncio

from statsd_probe.collector import MockStatsDCollector

from tests.helpers import UdpEmitter


@pytest.fixture
def emitter():
    emitter = UdpEmitter()
    yield emitter
    emitter.close()


@pytest_asyncio.fixture
async def collector():
    collector = MockStatsDCollector(host="127.0.0.1", port=0)
    await collector.start()
    yield collector
    collector.stop()


@pytest_asyncio.fixture
async def silent_server():
    """TCP server that accepts connections and never answers."""
    held = []

    async def hold(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        held.append(writer)
        await reader.read()

    server = await asyncio.start_server(hold, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    yield port
    for writer in held:
        writer.close()
    server.close()
    await server.wait_closed()
