"""Tests for AsyncTcpTransport against a local asyncio server."""

import asyncio

import pytest

from jackd import JackdClient
from jackd.exceptions import TransportError
from jackd.transport.tcp import AsyncTcpTransport


async def start_server(responses):
    """Serve one canned response per received command line."""

    async def handle(reader, writer):
        for response in responses:
            line = await reader.readline()
            if not line:
                break
            writer.write(response)
            await writer.drain()
        writer.close()

    return await asyncio.start_server(handle, "127.0.0.1", 0)


def server_port(server):
    return server.sockets[0].getsockname()[1]


class TestAsyncTcpTransport:
    """Tests for AsyncTcpTransport class."""

    def test_defaults(self):
        transport = AsyncTcpTransport()
        assert transport.endpoint == "localhost:11300"
        assert not transport.is_open
        assert repr(transport) == "AsyncTcpTransport('localhost', 11300, closed)"

    @pytest.mark.asyncio
    async def test_write_and_read(self):
        server = await start_server([b"INSERTED 1\r\n"])
        async with server:
            transport = AsyncTcpTransport("127.0.0.1", server_port(server))
            async with transport:
                assert transport.is_open
                await transport.write(b"put 0 0 60 1\r\n")
                assert await transport.read() == b"INSERTED 1\r\n"
                # Server closes after its script
                assert await transport.read() == b""
            assert not transport.is_open

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        server = await start_server([])
        port = server_port(server)
        server.close()
        await server.wait_closed()

        transport = AsyncTcpTransport("127.0.0.1", port, connect_timeout=1.0)
        with pytest.raises(TransportError):
            await transport.open()

    @pytest.mark.asyncio
    async def test_io_when_closed_raises(self):
        transport = AsyncTcpTransport()
        with pytest.raises(TransportError):
            await transport.write(b"stats\r\n")
        with pytest.raises(TransportError):
            await transport.read()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        transport = AsyncTcpTransport()
        await transport.close()
        await transport.close()

    @pytest.mark.asyncio
    async def test_client_over_tcp(self):
        server = await start_server([b"USING emails\r\n", b"WATCHING 2\r\n"])
        async with server:
            transport = AsyncTcpTransport("127.0.0.1", server_port(server))
            async with JackdClient(transport) as client:
                assert await client.use("emails") == "emails"
                assert await client.watch("emails") == 2
