"""
Async TCP transport using asyncio streams.

This module provides the transport implementation for talking to a real
beanstalkd server. The server listens on TCP port 11300 by default.

Example:
    >>> transport = AsyncTcpTransport("localhost", 11300)
    >>> async with transport:
    ...     await transport.write(b"stats\\r\\n")
    ...     chunk = await transport.read()
"""

from __future__ import annotations

import asyncio
import logging

from jackd.exceptions import TimeoutError, TransportError
from jackd.protocol.constants import ProtocolConstants
from jackd.transport.abc import AbstractTransport

logger = logging.getLogger(__name__)


class AsyncTcpTransport(AbstractTransport):
    """
    Async TCP transport built on ``asyncio.open_connection``.

    Attributes:
        endpoint: "host:port" of the server.
        is_open: Whether the stream is currently open.

    Example:
        >>> transport = AsyncTcpTransport("queue.internal", connect_timeout=2.0)
        >>> await transport.open()
        >>> try:
        ...     await transport.write(b"list-tubes\\r\\n")
        ...     chunk = await transport.read()
        ... finally:
        ...     await transport.close()
    """

    def __init__(
        self,
        host: str = ProtocolConstants.DEFAULT_HOST,
        port: int = ProtocolConstants.DEFAULT_PORT,
        connect_timeout: float = ProtocolConstants.DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        """
        Initialize the TCP transport.

        Args:
            host: Server host name or address (default: localhost).
            port: Server port (default: 11300).
            connect_timeout: Seconds to wait for the connection (default: 5.0).
        """
        self._host = host
        self._port = port
        self._connect_timeout = connect_timeout
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    @property
    def is_open(self) -> bool:
        """Check if the stream is currently open."""
        return (
            self._writer is not None
            and not self._writer.is_closing()
            and self._reader is not None
        )

    @property
    def endpoint(self) -> str:
        return f"{self._host}:{self._port}"

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    async def open(self) -> None:
        """
        Open the TCP connection.

        Raises:
            TimeoutError: If the server does not accept within connect_timeout.
            TransportError: If the connection is refused or fails.
        """
        if self.is_open:
            return

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                timeout=self._connect_timeout,
            )
        except asyncio.TimeoutError:
            raise TimeoutError(
                f"Timeout connecting to {self.endpoint}",
                timeout_seconds=self._connect_timeout,
            ) from None
        except OSError as e:
            raise TransportError(f"Failed to connect to {self.endpoint}: {e}") from e

        logger.debug("Opened TCP connection to %s", self.endpoint)

    async def close(self) -> None:
        """
        Close the TCP connection.

        Safe to call multiple times.
        """
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is None:
            return

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            # The peer may already have reset the connection
            logger.debug("Error while closing %s: %s", self.endpoint, e)

    async def write(self, data: bytes) -> None:
        """
        Write data to the server.

        Args:
            data: Bytes to transmit.

        Raises:
            TransportError: If the stream is not open or write fails.
        """
        if not self.is_open:
            raise TransportError(f"Connection to {self.endpoint} is not open")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as e:
            raise TransportError(f"Write failed: {e}") from e

    async def read(self, max_bytes: int = ProtocolConstants.DEFAULT_READ_SIZE) -> bytes:
        """
        Read the next chunk from the server.

        Args:
            max_bytes: Upper bound on the chunk size.

        Returns:
            Received bytes, or b"" once the server has closed the stream.

        Raises:
            TransportError: If the stream is not open or read fails.
        """
        reader = self._reader
        if reader is None:
            raise TransportError(f"Connection to {self.endpoint} is not open")

        try:
            return await reader.read(max_bytes)
        except OSError as e:
            raise TransportError(f"Read failed: {e}") from e

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"AsyncTcpTransport({self._host!r}, {self._port}, {status})"
