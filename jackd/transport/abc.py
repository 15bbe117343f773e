"""
Abstract transport interface for beanstalkd communication.

This module defines the abstract base class for all transport implementations.
Transports move raw bytes between the client and the server; they know
nothing about frames or commands.

The transport layer is responsible for:
- Opening/closing the byte stream
- Writing complete commands
- Reading whatever bytes have arrived, in chunks of any size
- Reporting end of stream

Implementations:
- AsyncTcpTransport: asyncio stream over TCP
- MockTransport: For testing without a server
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from jackd.protocol.constants import ProtocolConstants

if TYPE_CHECKING:
    from types import TracebackType


class AbstractTransport(ABC):
    """
    Abstract base class for beanstalkd transports.

    Transports support async context manager protocol for safe resource
    management:

        async with AsyncTcpTransport("localhost", 11300) as transport:
            await transport.write(b"stats\\r\\n")
            chunk = await transport.read()

    Attributes:
        is_open: Whether the transport connection is currently open.
        endpoint: Identifier for the transport (e.g., "localhost:11300").
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """
        Check if the transport connection is currently open.

        Returns:
            True if connected and ready for I/O, False otherwise.
        """
        ...

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """
        Get the transport identifier.

        Returns:
            Endpoint string such as "localhost:11300".
        """
        ...

    @abstractmethod
    async def open(self) -> None:
        """
        Open the transport connection.

        Raises:
            TransportError: If the connection cannot be established.
            TimeoutError: If the connection attempt times out.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """
        Close the transport connection.

        Safe to call multiple times (idempotent). A read blocked on the
        transport returns end of stream.
        """
        ...

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """
        Write data to the transport.

        The data is one complete command; it is written contiguously, never
        interleaved with another command's bytes.

        Args:
            data: Bytes to send.

        Raises:
            TransportError: If the transport is not open or write fails.
        """
        ...

    @abstractmethod
    async def read(self, max_bytes: int = ProtocolConstants.DEFAULT_READ_SIZE) -> bytes:
        """
        Read the next available chunk.

        Blocks until at least one byte has arrived. Chunks need not align with
        frame boundaries.

        Args:
            max_bytes: Upper bound on the chunk size.

        Returns:
            Between 1 and ``max_bytes`` bytes, or b"" at end of stream.

        Raises:
            TransportError: If the transport is not open or read fails.
        """
        ...

    async def __aenter__(self) -> AbstractTransport:
        """Async context manager entry - opens the transport."""
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Async context manager exit - closes the transport."""
        await self.close()
