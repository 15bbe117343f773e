"""
Mock transport for testing.

This module provides a mock transport implementation that allows testing
the beanstalkd client without a server. Responses can be pre-configured or
dynamically generated using callback functions, and can be delivered in
arbitrarily small chunks to exercise frame reassembly.

Example:
    >>> from jackd.transport import MockTransport
    >>> from jackd import JackdClient
    >>>
    >>> mock = MockTransport()
    >>> mock.add_response(b"INSERTED 1\\r\\n")
    >>>
    >>> async with JackdClient(mock) as client:
    ...     job_id = await client.put("hello")
"""

from __future__ import annotations

import asyncio
from typing import Callable

from jackd.exceptions import TransportError
from jackd.protocol.constants import ProtocolConstants
from jackd.transport.abc import AbstractTransport


class MockTransport(AbstractTransport):
    """
    Mock transport for testing without a server.

    Records all written data for verification in tests. Reads block until a
    response is queued or end of stream is signalled with ``feed_eof``.

    Attributes:
        written_data: List of all bytes written to the transport.

    Example:
        >>> mock = MockTransport(chunk_size=1)
        >>> mock.add_response(b"DELETED\\r\\n")
        >>>
        >>> async with mock:
        ...     await mock.write(b"delete 1\\r\\n")
        ...     assert await mock.read() == b"D"
        ...     assert mock.written_data == [b"delete 1\\r\\n"]
    """

    def __init__(
        self,
        endpoint: str = "mock://test",
        chunk_size: int | None = None,
    ) -> None:
        """
        Initialize the mock transport.

        Args:
            endpoint: Identifier for the mock transport.
            chunk_size: Largest chunk a single read returns (None for no limit).
        """
        self._endpoint = endpoint
        self._chunk_size = chunk_size
        self._is_open = False
        self._eof = False
        self._written_data: list[bytes] = []
        self._read_buffer = bytearray()
        self._data_ready = asyncio.Event()
        self._response_callback: Callable[[bytes], bytes | None] | None = None
        self._write_error: Exception | None = None

    @property
    def is_open(self) -> bool:
        """Check if the mock transport is open."""
        return self._is_open

    @property
    def endpoint(self) -> str:
        """Get the mock endpoint name."""
        return self._endpoint

    @property
    def written_data(self) -> list[bytes]:
        """Get all data written to the transport."""
        return self._written_data.copy()

    @property
    def last_written(self) -> bytes | None:
        """Get the most recently written data."""
        return self._written_data[-1] if self._written_data else None

    @property
    def pending_bytes(self) -> int:
        """Number of queued response bytes not yet read."""
        return len(self._read_buffer)

    def add_response(self, response: bytes) -> None:
        """
        Queue response bytes for the reader.

        Responses are delivered in FIFO order; consecutive responses may be
        returned by a single read, as they would be on a real socket.

        Args:
            response: Bytes to deliver.
        """
        self._read_buffer.extend(response)
        self._data_ready.set()

    def add_responses(self, *responses: bytes) -> None:
        """
        Queue multiple responses.

        Args:
            *responses: Multiple byte responses to add.
        """
        for response in responses:
            self.add_response(response)

    def feed_eof(self) -> None:
        """Signal end of stream once the queued bytes have been read."""
        self._eof = True
        self._data_ready.set()

    def set_response_callback(
        self,
        callback: Callable[[bytes], bytes | None] | None,
    ) -> None:
        """
        Set a callback to dynamically generate responses.

        The callback receives the written data and returns the response
        bytes, or None to send nothing.

        Args:
            callback: Function that takes written bytes and returns response.
        """
        self._response_callback = callback

    def set_write_error(self, error: Exception | None) -> None:
        """
        Make every following write fail with ``error``.

        Args:
            error: Exception to raise, or None to restore normal writes.
        """
        self._write_error = error

    def clear(self) -> None:
        """Clear all written data and pending responses."""
        self._written_data.clear()
        self._read_buffer.clear()
        self._eof = False

    def clear_written(self) -> None:
        """Clear only the written data history."""
        self._written_data.clear()

    async def open(self) -> None:
        """Open the mock transport."""
        if self._is_open:
            raise TransportError("Mock transport already open")
        self._is_open = True

    async def close(self) -> None:
        """Close the mock transport, waking any blocked reader."""
        self._is_open = False
        self._data_ready.set()

    async def write(self, data: bytes) -> None:
        """
        Write data to the mock transport.

        Records the written data and optionally triggers response callback.

        Args:
            data: Bytes to write.

        Raises:
            TransportError: If transport is not open.
        """
        if not self._is_open:
            raise TransportError("Mock transport not open")
        if self._write_error is not None:
            raise self._write_error

        self._written_data.append(bytes(data))

        # Check for callback-generated response
        if self._response_callback:
            response = self._response_callback(bytes(data))
            if response is not None:
                self.add_response(response)

    async def read(self, max_bytes: int = ProtocolConstants.DEFAULT_READ_SIZE) -> bytes:
        """
        Read the next queued chunk.

        Args:
            max_bytes: Upper bound on the chunk size.

        Returns:
            Up to ``max_bytes`` (and ``chunk_size``) bytes, or b"" at end of
            stream or once the transport is closed.

        Raises:
            TransportError: If transport is not open.
        """
        if not self._is_open:
            raise TransportError("Mock transport not open")

        while not self._read_buffer and not self._eof and self._is_open:
            self._data_ready.clear()
            await self._data_ready.wait()

        if not self._read_buffer:
            return b""

        size = max_bytes if self._chunk_size is None else min(max_bytes, self._chunk_size)
        chunk = bytes(self._read_buffer[:size])
        del self._read_buffer[:size]
        return chunk

    def assert_written(self, expected: bytes, index: int = -1) -> None:
        """
        Assert that specific data was written.

        Args:
            expected: Expected bytes.
            index: Index in written_data list (-1 for last).

        Raises:
            AssertionError: If data doesn't match.
        """
        if not self._written_data:
            raise AssertionError("No data written to mock transport")

        actual = self._written_data[index]
        if actual != expected:
            raise AssertionError(f"Written data mismatch: expected {expected!r}, got {actual!r}")

    def assert_write_count(self, expected: int) -> None:
        """
        Assert number of write operations.

        Raises:
            AssertionError: If count doesn't match.
        """
        actual = len(self._written_data)
        if actual != expected:
            raise AssertionError(f"Write count mismatch: expected {expected}, got {actual}")

    def __repr__(self) -> str:
        status = "open" if self._is_open else "closed"
        return f"MockTransport({self._endpoint!r}, {status})"


class ScriptedMockTransport(MockTransport):
    """
    Mock transport with scripted request/response pairs.

    Each write consumes the next script step: the written command is checked
    against the expected request and the step's response is queued.

    Example:
        >>> mock = ScriptedMockTransport()
        >>> mock.expect(request=b"use emails\\r\\n", response=b"USING emails\\r\\n")
        >>> mock.expect(response=b"INSERTED 7\\r\\n")
    """

    def __init__(self, endpoint: str = "mock://scripted", chunk_size: int | None = None) -> None:
        super().__init__(endpoint, chunk_size)
        self._script: list[tuple[bytes | None, bytes]] = []
        self._script_index = 0

    @property
    def script_complete(self) -> bool:
        """Whether every scripted step has been consumed."""
        return self._script_index >= len(self._script)

    def expect(
        self,
        response: bytes,
        request: bytes | None = None,
    ) -> None:
        """
        Add an expected request/response pair.

        Args:
            response: Response to return.
            request: Expected request (None to match any).
        """
        self._script.append((request, response))

    async def write(self, data: bytes) -> None:
        """Write with script validation."""
        await super().write(data)

        if self._script_index < len(self._script):
            expected_request, response = self._script[self._script_index]

            if expected_request is not None and data != expected_request:
                raise AssertionError(
                    f"Script mismatch at step {self._script_index}: "
                    f"expected {expected_request!r}, got {data!r}"
                )

            self.add_response(response)
            self._script_index += 1

    def reset_script(self) -> None:
        """Reset script to beginning."""
        self._script_index = 0
        self._read_buffer.clear()

    def clear_script(self) -> None:
        """Clear all scripted expectations."""
        self._script.clear()
        self._script_index = 0
