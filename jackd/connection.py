"""
One pipelined beanstalkd connection.

A Connection owns a transport, a frame assembler, an execution queue and a
background receive task. Commands are written as soon as they are issued and
their response handlers are queued; the receive task feeds incoming bytes
through the assembler and hands every frame to the oldest pending command.

    caller ──execute()──> encode ──> queue.submit ──> transport.write
                                          │
    transport.read ──> assembler.feed ──> queue.dispatch ──> future resolved

Any number of Connections may exist in one process; they share no state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from jackd.exceptions import (
    ConnectionClosedError,
    ConnectionError,
    FrameError,
    TransportError,
    UnexpectedResponseError,
)
from jackd.protocol.constants import ProtocolConstants
from jackd.protocol.execution import ExecutionQueue
from jackd.protocol.frame_reader import FrameAssembler

if TYPE_CHECKING:
    from jackd.protocol.commands import CommandDefinition
    from jackd.transport.abc import AbstractTransport

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Connection:
    """
    Pipelined command execution over a single transport.

    Attributes:
        transport: The underlying transport.
        pending: Number of commands awaiting a response.

    Example:
        >>> connection = Connection(AsyncTcpTransport())
        >>> await connection.open()
        >>> job_id, stats = await asyncio.gather(
        ...     connection.execute(commands.PUT, "hello"),
        ...     connection.execute(commands.STATS),
        ... )
        >>> await connection.close()
    """

    def __init__(
        self,
        transport: AbstractTransport,
        read_size: int = ProtocolConstants.DEFAULT_READ_SIZE,
    ) -> None:
        """
        Initialize the connection.

        Args:
            transport: Transport to the server; opened by ``open`` if needed.
            read_size: Largest chunk requested from the transport per read.
        """
        self._transport = transport
        self._read_size = read_size
        self._assembler = FrameAssembler()
        self._queue = ExecutionQueue()
        self._receive_task: asyncio.Task[None] | None = None
        self._open = False

    @property
    def transport(self) -> AbstractTransport:
        return self._transport

    @property
    def is_open(self) -> bool:
        """Whether commands can be executed."""
        return self._open and self._transport.is_open

    @property
    def pending(self) -> int:
        return len(self._queue)

    async def open(self) -> None:
        """
        Open the transport and start receiving.

        Raises:
            TransportError: If the transport cannot be opened.
            TimeoutError: If opening the transport times out.
        """
        if self._open:
            return

        if not self._transport.is_open:
            await self._transport.open()

        self._assembler.reset()
        self._open = True
        self._receive_task = asyncio.get_running_loop().create_task(
            self._receive_loop(), name=f"jackd-receive-{self._transport.endpoint}"
        )
        logger.debug("Connection to %s open", self._transport.endpoint)

    async def close(self) -> None:
        """
        Stop receiving and close the transport.

        Every command still awaiting a response fails with
        ConnectionClosedError. Safe to call multiple times.
        """
        self._open = False

        task = self._receive_task
        self._receive_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.debug("Receive task for %s stopped", self._transport.endpoint)

        self._connection_lost(None)
        await self._transport.close()

    async def execute(self, definition: CommandDefinition[T], *args: Any, **kwargs: Any) -> T:
        """
        Send a command and wait for its result.

        The command is queued before its bytes are written, so concurrent
        calls complete in the order they were issued.

        Args:
            definition: Command to run.
            *args: Arguments for the command's encoder.
            **kwargs: Keyword arguments for the command's encoder.

        Returns:
            The command's result.

        Raises:
            ConnectionError: If the connection is not open.
            UsageError: If the arguments are invalid; nothing is sent.
            ProtocolError: If the server answers with an error token.
            UnexpectedResponseError: If the answer matches no known token.
            ParseError: If the response payload cannot be parsed.
            ConnectionClosedError: If the connection is lost first.
        """
        if not self.is_open:
            raise ConnectionError(f"Not connected to {self._transport.endpoint}")

        data = definition.encode(*args, **kwargs)
        future = self._queue.submit(definition.name, definition.steps)
        logger.debug("Sending %s (%d bytes)", definition.name, len(data))

        try:
            await self._transport.write(data)
        except TransportError as e:
            logger.error("Write of %s to %s failed: %s", definition.name, self._transport.endpoint, e)
            self._connection_lost(e)
            await self._shutdown()
        except asyncio.CancelledError:
            future.cancel()
            raise

        return await future

    async def send(self, data: bytes) -> None:
        """
        Write raw bytes that expect no response.

        Raises:
            ConnectionError: If the connection is not open.
            TransportError: If the write fails.
        """
        if not self.is_open:
            raise ConnectionError(f"Not connected to {self._transport.endpoint}")
        logger.debug("Sending %d bytes without response", len(data))
        await self._transport.write(data)

    async def _receive_loop(self) -> None:
        endpoint = self._transport.endpoint
        try:
            while True:
                chunk = await self._transport.read(self._read_size)
                if not chunk:
                    logger.info("Server %s closed the connection", endpoint)
                    self._connection_lost(None)
                    break

                self._assembler.feed(chunk)
                for frame in self._assembler.frames():
                    header = self._queue.dispatch(frame)
                    if header is not None:
                        self._assembler.expect_payload(header.length)

        except (FrameError, UnexpectedResponseError) as e:
            logger.error("Response stream from %s out of sync: %s", endpoint, e)
            self._connection_lost(e)
        except TransportError as e:
            logger.error("Read from %s failed: %s", endpoint, e)
            self._connection_lost(e)

        await self._shutdown()

    async def _shutdown(self) -> None:
        self._open = False
        await self._transport.close()

    def _connection_lost(self, cause: BaseException | None) -> None:
        """Fail every pending command with ConnectionClosedError."""
        if not self._queue:
            return
        error = ConnectionClosedError()
        error.__cause__ = cause
        count = self._queue.fail_all(error)
        logger.warning(
            "Connection to %s lost with %d pending command(s)", self._transport.endpoint, count
        )

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"Connection({self._transport.endpoint}, {status}, pending={len(self._queue)})"
