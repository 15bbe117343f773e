"""
beanstalkd client.

This module provides the main client interface for talking to a beanstalkd
work-queue server. Each method sends one command and resolves with the
server's answer; methods may be awaited concurrently to pipeline commands
over the single connection.

The client implements a small state machine for the connection lifecycle:
    DISCONNECTED -> connect() -> CONNECTING -> CONNECTED
    CONNECTED -> disconnect() -> DISCONNECTING -> DISCONNECTED

Example:
    >>> from jackd import JackdClient
    >>>
    >>> async def main():
    ...     async with JackdClient() as client:
    ...         await client.use("emails")
    ...         job_id = await client.put({"to": "user@example.com"})
    ...
    ...         await client.watch("emails")
    ...         job = await client.reserve()
    ...         await client.delete(job.id)
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from jackd.connection import Connection
from jackd.exceptions import ConnectionError, TimeoutError, TransportError
from jackd.protocol import commands
from jackd.protocol.constants import ProtocolConstants
from jackd.protocol.encoding import encode_quit
from jackd.transport.tcp import AsyncTcpTransport

if TYPE_CHECKING:
    from jackd.models.records import Job, JobStats, RawJob, ServerStats, TubeStats
    from jackd.transport.abc import AbstractTransport

# Module logger
logger = logging.getLogger(__name__)


class ClientState(Enum):
    """Client connection states."""

    DISCONNECTED = auto()
    """Not connected to any server."""

    CONNECTING = auto()
    """Opening the transport."""

    CONNECTED = auto()
    """Connected and ready for commands."""

    DISCONNECTING = auto()
    """Sending quit and closing the transport."""


class JackdClient:
    """
    Client for a beanstalkd server.

    Attributes:
        state: Current connection state.
        transport: The underlying transport layer.

    Example:
        >>> client = JackdClient(AsyncTcpTransport("queue.internal", 11300))
        >>> await client.connect()
        >>>
        >>> # Pipeline three puts over one connection
        >>> ids = await asyncio.gather(*(client.put(body) for body in bodies))
        >>>
        >>> await client.disconnect()
    """

    def __init__(
        self,
        transport: AbstractTransport | None = None,
        *,
        max_retries: int = ProtocolConstants.MAX_RETRIES,
    ) -> None:
        """
        Initialize the client.

        Args:
            transport: Transport to the server. Defaults to TCP on
                localhost:11300.
            max_retries: Additional attempts when opening the transport fails.
        """
        self._transport = transport if transport is not None else AsyncTcpTransport()
        self._max_retries = max_retries
        self._state = ClientState.DISCONNECTED
        self._connection = Connection(self._transport)

    @property
    def state(self) -> ClientState:
        """Get the current connection state."""
        if self._state == ClientState.CONNECTED and not self._connection.is_open:
            return ClientState.DISCONNECTED
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if client is connected; False once the server has gone away."""
        return self._state == ClientState.CONNECTED and self._connection.is_open

    @property
    def transport(self) -> AbstractTransport:
        """Get the underlying transport."""
        return self._transport

    @property
    def pending(self) -> int:
        """Number of commands awaiting a response."""
        return self._connection.pending

    # ===== Lifecycle =====

    async def connect(self) -> JackdClient:
        """
        Open the connection to the server.

        Retries up to max_retries times on timeout or transport failure.

        Returns:
            The client, for chaining.

        Raises:
            ConnectionError: If the client is not disconnected.
            TimeoutError: If every attempt timed out.
            TransportError: If every attempt failed.
        """
        if self.state != ClientState.DISCONNECTED:
            raise ConnectionError(f"Cannot connect: client is in {self._state.name} state")

        if self._state != ClientState.DISCONNECTED:
            # The previous connection was lost; release it before reconnecting
            await self._connection.close()
            self._connection = Connection(self._transport)

        self._state = ClientState.CONNECTING
        logger.info("Connecting to %s", self._transport.endpoint)

        last_exception: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                if attempt > 0:
                    logger.debug("Connection attempt %d/%d", attempt + 1, self._max_retries + 1)
                await self._connection.open()
                self._state = ClientState.CONNECTED
                logger.info("Connected to %s", self._transport.endpoint)
                return self

            except (TimeoutError, TransportError) as e:
                last_exception = e
                logger.warning(
                    "Connection to %s failed (attempt %d/%d): %s",
                    self._transport.endpoint,
                    attempt + 1,
                    self._max_retries + 1,
                    e,
                )
                if attempt < self._max_retries:
                    await asyncio.sleep(ProtocolConstants.RETRY_DELAY)
                continue

            except Exception:
                self._state = ClientState.DISCONNECTED
                raise

        self._state = ClientState.DISCONNECTED
        logger.error("Connection failed after %d attempts", self._max_retries + 1)
        raise last_exception or TimeoutError("Connection timed out")

    async def disconnect(self) -> None:
        """
        Disconnect from the server.

        Sends quit (best effort) and closes the transport. Commands still
        awaiting a response fail with ConnectionClosedError. Safe to call
        even if not connected.
        """
        if self._state == ClientState.DISCONNECTED:
            return

        logger.info("Disconnecting from %s", self._transport.endpoint)
        self._state = ClientState.DISCONNECTING

        try:
            if self._connection.is_open:
                try:
                    await self._connection.send(encode_quit())
                except TransportError as e:
                    logger.debug("Could not send quit: %s", e)
        finally:
            await self._connection.close()
            self._connection = Connection(self._transport)
            self._state = ClientState.DISCONNECTED
            logger.debug("Disconnected")

    async def quit(self) -> None:
        """Alias for disconnect."""
        await self.disconnect()

    async def close(self) -> None:
        """Alias for disconnect."""
        await self.disconnect()

    def _ensure_connected(self) -> None:
        """Verify client is in connected state."""
        if not self.is_connected:
            raise ConnectionError(f"Not connected (state: {self.state.name})")

    async def _execute(
        self, definition: commands.CommandDefinition[Any], *args: Any, **kwargs: Any
    ) -> Any:
        self._ensure_connected()
        return await self._connection.execute(definition, *args, **kwargs)

    # ===== Producer Commands =====

    async def put(
        self,
        payload: Any,
        priority: int | None = None,
        delay: int | None = None,
        ttr: int | None = None,
    ) -> int:
        """
        Insert a job into the currently used tube.

        Args:
            payload: Job body. bytes are sent verbatim, str as UTF-8 and
                anything else as JSON.
            priority: 0 (most urgent) to 2**32-1. Defaults to 0.
            delay: Seconds before the job becomes ready. Defaults to 0.
            ttr: Seconds a worker may hold the job. Defaults to 60.

        Returns:
            The new job's id.

        Raises:
            UsageError: If the payload is missing or an option is invalid.
            ProtocolError: BURIED, EXPECTED_CRLF, JOB_TOO_BIG or DRAINING.
        """
        return await self._execute(commands.PUT, payload, priority=priority, delay=delay, ttr=ttr)

    async def use(self, tube: str) -> str:
        """
        Select the tube that put inserts into.

        Returns:
            The tube now in use.
        """
        return await self._execute(commands.USE, tube)

    # ===== Worker Commands =====

    async def reserve(self) -> Job:
        """
        Reserve the next ready job from the watched tubes.

        Waits on the server until a job is ready.

        Raises:
            ProtocolError: DEADLINE_SOON if a reserved job is about to time out.
            ParseError: If the payload is not valid UTF-8; use reserve_raw.
        """
        return await self._execute(commands.RESERVE)

    async def reserve_raw(self) -> RawJob:
        """Reserve the next ready job, keeping the payload as bytes."""
        return await self._execute(commands.RESERVE_RAW)

    async def reserve_with_timeout(self, seconds: int) -> Job:
        """
        Reserve a job, giving up after ``seconds``.

        Raises:
            ProtocolError: TIMED_OUT if no job became ready in time.
        """
        return await self._execute(commands.RESERVE_WITH_TIMEOUT, seconds)

    async def reserve_job(self, job_id: int) -> Job:
        """Reserve a specific job by id."""
        return await self._execute(commands.RESERVE_JOB, job_id)

    async def delete(self, job_id: int) -> None:
        """Delete a job."""
        await self._execute(commands.DELETE, job_id)

    async def release(
        self,
        job_id: int,
        priority: int | None = None,
        delay: int | None = None,
    ) -> None:
        """
        Put a reserved job back into the ready queue.

        Raises:
            ProtocolError: BURIED if the server ran out of memory growing the
                priority queue, NOT_FOUND if the job is not reserved by this
                client.
        """
        await self._execute(commands.RELEASE, job_id, priority=priority, delay=delay)

    async def bury(self, job_id: int, priority: int | None = None) -> None:
        """Bury a reserved job."""
        await self._execute(commands.BURY, job_id, priority=priority)

    async def touch(self, job_id: int) -> None:
        """Request more time to work on a reserved job."""
        await self._execute(commands.TOUCH, job_id)

    async def watch(self, tube: str) -> int:
        """
        Add a tube to the watch list.

        Returns:
            Number of tubes now watched.
        """
        return await self._execute(commands.WATCH, tube)

    async def ignore(self, tube: str) -> int:
        """
        Remove a tube from the watch list.

        Returns:
            Number of tubes now watched.

        Raises:
            ProtocolError: NOT_IGNORED if it is the only watched tube.
        """
        return await self._execute(commands.IGNORE, tube)

    # ===== Other Commands =====

    async def pause_tube(self, tube: str, delay: int | None = None) -> None:
        """Stop reserving from a tube for ``delay`` seconds."""
        await self._execute(commands.PAUSE_TUBE, tube, delay=delay)

    async def peek(self, job_id: int) -> Job:
        """Inspect a job by id."""
        return await self._execute(commands.PEEK, job_id)

    async def peek_ready(self) -> Job:
        """Inspect the next ready job in the used tube."""
        return await self._execute(commands.PEEK_READY)

    async def peek_delayed(self) -> Job:
        """Inspect the delayed job with the shortest delay left."""
        return await self._execute(commands.PEEK_DELAYED)

    async def peek_buried(self) -> Job:
        """Inspect the next buried job in the used tube."""
        return await self._execute(commands.PEEK_BURIED)

    async def kick(self, bound: int) -> int:
        """
        Kick up to ``bound`` buried (or, if none, delayed) jobs.

        Returns:
            Number of jobs actually kicked.
        """
        return await self._execute(commands.KICK, bound)

    async def kick_job(self, job_id: int) -> None:
        """Kick a single buried or delayed job."""
        await self._execute(commands.KICK_JOB, job_id)

    async def stats_job(self, job_id: int) -> JobStats:
        """Get statistics for a job."""
        return await self._execute(commands.STATS_JOB, job_id)

    async def stats_tube(self, tube: str) -> TubeStats:
        """Get statistics for a tube."""
        return await self._execute(commands.STATS_TUBE, tube)

    async def stats(self) -> ServerStats:
        """Get server-wide statistics."""
        return await self._execute(commands.STATS)

    async def list_tubes(self) -> list[str]:
        """List all existing tubes."""
        return await self._execute(commands.LIST_TUBES)

    async def list_tubes_watched(self) -> list[str]:
        """List the tubes this connection watches."""
        return await self._execute(commands.LIST_TUBES_WATCHED)

    async def list_tube_used(self) -> str:
        """Get the tube this connection puts into."""
        return await self._execute(commands.LIST_TUBE_USED)

    # ===== Context Manager =====

    async def __aenter__(self) -> JackdClient:
        """Async context manager entry - connects."""
        if self._state == ClientState.DISCONNECTED:
            await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - disconnects and closes transport."""
        await self.disconnect()

    def __repr__(self) -> str:
        return (
            f"JackdClient(state={self.state.name}, endpoint={self._transport.endpoint}, "
            f"pending={self._connection.pending})"
        )


async def connect(
    host: str = ProtocolConstants.DEFAULT_HOST,
    port: int = ProtocolConstants.DEFAULT_PORT,
    *,
    connect_timeout: float = ProtocolConstants.DEFAULT_CONNECT_TIMEOUT,
    max_retries: int = ProtocolConstants.MAX_RETRIES,
) -> JackdClient:
    """
    Connect to a beanstalkd server over TCP.

    Example:
        >>> client = await connect("localhost", 11300)
        >>> await client.put("hello")
        >>> await client.disconnect()
    """
    transport = AsyncTcpTransport(host, port, connect_timeout=connect_timeout)
    client = JackdClient(transport, max_retries=max_retries)
    return await client.connect()
