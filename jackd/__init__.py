"""
jackd - asyncio client for the beanstalkd work queue.

This library speaks the beanstalkd text protocol over a single pipelined
connection: commands are written as soon as they are issued and every
response is matched to its command in order.

Example:
    >>> from jackd import JackdClient
    >>> from jackd.transport import AsyncTcpTransport
    >>>
    >>> async def main():
    ...     async with JackdClient(AsyncTcpTransport("localhost", 11300)) as client:
    ...         job_id = await client.put("resize:42", ttr=120)
    ...         job = await client.reserve()
    ...         await client.delete(job.id)
"""

from jackd.client import ClientState, JackdClient, connect
from jackd.connection import Connection
from jackd.exceptions import (
    ConnectionClosedError,
    ConnectionError,
    FrameError,
    JackdError,
    ParseError,
    ProtocolError,
    TimeoutError,
    TransportError,
    UnexpectedResponseError,
    UsageError,
)
from jackd.models.records import (
    Job,
    JobStats,
    PutOptions,
    RawJob,
    ReleaseOptions,
    ServerStats,
    TubeName,
    TubeStats,
)
from jackd.transport import AbstractTransport, AsyncTcpTransport, MockTransport

__version__ = "0.1.0"
__all__ = [
    # Client
    "JackdClient",
    "ClientState",
    "Connection",
    "connect",
    # Models
    "Job",
    "RawJob",
    "PutOptions",
    "ReleaseOptions",
    "TubeName",
    "JobStats",
    "TubeStats",
    "ServerStats",
    # Exceptions
    "JackdError",
    "UsageError",
    "ProtocolError",
    "UnexpectedResponseError",
    "FrameError",
    "ParseError",
    "TransportError",
    "ConnectionError",
    "ConnectionClosedError",
    "TimeoutError",
    # Transport
    "AbstractTransport",
    "AsyncTcpTransport",
    "MockTransport",
    # Version
    "__version__",
]
