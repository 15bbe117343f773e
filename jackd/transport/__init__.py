"""
Transport layer for beanstalkd communication.

Available transports:
- AsyncTcpTransport: asyncio stream over TCP
- MockTransport: Mock transport for testing without a server

Example:
    >>> from jackd.transport import AsyncTcpTransport
    >>> async with AsyncTcpTransport("localhost", 11300) as transport:
    ...     await transport.write(b"stats\\r\\n")
    ...     chunk = await transport.read()

Testing Example:
    >>> from jackd.transport import MockTransport
    >>> mock = MockTransport()
    >>> mock.add_response(b"INSERTED 1\\r\\n")
"""

from jackd.transport.abc import AbstractTransport
from jackd.transport.mock import MockTransport, ScriptedMockTransport
from jackd.transport.tcp import AsyncTcpTransport

__all__ = [
    "AbstractTransport",
    "AsyncTcpTransport",
    "MockTransport",
    "ScriptedMockTransport",
]
