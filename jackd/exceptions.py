"""
Exception hierarchy for jackd.

All exceptions inherit from JackdError, providing a clean hierarchy
for error handling. The design follows these principles:

1. Usage errors are raised before anything is written to the server
2. Server-reported errors carry the original response line for debugging
3. Framing and parse errors include context about what was being read
4. Connection loss fails every pending command instead of leaving it waiting
"""

from __future__ import annotations

from typing import Final


class JackdError(Exception):
    """
    Base exception for all jackd errors.

    All library-specific exceptions inherit from this class, allowing
    callers to catch all jackd errors with a single except clause.
    """

    pass


class UsageError(JackdError, ValueError):
    """
    Invalid or missing command argument.

    Raised synchronously while a command is being encoded, so the command
    is never written to the server and never enters the execution queue.
    """

    pass


class ProtocolError(JackdError):
    """
    Error response from the server.

    Raised when the server answers a command with a recognized error token
    such as NOT_FOUND or TIMED_OUT. The message is the raw response line,
    so ``str(error) == "NOT_FOUND"``.
    """

    def __init__(self, response: str) -> None:
        self.response = response
        self.token = response.split(" ", 1)[0]
        self.description = ERROR_DESCRIPTIONS.get(self.token, "Unknown error")
        super().__init__(response)


class UnexpectedResponseError(JackdError):
    """
    Response matching neither an error token nor the expected success token.

    This usually indicates a protocol version mismatch or a framing bug.
    """

    def __init__(self, response: str, message: str | None = None) -> None:
        self.response = response
        super().__init__(message or f"Unexpected response: {response}")


class FrameError(JackdError):
    """
    Frame assembly error.

    Raised when the incoming byte stream violates the framing rules:
    - Payload not terminated by the delimiter
    - Status line exceeding the maximum length
    """

    pass


class ParseError(JackdError):
    """
    Payload parsing error.

    Raised when a response payload cannot be decoded, typically due to:
    - Malformed YAML statistics documents
    - Unexpected document shape
    - Non UTF-8 job payloads requested as text
    """

    def __init__(
        self,
        message: str,
        *,
        record_type: str | None = None,
        raw_data: str | None = None,
    ) -> None:
        super().__init__(message)
        self.record_type = record_type
        self.raw_data = raw_data

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.record_type:
            parts.append(f"record_type={self.record_type}")
        if self.raw_data:
            # Truncate raw data for display
            display_data = self.raw_data[:40] + "..." if len(self.raw_data) > 40 else self.raw_data
            parts.append(f"data={display_data!r}")
        return " ".join(parts) if len(parts) > 1 else parts[0]


class TransportError(JackdError):
    """
    Transport-level error.

    Raised for low-level transport issues:
    - Socket errors
    - Connection reset while writing or reading
    """

    pass


class ConnectionError(JackdError):  # noqa: A001 - intentionally shadows builtin
    """
    Server connection error.

    Raised when:
    - A command is issued while not connected
    - The connection cannot be established
    """

    pass


class ConnectionClosedError(ConnectionError):
    """
    Connection closed while awaiting a response.

    Every command still pending when the connection goes away fails with
    this error.
    """

    def __init__(self, message: str = "Connection closed while awaiting response") -> None:
        super().__init__(message)


class TimeoutError(JackdError):  # noqa: A001 - intentionally shadows builtin
    """
    Connection timeout.

    Raised when the server cannot be reached within the connect timeout.
    Blocking reserves never raise this; the server answers TIMED_OUT.
    """

    def __init__(
        self,
        message: str = "Connection timeout",
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        super().__init__(message)
        self.timeout_seconds = timeout_seconds

    def __str__(self) -> str:
        base = super().__str__()
        if self.timeout_seconds is not None:
            return f"{base} (after {self.timeout_seconds:.1f}s)"
        return base


# Error token to message mapping, as documented in protocol.txt
ERROR_DESCRIPTIONS: Final[dict[str, str]] = {
    "OUT_OF_MEMORY": "Server cannot allocate enough memory for the job",
    "INTERNAL_ERROR": "Server internal error",
    "BAD_FORMAT": "Malformed command line",
    "UNKNOWN_COMMAND": "Server does not know this command",
    "EXPECTED_CRLF": "Job body was not terminated by CRLF",
    "JOB_TOO_BIG": "Job body larger than max-job-size",
    "DRAINING": "Server is in drain mode and accepts no new jobs",
    "BURIED": "Job was buried",
    "NOT_FOUND": "Job or tube does not exist",
    "TIMED_OUT": "Reserve timed out",
    "DEADLINE_SOON": "A reserved job is about to exceed its time-to-run",
    "NOT_IGNORED": "Cannot ignore the only watched tube",
}
