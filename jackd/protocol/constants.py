"""
beanstalkd protocol verbs, response tokens and constants.

Based on the beanstalkd protocol.txt document.
"""

from __future__ import annotations

from enum import Enum
from typing import Final


class CommandVerb(str, Enum):
    """
    Command verbs sent by the client.

    Grouped by function:
    - Producer: put, use
    - Worker: reserve*, delete, release, bury, touch, watch, ignore
    - Other: peek*, kick*, stats*, list-*, pause-tube, quit
    """

    # ===== Producer Commands =====

    PUT = "put"
    """Insert a job into the currently used tube."""

    USE = "use"
    """Select the tube that subsequent puts go into."""

    # ===== Worker Commands =====

    RESERVE = "reserve"
    """Block until a job is ready in a watched tube."""

    RESERVE_WITH_TIMEOUT = "reserve-with-timeout"
    """Reserve, answering TIMED_OUT after the given seconds."""

    RESERVE_JOB = "reserve-job"
    """Reserve a specific job by id."""

    DELETE = "delete"
    """Remove a job from the server."""

    RELEASE = "release"
    """Put a reserved job back into the ready queue."""

    BURY = "bury"
    """Move a reserved job into the buried state."""

    TOUCH = "touch"
    """Request more time to work on a reserved job."""

    WATCH = "watch"
    """Add a tube to the watch list."""

    IGNORE = "ignore"
    """Remove a tube from the watch list."""

    # ===== Other Commands =====

    PEEK = "peek"
    """Inspect a job by id."""

    PEEK_READY = "peek-ready"
    """Inspect the next ready job in the used tube."""

    PEEK_DELAYED = "peek-delayed"
    """Inspect the delayed job with the shortest delay left."""

    PEEK_BURIED = "peek-buried"
    """Inspect the next buried job."""

    KICK = "kick"
    """Move up to N buried or delayed jobs into the ready queue."""

    KICK_JOB = "kick-job"
    """Move a single buried or delayed job into the ready queue."""

    STATS_JOB = "stats-job"
    """Statistics about a job."""

    STATS_TUBE = "stats-tube"
    """Statistics about a tube."""

    STATS = "stats"
    """Statistics about the whole server."""

    LIST_TUBES = "list-tubes"
    """All existing tubes."""

    LIST_TUBE_USED = "list-tube-used"
    """The tube currently in use."""

    LIST_TUBES_WATCHED = "list-tubes-watched"
    """The tubes currently watched."""

    PAUSE_TUBE = "pause-tube"
    """Delay new reservations from a tube."""

    QUIT = "quit"
    """Close the connection."""


class ResponseToken(str, Enum):
    """First word of a server response line."""

    # ===== Success Responses =====

    INSERTED = "INSERTED"
    USING = "USING"
    RESERVED = "RESERVED"
    DELETED = "DELETED"
    RELEASED = "RELEASED"
    BURIED = "BURIED"
    TOUCHED = "TOUCHED"
    WATCHING = "WATCHING"
    FOUND = "FOUND"
    KICKED = "KICKED"
    PAUSED = "PAUSED"
    OK = "OK"

    # ===== Error Responses =====

    OUT_OF_MEMORY = "OUT_OF_MEMORY"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    BAD_FORMAT = "BAD_FORMAT"
    UNKNOWN_COMMAND = "UNKNOWN_COMMAND"
    EXPECTED_CRLF = "EXPECTED_CRLF"
    JOB_TOO_BIG = "JOB_TOO_BIG"
    DRAINING = "DRAINING"
    NOT_FOUND = "NOT_FOUND"
    TIMED_OUT = "TIMED_OUT"
    DEADLINE_SOON = "DEADLINE_SOON"
    NOT_IGNORED = "NOT_IGNORED"


class ProtocolConstants:
    """
    beanstalkd protocol constants.

    Contains the frame delimiter, connection defaults, command defaults and
    limits used throughout the protocol implementation.
    """

    # ===== Frame Delimiter =====

    DELIMITER: Final[bytes] = b"\r\n"
    """Terminates every command line, response line and payload."""

    # ===== Connection Defaults =====

    DEFAULT_HOST: Final[str] = "localhost"
    """Default server host."""

    DEFAULT_PORT: Final[int] = 11300
    """Conventional beanstalkd port."""

    DEFAULT_CONNECT_TIMEOUT: Final[float] = 5.0
    """Default connect timeout in seconds."""

    RETRY_DELAY: Final[float] = 0.1
    """Delay between connect retries in seconds."""

    MAX_RETRIES: Final[int] = 2
    """Maximum number of connect retry attempts."""

    DEFAULT_READ_SIZE: Final[int] = 65536
    """Maximum bytes requested from the transport per read."""

    # ===== Command Defaults =====

    DEFAULT_PRIORITY: Final[int] = 0
    """Default job priority (0 is most urgent)."""

    DEFAULT_DELAY: Final[int] = 0
    """Default delay in seconds before a job becomes ready."""

    DEFAULT_TTR: Final[int] = 60
    """Default time-to-run in seconds."""

    # ===== Protocol Limits =====

    MAX_PRIORITY: Final[int] = 2**32 - 1
    """Largest priority accepted by the server (least urgent)."""

    MAX_TUBE_NAME_LENGTH: Final[int] = 200
    """Maximum tube name length in bytes."""

    MAX_LINE_LENGTH: Final[int] = 8192
    """Longest response line accepted before the stream is considered corrupt."""


def token_values(*tokens: ResponseToken) -> frozenset[str]:
    """Collect the wire values of the given tokens."""
    return frozenset(token.value for token in tokens)


UNIVERSAL_ERROR_TOKENS: Final[frozenset[str]] = token_values(
    ResponseToken.OUT_OF_MEMORY,
    ResponseToken.INTERNAL_ERROR,
    ResponseToken.BAD_FORMAT,
    ResponseToken.UNKNOWN_COMMAND,
)
"""Error tokens any command may receive."""
