"""
Command encoding and response classification for the beanstalkd protocol.

Commands are ASCII lines of space-separated words terminated by CRLF. The
put command is followed by the job body and a second CRLF, with the body's
byte length embedded in the command line:

    put <pri> <delay> <ttr> <bytes>\\r\\n<data>\\r\\n

Every encoder validates its arguments and raises UsageError before any
bytes exist, so an invalid command never reaches the server.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from jackd.exceptions import ProtocolError, UsageError
from jackd.models.records import PutOptions, ReleaseOptions, TubeName
from jackd.protocol.constants import (
    UNIVERSAL_ERROR_TOKENS,
    CommandVerb,
    ProtocolConstants,
    ResponseToken,
)

# ===== Argument Validation =====


def require_job_id(job_id: Any) -> int:
    """
    Validate a job id.

    Args:
        job_id: Value supplied by the caller.

    Returns:
        The job id.

    Raises:
        UsageError: If job_id is missing or not a positive integer.
    """
    if job_id is None:
        raise UsageError("Job id is required")
    if isinstance(job_id, bool) or not isinstance(job_id, int) or job_id < 1:
        raise UsageError(f"Job id must be a positive integer, got {job_id!r}")
    return job_id


def require_tube_name(tube: Any) -> str:
    """
    Validate a tube name.

    Raises:
        UsageError: If tube is missing or not a valid tube name.
    """
    if tube is None:
        raise UsageError("Tube name is required")
    if not isinstance(tube, str):
        raise UsageError(f"Tube name must be a string, got {type(tube).__name__}")
    try:
        return TubeName(value=tube).value
    except ValidationError as e:
        raise UsageError(f"Invalid tube name {tube!r}") from e


def require_count(value: Any, name: str, minimum: int = 0) -> int:
    """
    Validate a non-negative integer argument such as a timeout or bound.

    Raises:
        UsageError: If value is not an integer of at least ``minimum``.
    """
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise UsageError(f"{name} must be an integer >= {minimum}, got {value!r}")
    return value


def serialize_payload(payload: Any) -> bytes:
    """
    Convert a job payload to the bytes sent on the wire.

    - bytes/bytearray/memoryview are sent verbatim
    - str is encoded as UTF-8
    - anything else is serialized as compact JSON

    Raises:
        UsageError: If payload is missing or cannot be serialized.
    """
    if payload is None:
        raise UsageError("Payload is required")
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    if isinstance(payload, str):
        return payload.encode("utf-8")
    try:
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise UsageError(f"Payload of type {type(payload).__name__} is not JSON serializable") from e


# ===== Command Encoding =====


def encode_command(verb: CommandVerb, *args: int | str) -> bytes:
    """
    Build a command line.

    Args:
        verb: Command verb.
        *args: Already validated arguments.

    Returns:
        ASCII bytes terminated by CRLF.

    Example:
        >>> encode_command(CommandVerb.DELETE, 5)
        b'delete 5\\r\\n'
    """
    words = [verb.value, *(str(arg) for arg in args)]
    return " ".join(words).encode("ascii") + ProtocolConstants.DELIMITER


def encode_put(
    payload: Any,
    priority: int | None = None,
    delay: int | None = None,
    ttr: int | None = None,
) -> bytes:
    """
    Build a complete put command including the job body.

    Omitted options default to priority 0, delay 0 and ttr 60.

    Example:
        >>> encode_put("hello")
        b'put 0 0 60 5\\r\\nhello\\r\\n'
    """
    body = serialize_payload(payload)
    try:
        options = PutOptions.from_arguments(priority=priority, delay=delay, ttr=ttr)
    except ValidationError as e:
        raise UsageError(f"Invalid put options: {e.error_count()} validation error(s)") from e

    line = encode_command(
        CommandVerb.PUT, options.priority, options.delay, options.ttr, len(body)
    )
    return line + body + ProtocolConstants.DELIMITER


def encode_use(tube: str) -> bytes:
    return encode_command(CommandVerb.USE, require_tube_name(tube))


def encode_reserve() -> bytes:
    return encode_command(CommandVerb.RESERVE)


def encode_reserve_with_timeout(seconds: int) -> bytes:
    return encode_command(
        CommandVerb.RESERVE_WITH_TIMEOUT, require_count(seconds, "Timeout seconds")
    )


def encode_reserve_job(job_id: int) -> bytes:
    return encode_command(CommandVerb.RESERVE_JOB, require_job_id(job_id))


def encode_delete(job_id: int) -> bytes:
    return encode_command(CommandVerb.DELETE, require_job_id(job_id))


def encode_release(job_id: int, priority: int | None = None, delay: int | None = None) -> bytes:
    job_id = require_job_id(job_id)
    try:
        options = ReleaseOptions.from_arguments(priority=priority, delay=delay)
    except ValidationError as e:
        raise UsageError(f"Invalid release options: {e.error_count()} validation error(s)") from e
    return encode_command(CommandVerb.RELEASE, job_id, options.priority, options.delay)


def encode_bury(job_id: int, priority: int | None = None) -> bytes:
    job_id = require_job_id(job_id)
    if priority is None:
        priority = ProtocolConstants.DEFAULT_PRIORITY
    priority = require_count(priority, "Priority")
    if priority > ProtocolConstants.MAX_PRIORITY:
        raise UsageError(f"Priority must be <= {ProtocolConstants.MAX_PRIORITY}, got {priority}")
    return encode_command(CommandVerb.BURY, job_id, priority)


def encode_touch(job_id: int) -> bytes:
    return encode_command(CommandVerb.TOUCH, require_job_id(job_id))


def encode_watch(tube: str) -> bytes:
    return encode_command(CommandVerb.WATCH, require_tube_name(tube))


def encode_ignore(tube: str) -> bytes:
    return encode_command(CommandVerb.IGNORE, require_tube_name(tube))


def encode_pause_tube(tube: str, delay: int | None = None) -> bytes:
    tube = require_tube_name(tube)
    if delay is None:
        delay = ProtocolConstants.DEFAULT_DELAY
    return encode_command(CommandVerb.PAUSE_TUBE, tube, require_count(delay, "Delay"))


def encode_peek(job_id: int) -> bytes:
    return encode_command(CommandVerb.PEEK, require_job_id(job_id))


def encode_peek_ready() -> bytes:
    return encode_command(CommandVerb.PEEK_READY)


def encode_peek_delayed() -> bytes:
    return encode_command(CommandVerb.PEEK_DELAYED)


def encode_peek_buried() -> bytes:
    return encode_command(CommandVerb.PEEK_BURIED)


def encode_kick(bound: int) -> bytes:
    return encode_command(CommandVerb.KICK, require_count(bound, "Kick bound", minimum=1))


def encode_kick_job(job_id: int) -> bytes:
    return encode_command(CommandVerb.KICK_JOB, require_job_id(job_id))


def encode_stats_job(job_id: int) -> bytes:
    return encode_command(CommandVerb.STATS_JOB, require_job_id(job_id))


def encode_stats_tube(tube: str) -> bytes:
    return encode_command(CommandVerb.STATS_TUBE, require_tube_name(tube))


def encode_stats() -> bytes:
    return encode_command(CommandVerb.STATS)


def encode_list_tubes() -> bytes:
    return encode_command(CommandVerb.LIST_TUBES)


def encode_list_tubes_watched() -> bytes:
    return encode_command(CommandVerb.LIST_TUBES_WATCHED)


def encode_list_tube_used() -> bytes:
    return encode_command(CommandVerb.LIST_TUBE_USED)


def encode_quit() -> bytes:
    return encode_command(CommandVerb.QUIT)


# ===== Response Classification =====


@dataclass(frozen=True)
class ResponseStatus:
    """
    Classification of a response line.

    Attributes:
        line: The raw response line without delimiter.
        token: First word of the line.
        is_error: Whether the token is a recognized error for the command.
    """

    line: str
    token: str
    is_error: bool

    def raise_for_error(self) -> None:
        """Raise ProtocolError if this status is an error."""
        if self.is_error:
            raise ProtocolError(self.line)


def classify_response(
    line: str,
    extra_error_tokens: Iterable[str | ResponseToken] = (),
) -> ResponseStatus:
    """
    Classify a response line against the universal and per-command errors.

    The universal errors (OUT_OF_MEMORY, INTERNAL_ERROR, BAD_FORMAT,
    UNKNOWN_COMMAND) always apply. The function is pure: the same input
    always produces an equal result.

    Args:
        line: Decoded response line.
        extra_error_tokens: Tokens that are errors for this command only.

    Returns:
        ResponseStatus for the line.
    """
    token = line.split(" ", 1)[0]
    extra = {t.value if isinstance(t, ResponseToken) else t for t in extra_error_tokens}
    is_error = token in UNIVERSAL_ERROR_TOKENS or token in extra
    return ResponseStatus(line=line, token=token, is_error=is_error)


def check_response(
    line: str,
    extra_error_tokens: Iterable[str | ResponseToken] = (),
) -> str:
    """
    Classify a response line and raise on error tokens.

    Returns:
        The line, for the caller to match against its success token.

    Raises:
        ProtocolError: If the line carries an error token.
    """
    status = classify_response(line, extra_error_tokens)
    status.raise_for_error()
    return status.line
