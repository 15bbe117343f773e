"""
Command definitions for every beanstalkd verb.

A CommandDefinition pairs an encoder from ``jackd.protocol.encoding`` with
the handler steps that interpret the server's answer. One-step commands
(delete, watch, kick, ...) answer with a single line. Two-step commands
(reserve, peek, stats) answer with a status line announcing a payload,
followed by the payload itself; their status step returns a PayloadHeader
and their payload step builds the final result.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from jackd.exceptions import ParseError, UnexpectedResponseError
from jackd.models.records import Job, JobStats, RawJob, ServerStats, TubeStats
from jackd.parsers.stats_parser import (
    parse_job_stats,
    parse_server_stats,
    parse_tube_list,
    parse_tube_stats,
)
from jackd.protocol import encoding
from jackd.protocol.constants import CommandVerb, ResponseToken
from jackd.protocol.encoding import check_response
from jackd.protocol.execution import HandlerStep, PayloadHeader

T = TypeVar("T")
JobT = TypeVar("JobT", Job, RawJob)


@dataclass(frozen=True)
class CommandDefinition(Generic[T]):
    """
    Encoder and response handler steps for one protocol verb.

    Attributes:
        verb: Command verb.
        encoder: Builds the wire bytes from the caller's arguments.
        steps: Handler steps, one per expected response frame.
    """

    verb: CommandVerb
    encoder: Callable[..., bytes]
    steps: tuple[HandlerStep, ...]

    @property
    def name(self) -> str:
        return self.verb.value

    @property
    def expects_payload(self) -> bool:
        return len(self.steps) > 1

    def encode(self, *args: Any, **kwargs: Any) -> bytes:
        """Encode a command, raising UsageError for invalid arguments."""
        return self.encoder(*args, **kwargs)


# ===== Status Line Parsing =====


def _fields(line: str, token: ResponseToken, count: int) -> list[str] | None:
    """Split ``line`` if it is ``token`` followed by exactly ``count`` fields."""
    words = line.split(" ")
    if words[0] != token.value or len(words) != count + 1:
        return None
    return words[1:]


def _int_field(line: str, value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise UnexpectedResponseError(line) from None
    if number < 0:
        raise UnexpectedResponseError(line)
    return number


def expect_exact(token: ResponseToken, *error_tokens: ResponseToken) -> HandlerStep:
    """Status step succeeding with None when the line is exactly ``token``."""

    def handle(line: str) -> None:
        if check_response(line, error_tokens) != token.value:
            raise UnexpectedResponseError(line)

    return HandlerStep.status(handle)


def expect_count(token: ResponseToken, *error_tokens: ResponseToken) -> HandlerStep:
    """Status step returning the integer in ``<token> <n>``."""

    def handle(line: str) -> int:
        fields = _fields(check_response(line, error_tokens), token, 1)
        if fields is None:
            raise UnexpectedResponseError(line)
        return _int_field(line, fields[0])

    return HandlerStep.status(handle)


def expect_name(token: ResponseToken, *error_tokens: ResponseToken) -> HandlerStep:
    """Status step returning the tube name in ``<token> <name>``."""

    def handle(line: str) -> str:
        fields = _fields(check_response(line, error_tokens), token, 1)
        if fields is None or not fields[0]:
            raise UnexpectedResponseError(line)
        return fields[0]

    return HandlerStep.status(handle)


def expect_job_header(token: ResponseToken, *error_tokens: ResponseToken) -> HandlerStep:
    """Status step parsing ``<token> <id> <bytes>`` into a PayloadHeader."""

    def handle(line: str) -> PayloadHeader:
        fields = _fields(check_response(line, error_tokens), token, 2)
        if fields is None:
            raise UnexpectedResponseError(line)
        return PayloadHeader(length=_int_field(line, fields[1]), job_id=_int_field(line, fields[0]))

    return HandlerStep.status(handle)


def expect_data_header(*error_tokens: ResponseToken) -> HandlerStep:
    """Status step parsing ``OK <bytes>`` into a PayloadHeader."""

    def handle(line: str) -> PayloadHeader:
        fields = _fields(check_response(line, error_tokens), ResponseToken.OK, 1)
        if fields is None:
            raise UnexpectedResponseError(line)
        return PayloadHeader(length=_int_field(line, fields[0]))

    return HandlerStep.status(handle)


# ===== Payload Handling =====


def _job(model: type[JobT], payload: str | bytes, header: PayloadHeader) -> JobT:
    try:
        return model(id=header.job_id, payload=payload)
    except ValidationError as e:
        raise UnexpectedResponseError(
            f"id={header.job_id}", f"Server announced invalid job id {header.job_id}"
        ) from e


def _text_job(payload: bytes, header: PayloadHeader) -> Job:
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(
            f"Payload of job {header.job_id} is not valid UTF-8: {e.reason}",
            record_type="job",
            raw_data=payload[:40].hex(),
        ) from e
    return _job(Job, text, header)


def _raw_job(payload: bytes, header: PayloadHeader) -> RawJob:
    return _job(RawJob, payload, header)


def _payload_step(parse: Callable[[bytes], Any]) -> HandlerStep:
    return HandlerStep.payload(lambda payload, header: parse(payload))


TEXT_JOB = HandlerStep.payload(_text_job)
RAW_JOB = HandlerStep.payload(_raw_job)

_RESERVE_ERRORS = (ResponseToken.DEADLINE_SOON, ResponseToken.TIMED_OUT)


# ===== Producer Commands =====

PUT: CommandDefinition[int] = CommandDefinition(
    CommandVerb.PUT,
    encoding.encode_put,
    (
        expect_count(
            ResponseToken.INSERTED,
            ResponseToken.BURIED,
            ResponseToken.EXPECTED_CRLF,
            ResponseToken.JOB_TOO_BIG,
            ResponseToken.DRAINING,
        ),
    ),
)

USE: CommandDefinition[str] = CommandDefinition(
    CommandVerb.USE, encoding.encode_use, (expect_name(ResponseToken.USING),)
)

# ===== Worker Commands =====

RESERVE: CommandDefinition[Job] = CommandDefinition(
    CommandVerb.RESERVE,
    encoding.encode_reserve,
    (expect_job_header(ResponseToken.RESERVED, *_RESERVE_ERRORS), TEXT_JOB),
)

RESERVE_RAW: CommandDefinition[RawJob] = CommandDefinition(
    CommandVerb.RESERVE,
    encoding.encode_reserve,
    (expect_job_header(ResponseToken.RESERVED, *_RESERVE_ERRORS), RAW_JOB),
)

RESERVE_WITH_TIMEOUT: CommandDefinition[Job] = CommandDefinition(
    CommandVerb.RESERVE_WITH_TIMEOUT,
    encoding.encode_reserve_with_timeout,
    (expect_job_header(ResponseToken.RESERVED, *_RESERVE_ERRORS), TEXT_JOB),
)

RESERVE_JOB: CommandDefinition[Job] = CommandDefinition(
    CommandVerb.RESERVE_JOB,
    encoding.encode_reserve_job,
    (
        expect_job_header(ResponseToken.RESERVED, *_RESERVE_ERRORS, ResponseToken.NOT_FOUND),
        TEXT_JOB,
    ),
)

DELETE: CommandDefinition[None] = CommandDefinition(
    CommandVerb.DELETE,
    encoding.encode_delete,
    (expect_exact(ResponseToken.DELETED, ResponseToken.NOT_FOUND),),
)

RELEASE: CommandDefinition[None] = CommandDefinition(
    CommandVerb.RELEASE,
    encoding.encode_release,
    (expect_exact(ResponseToken.RELEASED, ResponseToken.BURIED, ResponseToken.NOT_FOUND),),
)

BURY: CommandDefinition[None] = CommandDefinition(
    CommandVerb.BURY,
    encoding.encode_bury,
    (expect_exact(ResponseToken.BURIED, ResponseToken.NOT_FOUND),),
)

TOUCH: CommandDefinition[None] = CommandDefinition(
    CommandVerb.TOUCH,
    encoding.encode_touch,
    (expect_exact(ResponseToken.TOUCHED, ResponseToken.NOT_FOUND),),
)

WATCH: CommandDefinition[int] = CommandDefinition(
    CommandVerb.WATCH, encoding.encode_watch, (expect_count(ResponseToken.WATCHING),)
)

IGNORE: CommandDefinition[int] = CommandDefinition(
    CommandVerb.IGNORE,
    encoding.encode_ignore,
    (expect_count(ResponseToken.WATCHING, ResponseToken.NOT_IGNORED),),
)

# ===== Other Commands =====

PAUSE_TUBE: CommandDefinition[None] = CommandDefinition(
    CommandVerb.PAUSE_TUBE,
    encoding.encode_pause_tube,
    (expect_exact(ResponseToken.PAUSED, ResponseToken.NOT_FOUND),),
)

PEEK: CommandDefinition[Job] = CommandDefinition(
    CommandVerb.PEEK,
    encoding.encode_peek,
    (expect_job_header(ResponseToken.FOUND, ResponseToken.NOT_FOUND), TEXT_JOB),
)

PEEK_READY: CommandDefinition[Job] = CommandDefinition(
    CommandVerb.PEEK_READY,
    encoding.encode_peek_ready,
    (expect_job_header(ResponseToken.FOUND, ResponseToken.NOT_FOUND), TEXT_JOB),
)

PEEK_DELAYED: CommandDefinition[Job] = CommandDefinition(
    CommandVerb.PEEK_DELAYED,
    encoding.encode_peek_delayed,
    (expect_job_header(ResponseToken.FOUND, ResponseToken.NOT_FOUND), TEXT_JOB),
)

PEEK_BURIED: CommandDefinition[Job] = CommandDefinition(
    CommandVerb.PEEK_BURIED,
    encoding.encode_peek_buried,
    (expect_job_header(ResponseToken.FOUND, ResponseToken.NOT_FOUND), TEXT_JOB),
)

KICK: CommandDefinition[int] = CommandDefinition(
    CommandVerb.KICK, encoding.encode_kick, (expect_count(ResponseToken.KICKED),)
)

KICK_JOB: CommandDefinition[None] = CommandDefinition(
    CommandVerb.KICK_JOB,
    encoding.encode_kick_job,
    (expect_exact(ResponseToken.KICKED, ResponseToken.NOT_FOUND),),
)

STATS_JOB: CommandDefinition[JobStats] = CommandDefinition(
    CommandVerb.STATS_JOB,
    encoding.encode_stats_job,
    (expect_data_header(ResponseToken.NOT_FOUND), _payload_step(parse_job_stats)),
)

STATS_TUBE: CommandDefinition[TubeStats] = CommandDefinition(
    CommandVerb.STATS_TUBE,
    encoding.encode_stats_tube,
    (expect_data_header(ResponseToken.NOT_FOUND), _payload_step(parse_tube_stats)),
)

STATS: CommandDefinition[ServerStats] = CommandDefinition(
    CommandVerb.STATS,
    encoding.encode_stats,
    (expect_data_header(), _payload_step(parse_server_stats)),
)

LIST_TUBES: CommandDefinition[list[str]] = CommandDefinition(
    CommandVerb.LIST_TUBES,
    encoding.encode_list_tubes,
    (expect_data_header(), _payload_step(parse_tube_list)),
)

LIST_TUBES_WATCHED: CommandDefinition[list[str]] = CommandDefinition(
    CommandVerb.LIST_TUBES_WATCHED,
    encoding.encode_list_tubes_watched,
    (expect_data_header(), _payload_step(parse_tube_list)),
)

LIST_TUBE_USED: CommandDefinition[str] = CommandDefinition(
    CommandVerb.LIST_TUBE_USED,
    encoding.encode_list_tube_used,
    (expect_name(ResponseToken.USING),),
)
