"""
Pydantic models for beanstalkd records.

This module defines the core data structures used throughout the library,
implemented as immutable Pydantic models with validation.

Design principles:
- All models are frozen (immutable)
- Option models carry the protocol defaults so encoders never guess
- Statistics models accept fields added by newer servers
- Statistics keys use snake_case (``current-jobs-ready`` becomes
  ``current_jobs_ready``)
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from jackd.protocol.constants import ProtocolConstants

TUBE_NAME_PATTERN = r"^[A-Za-z0-9+/;.$_()][A-Za-z0-9\-+/;.$_()]*$"
"""Tube names may contain letters, digits and ``-+/;.$_()`` but not start with ``-``."""

_INTEGER_PATTERN = re.compile(r"^-?\d+$")
_DECIMAL_PATTERN = re.compile(r"^-?\d+\.\d+$")


def _parse_number(value: Any) -> Any:
    """Convert an integer or decimal string to a number, leaving anything else as is."""
    if isinstance(value, str):
        if _INTEGER_PATTERN.match(value):
            return int(value)
        if _DECIMAL_PATTERN.match(value):
            return float(value)
    return value


class Job(BaseModel):
    """
    A job whose payload was decoded as UTF-8 text.

    Example:
        >>> job = Job(id=1, payload="hello")
        >>> job.id
        1
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1, description="Server-assigned job id")
    payload: str = Field(description="Job body decoded as UTF-8")

    def __repr__(self) -> str:
        return f"Job(id={self.id}, payload={len(self.payload)} chars)"


class RawJob(BaseModel):
    """A job whose payload is kept as the raw bytes sent by the server."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1, description="Server-assigned job id")
    payload: bytes = Field(description="Job body exactly as received")

    def decode(self, encoding: str = "utf-8") -> Job:
        """Convert to a text Job."""
        return Job(id=self.id, payload=self.payload.decode(encoding))

    def __repr__(self) -> str:
        return f"RawJob(id={self.id}, payload={len(self.payload)} bytes)"


class PutOptions(BaseModel):
    """
    Options for the put command.

    Example:
        >>> PutOptions().ttr
        60
        >>> PutOptions.from_arguments(priority=None, delay=5).delay
        5
    """

    model_config = ConfigDict(frozen=True, strict=True)

    priority: int = Field(
        default=ProtocolConstants.DEFAULT_PRIORITY,
        ge=0,
        le=ProtocolConstants.MAX_PRIORITY,
        description="Job priority, 0 is most urgent",
    )
    delay: int = Field(
        default=ProtocolConstants.DEFAULT_DELAY,
        ge=0,
        description="Seconds to wait before the job becomes ready",
    )
    ttr: int = Field(
        default=ProtocolConstants.DEFAULT_TTR,
        ge=0,
        description="Seconds a worker may hold the job reserved",
    )

    @classmethod
    def from_arguments(cls, **arguments: int | None) -> PutOptions:
        """
        Build options from keyword arguments, ignoring those set to None.

        Omitted values fall back to the protocol defaults.
        """
        return cls(**{key: value for key, value in arguments.items() if value is not None})


class ReleaseOptions(BaseModel):
    """Options for the release command."""

    model_config = ConfigDict(frozen=True, strict=True)

    priority: int = Field(
        default=ProtocolConstants.DEFAULT_PRIORITY,
        ge=0,
        le=ProtocolConstants.MAX_PRIORITY,
    )
    delay: int = Field(default=ProtocolConstants.DEFAULT_DELAY, ge=0)

    @classmethod
    def from_arguments(cls, **arguments: int | None) -> ReleaseOptions:
        """Build options from keyword arguments, ignoring those set to None."""
        return cls(**{key: value for key, value in arguments.items() if value is not None})


class TubeName(BaseModel):
    """
    beanstalkd tube name.

    Names are 1 to 200 characters from ``A-Za-z0-9-+/;.$_()`` and must not
    start with a hyphen.

    Example:
        >>> str(TubeName(value="emails"))
        'emails'
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(
        min_length=1,
        max_length=ProtocolConstants.MAX_TUBE_NAME_LENGTH,
        pattern=TUBE_NAME_PATTERN,
        description="Tube name",
    )

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"TubeName({self.value!r})"

    def __hash__(self) -> int:
        return hash(self.value)


class JobStats(BaseModel):
    """
    Statistics for a single job, as returned by stats-job.

    Example:
        >>> stats = JobStats(id=3, tube="default", state="ready", pri=0, age=4,
        ...                  delay=0, ttr=60, time_left=0, file=0, reserves=0,
        ...                  timeouts=0, releases=0, buries=0, kicks=0)
        >>> stats.state
        'ready'
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    id: int
    tube: str
    state: str = Field(description="ready, delayed, reserved or buried")
    pri: int
    age: int
    delay: int
    ttr: int
    time_left: int
    file: int
    reserves: int
    timeouts: int
    releases: int
    buries: int
    kicks: int


class TubeStats(BaseModel):
    """Statistics for a tube, as returned by stats-tube."""

    model_config = ConfigDict(frozen=True, extra="allow")

    name: str
    current_jobs_urgent: int
    current_jobs_ready: int
    current_jobs_reserved: int
    current_jobs_delayed: int
    current_jobs_buried: int
    total_jobs: int
    current_using: int
    current_waiting: int
    current_watching: int
    pause: int
    cmd_delete: int
    cmd_pause_tube: int
    pause_time_left: int


class ServerStats(BaseModel):
    """
    Server-wide statistics, as returned by stats.

    Only the commonly used counters are declared; every other field the
    server reports is kept as an extra attribute.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    current_jobs_urgent: int = 0
    current_jobs_ready: int = 0
    current_jobs_reserved: int = 0
    current_jobs_delayed: int = 0
    current_jobs_buried: int = 0
    total_jobs: int = 0
    current_tubes: int = 0
    current_connections: int = 0
    current_producers: int = 0
    current_workers: int = 0
    current_waiting: int = 0
    job_timeouts: int = 0
    max_job_size: int = 0
    pid: int = 0
    version: str = ""
    uptime: int = 0
    draining: bool = False
    id: str = ""
    hostname: str = ""

    @model_validator(mode="before")
    @classmethod
    def parse_extra_counters(cls, data: Any) -> Any:
        """Undeclared fields arrive as strings; numeric ones become numbers."""
        if not isinstance(data, dict):
            return data
        return {
            key: value if key in cls.model_fields else _parse_number(value)
            for key, value in data.items()
        }
