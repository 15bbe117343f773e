"""
In-flight command tracking.

beanstalkd processes the commands of a connection serially and answers them
in the order they were received. Commands can therefore be pipelined: each
command is written immediately and queued here, and every frame coming back
belongs to the oldest command still waiting. No look-ahead or reordering is
ever needed.

Each command carries an ordered list of handler steps, one per expected
frame:

- a STATUS step interprets a response line. It returns the final result,
  or a PayloadHeader announcing that a payload frame follows.
- a PAYLOAD step interprets the raw payload, together with the header the
  status step produced.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from jackd.exceptions import UnexpectedResponseError
from jackd.protocol.frame_reader import Frame, FrameKind

logger = logging.getLogger(__name__)


class StepKind(Enum):
    """Which frame kind a handler step consumes."""

    STATUS = auto()
    """Consumes a status line (decoded text)."""

    PAYLOAD = auto()
    """Consumes a payload (raw bytes) plus the announcing PayloadHeader."""


@dataclass(frozen=True)
class PayloadHeader:
    """
    Announcement, by a status step, that a payload frame follows.

    Attributes:
        length: Declared payload length in bytes.
        job_id: Job id parsed from the status line, if the response has one.
    """

    length: int
    job_id: int | None = None


@dataclass(frozen=True)
class HandlerStep:
    """
    One response-interpreting function, tagged with the frame kind it expects.

    STATUS handlers are called as ``handler(line)``; PAYLOAD handlers as
    ``handler(payload, header)``.
    """

    kind: StepKind
    handler: Callable[..., Any]

    @classmethod
    def status(cls, handler: Callable[[str], Any]) -> HandlerStep:
        return cls(StepKind.STATUS, handler)

    @classmethod
    def payload(cls, handler: Callable[[bytes, PayloadHeader], Any]) -> HandlerStep:
        return cls(StepKind.PAYLOAD, handler)

    @property
    def frame_kind(self) -> FrameKind:
        return FrameKind.LINE if self.kind is StepKind.STATUS else FrameKind.PAYLOAD


@dataclass
class PendingCommand:
    """
    A command written to the server and awaiting its response frames.

    Attributes:
        name: Command verb, for logging.
        steps: Handler steps, one per expected frame.
        future: Completion signal observed by the caller.
        index: Index of the next unconsumed step.
        header: Header produced by the status step, if any.
    """

    name: str
    steps: tuple[HandlerStep, ...]
    future: asyncio.Future[Any]
    index: int = 0
    header: PayloadHeader | None = field(default=None)

    @property
    def next_step(self) -> HandlerStep:
        return self.steps[self.index]

    @property
    def has_more_steps(self) -> bool:
        return self.index < len(self.steps)

    def resolve(self, result: Any) -> None:
        """Complete the command with a result, unless the caller stopped waiting."""
        if self.future.done():
            logger.debug("Discarding result of %s: caller no longer waiting", self.name)
            return
        self.future.set_result(result)

    def fail(self, error: BaseException) -> None:
        """Complete the command with an error, unless the caller stopped waiting."""
        if self.future.done():
            logger.debug("Discarding error of %s: caller no longer waiting: %s", self.name, error)
            return
        self.future.set_exception(error)


class ExecutionQueue:
    """
    FIFO of in-flight commands matched to incoming frames.

    Only the command at the head of the queue is ever fed frames. A failing
    handler step removes its command and never blocks the ones behind it.

    Example:
        >>> queue = ExecutionQueue()
        >>> future = queue.submit("delete", (HandlerStep.status(parse_deleted),))
        >>> queue.dispatch(Frame.line(b"DELETED"))
        >>> await future
    """

    def __init__(self) -> None:
        self._pending: deque[PendingCommand] = deque()

    def __len__(self) -> int:
        return len(self._pending)

    def __bool__(self) -> bool:
        return bool(self._pending)

    @property
    def head(self) -> PendingCommand | None:
        """The command currently receiving frames."""
        return self._pending[0] if self._pending else None

    def submit(self, name: str, steps: tuple[HandlerStep, ...]) -> asyncio.Future[Any]:
        """
        Queue a command that has been (or is being) written to the server.

        Args:
            name: Command verb, for logging.
            steps: Handler steps, one per expected frame.

        Returns:
            Future resolved with the command's result or failed with its error.

        Raises:
            ValueError: If steps is empty.
        """
        if not steps:
            raise ValueError(f"Command {name} needs at least one handler step")
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending.append(PendingCommand(name=name, steps=tuple(steps), future=future))
        return future

    def dispatch(self, frame: Frame) -> PayloadHeader | None:
        """
        Feed a frame to the next handler step of the head command.

        Args:
            frame: The next frame from the assembler.

        Returns:
            The PayloadHeader if the head command now awaits a payload frame
            of that length, otherwise None.

        Raises:
            UnexpectedResponseError: If no command is waiting, or the frame
                kind does not match the step. Either means the stream is out
                of sync and the connection cannot continue.
        """
        command = self.head
        if command is None:
            raise UnexpectedResponseError(
                frame.text, f"Unsolicited response with no pending command: {frame!r}"
            )

        step = command.next_step
        if frame.kind is not step.frame_kind:
            raise UnexpectedResponseError(
                frame.text,
                f"{command.name} expected a {step.frame_kind.name} frame, got {frame!r}",
            )

        command.index += 1
        logger.debug("Dispatching %r to %s step %d", frame, command.name, command.index)

        try:
            if step.kind is StepKind.STATUS:
                result = step.handler(frame.text)
            else:
                result = step.handler(frame.data, command.header)
        except Exception as e:
            # This command is botched; the ones behind it still get their frames
            self._pending.popleft()
            command.fail(e)
            return None

        if isinstance(result, PayloadHeader) and command.has_more_steps:
            command.header = result
            return result

        self._pending.popleft()
        command.resolve(result)
        return None

    def fail_all(self, error: BaseException) -> int:
        """
        Fail every pending command and empty the queue.

        Args:
            error: Exception delivered to each waiting caller.

        Returns:
            Number of commands failed.
        """
        count = len(self._pending)
        while self._pending:
            self._pending.popleft().fail(error)
        return count
