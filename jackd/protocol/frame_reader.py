"""
beanstalkd response frame assembly.

The server answers every command with one of two shapes:

1. **Line frames**: a status line terminated by CRLF
   - Used for: INSERTED, DELETED, WATCHING, NOT_FOUND, ...
   - Format: <TOKEN> <fields>\\r\\n

2. **Payload frames**: a status line declaring a byte count, followed by
   exactly that many raw bytes and a CRLF
   - Used for: RESERVED, FOUND, OK
   - Format: <TOKEN> <fields> <bytes>\\r\\n<data>\\r\\n

The assembler only knows how to split lines. Which lines announce a payload
is decided by the command handlers, which call ``expect_payload`` after they
have seen the status line. Payload bytes are counted, never scanned, so a
job body may contain CRLF without breaking frame boundaries.

Wire Format Notes:
- Chunks from the transport need not align with frame boundaries
- A single chunk may complete several pipelined responses
- A payload of N bytes is complete only once N + 2 bytes are buffered
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum, auto

from jackd.exceptions import FrameError
from jackd.protocol.constants import ProtocolConstants

logger = logging.getLogger(__name__)


class FrameKind(Enum):
    """Kind of a decoded frame."""

    LINE = auto()
    """Status line, delimiter stripped."""

    PAYLOAD = auto()
    """Raw payload of a previously announced length, delimiter stripped."""


class AssemblerState(Enum):
    """
    Frame assembler states.

    AWAITING_LINE -> expect_payload(n) -> AWAITING_PAYLOAD_TAIL
    AWAITING_PAYLOAD_TAIL -> payload emitted -> AWAITING_LINE
    """

    AWAITING_LINE = auto()
    """Scanning for the next delimiter."""

    AWAITING_PAYLOAD_TAIL = auto()
    """Counting payload bytes announced by the last status line."""


@dataclass(frozen=True)
class Frame:
    """
    A discrete unit of response data.

    Attributes:
        kind: Whether this is a status line or a payload.
        data: Frame bytes without the trailing delimiter.
    """

    kind: FrameKind
    data: bytes

    @property
    def text(self) -> str:
        """Frame data decoded as ASCII (undecodable bytes replaced)."""
        return self.data.decode("ascii", errors="replace")

    @property
    def is_line(self) -> bool:
        return self.kind is FrameKind.LINE

    @classmethod
    def line(cls, data: bytes) -> Frame:
        return cls(FrameKind.LINE, data)

    @classmethod
    def payload(cls, data: bytes) -> Frame:
        return cls(FrameKind.PAYLOAD, data)

    def __repr__(self) -> str:
        if self.kind is FrameKind.LINE:
            return f"Frame(LINE, {self.text!r})"
        return f"Frame(PAYLOAD, {len(self.data)} bytes)"


class FrameAssembler:
    """
    Incremental beanstalkd frame parser.

    Accumulates chunks from the transport and yields complete frames. One
    assembler exists per connection; it keeps the unconsumed remainder and
    the number of payload bytes still owed between calls.

    Example:
        >>> assembler = FrameAssembler()
        >>> assembler.feed(b"RESERVED 1 5\\r\\nhel")
        >>> assembler.next_frame()
        Frame(LINE, 'RESERVED 1 5')
        >>> assembler.expect_payload(5)
        >>> assembler.next_frame() is None
        True
        >>> assembler.feed(b"lo\\r\\n")
        >>> assembler.next_frame()
        Frame(PAYLOAD, 5 bytes)
    """

    def __init__(
        self,
        delimiter: bytes = ProtocolConstants.DELIMITER,
        max_line_length: int = ProtocolConstants.MAX_LINE_LENGTH,
    ) -> None:
        if not delimiter:
            raise ValueError("Delimiter must not be empty")
        self._delimiter = delimiter
        self._max_line_length = max_line_length
        self._buffer = bytearray()
        self._outstanding = 0
        self._state = AssemblerState.AWAITING_LINE
        # Offset where the next delimiter scan starts; bytes before it are known delimiter-free
        self._scan_from = 0

    @property
    def state(self) -> AssemblerState:
        """Get the current assembler state."""
        return self._state

    @property
    def outstanding(self) -> int:
        """Payload bytes still owed before the payload delimiter (0 when awaiting a line)."""
        return self._outstanding

    @property
    def buffered(self) -> int:
        """Number of received bytes not yet emitted as frames."""
        return len(self._buffer)

    def feed(self, data: bytes | bytearray | memoryview) -> None:
        """
        Append a chunk received from the transport.

        Args:
            data: Bytes of any size, possibly splitting frames arbitrarily.
        """
        self._buffer.extend(data)

    def expect_payload(self, length: int) -> None:
        """
        Announce that the next frame is a payload of ``length`` bytes.

        Called by the consumer after a status line declared a payload.

        Args:
            length: Declared payload length in bytes (may be 0).

        Raises:
            ValueError: If length is negative.
            FrameError: If a payload is already being awaited.
        """
        if length < 0:
            raise ValueError(f"Payload length must be >= 0, got {length}")
        if self._state is AssemblerState.AWAITING_PAYLOAD_TAIL:
            raise FrameError(
                f"Already awaiting a {self._outstanding}-byte payload, cannot expect {length} more"
            )
        logger.debug("Expecting %d payload bytes", length)
        self._outstanding = length
        self._state = AssemblerState.AWAITING_PAYLOAD_TAIL

    def next_frame(self) -> Frame | None:
        """
        Extract the next complete frame from the buffer.

        Returns:
            The next Frame, or None if more bytes are needed.

        Raises:
            FrameError: If the stream violates the framing rules.
        """
        if self._state is AssemblerState.AWAITING_PAYLOAD_TAIL:
            return self._take_payload()
        return self._take_line()

    def frames(self) -> Iterator[Frame]:
        """
        Yield every frame currently obtainable from the buffer.

        The generator is lazy: ``expect_payload`` called between two
        iterations applies to the frame produced by the next iteration.
        """
        while True:
            frame = self.next_frame()
            if frame is None:
                return
            yield frame

    def reset(self) -> None:
        """Discard buffered bytes and return to AWAITING_LINE."""
        self._buffer.clear()
        self._outstanding = 0
        self._state = AssemblerState.AWAITING_LINE
        self._scan_from = 0

    def _take_line(self) -> Frame | None:
        index = self._buffer.find(self._delimiter, self._scan_from)
        if index < 0:
            if len(self._buffer) > self._max_line_length:
                raise FrameError(
                    f"Response line exceeds {self._max_line_length} bytes without a delimiter"
                )
            # The delimiter may straddle this chunk and the next one
            self._scan_from = max(0, len(self._buffer) - len(self._delimiter) + 1)
            return None

        line = bytes(self._buffer[:index])
        del self._buffer[: index + len(self._delimiter)]
        self._scan_from = 0
        return Frame.line(line)

    def _take_payload(self) -> Frame | None:
        length = self._outstanding
        needed = length + len(self._delimiter)

        # Exactly `length` bytes are not enough: the terminating delimiter must be here too
        if len(self._buffer) < needed:
            return None

        terminator = bytes(self._buffer[length:needed])
        if terminator != self._delimiter:
            raise FrameError(
                f"Payload of {length} bytes not terminated by delimiter, found {terminator!r}"
            )

        payload = bytes(self._buffer[:length])
        del self._buffer[:needed]
        self._outstanding = 0
        self._state = AssemblerState.AWAITING_LINE
        self._scan_from = 0
        return Frame.payload(payload)

    def __repr__(self) -> str:
        return (
            f"FrameAssembler(state={self._state.name}, "
            f"outstanding={self._outstanding}, buffered={len(self._buffer)})"
        )
