"""
Protocol layer for beanstalkd communication.

This module contains the low-level protocol handling:
- Command verbs, response tokens and protocol constants
- Frame assembly (status lines and counted payloads)
- In-flight command tracking for pipelined execution

Command encoding lives in ``jackd.protocol.encoding`` and the per-verb
definitions in ``jackd.protocol.commands``.
"""

from jackd.protocol.constants import (
    UNIVERSAL_ERROR_TOKENS,
    CommandVerb,
    ProtocolConstants,
    ResponseToken,
    token_values,
)
from jackd.protocol.execution import (
    ExecutionQueue,
    HandlerStep,
    PayloadHeader,
    PendingCommand,
    StepKind,
)
from jackd.protocol.frame_reader import (
    AssemblerState,
    Frame,
    FrameAssembler,
    FrameKind,
)

__all__ = [
    # Constants
    "CommandVerb",
    "ResponseToken",
    "ProtocolConstants",
    "UNIVERSAL_ERROR_TOKENS",
    "token_values",
    # Frame Assembly
    "Frame",
    "FrameKind",
    "FrameAssembler",
    "AssemblerState",
    # Execution
    "ExecutionQueue",
    "HandlerStep",
    "PayloadHeader",
    "PendingCommand",
    "StepKind",
]
