"""
Statistics and tube list parsers.

The stats-family commands and the list-tubes commands answer with a YAML
document as their payload:

    ---
    current-jobs-ready: 3
    current-jobs-reserved: 0
    ...

Keys use hyphens on the wire; they are normalized to snake_case so they map
onto the pydantic models in ``jackd.models.records``. Tube lists are YAML
sequences of names.

Documents are loaded with ``yaml.BaseLoader``, which keeps every scalar as a
string. Tube names such as ``010``, ``null`` or ``yes`` are valid, and YAML
1.1 implicit typing would turn them into numbers, None or booleans. The
pydantic models convert the counters to ints.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from jackd.exceptions import ParseError
from jackd.models.records import JobStats, ServerStats, TubeStats

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def normalize_key(key: Any) -> str:
    """
    Convert a wire statistics key to a Python attribute name.

    Example:
        >>> normalize_key("current-jobs-ready")
        'current_jobs_ready'
    """
    return str(key).replace("-", "_")


def _preview(payload: bytes) -> str:
    return payload[:80].decode("utf-8", errors="replace")


def parse_yaml_document(payload: bytes, record_type: str) -> Any:
    """
    Decode a YAML payload.

    Args:
        payload: Raw payload bytes from the server.
        record_type: Name of the record being parsed, for error context.

    Returns:
        The decoded document (mapping, sequence or string). Scalars are
        never typed.

    Raises:
        ParseError: If the payload is not valid UTF-8 YAML.
    """
    try:
        return yaml.load(payload.decode("utf-8"), Loader=yaml.BaseLoader)
    except UnicodeDecodeError as e:
        raise ParseError(
            f"{record_type} payload is not valid UTF-8",
            record_type=record_type,
            raw_data=_preview(payload),
        ) from e
    except yaml.YAMLError as e:
        raise ParseError(
            f"Invalid YAML in {record_type} payload: {e}",
            record_type=record_type,
            raw_data=_preview(payload),
        ) from e


def _parse_mapping(payload: bytes, model: type[ModelT], record_type: str) -> ModelT:
    document = parse_yaml_document(payload, record_type)
    if not isinstance(document, dict):
        raise ParseError(
            f"Expected a YAML mapping for {record_type}, got {type(document).__name__}",
            record_type=record_type,
            raw_data=_preview(payload),
        )

    fields = {normalize_key(key): value for key, value in document.items()}
    try:
        return model(**fields)
    except ValidationError as e:
        raise ParseError(
            f"Invalid {record_type}: {e.error_count()} validation error(s)",
            record_type=record_type,
            raw_data=_preview(payload),
        ) from e


def parse_job_stats(payload: bytes) -> JobStats:
    """Parse a stats-job payload."""
    return _parse_mapping(payload, JobStats, "job_stats")


def parse_tube_stats(payload: bytes) -> TubeStats:
    """Parse a stats-tube payload."""
    return _parse_mapping(payload, TubeStats, "tube_stats")


def parse_server_stats(payload: bytes) -> ServerStats:
    """
    Parse a stats payload.

    Counters not declared on ServerStats are kept as extra attributes, so
    ``stats.cmd_put`` works even though only common fields are declared.
    """
    stats = _parse_mapping(payload, ServerStats, "server_stats")
    logger.debug("Parsed server stats with %d extra fields", len(stats.model_extra or {}))
    return stats


def parse_tube_list(payload: bytes) -> list[str]:
    """
    Parse a list-tubes or list-tubes-watched payload.

    Returns:
        Tube names in the order the server listed them.

    Raises:
        ParseError: If the document is not a sequence.
    """
    document = parse_yaml_document(payload, "tube_list")
    # An empty document loads as None, or as "" after a bare "---"
    if document is None or document == "":
        return []
    if not isinstance(document, list) or not all(isinstance(name, str) for name in document):
        raise ParseError(
            f"Expected a YAML sequence of tube names, got {type(document).__name__}",
            record_type="tube_list",
            raw_data=_preview(payload),
        )
    return document
