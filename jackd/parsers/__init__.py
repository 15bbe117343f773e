"""
Payload parsers for beanstalkd responses.

The stats-family and list-tubes commands return YAML documents; these
parsers turn them into the models in ``jackd.models``.

Example:
    >>> from jackd.parsers import parse_tube_list
    >>> parse_tube_list(b"---\\n- default\\n- emails\\n")
    ['default', 'emails']
"""

from jackd.parsers.stats_parser import (
    normalize_key,
    parse_job_stats,
    parse_server_stats,
    parse_tube_list,
    parse_tube_stats,
    parse_yaml_document,
)

__all__ = [
    "normalize_key",
    "parse_yaml_document",
    "parse_job_stats",
    "parse_tube_stats",
    "parse_server_stats",
    "parse_tube_list",
]
