"""
Data models for beanstalkd records.

This module contains Pydantic models representing the data structures
used by the client, including:

- Jobs (text and raw payloads)
- Command options (put, release)
- Tube names
- Job, tube and server statistics
"""

from jackd.models.records import (
    Job,
    JobStats,
    PutOptions,
    RawJob,
    ReleaseOptions,
    ServerStats,
    TubeName,
    TubeStats,
)

__all__ = [
    # Jobs
    "Job",
    "RawJob",
    # Options
    "PutOptions",
    "ReleaseOptions",
    "TubeName",
    # Statistics
    "JobStats",
    "TubeStats",
    "ServerStats",
]
