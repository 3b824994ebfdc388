"""Shared contracts for cross-boundary data types.

All dataclasses, enums and exceptions that cross subsystem boundaries are
defined here.

Import pattern:
    from copysink.contracts import Record, WriteResult, ErrorKind
"""

from copysink.contracts.enums import ErrorKind, ReleaseReason
from copysink.contracts.errors import ConfigurationError, MalformedRecordError
from copysink.contracts.data import Batch, Record
from copysink.contracts.results import SubmitResult, WriteResult

__all__ = [
    "Batch",
    "ConfigurationError",
    "ErrorKind",
    "MalformedRecordError",
    "Record",
    "ReleaseReason",
    "SubmitResult",
    "WriteResult",
]
