"""Exception types for copysink.

Only configuration problems and malformed records are signalled with
exceptions. Store failures travel as WriteResult values.
"""

from copysink.contracts.enums import ErrorKind


class ConfigurationError(Exception):
    """Raised when configuration is invalid. Fatal at startup."""

    kind = ErrorKind.CONFIGURATION


class MalformedRecordError(Exception):
    """Raised when a record cannot be correlated or rendered as a line.

    Caught by the aggregation engine and reported for that record only.
    """

    kind = ErrorKind.MALFORMED_INPUT
