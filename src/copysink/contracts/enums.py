"""Status codes and kinds used across subsystem boundaries."""

from enum import Enum


class ReleaseReason(str, Enum):
    """Why a group was released from the store and handed to the sink.

    Values:
        COUNT: Group reached the configured batch size
        IDLE: Group was untouched for longer than the idle timeout
        SHUTDOWN: Final sweep during orderly shutdown
    """

    COUNT = "count"
    IDLE = "idle"
    SHUTDOWN = "shutdown"


class ErrorKind(str, Enum):
    """Category of a per-record or per-batch failure.

    Uses (str, Enum) so the value can be emitted directly as a log field.
    """

    MALFORMED_INPUT = "malformed_input"
    STORE_WRITE_FAILURE = "store_write_failure"
    CONFIGURATION = "configuration"
