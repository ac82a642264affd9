"""
LedLink error taxonomy.

None of these is fatal to a node: connection errors are retried by the
ReconnectPolicy, decode errors are discarded with a diagnostic, publish
errors are logged by the caller.
"""

from typing import Any, Optional


class LedLinkError(Exception):
    """Base class for all node protocol errors"""
    pass


class ConnectError(LedLinkError):
    """Transport unreachable, handshake timed out, or identity rejected"""

    def __init__(self, message: str, rc: Optional[int] = None):
        super().__init__(message)
        self.rc = rc


class SubscribeError(ConnectError):
    """Subscription refused or not acknowledged (same retry path as connect)"""
    pass


class PublishError(LedLinkError):
    """Publish attempted outside Ready, or rejected by the transport"""
    pass


class PayloadTooLargeError(PublishError):
    """Encoded payload exceeds the configured maximum payload size"""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Payload is {size} bytes, limit is {limit} bytes")
        self.size = size
        self.limit = limit


class DecodeError(LedLinkError, ValueError):
    """
    Malformed or schema-violating payload.

    Attributes:
        field: Offending wire field, if the failure is field-specific
        value: Offending value (e.g. an unrecognized "cmd")
    """

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value
