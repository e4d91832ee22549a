"""
amibridge library exceptions.

This module defines all custom exceptions used throughout the library.
"""


class AmiError(Exception):
    """Base exception for AMI bridge errors"""
    pass


class AmiConnectionError(AmiError, ConnectionError):
    """Raised when the AMI socket cannot be opened or has failed"""
    pass


class AmiTimeoutError(AmiConnectionError):
    """Raised when the AMI server does not answer in time"""
    pass


class AmiStreamClosed(AmiConnectionError):
    """Raised when the AMI server closes the connection"""
    pass


class AmiAuthenticationError(AmiError):
    """Raised when the AMI server rejects a Login action"""
    pass


class AmiProtocolError(AmiError):
    """Raised when a line or action cannot be represented in AMI framing"""
    pass


class AmiConfigurationError(AmiError):
    """Raised when configuration is invalid"""
    pass


class RelayError(AmiError):
    """Raised when an outbound HTTP request fails at the transport level"""
    pass


class HandlerError(AmiError):
    """Wraps an exception raised by a registered event handler"""

    def __init__(self, event_type: str, handler, original: BaseException):
        self.event_type = event_type
        self.handler = handler
        self.original = original
        name = getattr(handler, "__qualname__", None) or repr(handler)
        super().__init__(f"Handler {name} failed on {event_type or '(untyped)'} event: {original!r}")
