from typing import Optional


class ChatError(Exception):
    """Base class for every failure the client surfaces."""


# Raised when a call starts; no stream exists and history is untouched.

class SerializationError(ChatError):
    def __init__(self, detail: str):
        super().__init__(f"Could not encode chat request: {detail}")
        self.detail = detail


class NetworkError(ChatError):
    def __init__(self, detail: str):
        super().__init__(f"Network failure: {detail}")
        self.detail = detail


class ResponseError(ChatError):
    """Non-200 response whose body is not the expected error envelope."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class ApiError(ChatError):
    """Non-200 response carrying the provider's own error message."""

    def __init__(self, message: str, error_type: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.status_code = status_code


# Raised while iterating a stream that already started.

class StreamError(ChatError):
    pass


class StreamReadError(StreamError):
    def __init__(self, detail: str):
        super().__init__(f"Stream interrupted: {detail}")
        self.detail = detail


class StreamDecodeError(StreamError):
    def __init__(self, line: str, detail: str):
        super().__init__(f"Malformed stream event: {detail}")
        self.line = line
        self.detail = detail
