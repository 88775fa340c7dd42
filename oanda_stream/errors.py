"""
Stream Errors
=============
Error taxonomy for the streaming clients.

Every error raised by a run loop is fatal: the loop stops at the first one
and raises it to the caller with the underlying cause chained.

    StreamError
    ├── StreamConnectionError   request build, transport, non-2xx status
    ├── StreamReadError         next line could not be read (incl. end of stream)
    ├── DecodeError             line is not valid JSON for the record type
    ├── NumericFormatError      price text is not a number
    └── TimeFormatError         timestamp text is not RFC3339
"""

from typing import Any, Dict, Optional


class StreamError(Exception):
    """Base exception for the streaming client."""

    def __init__(self, message: str, error_code: str = "STREAM_ERROR", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class StreamConnectionError(StreamError, ConnectionError):
    """Request could not be built or sent, or the server refused the stream."""

    def __init__(self, message: str = "Connection failed", status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONNECTION_ERROR", details)
        self.status_code = status_code


class StreamReadError(StreamError):
    """Reading the next line failed. End of stream counts as a failure."""

    def __init__(self, message: str = "Stream read failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "STREAM_READ_ERROR", details)


class DecodeError(StreamError, ValueError):
    """A line is malformed JSON or does not match the record schema."""

    def __init__(self, message: str = "Decode failed", line: bytes = b"",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "DECODE_ERROR", details)
        self.line = line


class NumericFormatError(StreamError, ValueError):
    """A decimal text field could not be parsed as a number."""

    def __init__(self, message: str = "Invalid number", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "NUMERIC_FORMAT_ERROR", details)


class TimeFormatError(StreamError, ValueError):
    """A timestamp field is not RFC3339 text."""

    def __init__(self, message: str = "Invalid timestamp", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "TIME_FORMAT_ERROR", details)
