"""
Shared error handling for the Housecat relay.

Every failure a relay command can produce is one of the kinds in
``ErrorKind``. The message carried by each error is the user-facing text
shown by the desktop client.
"""

from enum import Enum
from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    """Error classification for relay commands."""
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    CONNECTIVITY = "connectivity"
    SERVER = "server"
    DECODING = "decoding"
    PROTOCOL = "protocol"


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    kind: ErrorKind
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class RelayError(Exception):
    """Base exception for relay commands."""

    kind: ErrorKind = ErrorKind.SERVER
    code: str = "SERVER_ERROR"
    status_code: int = 502

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        # Extra response headers set by the hosting service
        self.headers: Dict[str, str] = {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            kind=self.kind,
            message=self.message,
            details=self.details
        )


class ValidationError(RelayError):
    """Missing or blank input, detected before any network call."""

    kind = ErrorKind.VALIDATION
    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class ConfigurationError(RelayError):
    """The HTTP client could not be constructed."""

    kind = ErrorKind.CONFIGURATION
    code = "CONFIGURATION_ERROR"
    status_code = 500


class ConnectivityError(RelayError):
    """DNS, connect, timeout or read failure reaching ClickHouse."""

    kind = ErrorKind.CONNECTIVITY
    code = "CONNECTIVITY_ERROR"
    status_code = 502


class ServerError(RelayError):
    """ClickHouse answered with a non-2xx status."""

    kind = ErrorKind.SERVER
    code = "SERVER_ERROR"
    status_code = 502

    def __init__(self, status_code: int, reason: str, body: str):
        status = f"{status_code} {reason}".strip()
        super().__init__(
            f"ClickHouse returned {status}: {body}",
            details={"status_code": status_code},
        )
        self.upstream_status = status_code
        self.body = body


class DecodingError(RelayError):
    """Response body does not match the expected structured shape."""

    kind = ErrorKind.DECODING
    code = "DECODING_ERROR"
    status_code = 502


class ProtocolInvariantError(RelayError):
    """ClickHouse answered successfully but broke a protocol expectation."""

    kind = ErrorKind.PROTOCOL
    code = "PROTOCOL_ERROR"
    status_code = 502
