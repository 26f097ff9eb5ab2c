"""Error types for the Joblet client library."""

from typing import Optional

import grpc


class ClientError(Exception):
    """Base class for client errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message


class ConfigError(ClientError):
    """Named environment is missing or malformed."""

    def __init__(self, message: str):
        super().__init__(f"invalid configuration: {message}")


class CredentialError(ClientError):
    """TLS material is missing or unreadable."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(f"invalid credentials: {message}", cause)


class ChannelError(ClientError):
    """Channel cannot be constructed or is no longer usable."""

    def __init__(self, message: str):
        super().__init__(f"channel error: {message}")


class ValidationError(ClientError):
    """Request failed local shape validation."""

    def __init__(self, message: str):
        super().__init__(f"invalid request: {message}")


class TransportError(ClientError):
    """Unexpected failure while reading a call outside the gRPC status model."""

    def __init__(self, method_name: str, cause: Exception):
        self.method_name = method_name
        super().__init__(f"{method_name} transport error", cause)


class RpcError(ClientError):
    """Failure reported by the remote service or the transport."""

    def __init__(self, method_name: str, cause: grpc.RpcError):
        self.method_name = method_name
        self._rpc_error = cause
        # grpc.RpcError itself has no code()/details(); grpc.Call supplies them.
        code = getattr(cause, "code", None)
        details = getattr(cause, "details", None)
        self.code: grpc.StatusCode = code() if code else grpc.StatusCode.UNKNOWN
        super().__init__((details() if details else "") or self.code.name, cause)

    @property
    def details(self) -> str:
        """Return the error details reported by the server."""
        return self.message

    def __str__(self) -> str:
        return f"{self.method_name}: {self.code.name}: {self.message}"

    def is_not_found(self) -> bool:
        """Return True if this is a NOT_FOUND error."""
        return self.code == grpc.StatusCode.NOT_FOUND

    def is_already_exists(self) -> bool:
        """Return True if this is an ALREADY_EXISTS error."""
        return self.code == grpc.StatusCode.ALREADY_EXISTS

    def is_invalid_argument(self) -> bool:
        """Return True if this is an INVALID_ARGUMENT error."""
        return self.code == grpc.StatusCode.INVALID_ARGUMENT

    def is_precondition_failed(self) -> bool:
        """Return True if this is a FAILED_PRECONDITION error."""
        return self.code == grpc.StatusCode.FAILED_PRECONDITION

    def is_unavailable(self) -> bool:
        """Return True if the server could not be reached."""
        return self.code == grpc.StatusCode.UNAVAILABLE


class TimeoutError(ClientError):
    """Deadline exceeded before the call completed."""

    def __init__(
        self,
        method_name: str,
        timeout: Optional[float] = None,
        cause: Optional[Exception] = None,
    ):
        self.method_name = method_name
        self.timeout = timeout
        self.code = grpc.StatusCode.DEADLINE_EXCEEDED
        if timeout is None:
            message = f"{method_name} timed out"
        else:
            message = f"{method_name} timed out after {timeout}s"
        super().__init__(message, cause)
