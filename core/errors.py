"""
Shared error types for core services and the RPC layer.
"""

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
RESOURCE_NOT_FOUND = -32004


class ValidationIssue(ValueError):
    def __init__(
        self,
        message: str,
        field: str = "unknown",
        error_type: str = "invalid",
    ):
        super().__init__(message)
        self.field = field
        self.error_type = error_type


class MissingArgument(ValidationIssue):
    """Raised when a tool call omits an argument its contract requires."""

    def __init__(self, field: str):
        super().__init__(f"Missing required argument: {field}", field=field, error_type="required")


class RecordNotFound(LookupError):
    """Raised when an operation needs a record that does not exist."""


class FramingError(Exception):
    """Connection-level framing failure; the peer gets no response frame."""


class RpcError(Exception):
    """Error reported to the caller as a JSON-RPC error object."""

    code = INTERNAL_ERROR

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class InvalidRequest(RpcError):
    code = INVALID_REQUEST


class MethodNotFound(RpcError):
    code = METHOD_NOT_FOUND


class InvalidParams(RpcError):
    code = INVALID_PARAMS


class ResourceNotFound(RpcError):
    code = RESOURCE_NOT_FOUND
