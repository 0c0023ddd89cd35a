"""
Gateway exception types.

Only two failure kinds reach the caller: a malformed request (400) and a
failed call to the remote feed service (500). Both share a base class so a
single FastAPI handler can render them as ``{"error": message}``.
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base exception for errors reported to HTTP callers."""
    
    status_code = 500
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def to_dict(self) -> Dict[str, Any]:
        """Body returned to the caller."""
        return {"error": self.message}


class ValidationError(GatewayError):
    """Raised when a request is missing a required field or carries a bad value."""
    
    status_code = 400
    
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field
    
    @classmethod
    def missing(cls, field: str) -> "ValidationError":
        return cls(f"{field} is required", field=field)


class RemoteCallError(GatewayError):
    """
    Raised when the remote feed service call fails.
    
    The message is the remote failure's own message so it can be echoed to
    the caller verbatim.
    """
    
    status_code = 500
    
    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        upstream_status: Optional[int] = None,
        error_code: Optional[Any] = None
    ):
        super().__init__(
            message,
            {
                "operation": operation,
                "upstream_status": upstream_status,
                "error_code": error_code
            }
        )
        self.operation = operation
        self.upstream_status = upstream_status
        self.error_code = error_code
