from typing import Any, Optional


class AppStackError(Exception):
    """Base exception for all AppStack SDK errors."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        data: Any = None,
    ):
        self.status = status
        self.code = code
        self.data = data
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "message": str(self),
            "status": self.status,
            "code": self.code,
            "data": self.data,
        }


class AppStackAuthError(AppStackError):
    """Raised when the server rejects the current credentials (401/403)."""
    pass


class AppStackNotFoundError(AppStackError):
    """Raised when a requested resource is not found."""
    pass


class AppStackConfigError(AppStackError):
    """Raised when the client is constructed with an invalid configuration."""
    pass
