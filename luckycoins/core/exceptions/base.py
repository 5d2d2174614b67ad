from typing import Any, Dict, Optional


class PortalError(Exception):
    """Base class for session-core failures that are not HTTP responses"""

    def __init__(self, message: str, detail: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "detail": self.detail,
        }


class BackendCallError(PortalError):
    """A remote canister call failed in transport or returned a non-success status"""

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        status_code: Optional[int] = None,
        detail: Optional[Any] = None,
    ) -> None:
        super().__init__(message, detail)
        self.method = method
        self.status_code = status_code


class IdentityError(PortalError):
    """Identity key material could not be loaded, generated or stored"""

    def __init__(self, message: str = "Identity unavailable", detail: Optional[Any] = None):
        super().__init__(message, detail)
