"""
Custom exceptions for the KSeF proxy.
"""

from __future__ import annotations

from typing import Any

# KSeF exception codes reproduced by the simulator
MISSING_CONTEXT_CODE = 21001
NOT_FOUND_CODE = 21002
UNAUTHORIZED_CODE = 21003


class KSeFProxyError(Exception):
    """Base exception for failures surfaced to proxy callers."""

    def __init__(
        self, message: str, status_code: int = 500, details: Any = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(KSeFProxyError):
    """Exception for malformed or missing input."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        exception_code: int = MISSING_CONTEXT_CODE,
    ) -> None:
        super().__init__(message, status_code)
        self.exception_code = exception_code


class NotFoundError(KSeFProxyError):
    """Exception for unknown sessions, invoices and references."""

    def __init__(
        self,
        message: str,
        status_code: int = 404,
        exception_code: int = NOT_FOUND_CODE,
    ) -> None:
        super().__init__(message, status_code)
        self.exception_code = exception_code


class UpstreamError(KSeFProxyError):
    """Exception for non-2xx responses and transport failures of KSeF."""

    def __init__(
        self, message: str, status_code: int = 502, details: Any = None
    ) -> None:
        super().__init__(message, status_code, details)


class CryptoError(KSeFProxyError):
    """Exception for public key retrieval and token encryption failures."""

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message, 500, details)
