"""
Custom exception types for the Evoliz API client.

These exceptions allow callers to distinguish between failures
occurring during authentication and those arising from API requests.
"""

from __future__ import annotations

from typing import Any, Optional


class EvolizError(Exception):
    """Base exception for all Evoliz client errors."""


class EvolizAuthError(EvolizError):
    """Raised when the login call fails or returns an unusable token.

    ``status_code``, ``reason`` and ``body`` describe the login response
    when one was received; they are ``None`` for transport failures.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.body = body


class EvolizAPIError(EvolizError):
    """Raised when an HTTP request to the Evoliz API returns an error status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
        url: Optional[str] = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.url = url
        self.body = body
