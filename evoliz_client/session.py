"""
Bearer token management for the Evoliz API.

The provider issues short-lived bearer tokens from ``POST login`` in
exchange for a company's public and secret API keys.  The
:class:`SessionManager` owns the current token and its expiry, logs in
again only when the token is missing or expired, and serialises
concurrent refreshes so that callers racing at expiry time share a
single login call.

Usage
-----

.. code-block:: python

    from evoliz_client import Credentials, SessionManager

    manager = SessionManager(
        Credentials(public_key="pub", secret_key="secret"),
        base_url="https://www.evoliz.io/api",
    )
    handle = manager.ensure_valid()  # fails fast on bad credentials
    token = handle.get_token()
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import requests

from .exceptions import EvolizAuthError

REDACTED = "***"
_SECRET_FIELDS = {"secret_key", "access_token", "authorization", "password"}


def redact(payload: Any) -> Any:
    """Return a copy of ``payload`` safe for logging.

    Values stored under secret field names are masked at any depth.
    """
    if isinstance(payload, dict):
        return {
            key: REDACTED if str(key).lower() in _SECRET_FIELDS else redact(value)
            for key, value in payload.items()
        }
    if isinstance(payload, list):
        return [redact(item) for item in payload]
    return payload


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_expiry(value: str) -> datetime:
    """Parse the provider's ``expires_at`` timestamp into an aware UTC datetime."""
    if not isinstance(value, str) or not value:
        raise ValueError("expires_at must be a non-empty string, got %r" % (value,))
    # fromisoformat does not accept a trailing 'Z' on older interpreters
    iso_str = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(iso_str)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class Credentials:
    """Evoliz API key pair."""

    public_key: str
    secret_key: str = field(repr=False)

    def __post_init__(self) -> None:
        if not self.public_key:
            raise ValueError("public_key must be provided")
        if not self.secret_key:
            raise ValueError("secret_key must be provided")


@dataclass
class Session:
    """The current bearer token and the instant it stops being usable."""

    access_token: Optional[str] = field(default=None, repr=False)
    expires_at: datetime = field(default_factory=_utcnow)

    def is_valid(self, now: datetime, margin: float = 0.0) -> bool:
        """A token is usable only strictly before ``expires_at``."""
        if not self.access_token:
            return False
        return now < self.expires_at - timedelta(seconds=margin)


class SessionHandle:
    """Deferred access to a manager's token, returned by :meth:`SessionManager.ensure_valid`."""

    def __init__(self, manager: "SessionManager") -> None:
        self._manager = manager

    def get_token(self) -> str:
        return self._manager.get_token()

    __call__ = get_token


class SessionManager:
    """Produce a currently valid bearer token on demand.

    Parameters
    ----------
    credentials : Credentials
        The company's public and secret API keys.
    base_url : str
        Root of the Evoliz API (without the version segment).  The login
        endpoint is ``{base_url}/login``.
    timeout : float, optional
        Timeout in seconds for the login request.
    logger : logging.Logger, optional
        Logger receiving login decisions.  Defaults to this module's
        logger, which is silent unless the application configures it.
    clock : callable, optional
        Returns the current time as an aware datetime.  Mostly useful in
        tests.
    expiry_margin : float, optional
        Seconds before ``expires_at`` at which the token is already
        treated as expired.  Defaults to ``0``: expiry is exact.

    Notes
    -----
    The check-then-refresh sequence runs under a lock.  When several
    threads find the token expired at the same time, the first one logs
    in and the others reuse its token instead of logging in again.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        base_url: str,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        expiry_margin: float = 0.0,
    ) -> None:
        if not base_url:
            raise ValueError("base_url must be provided")
        if expiry_margin < 0:
            raise ValueError("expiry_margin must not be negative, got %r" % expiry_margin)
        self.credentials = credentials
        self.login_url = f"{base_url.rstrip('/')}/login"
        self.timeout = timeout
        self.expiry_margin = expiry_margin
        self.logger = logger or logging.getLogger(__name__)
        self._clock = clock or _utcnow
        self._session = Session(expires_at=self._clock())
        self._lock = threading.Lock()

    @property
    def session(self) -> Session:
        return self._session

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get_token(self) -> str:
        """Return a valid access token, logging in first if needed.

        Raises
        ------
        EvolizAuthError
            If the login call fails or its response lacks a usable token.
        """
        with self._lock:
            if self._session.is_valid(self._clock(), self.expiry_margin):
                self.logger.debug(
                    "Reusing Evoliz token valid until %s",
                    self._session.expires_at.isoformat(),
                )
                assert self._session.access_token is not None
                return self._session.access_token
            if self._session.access_token:
                self.logger.info(
                    "Evoliz token expired at %s, logging in again",
                    self._session.expires_at.isoformat(),
                )
            else:
                self.logger.info("No Evoliz token yet, logging in")
            self._session = self._login()
            assert self._session.access_token is not None
            return self._session.access_token

    def ensure_valid(self) -> SessionHandle:
        """Log in now if needed and return a handle for later token lookups."""
        self.get_token()
        return SessionHandle(self)

    def invalidate(self) -> None:
        """Forget the current token; the next :meth:`get_token` logs in."""
        with self._lock:
            self._session = Session(expires_at=self._clock())

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------
    def _login(self) -> Session:
        """POST the key pair to the login endpoint and build a new session."""
        payload = {
            "public_key": self.credentials.public_key,
            "secret_key": self.credentials.secret_key,
        }
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        self.logger.debug("POST %s %s", self.login_url, redact(payload))
        try:
            response = requests.post(
                self.login_url, json=payload, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            self.logger.error("Could not reach Evoliz login endpoint: %s", exc)
            raise EvolizAuthError(f"Failed to connect to {self.login_url}: {exc}") from exc

        try:
            body: Any = response.json()
        except ValueError:
            body = response.text

        if not response.ok:
            self.logger.error(
                "Evoliz login failed with status %s %s", response.status_code, response.reason
            )
            raise EvolizAuthError(
                f"Authentication failed with status {response.status_code} "
                f"{response.reason}: {redact(body)}",
                status_code=response.status_code,
                reason=response.reason,
                body=body,
            )

        access_token = body.get("access_token") if isinstance(body, dict) else None
        raw_expiry = body.get("expires_at") if isinstance(body, dict) else None
        if not access_token or not raw_expiry:
            raise EvolizAuthError(
                f"Authentication response with status {response.status_code} "
                f"{response.reason} did not contain access_token and expires_at: {redact(body)}",
                status_code=response.status_code,
                reason=response.reason,
                body=body,
            )
        try:
            expires_at = parse_expiry(raw_expiry)
        except ValueError as exc:
            raise EvolizAuthError(
                f"Authentication response with status {response.status_code} "
                f"{response.reason} has an invalid expires_at: {redact(body)}",
                status_code=response.status_code,
                reason=response.reason,
                body=body,
            ) from exc

        self.logger.info("Logged in to Evoliz, token valid until %s", expires_at.isoformat())
        return Session(access_token=access_token, expires_at=expires_at)
