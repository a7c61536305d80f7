"""Fake HTTP responses and a controllable clock shared by the test suites."""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from unittest.mock import MagicMock

BASE_URL = "https://evoliz.test/api"
NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_response(
    status_code: int = 200,
    json_body: Any = None,
    *,
    reason: Optional[str] = None,
    text: Optional[str] = None,
) -> MagicMock:
    """Build an object that quacks like ``requests.Response``."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = reason or {200: "OK", 201: "Created"}.get(status_code, "Error")
    if json_body is None and text is not None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
        response.text = text
    else:
        response.json.return_value = json_body
        response.text = "" if json_body is None else str(json_body)
    return response


def login_response(token: str = "tok1", expires_at: Optional[datetime] = None) -> MagicMock:
    expires_at = expires_at or NOW + timedelta(hours=1)
    return make_response(
        200,
        {
            "access_token": token,
            "expires_at": expires_at.strftime("%Y-%m-%dT%H:%M:%S.000000Z"),
            "scopes": ["admin", "company_users"],
        },
    )


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)
