"""Pytest fixtures: a controllable clock, patched HTTP calls and clients."""

from unittest.mock import patch

import pytest

from evoliz_client import Credentials, EvolizClient, SessionManager
from tests.helpers import BASE_URL, FakeClock, login_response, make_response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_login():
    """Patch the login POST; tests set ``return_value`` or ``side_effect``."""
    with patch("evoliz_client.session.requests.post") as post:
        post.return_value = login_response()
        yield post


@pytest.fixture
def mock_request():
    """Patch the authenticated request function."""
    with patch("evoliz_client.client.requests.request") as request:
        request.return_value = make_response(200, {})
        yield request


@pytest.fixture
def session_manager(clock):
    return SessionManager(
        Credentials(public_key="pub-key", secret_key="sec-key"),
        base_url=BASE_URL,
        clock=clock,
    )


@pytest.fixture
def client(session_manager, mock_login):
    return EvolizClient(base_url=BASE_URL, session_manager=session_manager)
