from types import SimpleNamespace

import pytest

from app.auth.dependencies import get_current_principal, get_optional_principal, require_role
from app.auth.middleware import authenticate_request
from app.auth.jwt import create_access_token
from app.auth.policy import Principal
from app.core.exceptions import Forbidden, Unauthorized

TEACHER = Principal.from_claims("alice", "TEACHER")


class FakeRequest:
    """Just enough of a Starlette request for the auth helpers."""

    def __init__(self, headers=None):
        self.headers = headers or {}
        self.state = SimpleNamespace()
        self.method = "GET"
        self.url = SimpleNamespace(path="/api/students")


def test_optional_principal_defaults_to_none():
    assert get_optional_principal(FakeRequest()) is None


def test_current_principal_requires_one():
    with pytest.raises(Unauthorized):
        get_current_principal(None)
    assert get_current_principal(TEACHER) is TEACHER


def test_require_role():
    assert require_role("admin", "teacher")(TEACHER) is TEACHER

    with pytest.raises(Forbidden):
        require_role("ADMIN")(TEACHER)


def test_authenticate_request_installs_principal():
    token = create_access_token("alice", "teacher")
    request = FakeRequest({"Authorization": f"Bearer {token}"})

    principal = authenticate_request(request)

    assert principal == TEACHER
    assert request.state.principal is principal


def test_authenticate_request_runs_once():
    request = FakeRequest({"Authorization": "Bearer garbage"})
    request.state.principal = TEACHER

    assert authenticate_request(request) is TEACHER


@pytest.mark.parametrize("header", [None, "Bearer ", "Bearer garbage", "Token abc"])
def test_authenticate_request_fails_open(header):
    request = FakeRequest({"Authorization": header} if header else {})

    assert authenticate_request(request) is None
    assert not hasattr(request.state, "principal")
