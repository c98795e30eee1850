"""
Tests for the session manager and the API client's authorization-failure policy.
"""

import asyncio

import httpx
import pytest

from hms_console.core.exceptions import AuthorizationFailure, TransportFailure
from hms_console.models.user import Role
from hms_console.services.api_client import HospitalApiClient
from hms_console.services.rbac import RouteDecision, guard_route
from hms_console.services.session_service import SessionManager

from conftest import auth_ok, profile_ok


@pytest.fixture
def session(api, storage, notifier):
    return SessionManager(api, storage, notifier)


# ── initialize ───────────────────────────────────────────────────────

def test_initialize_without_token_skips_profile(session, fake_api):
    asyncio.run(session.initialize())
    assert session.identity is None
    assert session.loading is False
    assert fake_api.calls == []


def test_initialize_restores_identity_and_attaches_bearer(session, storage, fake_api):
    storage.set_item("token", "stored-tok")
    fake_api.set("GET", "/auth/profile", body=profile_ok("Doctor"))

    asyncio.run(session.initialize())

    assert session.identity.role == Role.DOCTOR
    assert session.is_authenticated
    req = fake_api.calls_to("GET", "/auth/profile")[0]
    assert req.headers["Authorization"] == "Bearer stored-tok"


def test_initialize_with_rejected_token_clears_everything(session, storage, fake_api, api):
    storage.set_item("token", "expired")
    fake_api.set("GET", "/auth/profile", status=401, body={"success": False, "message": "Token expired"})

    asyncio.run(session.initialize())

    assert session.identity is None
    assert storage.get_item("token") is None
    assert api.credential.token is None
    assert not session.is_authenticated
    assert session.loading is False
    assert guard_route(session.identity, {Role.ADMIN}) == RouteDecision.REDIRECT_LOGIN


def test_initialize_with_unsuccessful_envelope_discards_token(session, storage, fake_api):
    storage.set_item("token", "odd")
    fake_api.set("GET", "/auth/profile", body={"success": False})

    asyncio.run(session.initialize())

    assert session.identity is None
    assert storage.get_item("token") is None


def test_initialize_transport_failure_discards_token(storage, notifier):
    def boom(request):
        raise httpx.ConnectError("refused", request=request)

    api = HospitalApiClient(storage, base_url="http://hospital.test/api", transport=httpx.MockTransport(boom))
    storage.set_item("token", "tok")
    session = SessionManager(api, storage, notifier)

    asyncio.run(session.initialize())

    assert session.identity is None
    assert storage.get_item("token") is None
    assert session.loading is False


# ── login / register ─────────────────────────────────────────────────

def test_login_success_stores_token_and_identity(session, storage, fake_api, notifier):
    fake_api.set("POST", "/auth/login", body=auth_ok("Receptionist", token="fresh"))

    result = asyncio.run(session.login("r@example.com", "pw"))

    assert result.success
    assert result.user.role == Role.RECEPTIONIST
    assert storage.get_item("token") == "fresh"
    assert session.api.credential.token == "fresh"
    assert session.is_authenticated
    assert [n.message for n in notifier.drain()] == ["Login successful"]


def test_login_sends_no_bearer_even_with_stale_token(session, storage, fake_api, api):
    api.credential.attach("old")
    fake_api.set("POST", "/auth/login", body=auth_ok())

    asyncio.run(session.login("a@example.com", "pw"))

    req = fake_api.calls_to("POST", "/auth/login")[0]
    assert "Authorization" not in req.headers
    assert fake_api.body_of(req) == {"email": "a@example.com", "password": "pw"}


def test_login_failure_uses_server_message(session, fake_api, notifier):
    fake_api.set("POST", "/auth/login", status=401, body={"success": False, "message": "Invalid credentials"})

    result = asyncio.run(session.login("a@example.com", "bad"))

    assert not result.success
    assert result.error == "Invalid credentials"
    assert session.identity is None
    assert notifier.drain()[0].level == "error"


def test_login_failure_default_message(session, fake_api):
    fake_api.set("POST", "/auth/login", status=500, body=None)

    result = asyncio.run(session.login("a@example.com", "pw"))

    assert result.error == "Login failed. Please try again."


def test_login_401_does_not_trigger_global_clearing(session, storage, fake_api):
    storage.set_item("token", "keep-me")
    fake_api.set("POST", "/auth/login", status=401, body={"message": "nope"})

    asyncio.run(session.login("a@example.com", "pw"))

    assert storage.get_item("token") == "keep-me"


def test_register_success_and_failure(session, fake_api):
    fake_api.set("POST", "/auth/register", body=auth_ok("Patient", token="reg"))
    ok = asyncio.run(session.register({"name": "P", "email": "p@example.com", "password": "pw"}))
    assert ok.success and ok.user.role == Role.PATIENT

    session.logout()
    fake_api.set("POST", "/auth/register", status=400, body={})
    bad = asyncio.run(session.register({"name": "P", "email": "p@example.com", "password": "pw"}))
    assert bad.error == "Registration failed"
    assert session.identity is None


# ── logout / profile ─────────────────────────────────────────────────

def test_logout_is_local_and_synchronous(session, storage, fake_api):
    fake_api.set("POST", "/auth/login", body=auth_ok())
    asyncio.run(session.login("a@example.com", "pw"))
    calls_before = len(fake_api.calls)

    session.logout()

    assert session.identity is None
    assert storage.get_item("token") is None
    assert session.api.credential.token is None
    assert len(fake_api.calls) == calls_before


def test_update_profile_replaces_identity(session, fake_api):
    fake_api.set("POST", "/auth/login", body=auth_ok())
    asyncio.run(session.login("a@example.com", "pw"))
    updated = profile_ok()
    updated["data"]["name"] = "Ada L."
    fake_api.set("PUT", "/auth/profile", body=updated)

    result = asyncio.run(session.update_profile({"name": "Ada L."}))

    assert result.success
    assert session.identity.name == "Ada L."


def test_update_profile_failure_keeps_identity(session, fake_api):
    fake_api.set("POST", "/auth/login", body=auth_ok())
    asyncio.run(session.login("a@example.com", "pw"))
    fake_api.set("PUT", "/auth/profile", status=422, body={"message": "Email taken"})

    result = asyncio.run(session.update_profile({"email": "x@example.com"}))

    assert result.error == "Email taken"
    assert session.identity.name == "Ada"


# ── derived state ────────────────────────────────────────────────────

def test_is_authenticated_needs_token_and_identity(session, storage, fake_api):
    fake_api.set("POST", "/auth/login", body=auth_ok())
    asyncio.run(session.login("a@example.com", "pw"))

    storage.remove_item("token")  # identity still set

    assert session.identity is not None
    assert not session.is_authenticated


def test_has_role(session, fake_api):
    assert not session.has_role(["Admin"])
    fake_api.set("POST", "/auth/login", body=auth_ok("Nurse"))
    asyncio.run(session.login("n@example.com", "pw"))
    assert session.has_role("Nurse")
    assert session.has_role({Role.NURSE, Role.DOCTOR})
    assert not session.has_role(["Admin", "Doctor"])


# ── global 401 policy ────────────────────────────────────────────────

def test_any_401_clears_credential_and_identity(session, storage, fake_api, api):
    fake_api.set("POST", "/auth/login", body=auth_ok())
    asyncio.run(session.login("a@example.com", "pw"))
    fake_api.set("GET", "/bills", status=401, body={"message": "expired"})

    with pytest.raises(AuthorizationFailure):
        asyncio.run(api.list_bills())

    assert storage.get_item("token") is None
    assert api.credential.token is None
    assert session.identity is None
    assert not session.is_authenticated


def test_each_call_carries_credential_current_at_dispatch(api, fake_api):
    fake_api.set("GET", "/patients", body={"data": []})

    api.credential.attach("first")
    asyncio.run(api.list_patients())
    api.credential.attach("second")
    asyncio.run(api.list_patients())

    headers = [r.headers["Authorization"] for r in fake_api.calls_to("GET", "/patients")]
    assert headers == ["Bearer first", "Bearer second"]


def test_transport_failure_is_typed(storage):
    def boom(request):
        raise httpx.ConnectError("refused", request=request)

    api = HospitalApiClient(storage, base_url="http://hospital.test/api", transport=httpx.MockTransport(boom))

    with pytest.raises(TransportFailure) as e:
        asyncio.run(api.list_patients())
    assert e.value.status_code is None


@pytest.mark.parametrize("error", [httpx.DecodingError, httpx.TooManyRedirects, httpx.ReadTimeout])
def test_any_request_error_is_typed(storage, error):
    def broken(request):
        raise error("broken response", request=request)

    api = HospitalApiClient(storage, base_url="http://hospital.test/api", transport=httpx.MockTransport(broken))

    with pytest.raises(TransportFailure):
        asyncio.run(api.list_patients())


def test_initialize_discards_token_on_undecodable_profile(storage, notifier):
    def corrupt(request):
        raise httpx.DecodingError("Error -3 while decompressing data", request=request)

    api = HospitalApiClient(storage, base_url="http://hospital.test/api", transport=httpx.MockTransport(corrupt))
    storage.set_item("token", "stale")
    session = SessionManager(api, storage, notifier)

    asyncio.run(session.initialize())

    assert storage.get_item("token") is None
    assert session.identity is None
    assert session.loading is False
