import json

import httpx
import pytest

from hms_console.core.notifications import Notifier
from hms_console.core.storage import MemoryClientStorage
from hms_console.services.api_client import HospitalApiClient

BASE_URL = "http://hospital.test/api"


# ── Helpers / Fakes ──────────────────────────────────────────────────

class FakeHospitalApi:
    """Routes (method, path) to canned JSON or a handler; records every request."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def set(self, method, path, status=200, body=None):
        self.routes[(method, path)] = (status, body)

    def on(self, method, path, handler):
        self.routes[(method, path)] = handler

    def handler(self, request):
        self.calls.append(request)
        path = request.url.path.removeprefix("/api")
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"success": False, "message": "Not found"})
        if callable(route):
            return route(request)
        status, body = route
        return httpx.Response(status, json=body)

    def calls_to(self, method, path):
        return [
            r for r in self.calls
            if r.method == method and r.url.path.removeprefix("/api") == path
        ]

    @staticmethod
    def body_of(request):
        return json.loads(request.content.decode()) if request.content else None


def user_record(role="Admin", uid="u1", name="Ada"):
    return {"_id": uid, "name": name, "email": f"{uid}@example.com", "role": role}


def auth_ok(role="Admin", token="tok-1", uid="u1"):
    return {"success": True, "data": {"user": user_record(role, uid), "token": token}}


def profile_ok(role="Admin", uid="u1"):
    return {"success": True, "data": user_record(role, uid)}


@pytest.fixture
def fake_api():
    return FakeHospitalApi()


@pytest.fixture
def storage():
    return MemoryClientStorage()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def api(fake_api, storage):
    return HospitalApiClient(
        storage,
        base_url=BASE_URL,
        token_key="token",
        transport=httpx.MockTransport(fake_api.handler),
    )
