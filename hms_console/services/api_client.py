"""Async client for the remote hospital REST API.

The bearer header is built per request from the shared Credential, so a call
carries whatever token was current when it was dispatched. Authenticated calls
that come back 401 clear the stored token and the credential before the error
reaches the caller.
"""
import logging
from collections.abc import Callable
from datetime import date
from typing import Any

import httpx

from hms_console.core.config import settings
from hms_console.core.exceptions import ApiError, AuthorizationFailure, TransportFailure
from hms_console.core.storage import ClientStorage
from hms_console.models.appointment import AvailableSlot

logger = logging.getLogger(__name__)


class Credential:
    def __init__(self, token: str | None = None) -> None:
        self.token = token

    def attach(self, token: str) -> None:
        self.token = token

    def clear(self) -> None:
        self.token = None

    def headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}


def _clean_params(params: dict[str, Any] | None) -> dict[str, Any] | None:
    """Drop empty filters; booleans go out as true/false like a browser query string."""
    if not params:
        return None
    out: dict[str, Any] = {}
    for key, value in params.items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif isinstance(value, date):
            value = value.isoformat()
        out[key] = value
    return out or None


class HospitalApiClient:
    def __init__(
        self,
        storage: ClientStorage,
        base_url: str | None = None,
        token_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ) -> None:
        self.storage = storage
        self.token_key = token_key or settings.token_storage_key
        self.credential = Credential()
        self._unauthorized_listeners: list[Callable[[], None]] = []
        base = (base_url or settings.api_base_url).rstrip("/") + "/"
        self._http = httpx.AsyncClient(
            base_url=base,
            headers={"Content-Type": "application/json"},
            transport=transport,
            timeout=timeout if timeout is not None else settings.request_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    def on_unauthorized(self, listener: Callable[[], None]) -> None:
        self._unauthorized_listeners.append(listener)

    def _handle_unauthorized(self) -> None:
        self.storage.remove_item(self.token_key)
        self.credential.clear()
        for listener in self._unauthorized_listeners:
            listener()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        authenticated: bool = True,
    ) -> Any:
        headers = self.credential.headers() if authenticated else {}
        try:
            resp = await self._http.request(
                method,
                path.lstrip("/"),
                params=_clean_params(params),
                json=json,
                headers=headers,
            )
        except httpx.RequestError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransportFailure(f"{type(e).__name__}: {e}") from e

        try:
            body = resp.json() if resp.content else None
        except ValueError:
            body = None

        if resp.status_code == 401 and authenticated:
            logger.info("%s %s returned 401; discarding stored credential", method, path)
            self._handle_unauthorized()
            raise AuthorizationFailure("Unauthorized", status_code=401, payload=body)
        if resp.is_error:
            logger.warning(
                "%s %s failed: status=%s body=%s", method, path, resp.status_code, resp.text[:500]
            )
            message = body.get("message") if isinstance(body, dict) else None
            raise ApiError(message or f"HTTP {resp.status_code}", status_code=resp.status_code, payload=body)
        return body

    # --- auth ---

    async def login(self, email: str, password: str) -> Any:
        return await self.request(
            "POST", "/auth/login", json={"email": email, "password": password}, authenticated=False
        )

    async def register(self, fields: dict[str, Any]) -> Any:
        return await self.request("POST", "/auth/register", json=fields, authenticated=False)

    async def get_profile(self) -> Any:
        return await self.request("GET", "/auth/profile")

    async def update_profile(self, fields: dict[str, Any]) -> Any:
        return await self.request("PUT", "/auth/profile", json=fields)

    # --- patients ---

    async def list_patients(self, params: dict[str, Any] | None = None) -> list[dict]:
        return _data(await self.request("GET", "/patients", params=params))

    async def get_patient(self, patient_id: str) -> Any:
        return await self.request("GET", f"/patients/{patient_id}")

    async def create_patient(self, data: dict[str, Any]) -> Any:
        return await self.request("POST", "/patients", json=data)

    async def update_patient(self, patient_id: str, data: dict[str, Any]) -> Any:
        return await self.request("PUT", f"/patients/{patient_id}", json=data)

    async def delete_patient(self, patient_id: str) -> Any:
        return await self.request("DELETE", f"/patients/{patient_id}")

    async def get_patient_stats(self) -> dict:
        return _stats(await self.request("GET", "/patients/stats"))

    # --- doctors ---

    async def list_doctors(self, params: dict[str, Any] | None = None) -> list[dict]:
        return _data(await self.request("GET", "/doctors", params=params))

    async def get_doctor(self, doctor_id: str) -> Any:
        return await self.request("GET", f"/doctors/{doctor_id}")

    async def create_doctor(self, data: dict[str, Any]) -> Any:
        return await self.request("POST", "/doctors", json=data)

    async def update_doctor(self, doctor_id: str, data: dict[str, Any]) -> Any:
        return await self.request("PUT", f"/doctors/{doctor_id}", json=data)

    async def delete_doctor(self, doctor_id: str) -> Any:
        return await self.request("DELETE", f"/doctors/{doctor_id}")

    async def get_available_slots(self, doctor_id: str, day: date) -> list[AvailableSlot]:
        body = await self.request(
            "GET", f"/doctors/{doctor_id}/available-slots", params={"date": day}
        )
        return [AvailableSlot.model_validate(s) for s in _data(body)]

    async def get_doctor_stats(self) -> dict:
        return _stats(await self.request("GET", "/doctors/stats"))

    # --- appointments ---

    async def list_appointments(self, params: dict[str, Any] | None = None) -> list[dict]:
        return _data(await self.request("GET", "/appointments", params=params))

    async def get_appointment(self, appointment_id: str) -> Any:
        return await self.request("GET", f"/appointments/{appointment_id}")

    async def create_appointment(self, data: dict[str, Any]) -> Any:
        return await self.request("POST", "/appointments", json=data)

    async def update_appointment(self, appointment_id: str, data: dict[str, Any]) -> Any:
        return await self.request("PUT", f"/appointments/{appointment_id}", json=data)

    async def set_appointment_status(self, appointment_id: str, status: str) -> Any:
        return await self.update_appointment(appointment_id, {"status": status})

    async def delete_appointment(self, appointment_id: str) -> Any:
        return await self.request("DELETE", f"/appointments/{appointment_id}")

    async def get_appointment_stats(self) -> dict:
        return _stats(await self.request("GET", "/appointments/stats"))

    # --- bills ---

    async def list_bills(self, params: dict[str, Any] | None = None) -> list[dict]:
        return _data(await self.request("GET", "/bills", params=params))

    async def get_bill(self, bill_id: str) -> Any:
        return await self.request("GET", f"/bills/{bill_id}")

    async def create_bill(self, data: dict[str, Any]) -> Any:
        return await self.request("POST", "/bills", json=data)

    async def update_bill(self, bill_id: str, data: dict[str, Any]) -> Any:
        return await self.request("PUT", f"/bills/{bill_id}", json=data)

    async def delete_bill(self, bill_id: str) -> Any:
        return await self.request("DELETE", f"/bills/{bill_id}")

    async def record_payment(self, bill_id: str, data: dict[str, Any]) -> Any:
        return await self.request("POST", f"/bills/{bill_id}/payments", json=data)

    async def get_bill_stats(self) -> dict:
        return _stats(await self.request("GET", "/bills/stats"))

    # --- inventory ---

    async def list_inventory(self, params: dict[str, Any] | None = None) -> list[dict]:
        return _data(await self.request("GET", "/inventory", params=params))

    async def get_inventory_item(self, item_id: str) -> Any:
        return await self.request("GET", f"/inventory/{item_id}")

    async def create_inventory_item(self, data: dict[str, Any]) -> Any:
        return await self.request("POST", "/inventory", json=data)

    async def update_inventory_item(self, item_id: str, data: dict[str, Any]) -> Any:
        return await self.request("PUT", f"/inventory/{item_id}", json=data)

    async def delete_inventory_item(self, item_id: str) -> Any:
        return await self.request("DELETE", f"/inventory/{item_id}")

    async def restock_inventory_item(self, item_id: str, data: dict[str, Any]) -> Any:
        return await self.request("PUT", f"/inventory/{item_id}/restock", json=data)

    async def get_inventory_stats(self) -> dict:
        return _stats(await self.request("GET", "/inventory/stats"))

    # --- reports ---

    async def list_reports(self, params: dict[str, Any] | None = None) -> list[dict]:
        return _data(await self.request("GET", "/reports", params=params))

    async def generate_report(self, data: dict[str, Any]) -> Any:
        return await self.request("POST", "/reports/generate", json=data)


def _data(body: Any) -> list:
    """Unwrap the {data: [...]} list envelope; anything else reads as empty."""
    if isinstance(body, dict) and isinstance(body.get("data"), list):
        return body["data"]
    return []


def _stats(body: Any) -> dict:
    if isinstance(body, dict) and isinstance(body.get("data"), dict):
        return body["data"]
    return {}
