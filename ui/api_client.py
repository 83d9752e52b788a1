import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

import httpx

FLEET_API_URL = os.getenv("FLEET_API_URL", "http://fastapi:8000")

# Synthetic event for SSE comment frames the server sends while idle
KEEP_ALIVE = "keep-alive"


class ApiError(Exception):
    def __init__(self, status_code: int, payload: Any):
        self.status_code = status_code
        self.payload = payload if isinstance(payload, dict) else {"detail": payload}
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return str(
            self.payload.get("message")
            or self.payload.get("error")
            or self.payload.get("detail")
            or f"HTTP {self.status_code}"
        )

    @property
    def confirmation_required(self) -> bool:
        return self.status_code == 409 and self.payload.get("error") == "confirmation_required"

    @property
    def field_errors(self) -> Dict[str, str]:
        """Maps form field -> message for 422 answers (pydantic or business validation)."""
        if self.status_code != 422:
            return {}
        if self.payload.get("field"):
            return {self.payload["field"]: self.payload.get("message", "")}

        errors = {}
        for item in self.payload.get("detail") or []:
            loc = [part for part in item.get("loc", []) if part != "body"]
            field = str(loc[0]) if loc else "__root__"
            errors.setdefault(field, item.get("msg", ""))
        return errors


@dataclass(frozen=True)
class ServerEvent:
    """One Server-Sent Events frame; ``data`` is the decoded JSON payload."""
    event: Optional[str]
    data: Any


class FleetApiClient:
    """Small synchronous client for the Fleet Manager API."""

    def __init__(self, base_url: str = FLEET_API_URL, transport: Optional[httpx.BaseTransport] = None):
        self._client = httpx.Client(base_url=base_url, transport=transport, timeout=None)

    def close(self):
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        response = self._client.request(method, path, **kwargs)
        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
            raise ApiError(response.status_code, payload)
        return response.json()

    # Vehicles
    def list_vehicles(self, search: Optional[str] = None) -> List[dict]:
        params = {"search": search} if search else None
        return self._request("GET", "/vehicles", params=params)

    def create_vehicle(self, data: dict) -> dict:
        return self._request("POST", "/vehicles", json=data)

    def get_vehicle(self, vehicle_id: str) -> dict:
        return self._request("GET", f"/vehicles/{vehicle_id}")

    def update_vehicle_status(self, vehicle_id: str, status: str) -> dict:
        return self._request("PATCH", f"/vehicles/{vehicle_id}/status", json={"status": status})

    # Maintenances
    def list_maintenances(self, status: Optional[str] = None) -> List[dict]:
        params = {"status": status} if status else None
        return self._request("GET", "/maintenances", params=params)

    def register_completed(self, data: dict, confirm_retroactive_km: bool = False) -> dict:
        body = {**data, "confirm_retroactive_km": confirm_retroactive_km}
        return self._request("POST", "/maintenances/completed", json=body)

    def schedule_maintenance(self, data: dict) -> dict:
        return self._request("POST", "/maintenances/scheduled", json=data)

    def chat(self, message: str) -> str:
        return self._request("POST", "/chat", json={"message": message})["response"]

    # Live projections (Server-Sent Events)
    def stream(self, path: str, params: Optional[dict] = None) -> Iterator[ServerEvent]:
        """
        Yields frames from an SSE endpoint until the server closes it.

        The HTTP stream stays open while the generator is suspended and is
        closed as soon as the generator is closed, e.g. by ``contextlib.closing``
        when the page that consumes it stops.
        """
        with self._client.stream("GET", path, params=params,
                                 headers={"Accept": "text/event-stream"}) as response:
            if response.is_error:
                response.read()
                try:
                    payload = response.json()
                except ValueError:
                    payload = response.text
                raise ApiError(response.status_code, payload)

            event, data_lines = None, []
            for line in response.iter_lines():
                if not line:
                    if data_lines:
                        yield ServerEvent(event=event, data=json.loads("\n".join(data_lines)))
                    event, data_lines = None, []
                elif line.startswith(":"):
                    yield ServerEvent(event=KEEP_ALIVE, data=None)
                elif line.startswith("event:"):
                    event = line[len("event:"):].strip()
                elif line.startswith("data:"):
                    data_lines.append(line[len("data:"):].lstrip())
