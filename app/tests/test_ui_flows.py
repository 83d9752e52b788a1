import json

import httpx

from api_client import FleetApiClient
from flows import COMPLETED_FLASH, PENDING_COMPLETED, confirm_pending_completed

FORM = {"vehicle_id": "v-1", "service_type": "Troca de Óleo", "km_at_service": 9000}


def client_for(handler) -> FleetApiClient:
    return FleetApiClient(base_url="http://fleet.test", transport=httpx.MockTransport(handler))


def test_confirmed_form_is_sent_once_and_cleared():
    bodies = []

    def handler(request: httpx.Request):
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"status": "Concluído"})

    state = {PENDING_COMPLETED: {"data": FORM, "message": "km menor"}}
    confirm_pending_completed(client_for(handler), state)

    assert len(bodies) == 1
    assert bodies[0]["confirm_retroactive_km"] is True
    assert PENDING_COMPLETED not in state
    assert state[COMPLETED_FLASH] == ("success", "Manutenção registrada com sucesso!")


def test_failed_confirmation_still_clears_the_warning():
    def handler(request: httpx.Request):
        return httpx.Response(500, json={"error": "database_error", "message": "db down"})

    state = {PENDING_COMPLETED: {"data": FORM, "message": "km menor"}}
    confirm_pending_completed(client_for(handler), state)

    assert PENDING_COMPLETED not in state
    assert state[COMPLETED_FLASH] == ("error", "db down")


def test_nothing_pending_sends_nothing():
    def handler(request: httpx.Request):
        raise AssertionError("no request expected")

    state = {}
    confirm_pending_completed(client_for(handler), state)
    assert state == {}
