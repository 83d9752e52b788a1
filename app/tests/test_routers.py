from datetime import date, timedelta

import pytest

VEHICLE = {
    "vehicle_number": "V050",
    "license_plate": "QWE-4321",
    "brand": "Renault",
    "model": "Kwid",
    "year": 2021,
    "km_current": 8000,
}


@pytest.mark.asyncio
async def test_create_and_list_vehicles(async_client):
    response = await async_client.post("/vehicles", json=VEHICLE)
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "Ativo"
    assert body["km_current"] == 8000

    response = await async_client.get("/vehicles", params={"search": "kwid"})
    assert [v["vehicle_number"] for v in response.json()] == ["V050"]


@pytest.mark.asyncio
async def test_duplicate_vehicle_number_conflict(async_client, test_vehicle):
    response = await async_client.post("/vehicles", json={**VEHICLE, "vehicle_number": "V001"})

    assert response.status_code == 409
    assert response.json() == {"error": "duplicate_vehicle_number", "message": "Número de veículo já existe!"}


@pytest.mark.asyncio
async def test_vehicle_form_field_errors(async_client):
    response = await async_client.post("/vehicles", json={**VEHICLE, "license_plate": "  ", "km_current": -5})

    assert response.status_code == 422
    fields = {err["loc"][-1] for err in response.json()["detail"]}
    assert fields == {"license_plate", "km_current"}


@pytest.mark.asyncio
async def test_vehicle_detail_and_status(async_client, test_vehicle, test_scheduled_maintenance):
    response = await async_client.get(f"/vehicles/{test_vehicle.id}")
    assert response.status_code == 200
    detail = response.json()
    assert detail["vehicle"]["vehicle_number"] == "V001"
    assert [m["status"] for m in detail["maintenances"]] == ["Agendado"]
    assert "service_date" not in detail["maintenances"][0]

    response = await async_client.patch(f"/vehicles/{test_vehicle.id}/status", json={"status": "Em Manutenção"})
    assert response.status_code == 200
    assert response.json()["status"] == "Em Manutenção"

    response = await async_client.get("/vehicles/missing")
    assert response.status_code == 404
    assert response.json()["error"] == "vehicle_not_found"


@pytest.mark.asyncio
async def test_retroactive_km_confirmation_flow(async_client, test_vehicle):
    form = {
        "vehicle_id": test_vehicle.id,
        "service_type": "Troca de Óleo",
        "service_date": date.today().isoformat(),
        "km_at_service": 9500,
        "cost": 199.9,
        "attachment_url": "",
    }

    response = await async_client.post("/maintenances/completed", json=form)
    assert response.status_code == 409
    conflict = response.json()
    assert conflict["error"] == "confirmation_required"
    assert conflict["current_km"] == 10000
    assert conflict["submitted_km"] == 9500
    assert (await async_client.get("/maintenances")).json() == []

    response = await async_client.post("/maintenances/completed", json={**form, "confirm_retroactive_km": True})
    assert response.status_code == 201
    created = response.json()
    assert created["status"] == "Concluído"
    assert created["km_at_service"] == 9500
    assert created["attachment_url"] is None
    assert created["vehicle"]["license_plate"] == "ABC-1234"

    vehicle = (await async_client.get(f"/vehicles/{test_vehicle.id}")).json()["vehicle"]
    assert vehicle["km_current"] == 9500


@pytest.mark.asyncio
async def test_completed_form_validation(async_client, test_vehicle):
    response = await async_client.post("/maintenances/completed", json={
        "vehicle_id": test_vehicle.id,
        "service_type": " ",
        "service_date": (date.today() + timedelta(days=1)).isoformat(),
    })
    assert response.status_code == 422
    fields = {err["loc"][-1] for err in response.json()["detail"]}
    assert fields == {"service_type", "service_date"}


@pytest.mark.asyncio
async def test_completed_for_unknown_vehicle(async_client):
    response = await async_client.post("/maintenances/completed", json={
        "vehicle_id": "does-not-exist",
        "service_type": "Revisão",
    })
    assert response.status_code == 422
    assert response.json()["field"] == "vehicle_id"
    assert response.json()["message"] == "Selecione um veículo válido"


@pytest.mark.asyncio
async def test_schedule_and_filter(async_client, test_vehicle):
    response = await async_client.post("/maintenances/scheduled", json={
        "vehicle_id": test_vehicle.id,
        "service_type": "Revisão",
        "scheduled_km": 10200,
    })
    assert response.status_code == 201
    assert response.json()["status"] == "Agendado"

    response = await async_client.post("/maintenances/scheduled", json={
        "vehicle_id": test_vehicle.id,
        "service_type": "Revisão",
        "scheduled_date": "",
    })
    assert response.status_code == 422
    assert [err["loc"][-1] for err in response.json()["detail"]] == ["scheduled_date"]

    assert len((await async_client.get("/maintenances", params={"status": "Agendado"})).json()) == 1
    assert (await async_client.get("/maintenances", params={"status": "Concluído"})).json() == []

    alerts = (await async_client.get("/notifications")).json()
    assert [a["kind"] for a in alerts] == ["km"]
    assert alerts[0]["km_until"] == 200


@pytest.mark.asyncio
async def test_dashboard(async_client, test_vehicle):
    await async_client.post("/maintenances/completed", json={
        "vehicle_id": test_vehicle.id,
        "service_type": "Troca de Óleo",
        "service_date": date.today().isoformat(),
        "km_at_service": 10100,
        "cost": 250,
    })

    stats = (await async_client.get("/dashboard")).json()
    assert stats["total_vehicles"] == 1
    assert stats["total_km"] == 10100
    assert stats["maintenance_cost"] == 250
    assert stats["maintenances_by_type"] == [{"type": "Troca de Óleo", "count": 1}]


@pytest.mark.asyncio
async def test_chat_relay(async_client, test_vehicle, monkeypatch):
    monkeypatch.setenv("AI_GATEWAY_API_KEY", "test-key")

    response = await async_client.post("/chat", json={"message": "ATUALIZAR KM V001 15000"})

    assert response.status_code == 200
    assert response.json() == {"response": "🚗 Resposta do assistente"}
    vehicle = (await async_client.get(f"/vehicles/{test_vehicle.id}")).json()["vehicle"]
    assert vehicle["km_current"] == 15000


@pytest.mark.asyncio
async def test_chat_without_key(async_client, monkeypatch):
    monkeypatch.delenv("AI_GATEWAY_API_KEY", raising=False)

    response = await async_client.post("/chat", json={"message": "STATUS DA FROTA"})

    assert response.status_code == 500
    assert response.json() == {"error": "AI_GATEWAY_API_KEY is not configured"}


@pytest.mark.asyncio
async def test_chat_rejects_blank_message(async_client, monkeypatch):
    monkeypatch.setenv("AI_GATEWAY_API_KEY", "test-key")

    response = await async_client.post("/chat", json={"message": "   "})

    assert response.status_code == 422
    assert response.json() == {"error": "Digite uma mensagem."}


@pytest.mark.asyncio
async def test_attachment_link_kept_as_typed(async_client, test_vehicle):
    form = {"vehicle_id": test_vehicle.id, "service_type": "Revisão"}

    response = await async_client.post("/maintenances/completed", json={**form, "attachment_url": "https://example.com"})
    assert response.status_code == 201
    assert response.json()["attachment_url"] == "https://example.com"

    response = await async_client.post("/maintenances/completed", json={**form, "attachment_url": "ftp://files/nota.pdf"})
    assert response.status_code == 422
    assert [err["loc"][-1] for err in response.json()["detail"]] == ["attachment_url"]
