import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from models.vehicle import Vehicle, VehicleStatus
from schemas.vehicle import VehicleCreate
from services.exceptions import DatabaseQueryError, DuplicateVehicleNumberError, VehicleNotFoundError
from services.vehicle_service import VehicleService


def payload(**overrides):
    data = {
        "vehicle_number": "V010",
        "license_plate": "XYZ-0001",
        "brand": "Volkswagen",
        "model": "Gol",
        "year": 2022,
        "km_current": 1500,
    }
    data.update(overrides)
    return VehicleCreate(**data)


@pytest.mark.asyncio
async def test_create_vehicle_persists_and_defaults_status(async_db_session):
    vehicle = await VehicleService(async_db_session).create_vehicle(payload())

    assert vehicle.id
    assert vehicle.status == VehicleStatus.ACTIVE.value
    assert vehicle.km_current == 1500
    assert vehicle.created_at is not None


@pytest.mark.asyncio
async def test_duplicate_vehicle_number_is_rejected(async_db_session, test_vehicle):
    svc = VehicleService(async_db_session)

    with pytest.raises(DuplicateVehicleNumberError):
        await svc.create_vehicle(payload(vehicle_number=test_vehicle.vehicle_number))

    count = (await async_db_session.execute(select(func.count()).select_from(Vehicle))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_search_matches_any_text_field(async_db_session, make_vehicle):
    await make_vehicle(vehicle_number="V001", license_plate="ABC-1234", brand="Fiat", model="Uno")
    await make_vehicle(vehicle_number="V002", license_plate="DEF-5678", brand="Chevrolet", model="Onix")
    svc = VehicleService(async_db_session)

    assert [v.vehicle_number for v in await svc.list_vehicles(search="fiat")] == ["V001"]
    assert [v.vehicle_number for v in await svc.list_vehicles(search="def-")] == ["V002"]
    assert [v.vehicle_number for v in await svc.list_vehicles(search="ONIX")] == ["V002"]
    assert len(await svc.list_vehicles(search="  ")) == 2
    assert await svc.list_vehicles(search="tesla") == []


@pytest.mark.asyncio
async def test_get_unknown_vehicle(async_db_session):
    with pytest.raises(VehicleNotFoundError):
        await VehicleService(async_db_session).get_vehicle("missing")


@pytest.mark.asyncio
async def test_update_status(async_db_session, test_vehicle):
    vehicle = await VehicleService(async_db_session).update_status(test_vehicle.id, VehicleStatus.INACTIVE)
    assert vehicle.status == "Inativo"


@pytest.mark.asyncio
async def test_find_by_plate_or_number_is_case_insensitive(async_db_session, test_vehicle):
    svc = VehicleService(async_db_session)

    assert (await svc.find_by_plate_or_number("abc-1234")).id == test_vehicle.id
    assert (await svc.find_by_plate_or_number("v001")).id == test_vehicle.id
    assert await svc.find_by_plate_or_number("ZZZ-0000") is None


@pytest.mark.asyncio
async def test_update_mileage_rejects_negative(async_db_session, test_vehicle):
    with pytest.raises(ValueError):
        await VehicleService(async_db_session).update_mileage(test_vehicle, -1)


@pytest.mark.asyncio
async def test_list_vehicles_wraps_driver_errors(mock_async_session):
    mock_async_session.execute.side_effect = OperationalError("SELECT", {}, Exception("db down"))

    with pytest.raises(DatabaseQueryError):
        await VehicleService(mock_async_session).list_vehicles()


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(async_db_session, make_vehicle):
    await make_vehicle(vehicle_number="V100", license_plate="AAA-0001")
    await make_vehicle(vehicle_number="V200", license_plate="BBB-0002")
    await make_vehicle(vehicle_number="V_3%", license_plate="CCC-0003")
    svc = VehicleService(async_db_session)

    assert [v.vehicle_number for v in await svc.list_vehicles(search="%")] == ["V_3%"]
    assert [v.vehicle_number for v in await svc.list_vehicles(search="_")] == ["V_3%"]
    assert await svc.list_vehicles(search="V1%") == []
