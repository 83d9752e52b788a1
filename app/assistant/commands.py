import re
from dataclasses import dataclass
from typing import Optional

# "ATUALIZAR KM <plate-or-number> <new-km>", anywhere in the message
KM_UPDATE_PATTERN = re.compile(r"atualizar km\s+(\S+)\s+(\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class MileageUpdateCommand:
    vehicle_key: str
    km: int


def parse_mileage_command(message: str) -> Optional[MileageUpdateCommand]:
    match = KM_UPDATE_PATTERN.search(message.strip())
    if not match:
        return None
    vehicle_key, km = match.groups()
    return MileageUpdateCommand(vehicle_key=vehicle_key, km=int(km))


def mileage_confirmation(vehicle_number: str, license_plate: str, km: int) -> str:
    return (
        f"✅ Quilometragem do veículo {vehicle_number} ({license_plate}) "
        f"atualizada para {km} km com sucesso!"
    )
