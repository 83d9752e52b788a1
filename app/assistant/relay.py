"""
Chat relay between the fleet UI and the hosted AI gateway.

Each request is stateless:

1. check the gateway credential
2. load the whole fleet (vehicles + maintenances)
3. run the one recognised command, ``ATUALIZAR KM <placa/número> <km>``
4. render the system prompt with the fleet data and the command outcome
5. send system + user messages to the gateway and return the reply verbatim

Upstream 429 and 402 answers surface as their own errors so the API can pass
the status code through; anything else becomes a generic relay error.
"""

import json
import logging
from typing import List, Optional, Tuple

import openai
from langchain_core.messages import HumanMessage, SystemMessage
from sqlalchemy.ext.asyncio import AsyncSession

from core.metrics import track_performance
from core.prometheus_metrics import prometheus_collector
from core.prompt_loader import render_prompt
from models.maintenance import Maintenance
from models.vehicle import Vehicle
from schemas.maintenance import to_maintenance_out
from schemas.vehicle import VehicleOut
from services.maintenance_service import MaintenanceService
from services.vehicle_service import VehicleService

from .commands import mileage_confirmation, parse_mileage_command
from .config import API_KEY_ENV, PROMPT_COMPONENT, PROMPT_VERSION
from .exceptions import (
    ChatRelayError,
    EmptyMessageError,
    GatewayCreditError,
    GatewayError,
    GatewayRateLimitError,
    MissingCredentialError,
)
from .llm_factory import LLMFactory

logger = logging.getLogger(__name__)

COMMAND_RESULT_PREFIX = "IMPORTANTE: Já executei o comando e obtive este resultado: "


class ChatRelay:
    def __init__(
        self,
        db: AsyncSession,
        api_key: Optional[str],
        llm_factory: Optional[LLMFactory] = None,
    ):
        self.db = db
        self._api_key = api_key
        self._llm_factory = llm_factory
        self.vehicles = VehicleService(db)
        self.maintenances = MaintenanceService(db)

    async def fleet_snapshot(self) -> Tuple[List[Vehicle], List[Maintenance]]:
        vehicles = await self.vehicles.list_vehicles()
        maintenances = await self.maintenances.list_maintenances()
        return vehicles, maintenances

    async def apply_command(self, message: str) -> Optional[str]:
        """Executes a mileage update command if the message carries one. Returns the confirmation text."""
        command = parse_mileage_command(message)
        if command is None:
            return None

        vehicle = await self.vehicles.find_by_plate_or_number(command.vehicle_key)
        if vehicle is None:
            logger.warning("Mileage command for unknown vehicle", extra={"vehicle_key": command.vehicle_key})
            return None

        await self.vehicles.update_mileage(vehicle, command.km)
        logger.info(
            "Mileage updated from chat command",
            extra={"vehicle_number": vehicle.vehicle_number, "km_current": command.km},
        )
        return mileage_confirmation(vehicle.vehicle_number, vehicle.license_plate, command.km)

    @staticmethod
    def build_system_prompt(
        vehicles: List[Vehicle],
        maintenances: List[Maintenance],
        command_result: Optional[str] = None,
    ) -> str:
        fleet_data = {
            "vehicles": [VehicleOut.model_validate(v).model_dump(mode="json") for v in vehicles],
            "maintenances": [to_maintenance_out(m).model_dump(mode="json") for m in maintenances],
        }
        return render_prompt(
            PROMPT_COMPONENT,
            "system",
            version=PROMPT_VERSION,
            fleet_data=json.dumps(fleet_data, indent=2, ensure_ascii=False),
            command_result=f"{COMMAND_RESULT_PREFIX}{command_result}" if command_result else "",
        )

    async def _complete(self, system_prompt: str, message: str) -> str:
        factory = self._llm_factory or LLMFactory(api_key=self._api_key)
        llm = factory.get_llm()

        try:
            ai = await llm.ainvoke([
                SystemMessage(content=system_prompt),
                HumanMessage(content=message),
            ])
        except openai.APIStatusError as e:
            logger.error("AI gateway error", extra={"status_code": e.status_code, "error": str(e)})
            if e.status_code == 429:
                raise GatewayRateLimitError() from e
            if e.status_code == 402:
                raise GatewayCreditError() from e
            raise GatewayError(f"AI gateway error: {e.status_code}") from e
        except Exception as e:
            logger.error(f"AI gateway call failed: {e}")
            raise GatewayError(str(e) or e.__class__.__name__) from e

        content = ai.content
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )
        return content

    @track_performance(service_name="ChatRelay")
    async def ask(self, message: str) -> str:
        """
        Answers one user message.

        Raises:
            MissingCredentialError: no gateway API key (500)
            GatewayRateLimitError: upstream 429
            GatewayCreditError: upstream 402
            EmptyMessageError: blank message (422)
            GatewayError: any other failure (500)
        """
        if not message or not message.strip():
            prometheus_collector.record_chat_request("empty_message")
            raise EmptyMessageError()

        if not self._api_key:
            logger.error(f"{API_KEY_ENV} is not configured")
            prometheus_collector.record_chat_request("missing_credential")
            raise MissingCredentialError(API_KEY_ENV)

        try:
            vehicles, maintenances = await self.fleet_snapshot()
            command_result = await self.apply_command(message)
            system_prompt = self.build_system_prompt(vehicles, maintenances, command_result)
            reply = await self._complete(system_prompt, message)
        except ChatRelayError as e:
            prometheus_collector.record_chat_request(e.__class__.__name__, error=e.message)
            raise
        except Exception as e:
            prometheus_collector.record_chat_request("error", error=str(e))
            raise GatewayError(str(e)) from e

        prometheus_collector.record_chat_request("success")
        return reply
