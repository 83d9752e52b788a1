from typing import MutableMapping

from api_client import ApiError, FleetApiClient

PENDING_COMPLETED = "pending_completed"
COMPLETED_FLASH = "completed_flash"


def confirm_pending_completed(client: FleetApiClient, state: MutableMapping) -> None:
    """
    Resubmits the held completed-service form with the retroactive km confirmed.

    The pending form is always cleared and the outcome is left as a flash
    message, so the page can rerun straight back to the empty form.
    """
    pending = state.pop(PENDING_COMPLETED, None)
    if pending is None:
        return
    try:
        client.register_completed(pending["data"], confirm_retroactive_km=True)
        state[COMPLETED_FLASH] = ("success", "Manutenção registrada com sucesso!")
    except ApiError as e:
        state[COMPLETED_FLASH] = ("error", e.message)
