import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from assistant.exceptions import ChatRelayError
from services.exceptions import FleetDomainError, RetroactiveMileageError

logger = logging.getLogger(__name__)


class ValidationError(HTTPException):
    def __init__(self, message: str, field: str = None):
        detail = {"error": "validation_error", "message": message}
        if field:
            detail["field"] = field
        super().__init__(status_code=422, detail=detail)


async def validation_exception_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation Error",
            "message": exc.detail.get("message", "Validation error"),
            "field": exc.detail.get("field"),
        },
    )


async def domain_exception_handler(request: Request, exc: FleetDomainError):
    content = {"error": exc.error_code, "message": str(exc)}
    if isinstance(exc, RetroactiveMileageError):
        content["current_km"] = exc.current_km
        content["submitted_km"] = exc.submitted_km
    if exc.status_code >= 500:
        logger.error(f"Domain failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=exc.status_code, content=content)


async def chat_relay_exception_handler(request: Request, exc: ChatRelayError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(FleetDomainError, domain_exception_handler)
    app.add_exception_handler(ChatRelayError, chat_relay_exception_handler)
