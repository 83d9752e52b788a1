from fastapi import Request
from fastapi.responses import JSONResponse
from prometheus_client import Counter
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from core.environment import get_chat_rate_limit
from core.prometheus_metrics import REGISTRY

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["100/minute"]  # Global default
)

CHAT_RATE_LIMIT = get_chat_rate_limit()

# Metric for monitoring
rate_limit_exceeded_counter = Counter(
    'fleet_rate_limit_exceeded_total',
    'Total rate limit violations',
    ['endpoint'],
    registry=REGISTRY
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    rate_limit_exceeded_counter.labels(endpoint=request.url.path).inc()
    return JSONResponse(
        status_code=429,
        content={"error": "Limite de requisições excedido. Por favor, tente novamente mais tarde."},
    )
