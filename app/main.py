import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from core.db import create_schema
from core.environment import should_create_schema
from core.logging import setup_logging
from exceptions import register_exception_handlers
from middleware.rate_limit import limiter, rate_limit_exceeded_handler
from routers import chat, dashboard, events, health, maintenances, metrics, notifications, vehicles

setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if should_create_schema():
        await create_schema()
        logger.info("Database schema ensured.")
    yield


app = FastAPI(title="Fleet Manager API", lifespan=lifespan)

# Rate limiting (chat relay)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Register exception handlers
register_exception_handlers(app)

# Permissive CORS, preflight (OPTIONS) answered for any origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(vehicles.router)
app.include_router(maintenances.router)
app.include_router(dashboard.router)
app.include_router(notifications.router)
app.include_router(events.router)
app.include_router(chat.router)
app.include_router(metrics.router)


@app.get("/", tags=["root"])
def hello():
    return {"message": "Fleet Manager API"}
