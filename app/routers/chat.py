from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from assistant.config import get_api_key
from assistant.llm_factory import LLMFactory
from assistant.relay import ChatRelay
from core.db import get_db
from middleware.rate_limit import CHAT_RATE_LIMIT, limiter
from schemas.chat import ChatRequest, ChatResponse

router = APIRouter(tags=["chat"])


def get_llm_factory() -> Optional[LLMFactory]:
    """Override point for tests; ``None`` lets the relay build the gateway client."""
    return None


@router.post("/chat", response_model=ChatResponse)
@limiter.limit(CHAT_RATE_LIMIT)
async def chat(
    request: Request,
    payload: ChatRequest,
    db: AsyncSession = Depends(get_db),
    llm_factory: Optional[LLMFactory] = Depends(get_llm_factory),
):
    """
    Natural-language questions over the fleet data.

    Errors are returned as ``{"error": ...}`` with 422 (blank message), 429 (rate limited),
    402 (no gateway credit) or 500 (anything else).
    """
    relay = ChatRelay(db=db, api_key=get_api_key(), llm_factory=llm_factory)
    reply = await relay.ask(payload.message)
    return ChatResponse(response=reply)
