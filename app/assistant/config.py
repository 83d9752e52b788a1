import os
from typing import Optional

# OpenAI-compatible chat-completions gateway
GATEWAY_URL = os.getenv("AI_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1")
MODEL_ID = os.getenv("AI_MODEL_ID", "google/gemini-2.5-flash")

API_KEY_ENV = "AI_GATEWAY_API_KEY"

# Versioned system prompt under prompts/chat_relay/
PROMPT_COMPONENT = "chat_relay"
PROMPT_VERSION = "1.0.0"


def get_api_key() -> Optional[str]:
    return os.getenv(API_KEY_ENV) or None
