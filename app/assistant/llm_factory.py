from langchain_openai import ChatOpenAI

from .config import GATEWAY_URL, MODEL_ID


class LLMFactory:
    """Builds the chat model client for the hosted AI gateway."""

    def __init__(self, api_key: str, base_url: str = GATEWAY_URL, model: str = MODEL_ID):
        self._api_key = api_key
        self._base_url = base_url
        self._model = model

    def get_llm(self):
        # Upstream 429/402 must reach the caller unchanged, so no client-side retries
        return ChatOpenAI(
            model=self._model,
            base_url=self._base_url,
            api_key=self._api_key,
            max_retries=0,
        )
