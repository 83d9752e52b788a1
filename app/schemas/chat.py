from pydantic import BaseModel


class ChatRequest(BaseModel):
    # Blank messages are rejected by ChatRelay.ask
    message: str


class ChatResponse(BaseModel):
    response: str
