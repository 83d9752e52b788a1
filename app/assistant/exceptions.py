class ChatRelayError(Exception):
    """Base class for chat relay failures. Rendered to the caller as ``{"error": message}``."""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MissingCredentialError(ChatRelayError):
    """Raised when the gateway API key is not configured."""

    def __init__(self, env_var: str):
        super().__init__(f"{env_var} is not configured")


class GatewayRateLimitError(ChatRelayError):
    """Raised when the gateway answers 429."""
    status_code = 429

    def __init__(self):
        super().__init__("Limite de requisições excedido. Por favor, tente novamente mais tarde.")


class GatewayCreditError(ChatRelayError):
    """Raised when the gateway answers 402."""
    status_code = 402

    def __init__(self):
        super().__init__("Créditos insuficientes. Por favor, adicione créditos ao seu workspace.")


class GatewayError(ChatRelayError):
    """Any other upstream or relay failure."""


class EmptyMessageError(ChatRelayError):
    """Raised when the user message is blank."""
    status_code = 422

    def __init__(self):
        super().__init__("Digite uma mensagem.")
