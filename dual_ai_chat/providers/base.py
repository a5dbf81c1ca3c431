"""Abstract base for all model backends."""

from abc import ABC, abstractmethod

from dual_ai_chat.models import EncodedAttachment, ModelResponse


class ProviderError(Exception):
    """Raised when a provider call fails.

    `credentials` marks missing, invalid or rejected API keys.
    """

    def __init__(self, provider_name: str, message: str, credentials: bool = False) -> None:
        self.provider_name = provider_name
        self.credentials = credentials
        super().__init__(f"[{provider_name}] {message}")


class AIProvider(ABC):
    """Abstract base for all model backends."""

    @abstractmethod
    def name(self) -> str:
        """Return the configured model id (e.g. 'gemini-flash', 'grok-3')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_preamble: str | None = None,
        suppress_reasoning: bool = False,
        attachment: EncodedAttachment | None = None,
        timeout_sec: float | None = None,
    ) -> ModelResponse:
        """Generate a complete response for the given prompt.

        Args:
            prompt: The full prompt text to send.
            system_preamble: Persona system instruction, if any.
            suppress_reasoning: Ask the backend for its fastest, least
                deliberative mode.
            attachment: Optional image to send before the text.
            timeout_sec: Overrides the configured timeout for this call.

        Returns:
            ModelResponse dataclass with content and metadata.

        Raises:
            ProviderError: On API failure, timeout, or invalid response.
        """
        ...
