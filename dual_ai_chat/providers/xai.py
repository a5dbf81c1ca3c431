"""xAI Grok provider (OpenAI-compatible API)."""

from config.config_loader import ModelConfig
from dual_ai_chat.providers.base import ProviderError
from dual_ai_chat.providers.openai_provider import OpenAICompatibleProvider


class XAIProvider(OpenAICompatibleProvider):
    """xAI Grok via its OpenAI-compatible endpoint. base_url is mandatory."""

    label = "xAI"

    def __init__(self, config: ModelConfig) -> None:
        if not config.base_url:
            raise ProviderError(config.name, "base_url is required for xAI provider")
        super().__init__(config)
