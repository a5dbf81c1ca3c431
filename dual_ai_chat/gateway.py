"""Uniform model call contract in front of the concrete providers."""

import logging
import os
import time
from collections.abc import Callable

from config.config_loader import ModelConfig
from dual_ai_chat.models import EncodedAttachment, GatewayResponse
from dual_ai_chat.providers.base import AIProvider, ProviderError
from dual_ai_chat.providers.gemini import GeminiProvider
from dual_ai_chat.providers.openai_provider import OpenAICompatibleProvider
from dual_ai_chat.providers.xai import XAIProvider

logger = logging.getLogger(__name__)

# Every credential failure carries this text in GatewayResponse.error
CREDENTIALS_ERROR = "API key not valid"

_TIMEOUT_RETRY_FACTOR = 1.5

ProviderFactory = Callable[[ModelConfig], AIProvider]

PROVIDER_CLASSES: dict[str, ProviderFactory] = {
    "gemini": GeminiProvider,
    "openai": OpenAICompatibleProvider,
    "xai": XAIProvider,
}


def is_credentials_error(error: str | None) -> bool:
    return bool(error) and CREDENTIALS_ERROR in error


class ModelGateway:
    """Routes calls by model id and reports failures instead of raising them.

    Providers are built lazily and cached, so a missing key for one backend
    does not stop the others from working.
    """

    def __init__(
        self,
        models: dict[str, ModelConfig],
        provider_classes: dict[str, ProviderFactory] | None = None,
        providers: dict[str, AIProvider] | None = None,
    ) -> None:
        self._models = models
        self._provider_classes = provider_classes if provider_classes is not None else PROVIDER_CLASSES
        self._providers: dict[str, AIProvider] = dict(providers or {})

    @property
    def model_ids(self) -> list[str]:
        return list(self._models)

    def model_config(self, model_id: str) -> ModelConfig | None:
        return self._models.get(model_id)

    def display_name(self, model_id: str) -> str:
        cfg = self._models.get(model_id)
        return cfg.display_name if cfg else model_id

    def supports_thinking_budget(self, model_id: str) -> bool:
        cfg = self._models.get(model_id)
        return bool(cfg and cfg.supports_thinking_budget)

    def has_credentials(self, model_id: str) -> bool:
        if model_id in self._providers:
            return True
        cfg = self._models.get(model_id)
        return bool(cfg and os.environ.get(cfg.api_key_env, "").strip())

    def _provider(self, model_id: str) -> AIProvider:
        if model_id in self._providers:
            return self._providers[model_id]
        cfg = self._models[model_id]
        factory = self._provider_classes.get(cfg.sdk)
        if factory is None:
            raise ProviderError(model_id, f"Unsupported provider sdk: {cfg.sdk}")
        provider = factory(cfg)
        self._providers[model_id] = provider
        return provider

    def _credentials_response(self, model_id: str, exc: ProviderError, elapsed_ms: float) -> GatewayResponse:
        cfg = self._models[model_id]
        return GatewayResponse(
            text=(
                f"API key not valid or missing for {cfg.display_name}. "
                f"Please check the {cfg.api_key_env} environment variable."
            ),
            elapsed_ms=elapsed_ms,
            error=f"{CREDENTIALS_ERROR}: {exc}",
        )

    async def generate(
        self,
        prompt: str,
        model_id: str,
        system_preamble: str | None = None,
        suppress_extended_reasoning: bool = False,
        attachment: EncodedAttachment | None = None,
    ) -> GatewayResponse:
        """Call `model_id` once, retrying a timeout once with 1.5x the timeout.

        Never raises for ordinary failures: `error` is populated and `text`
        holds a readable message.
        """
        start = time.monotonic()

        def elapsed() -> float:
            return (time.monotonic() - start) * 1000

        if model_id not in self._models:
            return GatewayResponse(
                text=f"Model {model_id} not found.",
                elapsed_ms=elapsed(),
                error=f"Model {model_id} not found",
            )

        try:
            provider = self._provider(model_id)
        except ProviderError as exc:
            logger.warning("Cannot create provider for %s: %s", model_id, exc)
            if exc.credentials:
                return self._credentials_response(model_id, exc, elapsed())
            return GatewayResponse(text=f"Error communicating with AI: {exc}", elapsed_ms=elapsed(), error=str(exc))

        async def call(timeout_sec: float | None = None) -> str:
            response = await provider.generate(
                prompt,
                system_preamble=system_preamble,
                suppress_reasoning=suppress_extended_reasoning,
                attachment=attachment,
                timeout_sec=timeout_sec,
            )
            return response.content

        try:
            try:
                text = await call()
            except ProviderError as exc:
                if "timed out" not in str(exc).lower():
                    raise
                retry_timeout = self._models[model_id].timeout_sec * _TIMEOUT_RETRY_FACTOR
                logger.warning("Model %s timed out, retrying with %ds (1.5x)", model_id, retry_timeout)
                text = await call(retry_timeout)
        except ProviderError as exc:
            logger.warning("Model %s failed: %s", model_id, exc)
            if exc.credentials:
                return self._credentials_response(model_id, exc, elapsed())
            return GatewayResponse(text=f"Error communicating with AI: {exc}", elapsed_ms=elapsed(), error=str(exc))
        except Exception as exc:
            logger.warning("Model %s unexpected failure: %s", model_id, exc)
            return GatewayResponse(
                text=f"Error communicating with AI: {exc}",
                elapsed_ms=elapsed(),
                error=f"Unexpected error: {exc}",
            )

        return GatewayResponse(text=text, elapsed_ms=elapsed())
