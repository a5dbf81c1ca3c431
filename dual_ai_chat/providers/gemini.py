"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import os
import time

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from dual_ai_chat.models import EncodedAttachment, ModelResponse
from dual_ai_chat.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)

_AUTH_STATUS_CODES = {401, 403}


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}", credentials=True)
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def _request_config(
        self, system_preamble: str | None, suppress_reasoning: bool
    ) -> genai_types.GenerateContentConfig:
        thinking = None
        if suppress_reasoning and self._config.supports_thinking_budget:
            thinking = genai_types.ThinkingConfig(thinking_budget=0)
        return genai_types.GenerateContentConfig(
            system_instruction=system_preamble or None,
            max_output_tokens=self._config.max_tokens,
            thinking_config=thinking,
        )

    async def generate(
        self,
        prompt: str,
        system_preamble: str | None = None,
        suppress_reasoning: bool = False,
        attachment: EncodedAttachment | None = None,
        timeout_sec: float | None = None,
    ) -> ModelResponse:
        timeout = timeout_sec or self._config.timeout_sec
        contents: list = []
        if attachment is not None:
            contents.append(genai_types.Part.from_bytes(data=attachment.data, mime_type=attachment.mime_type))
        contents.append(prompt)

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=contents,
                    config=self._request_config(system_preamble, suppress_reasoning),
                ),
                timeout=timeout,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {timeout}s") from exc
        except genai_errors.ClientError as exc:
            rejected = exc.code in _AUTH_STATUS_CODES or "API key" in str(exc)
            raise ProviderError(self._config.name, f"API call failed: {exc}", credentials=rejected) from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if not response.text:
            raise ProviderError(self._config.name, "Empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info("Gemini %s: %.2fs, %s tokens", self._config.model, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=response.text,
            latency_sec=latency,
            token_count=token_count,
        )
