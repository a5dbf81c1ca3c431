"""OpenAI-compatible provider using openai SDK with native async."""

import asyncio
import logging
import os
import time

import openai
from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from dual_ai_chat.models import EncodedAttachment, ModelResponse
from dual_ai_chat.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)

_DEFAULT_TEMPERATURE = 0.7


class OpenAICompatibleProvider(AIProvider):
    """Any chat-completions endpoint: OpenAI itself or a self-hosted server via base_url."""

    label = "OpenAI"

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}", credentials=True)
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    @staticmethod
    def _messages(
        prompt: str,
        system_preamble: str | None,
        attachment: EncodedAttachment | None,
    ) -> list[dict]:
        messages: list[dict] = []
        if system_preamble:
            messages.append({"role": "system", "content": system_preamble})
        if attachment is not None:
            messages.append({
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": attachment.data_url}},
                    {"type": "text", "text": prompt},
                ],
            })
        else:
            messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(
        self,
        prompt: str,
        system_preamble: str | None = None,
        suppress_reasoning: bool = False,
        attachment: EncodedAttachment | None = None,
        timeout_sec: float | None = None,
    ) -> ModelResponse:
        timeout = timeout_sec or self._config.timeout_sec
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=self._messages(prompt, system_preamble, attachment),
                    max_tokens=self._config.max_tokens,
                    temperature=0 if suppress_reasoning else _DEFAULT_TEMPERATURE,
                ),
                timeout=timeout,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {timeout}s") from exc
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}", credentials=True) from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info("%s %s: %.2fs, %s tokens", self.label, self._config.model, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=choice.message.content,
            latency_sec=latency,
            token_count=token_count,
        )
