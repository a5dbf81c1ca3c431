"""Shared pytest fixtures."""

from collections.abc import Awaitable, Callable
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import DefaultsConfig, ModelConfig, PromptsConfig
from dual_ai_chat.gateway import ModelGateway
from dual_ai_chat.models import EncodedAttachment, ModelResponse, Persona, TranscriptEntry
from dual_ai_chat.orchestrator import DiscussionOrchestrator
from dual_ai_chat.providers.base import AIProvider

TEST_MODEL_ID = "test-model"


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name=TEST_MODEL_ID,
        sdk="test",
        model="test-model-1",
        display_name="Test Model",
        api_key_env="DUAL_AI_CHAT_TEST_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
        supports_thinking_budget=True,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        notepad_instruction="NOTEPAD[{notepad_content}] write {update_start}...{update_end}",
        discussion_instruction="To finish, write {stop_tag}",
        attachment_instruction="IMAGE {filename}",
        opening="OPENING Q: {query}\n{attachment_instruction}\n{notepad_instruction}\n{discussion_instruction}",
        muse_reply=(
            "MUSE Q: {query}\n{attachment_instruction}\n{transcript}\n"
            "LAST {last_speaker}: {last_message}\n{notepad_instruction}\n{discussion_instruction}"
        ),
        cognito_reply=(
            "COGNITO Q: {query}\n{attachment_instruction}\n{transcript}\n"
            "LAST {last_speaker}: {last_message}\n{notepad_instruction}\n{discussion_instruction}"
        ),
        final="FINAL Q: {query}\n{attachment_instruction}\n{transcript}\n{notepad_instruction}",
        personas={"cognito": "You are Cognito.", "muse": "You are Muse."},
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        model=TEST_MODEL_ID,
        mode="fixed",
        fixed_turns=2,
        min_fixed_turns=1,
        max_fixed_turns=5,
        ai_driven_max_turns=3,
        thinking_budget=True,
        output_dir=tmp_path / "output",
    )


class ScriptedProvider(AIProvider):
    """Test double that replays queued replies and records every call.

    A queued Exception is raised instead of returned. `before_reply` is
    awaited with the 1-based call number before the reply is produced.
    """

    def __init__(self, replies: list[str | Exception] | None = None, provider_name: str = TEST_MODEL_ID) -> None:
        self._name = provider_name
        self.replies: list[str | Exception] = list(replies or [])
        self.calls: list[dict] = []
        self.before_reply: Callable[[int], Awaitable[None]] | None = None

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "test-model-1"

    async def generate(
        self,
        prompt: str,
        system_preamble: str | None = None,
        suppress_reasoning: bool = False,
        attachment: EncodedAttachment | None = None,
        timeout_sec: float | None = None,
    ) -> ModelResponse:
        self.calls.append({
            "prompt": prompt,
            "system_preamble": system_preamble,
            "suppress_reasoning": suppress_reasoning,
            "attachment": attachment,
            "timeout_sec": timeout_sec,
        })
        if self.before_reply is not None:
            await self.before_reply(len(self.calls))
        reply = self.replies.pop(0) if self.replies else "Default reply."
        if isinstance(reply, Exception):
            raise reply
        return ModelResponse(self._name, "test-model-1", reply, 0.01, 5)

    @property
    def prompts(self) -> list[str]:
        return [c["prompt"] for c in self.calls]

    @property
    def preambles(self) -> list[str | None]:
        return [c["system_preamble"] for c in self.calls]


class MockProvider(AIProvider):
    """Test double AIProvider whose generate is an AsyncMock."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock response") -> None:
        self._name = provider_name
        # Shadow the class method with an AsyncMock at the instance level.
        self.generate = AsyncMock(  # type: ignore[assignment]
            return_value=ModelResponse(
                provider=provider_name,
                model="mock-model",
                content=response_content,
                latency_sec=0.1,
                token_count=10,
            )
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate(self, prompt: str, system_preamble=None, suppress_reasoning=False,
                       attachment=None, timeout_sec=None) -> ModelResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return ModelResponse(self._name, "mock-model", "Mock response", 0.1, 10)


class Recorder:
    """Collects the orchestrator's outbound events."""

    def __init__(self) -> None:
        self.messages: list[TranscriptEntry] = []
        self.notepad_updates: list[tuple[str, Persona | None]] = []
        self.notices: list[str] = []

    def on_message(self, entry: TranscriptEntry) -> None:
        self.messages.append(entry)

    def on_notepad_update(self, content: str, writer: Persona | None) -> None:
        self.notepad_updates.append((content, writer))

    def on_notice(self, text: str) -> None:
        self.notices.append(text)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def make_orchestrator(sample_model_config, sample_prompts_config, sample_defaults_config, recorder):
    """Factory: orchestrator whose only model is backed by the given provider."""

    def _make(provider: AIProvider, **defaults_overrides) -> DiscussionOrchestrator:
        for key, value in defaults_overrides.items():
            setattr(sample_defaults_config, key, value)
        gateway = ModelGateway(
            {TEST_MODEL_ID: sample_model_config},
            providers={TEST_MODEL_ID: provider},
        )
        return DiscussionOrchestrator(
            gateway=gateway,
            prompts=sample_prompts_config,
            defaults=sample_defaults_config,
            on_message=recorder.on_message,
            on_notepad_update=recorder.on_notepad_update,
            on_notice=recorder.on_notice,
        )

    return _make
