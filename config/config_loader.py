"""Load settings.yaml into typed dataclasses. Reports which models have API keys."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

_PROMPT_KEYS = (
    "notepad_instruction",
    "discussion_instruction",
    "attachment_instruction",
    "opening",
    "muse_reply",
    "cognito_reply",
    "final",
)

_MODES = ("fixed", "ai-driven")


class ConfigError(Exception):
    """Raised when settings.yaml is present but unusable."""


@dataclass
class ModelConfig:
    name: str
    sdk: str                      # "gemini", "xai" or "openai"
    model: str
    display_name: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None
    supports_thinking_budget: bool = False


@dataclass
class PromptsConfig:
    notepad_instruction: str
    discussion_instruction: str
    attachment_instruction: str
    opening: str
    muse_reply: str
    cognito_reply: str
    final: str
    personas: dict[str, str] = field(default_factory=dict)


@dataclass
class DefaultsConfig:
    model: str
    mode: str = "fixed"
    fixed_turns: int = 2
    min_fixed_turns: int = 1
    max_fixed_turns: int = 5
    ai_driven_max_turns: int = 3
    thinking_budget: bool = True
    output_dir: Path = Path("./output")
    max_transcript_chars: int = 0


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    available_models: set[str] = field(default_factory=set)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if the settings file is missing and ConfigError
    if a required section or key is absent. Missing API keys are only
    logged; callers check available_models.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    try:
        defaults_raw = raw["defaults"]
        prompts_raw = raw["prompts"]
        models_raw = raw["models"]
    except KeyError as exc:
        raise ConfigError(f"Missing section in {settings_path.name}: {exc.args[0]}") from exc

    try:
        defaults = DefaultsConfig(
            model=str(defaults_raw["model"]),
            mode=str(defaults_raw.get("mode", "fixed")),
            fixed_turns=int(defaults_raw.get("fixed_turns", 2)),
            min_fixed_turns=int(defaults_raw.get("min_fixed_turns", 1)),
            max_fixed_turns=int(defaults_raw.get("max_fixed_turns", 5)),
            ai_driven_max_turns=int(defaults_raw.get("ai_driven_max_turns", 3)),
            thinking_budget=bool(defaults_raw.get("thinking_budget", True)),
            output_dir=Path(defaults_raw.get("output_dir", "./output")),
            max_transcript_chars=int(defaults_raw.get("max_transcript_chars", 0)),
        )
    except KeyError as exc:
        raise ConfigError(f"Missing key in defaults: {exc.args[0]}") from exc
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value in defaults: {exc}") from exc
    if defaults.mode not in _MODES:
        raise ConfigError(f"Invalid mode '{defaults.mode}', expected one of: {', '.join(_MODES)}")
    if defaults.min_fixed_turns < 1 or defaults.min_fixed_turns > defaults.max_fixed_turns:
        raise ConfigError(
            f"Invalid turn bounds: {defaults.min_fixed_turns}..{defaults.max_fixed_turns}"
        )

    missing = [k for k in _PROMPT_KEYS if k not in prompts_raw]
    if missing:
        raise ConfigError(f"Missing prompt templates: {', '.join(missing)}")
    personas_raw = raw.get("personas", {})
    prompts = PromptsConfig(
        **{k: str(prompts_raw[k]) for k in _PROMPT_KEYS},
        personas={k: str(v) for k, v in personas_raw.items()},
    )

    models: dict[str, ModelConfig] = {}
    available_models: set[str] = set()

    for model_id, model_raw in models_raw.items():
        try:
            model_cfg = ModelConfig(
                name=model_id,
                sdk=model_raw["sdk"],
                model=model_raw["model"],
                display_name=str(model_raw.get("display_name", model_raw["model"])),
                api_key_env=model_raw["api_key_env"],
                timeout_sec=int(model_raw["timeout_sec"]),
                max_tokens=int(model_raw["max_tokens"]),
                base_url=model_raw.get("base_url"),
                supports_thinking_budget=bool(model_raw.get("supports_thinking_budget", False)),
            )
        except KeyError as exc:
            raise ConfigError(f"Missing key in model '{model_id}': {exc.args[0]}") from exc
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid value in model '{model_id}': {exc}") from exc
        models[model_id] = model_cfg

        api_key = os.environ.get(model_cfg.api_key_env, "").strip()
        if api_key:
            available_models.add(model_id)
            logger.info("Model available: %s", model_id)
        else:
            logger.info(
                "Model has no API key: %s (set %s in .env)",
                model_id,
                model_cfg.api_key_env,
            )

    if defaults.model not in models:
        raise ConfigError(f"Default model '{defaults.model}' is not defined under models")

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        available_models=available_models,
    )
