"""Environment-driven settings for the routing engine and its backends."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Load backend/.env early so every module sees the same values.
env_path = Path(__file__).resolve().parent / ".env"
load_dotenv(dotenv_path=env_path, override=False)


def env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    return value if value not in (None, "") else default


def env_int(name: str, default: int, min_value: int, max_value: int) -> int:
    raw = os.getenv(name)
    try:
        value = int(raw) if raw not in (None, "") else default
    except Exception:
        value = default
    return max(min_value, min(max_value, value))


def env_float(name: str, default: float, min_value: float, max_value: float) -> float:
    raw = os.getenv(name)
    try:
        value = float(raw) if raw not in (None, "") else default
    except Exception:
        value = default
    return max(min_value, min(max_value, value))


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    return str(raw).strip().lower() in ("1", "true", "yes", "on")


class RoutingSettings(BaseModel):
    """Knobs for the bot routing pipeline."""

    context_window_size: int = 10
    model_timeout_sec: float = 45.0
    orchestrator_enabled: bool = True
    orchestrator_temperature: float = 0.3
    reply_temperature: float = 0.7
    persona_summary_chars: int = 100

    @classmethod
    def from_env(cls) -> "RoutingSettings":
        return cls(
            context_window_size=env_int("ROUTING_CONTEXT_WINDOW", 10, 1, 50),
            model_timeout_sec=env_float("ROUTING_MODEL_TIMEOUT_SEC", 45.0, 1.0, 300.0),
            orchestrator_enabled=env_bool("ROUTING_ORCHESTRATOR_ENABLED", True),
            orchestrator_temperature=env_float("ROUTING_ORCHESTRATOR_TEMPERATURE", 0.3, 0.0, 1.0),
            reply_temperature=env_float("ROUTING_REPLY_TEMPERATURE", 0.7, 0.0, 2.0),
            persona_summary_chars=env_int("ROUTING_PERSONA_SUMMARY_CHARS", 100, 20, 1000),
        )


class ModelBackendConfig(BaseModel):
    """Vendor endpoint and model-string mapping."""

    model_config = ConfigDict(protected_namespaces=())

    api_url: str = "https://openrouter.ai/api/v1/chat/completions"
    api_key: Optional[str] = None
    max_tokens: int = 1024
    timeout_sec: float = 60.0
    gpt_model: str = "openai/gpt-4-turbo"
    claude_model: str = "anthropic/claude-3.5-sonnet"
    gemini_model: str = "google/gemini-pro-1.5"
    router_model: str = "openai/gpt-4o-mini"

    @classmethod
    def from_env(cls) -> "ModelBackendConfig":
        defaults = cls()
        return cls(
            api_url=env_str("OPENROUTER_API_URL", defaults.api_url),
            api_key=env_str("OPENROUTER_API_KEY"),
            max_tokens=env_int("MODEL_MAX_TOKENS", defaults.max_tokens, 64, 8192),
            timeout_sec=env_float("MODEL_HTTP_TIMEOUT_SEC", defaults.timeout_sec, 1.0, 300.0),
            gpt_model=env_str("MODEL_GPT", defaults.gpt_model),
            claude_model=env_str("MODEL_CLAUDE", defaults.claude_model),
            gemini_model=env_str("MODEL_GEMINI", defaults.gemini_model),
            router_model=env_str("MODEL_ROUTER", defaults.router_model),
        )


@lru_cache(maxsize=1)
def get_settings() -> RoutingSettings:
    return RoutingSettings.from_env()


@lru_cache(maxsize=1)
def get_backend_config() -> ModelBackendConfig:
    return ModelBackendConfig.from_env()
