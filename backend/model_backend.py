"""
Model backend: one uniform completion call for every bot model kind.
"""

import abc
from enum import Enum
from typing import Optional, Union

import httpx
from loguru import logger

from config import ModelBackendConfig, get_backend_config
from errors import GenerationFailed, InvalidModel


class ModelKind(str, Enum):
    GPT = "gpt"
    CLAUDE = "claude"
    GEMINI = "gemini"
    ROUTER = "router"  # classification model, not selectable for bots


BOT_MODEL_LABELS = {
    ModelKind.GPT: "GPT-4",
    ModelKind.CLAUDE: "Claude Sonnet",
    ModelKind.GEMINI: "Gemini",
}

DEFAULT_BOT_MODEL = ModelKind.CLAUDE


def parse_model_kind(value: Union[str, ModelKind, None], allow_router: bool = False) -> ModelKind:
    """Resolve a stored model identifier; raises InvalidModel for anything else."""
    try:
        kind = ModelKind((value or "").strip().lower()) if not isinstance(value, ModelKind) else value
    except ValueError:
        raise InvalidModel(f"Invalid model type: {value!r}")
    if kind is ModelKind.ROUTER and not allow_router:
        raise InvalidModel("The router model cannot back a bot")
    return kind


class ModelBackend(abc.ABC):
    """Given a model kind, a system instruction and chat turns, return text."""

    @abc.abstractmethod
    async def complete(
        self,
        model: ModelKind,
        system_instruction: str,
        messages: list[dict],
        temperature: float,
    ) -> str:
        """Return generated text or raise :class:`errors.GenerationFailed`."""
        ...


class OpenRouterBackend(ModelBackend):
    """OpenAI-compatible chat completions (OpenRouter by default)."""

    def __init__(
        self,
        config: Optional[ModelBackendConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or get_backend_config()
        self._transport = transport

    def vendor_model(self, model: ModelKind) -> str:
        return {
            ModelKind.GPT: self.config.gpt_model,
            ModelKind.CLAUDE: self.config.claude_model,
            ModelKind.GEMINI: self.config.gemini_model,
            ModelKind.ROUTER: self.config.router_model,
        }[model]

    def _log_call(self, status: str, model: str, detail: str = "") -> None:
        logger.info(f"stage=complete status={status} model={model} detail={detail}")

    async def complete(
        self,
        model: ModelKind,
        system_instruction: str,
        messages: list[dict],
        temperature: float,
    ) -> str:
        vendor_model = self.vendor_model(model)
        payload = {
            "model": vendor_model,
            "messages": [{"role": "system", "content": system_instruction}, *messages],
            "temperature": temperature,
            "max_tokens": self.config.max_tokens,
        }
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        # Single attempt: a retry could duplicate a bot reply.
        self._log_call("start", vendor_model, f"turns={len(messages)}")
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout_sec, transport=self._transport) as client:
                response = await client.post(self.config.api_url, json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            self._log_call("timeout", vendor_model, str(exc)[:200])
            raise GenerationFailed(f"timeout calling {vendor_model}") from exc
        except httpx.HTTPError as exc:
            self._log_call("error", vendor_model, str(exc)[:200])
            raise GenerationFailed(f"transport error calling {vendor_model}: {exc}") from exc

        if response.status_code != 200:
            self._log_call("fail", vendor_model, f"http={response.status_code}")
            raise GenerationFailed(f"http={response.status_code} from {vendor_model}")

        try:
            result = response.json()
        except ValueError as exc:
            raise GenerationFailed(f"non-JSON body from {vendor_model}") from exc
        choices = result.get("choices") if isinstance(result, dict) else None
        if not choices:
            self._log_call("fail", vendor_model, "no choices")
            raise GenerationFailed(f"no choices returned by {vendor_model}")
        self._log_call("ok", vendor_model, "http=200")
        return (choices[0].get("message", {}).get("content") or "").strip()
