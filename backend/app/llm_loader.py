"""LLM provider loader.

Builds the chat model the AI parse service talks to. The provider is picked
with LLM_PROVIDER (groq, nvidia or openai); each provider's LangChain
integration is imported only when selected.
"""

from __future__ import annotations

import os
from typing import Callable, Dict, Optional

from dotenv import load_dotenv
from langchain_core.language_models.chat_models import BaseChatModel

load_dotenv()

DEFAULT_PROVIDER = "groq"
DEFAULT_NVIDIA_BASE = "https://integrate.api.nvidia.com/v1"

_PROVIDER_ALIASES = {
    "groq": "groq",
    "nvidia": "nvidia",
    "nv": "nvidia",
    "nvcf": "nvidia",
    "openai": "openai",
    "oa": "openai",
}


class LLMConfigError(RuntimeError):
    """Raised when the requested LLM provider cannot be initialised."""


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip() or default


def _api_key(provider_label: str, *names: str) -> str:
    for name in ("LLM_API_KEY",) + names:
        key = _env(name)
        if key:
            return key
    raise LLMConfigError(
        f"{provider_label} provider selected but no API key found. "
        f"Set LLM_API_KEY or {names[0]}."
    )


def get_provider_name() -> str:
    raw = (_env("LLM_PROVIDER", DEFAULT_PROVIDER) or DEFAULT_PROVIDER).lower()
    return _PROVIDER_ALIASES.get(raw, raw)


def _model_name(default: str) -> str:
    return _env("LLM_MODEL", default) or default


# ---------------------------------------------------------------------------
# Provider factories
# ---------------------------------------------------------------------------

def _groq(temperature: float) -> BaseChatModel:
    try:
        from langchain_groq import ChatGroq  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise LLMConfigError(
            "Groq provider selected but langchain-groq is not installed. "
            "Run `pip install langchain-groq` or switch LLM_PROVIDER."
        ) from exc

    return ChatGroq(
        model=_model_name("llama-3.1-8b-instant"),
        temperature=temperature,
        groq_api_key=_api_key("Groq", "GROQ_API_KEY"),
    )


def _nvidia(temperature: float) -> BaseChatModel:
    try:
        from langchain_nvidia_ai_endpoints import ChatNVIDIA  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise LLMConfigError(
            "NVIDIA provider selected but langchain-nvidia-ai-endpoints is not installed."
        ) from exc

    base_url = _env("LLM_BASE_URL", DEFAULT_NVIDIA_BASE) or DEFAULT_NVIDIA_BASE
    return ChatNVIDIA(
        model=_model_name("meta/llama-3.1-8b-instruct"),
        temperature=temperature,
        base_url=base_url.rstrip("/"),
        api_key=_api_key("NVIDIA", "NVIDIA_API_KEY", "NVCF_API_KEY"),
    )


def _openai(temperature: float) -> BaseChatModel:
    try:
        from langchain_openai import ChatOpenAI  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise LLMConfigError(
            "OpenAI provider selected but langchain-openai is not installed. "
            "Run `pip install langchain-openai` or switch LLM_PROVIDER."
        ) from exc

    kwargs = {
        "model": _model_name("gpt-4o-mini"),
        "temperature": temperature,
        "api_key": _api_key("OpenAI", "OPENAI_API_KEY"),
    }
    base_url = _env("LLM_BASE_URL") or _env("OPENAI_BASE_URL")
    if base_url:
        kwargs["base_url"] = base_url.rstrip("/")
    return ChatOpenAI(**kwargs)


_FACTORIES: Dict[str, Callable[[float], BaseChatModel]] = {
    "groq": _groq,
    "nvidia": _nvidia,
    "openai": _openai,
}


def get_chat_model(temperature: float = 0.0) -> BaseChatModel:
    """Return a LangChain chat model for the configured provider."""
    provider = get_provider_name()
    factory = _FACTORIES.get(provider)
    if factory is None:
        raise LLMConfigError(
            f"Unsupported LLM_PROVIDER '{provider}'. Expected one of {sorted(_FACTORIES)}."
        )
    return factory(temperature)
