"""
Chat pipeline configuration from Django settings.
"""
from __future__ import annotations

import os
from typing import List, Optional

from django.conf import settings
from pydantic import BaseModel, ConfigDict

from chatflow.service.errors import ConfigurationError, PolicyDenied


def get_api_base() -> str:
    return getattr(settings, "CHATFLOW_API_BASE", "https://api.openai.com/v1")


def get_api_key() -> Optional[str]:
    """API key from settings, falling back to CHATFLOW_API_KEY / OPENAI_API_KEY."""
    key = getattr(settings, "CHATFLOW_API_KEY", None)
    return key or os.environ.get("CHATFLOW_API_KEY") or os.environ.get("OPENAI_API_KEY")


def get_chat_completions_path() -> str:
    return getattr(settings, "CHATFLOW_CHAT_COMPLETIONS_PATH", "/chat/completions")


def get_default_model() -> str:
    return getattr(settings, "CHATFLOW_DEFAULT_MODEL", "gpt-4o-mini")


def get_allowed_models() -> List[str]:
    """List of model names that are explicitly allowed. Empty = no restriction (dev)."""
    return list(getattr(settings, "CHATFLOW_ALLOWED_MODELS", []))


def get_request_timeout() -> float:
    """Request timeout in seconds."""
    return float(getattr(settings, "CHATFLOW_REQUEST_TIMEOUT", 60.0))


def get_max_tool_iterations() -> int:
    return int(getattr(settings, "CHATFLOW_MAX_TOOL_ITERATIONS", 8))


def get_max_concurrent_streams() -> int:
    return int(getattr(settings, "CHATFLOW_MAX_CONCURRENT_STREAMS", 20))


def get_transport_backend() -> str:
    """Which transport create_transport() builds: "httpx" or "litellm"."""
    return getattr(settings, "CHATFLOW_TRANSPORT", "httpx")


def resolve_model(requested: Optional[str] = None) -> str:
    """
    Resolve the model name to use: validate requested against the allowed list,
    or choose the default (CHATFLOW_DEFAULT_MODEL if allowed, else first allowed).
    Raises PolicyDenied if requested is not in a non-empty allowed list.
    """
    allowed = get_allowed_models()
    if requested:
        if allowed and requested not in allowed:
            raise PolicyDenied(
                f"Model '{requested}' is not in CHATFLOW_ALLOWED_MODELS. Allowed: {allowed}"
            )
        return requested

    default = get_default_model()
    if not allowed or default in allowed:
        return default
    return allowed[0]


class EndpointConfig(BaseModel):
    """Resolved connection settings handed to a transport."""

    model_config = ConfigDict(frozen=True)

    api_base: str
    api_key: Optional[str] = None
    chat_completions_path: str = "/chat/completions"
    timeout: float = 60.0

    @property
    def chat_completions_url(self) -> str:
        return self.api_base.rstrip("/") + "/" + self.chat_completions_path.lstrip("/")

    @classmethod
    def from_settings(cls) -> "EndpointConfig":
        api_base = get_api_base()
        if not api_base:
            raise ConfigurationError("CHATFLOW_API_BASE must be set")
        return cls(
            api_base=api_base,
            api_key=get_api_key(),
            chat_completions_path=get_chat_completions_path(),
            timeout=get_request_timeout(),
        )


__all__ = [
    "get_api_base",
    "get_api_key",
    "get_chat_completions_path",
    "get_default_model",
    "get_allowed_models",
    "get_request_timeout",
    "get_max_tool_iterations",
    "get_max_concurrent_streams",
    "get_transport_backend",
    "resolve_model",
    "EndpointConfig",
]
