from __future__ import annotations

import os
from enum import StrEnum
from typing import Final

from dotenv import load_dotenv

from llm_toolloop._exceptions import ConfigError


class Provider(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    DEEPSEEK = "deepseek"

_ENV_VARS: Final[dict[Provider, str]] = {
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.GEMINI: "GEMINI_API_KEY",
    Provider.DEEPSEEK: "DEEPSEEK_API_KEY",
}

def get_api_key(provider: Provider) -> str:
    """Return the API key for *provider* or raise ConfigError."""
    load_dotenv()
    try:
        env_var = _ENV_VARS[provider]
    except KeyError:
        raise ConfigError(f"No config for {provider!s}") from None

    key = os.environ.get(env_var, "").strip()
    if not key:
        raise ConfigError(f"{env_var} missing")
    return key

__all__ = ["Provider", "get_api_key"]
