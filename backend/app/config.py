"""
Gateway configuration — shipped provider catalog plus environment overrides.

Environment (read from the process and the repository-root ``.env``):
  AI_DEFAULT_PROVIDER                       global default provider
  AI_TEXT_PROVIDER / AI_IMAGE_PROVIDER /
  AI_VIDEO_PROVIDER                         per-capability defaults
  CLAUDE_API_KEY (or ANTHROPIC_API_KEY),
  OPENAI_API_KEY, IDEOGRAM_API_KEY,
  RUNWARE_API_KEY                           credentials
  CLAUDE_MODEL / OPENAI_MODEL /
  IDEOGRAM_MODEL / RUNWARE_MODEL            default model per provider
  LOG_LEVEL                                 root log level (default INFO)
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from backend.app.catalog import CapabilityCatalog

_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_ENV_PATH)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_IDEOGRAM_SIZES = [
    "ASPECT_10_16", "ASPECT_16_10", "ASPECT_9_16", "ASPECT_16_9", "ASPECT_3_2",
    "ASPECT_2_3", "ASPECT_4_3", "ASPECT_3_4", "ASPECT_1_1", "ASPECT_1_3", "ASPECT_3_1",
]
_IDEOGRAM_STYLES = ["AUTO", "GENERAL", "REALISTIC", "DESIGN", "RENDER_3D", "ANIME"]


def _claude_model(name: str, version: str, max_tokens: int) -> dict[str, Any]:
    return {
        "name": name,
        "version": version,
        "max_tokens": max_tokens,
        "capabilities": ["text"],
        "supports_streaming": True,
    }


def _ideogram_model(name: str, version: str) -> dict[str, Any]:
    return {
        "name": name,
        "version": version,
        "capabilities": ["image"],
        "default_size": "ASPECT_1_1",
        "default_style": "AUTO",
        "sizes": list(_IDEOGRAM_SIZES),
        "styles": list(_IDEOGRAM_STYLES),
    }


# ---------------------------------------------------------------------------
# Shipped catalog
# ---------------------------------------------------------------------------

DEFAULT_CATALOG: dict[str, Any] = {
    "default_provider": "claude",
    "default_providers": {
        "text": "claude",
        "image": "ideogram",
        "video": "openai",
    },
    "fallback_providers": {
        "text": ["claude", "openai"],
        "image": ["ideogram", "openai"],
        # No shipped vendor serves video yet; the entry is dropped at load
        "video": ["openai"],
    },
    "providers": {
        "claude": {
            "adapter": "anthropic",
            "display_name": "Claude",
            "default_model": "claude-3-5-sonnet-20241022",
            "models": {
                "claude-sonnet-4-20250514": _claude_model("Claude 4 Sonnet", "4.0", 4096),
                "claude-opus-4-20250514": _claude_model("Claude 4 Opus", "4.0", 4096),
                "claude-3-7-sonnet-20250219": _claude_model("Claude 3.7 Sonnet", "3.7", 8192),
                "claude-3-5-sonnet-20241022": _claude_model("Claude 3.5 Sonnet", "3.5", 4096),
                "claude-3-5-haiku-20241022": _claude_model("Claude 3.5 Haiku", "3.5", 8192),
                "claude-3-haiku-20240307": _claude_model("Claude 3 Haiku", "3.0", 4096),
            },
        },
        "openai": {
            "adapter": "openai",
            "display_name": "OpenAI",
            "default_model": "o4-mini-2025-04-16",
            "models": {
                "o4-mini-2025-04-16": {
                    "name": "o4-Mini",
                    "version": "4.0-turbo",
                    "max_tokens": 4096,
                    "capabilities": ["text"],
                    "supports_streaming": True,
                    "supports_functions": True,
                },
                "gpt-4.1-2025-04-14": {
                    "name": "GPT-4.1",
                    "version": "4.1",
                    "max_tokens": 128000,
                    "capabilities": ["text"],
                    "supports_streaming": True,
                    "supports_functions": True,
                },
                "dall-e-3": {
                    "name": "DALL-E 3",
                    "version": "3.0",
                    "capabilities": ["image"],
                    "default_size": "auto",
                    "default_style": "standard",
                    "sizes": ["1024x1024", "1024x1792", "1792x1024", "auto"],
                    "quality": ["standard", "hd"],
                },
                "dall-e-2": {
                    "name": "DALL-E 2",
                    "version": "2.0",
                    "capabilities": ["image"],
                    "default_size": "1024x1024",
                    "default_style": "standard",
                    "sizes": ["256x256", "512x512", "1024x1024"],
                    "quality": ["standard"],
                },
            },
        },
        "ideogram": {
            "adapter": "ideogram",
            "display_name": "Ideogram",
            "default_model": "V_2",
            "models": {
                "V_2": _ideogram_model("Ideogram V2", "2.0"),
                "V_2A_TURBO": _ideogram_model("Ideogram V2A Turbo", "2.0"),
                "V_2A": _ideogram_model("Ideogram V2A", "2.0"),
                "V_1_TURBO": _ideogram_model("Ideogram V1 Turbo", "1.0"),
                "V_1": _ideogram_model("Ideogram V1", "1.0"),
            },
        },
        "runware": {
            "adapter": "runware",
            "display_name": "Runware",
            "default_model": "runware:97@2",
            "models": {
                "runware:97@1": {"name": "HiDream-I1-Full", "version": "1.0", "capabilities": ["image"]},
                "runware:97@2": {"name": "HiDream-I1-Dev", "version": "1.0", "capabilities": ["image"]},
                "runware:97@3": {"name": "HiDream-I1-Fast", "version": "1.0", "capabilities": ["image"]},
            },
        },
        # Offline provider; only used when selected by name
        "mock": {
            "adapter": "mock",
            "display_name": "Mock",
            "default_model": "mock-text",
            "models": {
                "mock-text": {"name": "Mock Text", "capabilities": ["text"], "supports_streaming": True},
                "mock-image": {"name": "Mock Image", "capabilities": ["image"], "default_size": "1024x1024"},
                "mock-video": {"name": "Mock Video", "capabilities": ["video"]},
            },
        },
    },
}

# provider -> (api key variables in lookup order, default model variable)
_PROVIDER_ENV: dict[str, tuple[tuple[str, ...], str]] = {
    "claude": (("CLAUDE_API_KEY", "ANTHROPIC_API_KEY"), "CLAUDE_MODEL"),
    "openai": (("OPENAI_API_KEY",), "OPENAI_MODEL"),
    "ideogram": (("IDEOGRAM_API_KEY",), "IDEOGRAM_MODEL"),
    "runware": (("RUNWARE_API_KEY",), "RUNWARE_MODEL"),
}

_CAPABILITY_ENV = {
    "text": "AI_TEXT_PROVIDER",
    "image": "AI_IMAGE_PROVIDER",
    "video": "AI_VIDEO_PROVIDER",
}


def _first_env(*names: str) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def apply_env(data: dict[str, Any], environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """Apply environment overrides to catalog data in place and return it."""
    env = os.environ if environ is None else environ

    def lookup(*names: str) -> Optional[str]:
        for name in names:
            if env.get(name):
                return env[name]
        return None

    providers = data.setdefault("providers", {})
    for provider, (key_vars, model_var) in _PROVIDER_ENV.items():
        entry = providers.get(provider)
        if entry is None:
            continue
        api_key = lookup(*key_vars)
        if api_key:
            entry["api_key"] = api_key
        model = lookup(model_var)
        if model:
            entry["default_model"] = model

    default_provider = lookup("AI_DEFAULT_PROVIDER")
    if default_provider:
        data["default_provider"] = default_provider

    defaults = data.setdefault("default_providers", {})
    for capability, var in _CAPABILITY_ENV.items():
        value = lookup(var)
        if value:
            defaults[capability] = value
    return data


def load_catalog(
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> CapabilityCatalog:
    """
    Build the catalog: shipped defaults, then ``overrides`` (merged per
    top-level key), then environment variables.

    Raises:
        CatalogError: the resulting data does not validate.
    """
    data = copy.deepcopy(DEFAULT_CATALOG)
    for key, value in (overrides or {}).items():
        if isinstance(value, Mapping) and isinstance(data.get(key), dict):
            data[key].update(copy.deepcopy(dict(value)))
        else:
            data[key] = copy.deepcopy(value)
    apply_env(data, environ)
    catalog = CapabilityCatalog.from_dict(data)
    logger.info("Loaded catalog with providers: %s", ", ".join(catalog.provider_names()))
    return catalog


def configure_logging(level: Optional[str] = None) -> None:
    """Set the root log level and format (level from LOG_LEVEL by default)."""
    level_name = (level or _first_env("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)
