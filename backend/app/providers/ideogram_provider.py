"""
Ideogram provider — image generation over the Ideogram REST API.
"""

import logging
from typing import Any

import requests

from backend.app.exceptions import OperationFailedError
from backend.app.models import Capability
from backend.app.providers.base import BaseProvider

logger = logging.getLogger(__name__)

_API_URL = "https://api.ideogram.ai/generate"
_DEFAULT_ASPECT = "ASPECT_1_1"
_DEFAULT_STYLES = ["AUTO", "GENERAL"]


class IdeogramProvider(BaseProvider):
    """Ideogram image models (V_1 ... V_2A_TURBO)."""

    SUPPORTED_CAPABILITIES = frozenset({Capability.IMAGE})
    VERSION = "1.0"
    DISPLAY_NAME = "Ideogram"

    def available_styles(self) -> list[str]:
        return self.model_metadata().styles or list(_DEFAULT_STYLES)

    def _payload(self, params: dict[str, Any], model: str) -> dict[str, Any]:
        style = params.get("style") or "AUTO"
        if style not in self.available_styles():
            style = "AUTO"
        return {
            "image_request": {
                "prompt": params["prompt"],
                "model": model,
                "aspect_ratio": params.get("size") or _DEFAULT_ASPECT,
                "magic_prompt_option": "OFF",
                "num_images": int(params.get("n") or 1),
                "style_type": style,
            }
        }

    def generate_image(self, params: dict[str, Any]) -> str:
        urls = self.generate_images({**params, "n": 1})
        return urls[0] if urls else ""

    def generate_images(self, params: dict[str, Any]) -> list[str]:
        """POST a generation request and return the image URLs."""
        model = self.model_for(Capability.IMAGE)
        payload = self._payload(params, model)
        try:
            response = requests.post(
                self._config.base_url or _API_URL,
                json=payload,
                headers={
                    "Api-Key": self._require_api_key(),
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                timeout=self._timeout(),
            )
            response.raise_for_status()
            data = response.json()
            return [item["url"] for item in data.get("data", []) if item.get("url")]
        except (requests.RequestException, ValueError, AttributeError, TypeError) as exc:
            logger.error("Ideogram API error for model %s: %s", model, exc)
            raise OperationFailedError(self.name, model, "generate_images", str(exc)) from exc
