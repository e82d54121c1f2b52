"""
Runware provider — image inference over the Runware task API.

Every request is a JSON array: an authentication task followed by the
imageInference task.
"""

import logging
import uuid
from typing import Any

import requests

from backend.app.exceptions import OperationFailedError
from backend.app.models import Capability
from backend.app.providers.base import BaseProvider

logger = logging.getLogger(__name__)

_API_URL = "https://api.runware.ai/v1"

# Service-level keys that must not leak into the inference task
_RESERVED_PARAMS = {"prompt", "n", "size", "style"}


class RunwareProvider(BaseProvider):
    """Runware-hosted image models (HiDream and friends)."""

    SUPPORTED_CAPABILITIES = frozenset({Capability.IMAGE})
    VERSION = "1.0"
    DISPLAY_NAME = "Runware"

    def _tasks(self, params: dict[str, Any], model: str) -> list[dict[str, Any]]:
        inference = {
            "taskType": "imageInference",
            "taskUUID": str(uuid.uuid4()),
            "positivePrompt": params["prompt"],
            "model": model,
            "numberResults": int(params.get("n") or 1),
        }
        for key, value in params.items():
            if key not in _RESERVED_PARAMS and value not in (None, ""):
                inference[key] = value
        return [
            {"taskType": "authentication", "apiKey": self._require_api_key()},
            inference,
        ]

    def generate_image(self, params: dict[str, Any]) -> str:
        urls = self.generate_images({**params, "n": 1})
        return urls[0] if urls else ""

    def generate_images(self, params: dict[str, Any]) -> list[str]:
        model = self.model_for(Capability.IMAGE)
        try:
            response = requests.post(
                self._config.base_url or _API_URL,
                json=self._tasks(params, model),
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                timeout=self._timeout(),
            )
            response.raise_for_status()
            data = response.json()
            return [item["imageURL"] for item in data.get("data", []) if item.get("imageURL")]
        except (requests.RequestException, ValueError, AttributeError, TypeError) as exc:
            logger.error("Runware API error for model %s: %s", model, exc)
            raise OperationFailedError(self.name, model, "generate_images", str(exc)) from exc
