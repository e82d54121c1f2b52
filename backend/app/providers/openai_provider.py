"""
OpenAI provider — chat completions for text, DALL-E for images.
"""

from typing import Any, Iterator, Optional

import openai
from openai import OpenAI

from backend.app.exceptions import OperationFailedError
from backend.app.models import Capability, ProviderConfig
from backend.app.providers.base import BaseProvider

_DEFAULT_MAX_TOKENS = 1000
_DEFAULT_IMAGE_SIZE = "1024x1024"

# Image sizes the API accepts; "auto" in the catalog maps to the default
_AUTO_SIZE = "auto"


class OpenAIProvider(BaseProvider):
    """OpenAI API provider for GPT text models and DALL-E image models."""

    SUPPORTED_CAPABILITIES = frozenset({Capability.TEXT, Capability.IMAGE})
    VERSION = "1.0"
    DISPLAY_NAME = "OpenAI"

    def __init__(self, name: str, config: ProviderConfig) -> None:
        super().__init__(name, config)
        self._client: Optional[OpenAI] = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                api_key=self._require_api_key(),
                base_url=self._config.base_url or None,
                timeout=self._timeout(),
            )
        return self._client

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def _chat_request(self, params: dict[str, Any], model: str) -> dict[str, Any]:
        messages = []
        if params.get("system"):
            messages.append({"role": "system", "content": params["system"]})
        messages.append({"role": "user", "content": params["prompt"]})
        return {
            "model": model,
            "messages": messages,
            "temperature": params.get("temperature", 0.7),
            "max_tokens": int(params.get("max_tokens") or _DEFAULT_MAX_TOKENS),
        }

    def generate_text(self, params: dict[str, Any]) -> str:
        """Send the prompt to a chat model and return the reply."""
        model = self.model_for(Capability.TEXT)
        try:
            response = self._get_client().chat.completions.create(
                **self._chat_request(params, model),
            )
        except (openai.OpenAIError, ValueError) as exc:
            raise OperationFailedError(self.name, model, "generate_text", str(exc)) from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    def stream_text(self, params: dict[str, Any]) -> Iterator[str]:
        model = self.model_for(Capability.TEXT)
        try:
            stream = self._get_client().chat.completions.create(
                **self._chat_request(params, model), stream=True,
            )
            for chunk in stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except (openai.OpenAIError, ValueError) as exc:
            raise OperationFailedError(self.name, model, "stream_text", str(exc)) from exc

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def generate_image(self, params: dict[str, Any]) -> str:
        urls = self.generate_images({**params, "n": 1})
        return urls[0] if urls else ""

    def generate_images(self, params: dict[str, Any]) -> list[str]:
        """Generate ``params['n']`` images and return their URLs."""
        model = self.model_for(Capability.IMAGE)
        size = params.get("size") or _DEFAULT_IMAGE_SIZE
        if size == _AUTO_SIZE:
            size = _DEFAULT_IMAGE_SIZE
        request: dict[str, Any] = {
            "model": model,
            "prompt": params["prompt"],
            "n": int(params.get("n") or 1),
            "size": size,
        }
        if params.get("quality"):
            request["quality"] = params["quality"]
        try:
            response = self._get_client().images.generate(**request)
        except (openai.OpenAIError, ValueError) as exc:
            raise OperationFailedError(self.name, model, "generate_images", str(exc)) from exc

        return [item.url for item in response.data or [] if item.url]
