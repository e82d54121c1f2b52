"""
Anthropic provider — Claude text generation via the Anthropic API.
"""

from typing import Any, Iterator, Optional

import anthropic

from backend.app.exceptions import OperationFailedError
from backend.app.models import Capability, ProviderConfig
from backend.app.providers.base import BaseProvider

_DEFAULT_MAX_TOKENS = 4096


class AnthropicProvider(BaseProvider):
    """Claude models through the official Anthropic SDK."""

    SUPPORTED_CAPABILITIES = frozenset({Capability.TEXT})
    VERSION = "3.0"
    DISPLAY_NAME = "Claude"

    def __init__(self, name: str, config: ProviderConfig) -> None:
        super().__init__(name, config)
        self._client: Optional[anthropic.Anthropic] = None

    def _get_client(self) -> anthropic.Anthropic:
        """Create the SDK client on first use so construction never needs a key."""
        if self._client is None:
            kwargs: dict[str, Any] = {
                "api_key": self._require_api_key(),
                "timeout": self._timeout(),
            }
            if self._config.base_url:
                kwargs["base_url"] = self._config.base_url
            self._client = anthropic.Anthropic(**kwargs)
        return self._client

    def _request(self, params: dict[str, Any], model: str) -> dict[str, Any]:
        meta = self.model_metadata(model)
        max_tokens = params.get("max_tokens") or meta.max_tokens or _DEFAULT_MAX_TOKENS
        request: dict[str, Any] = {
            "model": model,
            "max_tokens": int(max_tokens),
            "temperature": params.get("temperature", 0.7),
            "messages": [{"role": "user", "content": params["prompt"]}],
        }
        if params.get("system"):
            request["system"] = params["system"]
        return request

    def generate_text(self, params: dict[str, Any]) -> str:
        """Send the prompt to Claude and return the generated text."""
        model = self.model_for(Capability.TEXT)
        try:
            message = self._get_client().messages.create(**self._request(params, model))
        except (anthropic.APIError, ValueError) as exc:
            raise OperationFailedError(self.name, model, "generate_text", str(exc)) from exc

        return "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        )

    def stream_text(self, params: dict[str, Any]) -> Iterator[str]:
        """Yield text deltas as Claude produces them."""
        model = self.model_for(Capability.TEXT)
        try:
            with self._get_client().messages.stream(**self._request(params, model)) as stream:
                for text in stream.text_stream:
                    yield text
        except (anthropic.APIError, ValueError) as exc:
            raise OperationFailedError(self.name, model, "stream_text", str(exc)) from exc
