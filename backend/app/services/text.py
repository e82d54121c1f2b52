"""Text generation service."""

from typing import Any, Iterator, Optional

from backend.app.exceptions import OperationFailedError
from backend.app.models import Capability
from backend.app.services.base import CapabilityService


class TextService(CapabilityService):
    """
    Text completions through the active text provider.

    Defaults: temperature 1.0, max_tokens 1000. Caller options win.
    """

    capability = Capability.TEXT
    DEFAULT_OPTIONS = {"temperature": 1.0, "max_tokens": 1000}

    def generate(self, prompt: str, options: Optional[dict[str, Any]] = None) -> str:
        return self._invoke(
            "generate_text",
            lambda handle: handle.generate_text(self.build_params(handle, prompt, options)),
        )

    def stream(self, prompt: str, options: Optional[dict[str, Any]] = None) -> Iterator[str]:
        """
        Stream text chunks from the active provider.

        The provider is resolved before this returns; the chunks are pulled
        lazily and the iterator cannot be restarted. Streams are not retried.
        """
        handle = self.ensure_provider()
        if not handle.is_available():
            raise OperationFailedError(
                handle.name, handle.model_for(self.capability), "stream_text", "provider not available",
            )
        return handle.stream_text(self.build_params(handle, prompt, options))
