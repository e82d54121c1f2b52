"""Image generation service."""

from typing import Any, Optional

from backend.app.models import Capability
from backend.app.providers.base import BaseProvider
from backend.app.services.base import CapabilityService


class ImageService(CapabilityService):
    """Image generation through the active image provider."""

    capability = Capability.IMAGE
    DEFAULT_OPTIONS = {"n": 1}

    def default_options(self, handle: BaseProvider) -> dict[str, Any]:
        # Size and style come from the model that will serve the request
        options = super().default_options(handle)
        meta = handle.model_metadata(handle.model_for(self.capability))
        if meta.default_size:
            options["size"] = meta.default_size
        if meta.default_style:
            options["style"] = meta.default_style
        return options

    def generate(self, prompt: str, options: Optional[dict[str, Any]] = None) -> str:
        """Generate one image and return its URL."""
        return self._invoke(
            "generate_image",
            lambda handle: handle.generate_image(self.build_params(handle, prompt, options)),
        )

    def generate_batch(
        self,
        prompt: str,
        count: int = 1,
        options: Optional[dict[str, Any]] = None,
    ) -> list[str]:
        """Generate ``count`` images for one prompt."""
        if count < 1:
            raise ValueError("count must be at least 1")
        merged = {**(options or {}), "n": count}
        return self._invoke(
            "generate_images",
            lambda handle: handle.generate_images(self.build_params(handle, prompt, merged)),
        )
