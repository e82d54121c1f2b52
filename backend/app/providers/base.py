"""
Base provider interface for capability providers.

Every vendor adapter implements the universal contract (name, version,
availability, model switching) and inherits the full, closed set of
capability operations. Operations a vendor does not offer keep the
default implementation, which raises CapabilityMismatchError, so callers
dispatch on ``supports()`` rather than probing for methods.
"""

import logging
from abc import ABC
from collections import deque
from typing import Any, Iterator, Optional

from backend.app.exceptions import (
    CapabilityMismatchError,
    InvalidModelError,
    UnsupportedModelError,
)
from backend.app.models import Capability, ModelMetadata, ProviderConfig, VideoStatus

logger = logging.getLogger(__name__)

# Depth of the model history kept for restore_model()
MODEL_HISTORY_DEPTH = 5

DEFAULT_REQUEST_TIMEOUT = 60.0


class BaseProvider(ABC):
    """Abstract base class that every capability provider must extend."""

    #: Capabilities this adapter implements. Narrowed by the catalog: a
    #: capability only counts if one of the configured models offers it.
    SUPPORTED_CAPABILITIES: frozenset[Capability] = frozenset()
    VERSION = "1.0"
    DISPLAY_NAME = ""

    def __init__(self, name: str, config: ProviderConfig) -> None:
        self._name = name
        self._config = config
        self._models: dict[str, ModelMetadata] = dict(config.models)
        self._model_history: deque[str] = deque(maxlen=MODEL_HISTORY_DEPTH)

        if not self._models:
            raise InvalidModelError(name, config.default_model, reason="no models configured")

        self._current_model = config.default_model or next(iter(self._models))
        if self._current_model not in self._models:
            raise InvalidModelError(
                name, self._current_model, self._models, reason="default model",
            )

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        """Catalog key of this provider."""
        return self._name

    @property
    def display_name(self) -> str:
        return self._config.display_name or self.DISPLAY_NAME or self._name

    @property
    def version(self) -> str:
        return self.VERSION

    # ------------------------------------------------------------------
    # Capabilities / availability
    # ------------------------------------------------------------------

    def capabilities(self) -> set[Capability]:
        return set(self.SUPPORTED_CAPABILITIES) & self._config.capabilities()

    def supports(self, capability: Capability) -> bool:
        return Capability(capability) in self.capabilities()

    def is_available(self) -> bool:
        """Cheap local check: credentials are configured. No network probe."""
        return bool(self._config.api_key)

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    @property
    def current_model(self) -> str:
        return self._current_model

    def default_model(self) -> str:
        return self._config.default_model or next(iter(self._models))

    def available_models(self, capability: Optional[Capability] = None) -> list[str]:
        if capability is None:
            return list(self._models)
        return [mid for mid, meta in self._models.items() if meta.supports(capability)]

    def has_model(self, model: str) -> bool:
        return model in self._models

    def model_metadata(self, model: Optional[str] = None) -> ModelMetadata:
        model = model or self._current_model
        if model not in self._models:
            raise InvalidModelError(self._name, model, self._models)
        return self._models[model]

    def switch_model(self, model: str) -> "BaseProvider":
        """Make ``model`` current; the previous model goes onto the history."""
        if model not in self._models:
            raise UnsupportedModelError(self._name, model, self._models)
        if model != self._current_model:
            self._model_history.append(self._current_model)
            logger.debug("%s: model %s -> %s", self._name, self._current_model, model)
        self._current_model = model
        return self

    def restore_model(self) -> str:
        """Undo the last model switch. Returns the now-current model."""
        if self._model_history:
            self._current_model = self._model_history.pop()
        return self._current_model

    def snapshot(self) -> tuple[str, tuple[str, ...]]:
        """Current model and model history, for scoped restoration."""
        return self._current_model, tuple(self._model_history)

    def restore_snapshot(self, snapshot: tuple[str, tuple[str, ...]]) -> None:
        model, history = snapshot
        if model not in self._models:
            raise UnsupportedModelError(self._name, model, self._models)
        self._current_model = model
        self._model_history = deque(history, maxlen=MODEL_HISTORY_DEPTH)

    def model_for(self, capability: Capability) -> str:
        """
        Model to use for ``capability``.

        The current model when it supports the capability, else the
        provider default when that does, else the first model that does.
        """
        capability = Capability(capability)
        if self._models[self._current_model].supports(capability):
            return self._current_model
        default = self.default_model()
        if default in self._models and self._models[default].supports(capability):
            return default
        for model_id, meta in self._models.items():
            if meta.supports(capability):
                return model_id
        raise CapabilityMismatchError(self._name, capability)

    # ------------------------------------------------------------------
    # Capability operations (override the ones the vendor offers)
    # ------------------------------------------------------------------

    def generate_text(self, params: dict[str, Any]) -> str:
        raise CapabilityMismatchError(self._name, Capability.TEXT)

    def stream_text(self, params: dict[str, Any]) -> Iterator[str]:
        raise CapabilityMismatchError(self._name, Capability.TEXT)

    def generate_image(self, params: dict[str, Any]) -> str:
        raise CapabilityMismatchError(self._name, Capability.IMAGE)

    def generate_images(self, params: dict[str, Any]) -> list[str]:
        raise CapabilityMismatchError(self._name, Capability.IMAGE)

    def generate_video(self, params: dict[str, Any]) -> str:
        raise CapabilityMismatchError(self._name, Capability.VIDEO)

    def video_status(self, job_id: str) -> VideoStatus:
        raise CapabilityMismatchError(self._name, Capability.VIDEO)

    # ------------------------------------------------------------------
    # Helpers for adapters
    # ------------------------------------------------------------------

    def _require_api_key(self) -> str:
        if not self._config.api_key:
            raise ValueError(f"API key is required for {self.display_name} provider")
        return self._config.api_key

    def _timeout(self) -> float:
        return float(self._config.options.get("timeout", DEFAULT_REQUEST_TIMEOUT))

    def masked_config(self) -> dict[str, Any]:
        """Configuration without the secret part of the API key."""
        data = self._config.model_dump(exclude={"models"})
        key = data.get("api_key")
        if key:
            data["api_key"] = "*" * 8 + key[-4:]
        return data

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._name} model={self._current_model}>"
