"""
Agent base class — composes capability services and runs them together.

An agent declares the capabilities it needs; the factory gives it a fresh
service per capability. Provider and model switches are applied across
all composed services, and ``execute_with_fallback`` walks an explicit
list of provider/model candidates until one succeeds.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Mapping, NamedTuple, Optional, TypeVar, Union

from backend.app.exceptions import (
    AllProvidersFailedError,
    NoProviderAvailableError,
    UnsupportedModelError,
)
from backend.app.models import Capability, ModelMetadata, ProviderStatus
from backend.app.scope import scoped
from backend.app.services.base import PROVIDER_HISTORY_DEPTH, CapabilityService
from backend.app.services.factory import ServiceFactory
from backend.app.services.image import ImageService
from backend.app.services.text import TextService
from backend.app.services.video import VideoService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Candidate(NamedTuple):
    """One provider (and optionally model) to try in a fallback run."""
    provider: str
    model: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.provider}:{self.model}" if self.model else self.provider


CandidateLike = Union[str, Candidate, Mapping[str, Any], tuple]


def _as_candidate(item: CandidateLike) -> Candidate:
    if isinstance(item, Candidate):
        return item
    if isinstance(item, str):
        return Candidate(item)
    if isinstance(item, Mapping):
        return Candidate(item["provider"], item.get("model"))
    return Candidate(*item)


@dataclass(frozen=True)
class _AgentToken:
    provider: Optional[str]
    history: tuple[str, ...]


class BaseAgent(ABC):
    """Base class for agents built from capability services."""

    required_services: tuple[Capability, ...] = (Capability.TEXT,)

    def __init__(self, factory: ServiceFactory) -> None:
        self._factory = factory
        self._services: dict[Capability, CapabilityService] = {
            Capability(cap): factory.new_service(cap) for cap in self.required_services
        }
        self._current_provider: Optional[str] = None
        self._history: deque[str] = deque(maxlen=PROVIDER_HISTORY_DEPTH)

    @abstractmethod
    def execute(self, data: dict[str, Any]) -> Any:
        """Run the agent's task on ``data``."""

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def has_service(self, capability: Capability) -> bool:
        return Capability(capability) in self._services

    def service(self, capability: Capability) -> Optional[CapabilityService]:
        return self._services.get(Capability(capability))

    @property
    def text_service(self) -> Optional[TextService]:
        return self._services.get(Capability.TEXT)

    @property
    def image_service(self) -> Optional[ImageService]:
        return self._services.get(Capability.IMAGE)

    @property
    def video_service(self) -> Optional[VideoService]:
        return self._services.get(Capability.VIDEO)

    def _primary(self) -> CapabilityService:
        return self._services[Capability(self.required_services[0])]

    # ------------------------------------------------------------------
    # Provider selection
    # ------------------------------------------------------------------

    def switch_provider(self, name: str) -> "BaseAgent":
        """
        Switch every composed service to ``name``.

        The first failure propagates. Services switched before it stay
        switched.
        """
        for service in self._services.values():
            service.switch_provider(name)
        if self._current_provider:
            self._history.append(self._current_provider)
        self._current_provider = name
        return self

    def restore_provider(self) -> "BaseAgent":
        for service in self._services.values():
            service.restore_provider()
        self._current_provider = self._history.pop() if self._history else None
        return self

    def current_provider(self) -> str:
        return self._current_provider or self._primary().current_provider()

    def has_provider(self, name: str) -> bool:
        return any(service.has_provider(name) for service in self._services.values())

    def available_providers(self) -> dict[str, ProviderStatus]:
        """Providers across all services; ``supports`` lists what each serves here."""
        merged: dict[str, ProviderStatus] = {}
        for capability, service in self._services.items():
            for name, status in service.available_providers().items():
                if name in merged:
                    merged[name].supports.append(capability)
                else:
                    merged[name] = status.model_copy(update={"supports": [capability]})
        return merged

    # ------------------------------------------------------------------
    # Model selection
    # ------------------------------------------------------------------

    def switch_model(self, model: str) -> "BaseAgent":
        """
        Switch ``model`` on every service whose provider offers it.

        Raises:
            UnsupportedModelError: no composed service can use the model.
        """
        targets = []
        for service in self._services.values():
            try:
                if service.offers_model(model):
                    targets.append(service)
            except NoProviderAvailableError:
                continue
        if not targets:
            raise UnsupportedModelError(
                self.current_provider(), model, self.available_models(),
                reason=f"no {type(self).__name__} service offers it",
            )
        for service in targets:
            service.switch_model(model)
        return self

    def current_model(self) -> str:
        return self._primary().current_model()

    def available_models(self) -> list[str]:
        try:
            return self._primary().available_models()
        except NoProviderAvailableError:
            return []

    def has_model(self, model: str) -> bool:
        return model in self.available_models()

    def model_capabilities(self, model: Optional[str] = None) -> ModelMetadata:
        return self._primary().model_capabilities(model)

    # ------------------------------------------------------------------
    # Scoped overrides
    # ------------------------------------------------------------------

    def enter_scope(self) -> _AgentToken:
        return _AgentToken(self._current_provider, tuple(self._history))

    def exit_scope(self, token: _AgentToken) -> None:
        self._current_provider = token.provider
        self._history = deque(token.history, maxlen=PROVIDER_HISTORY_DEPTH)

    @contextmanager
    def using_provider(self, name: str) -> Iterator["BaseAgent"]:
        with scoped(self, *self._services.values()):
            self.switch_provider(name)
            yield self

    @contextmanager
    def using_model(self, model: str) -> Iterator["BaseAgent"]:
        with scoped(self, *self._services.values()):
            self.switch_model(model)
            yield self

    def with_provider(self, name: str, fn: Callable[["BaseAgent"], T]) -> T:
        with self.using_provider(name):
            return fn(self)

    def with_model(self, model: str, fn: Callable[["BaseAgent"], T]) -> T:
        with self.using_model(model):
            return fn(self)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute_with(
        self,
        data: dict[str, Any],
        provider: Optional[str] = None,
        model: Optional[str] = None,
    ) -> Any:
        """Run ``execute`` under a temporary provider and/or model."""
        with scoped(self, *self._services.values()):
            if provider:
                self.switch_provider(provider)
            if model:
                self.switch_model(model)
            return self.execute(data)

    def execute_with_fallback(
        self,
        data: dict[str, Any],
        candidates: Iterable[CandidateLike],
    ) -> Any:
        """
        Try each candidate in order until one succeeds.

        Any exception is logged and the next candidate is tried, including
        configuration errors such as a provider that cannot serve one of
        the composed capabilities.

        Raises:
            NoProviderAvailableError: ``candidates`` is empty.
            AllProvidersFailedError: every candidate failed.
        """
        candidates = [_as_candidate(item) for item in candidates]
        if not candidates:
            raise NoProviderAvailableError(
                self.required_services[0], message="No fallback candidates given",
            )

        errors: list[tuple[str, Exception]] = []
        for candidate in candidates:
            try:
                return self.execute_with(data, provider=candidate.provider, model=candidate.model)
            except Exception as exc:
                logger.warning("Candidate %s failed: %s", candidate, exc)
                errors.append((str(candidate), exc))

        raise AllProvidersFailedError(errors, self.required_services[0]) from errors[-1][1]
