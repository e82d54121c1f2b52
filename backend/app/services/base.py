"""
Capability service — the single entry point for one capability.

A service owns the active provider/model selection for its capability:
the selection is resolved lazily through the ProviderResolver, can be
switched explicitly, and can be overridden for the duration of a callback
with guaranteed restoration.

Retry policy: when an operation fails with OperationFailedError and the
active provider was chosen by capability resolution, the service drops its
handle reference, re-resolves once (skipping the provider that failed) and
retries. Explicitly pinned providers fail straight through so that callers
with their own candidate lists see each candidate exactly once.

Instances are not thread-safe. Use one per request or session; the
resolver behind them can be shared.
"""

import logging
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Iterator, Optional, Protocol, TypeVar

from backend.app.exceptions import (
    CapabilityMismatchError,
    GatewayError,
    NoProviderAvailableError,
    OperationFailedError,
    UnsupportedModelError,
)
from backend.app.models import Capability, GenerationRecord, ModelMetadata, ProviderStatus
from backend.app.providers.base import BaseProvider
from backend.app.providers.resolver import ProviderResolver
from backend.app.scope import scoped

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Depth of the provider history kept for restore_provider()
PROVIDER_HISTORY_DEPTH = 5

# Reported by current_provider() before anything has been resolved
DEFAULT_PROVIDER_LABEL = "default"


class GenerationRecorder(Protocol):
    """Sink for per-call records (see backend.app.logger.RequestLogger)."""

    def log(self, record: GenerationRecord) -> Any: ...


@dataclass(eq=False)
class ScopeToken:
    """
    Selection state captured on scope entry.

    ``touched`` collects the model state of every handle whose model was
    switched while the scope was open, as it was before the first switch.
    """
    handle: Optional[BaseProvider]
    provider_name: Optional[str]
    pinned: bool
    history: tuple[str, ...]
    touched: dict[str, tuple[BaseProvider, tuple[str, tuple[str, ...]]]] = field(default_factory=dict)


class CapabilityService:
    """Base class for TextService, ImageService, and VideoService."""

    capability: ClassVar[Capability]
    DEFAULT_OPTIONS: ClassVar[dict[str, Any]] = {}

    def __init__(
        self,
        resolver: ProviderResolver,
        recorder: Optional[GenerationRecorder] = None,
    ) -> None:
        self._resolver = resolver
        self._recorder = recorder
        self._handle: Optional[BaseProvider] = None
        self._provider_name: Optional[str] = None
        self._pinned = False
        self._history: deque[str] = deque(maxlen=PROVIDER_HISTORY_DEPTH)
        self._open_scopes: list[ScopeToken] = []

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _adopt(self, handle: BaseProvider, pinned: bool) -> None:
        if not handle.supports(self.capability):
            raise CapabilityMismatchError(handle.name, self.capability)
        self._handle = handle
        self._provider_name = handle.name
        self._pinned = pinned

    def ensure_provider(self) -> BaseProvider:
        """Return the active handle, resolving by capability if none is set."""
        if self._handle is None:
            self._adopt(self._resolver.resolve_for_capability(self.capability), pinned=False)
        return self._handle

    def current_provider(self) -> str:
        return self._provider_name or DEFAULT_PROVIDER_LABEL

    def is_pinned(self) -> bool:
        return self._pinned

    def switch_provider(self, name: str) -> "CapabilityService":
        """
        Make ``name`` the active provider, bypassing the capability search.

        Raises:
            UnknownProviderError: name not in catalog.
            CapabilityMismatchError: provider does not serve this capability.
        """
        handle = self._resolver.resolve(name)
        previous = self._provider_name
        self._adopt(handle, pinned=True)
        if previous:
            self._history.append(previous)
        logger.info("%s service: provider %s -> %s", self.capability.value, previous or DEFAULT_PROVIDER_LABEL, name)
        return self

    def restore_provider(self) -> "CapabilityService":
        """Undo the most recent switch_provider(). No-op without history."""
        if not self._history:
            return self
        name = self._history.pop()
        self._adopt(self._resolver.resolve(name), pinned=True)
        logger.info("%s service: restored provider %s", self.capability.value, name)
        return self

    def has_provider(self, name: str) -> bool:
        try:
            handle = self._resolver.resolve(name)
        except GatewayError:
            return False
        return handle.supports(self.capability) and handle.is_available()

    def available_providers(self) -> dict[str, ProviderStatus]:
        """Probe every provider the catalog lists for this capability."""
        result: dict[str, ProviderStatus] = {}
        for name, handle in self._resolver.probe_providers(self.capability).items():
            result[name] = ProviderStatus(
                name=name,
                display_name=handle.display_name,
                available=handle.is_available(),
                capabilities=sorted(handle.capabilities(), key=lambda c: c.value),
                supports=[self.capability],
            )
        return result

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    def current_model(self) -> str:
        return self.ensure_provider().model_for(self.capability)

    def available_models(self) -> list[str]:
        return self.ensure_provider().available_models(self.capability)

    def offers_model(self, model: str) -> bool:
        handle = self.ensure_provider()
        return handle.has_model(model) and handle.model_metadata(model).supports(self.capability)

    def has_model(self, model: str) -> bool:
        return model in self.available_models()

    def model_capabilities(self, model: Optional[str] = None) -> ModelMetadata:
        return self.ensure_provider().model_metadata(model or self.current_model())

    def switch_model(self, model: str) -> "CapabilityService":
        """
        Switch the active provider to ``model``.

        Raises:
            UnsupportedModelError: the provider does not offer ``model`` for
                this capability. The current model is left unchanged.
        """
        handle = self.ensure_provider()
        if handle.has_model(model) and not handle.model_metadata(model).supports(self.capability):
            raise UnsupportedModelError(
                handle.name, model, handle.available_models(self.capability),
                reason=f"no {self.capability.value} support",
            )
        snapshot = handle.snapshot()
        handle.switch_model(model)
        for token in self._open_scopes:
            token.touched.setdefault(handle.name, (handle, snapshot))
        return self

    # ------------------------------------------------------------------
    # Scoped overrides
    # ------------------------------------------------------------------

    def enter_scope(self) -> ScopeToken:
        token = ScopeToken(
            handle=self._handle,
            provider_name=self._provider_name,
            pinned=self._pinned,
            history=tuple(self._history),
        )
        self._open_scopes.append(token)
        return token

    def exit_scope(self, token: ScopeToken) -> None:
        """
        Put back the selection captured by ``token``.

        The provider is looked up again by name so that a resolver cache
        cleared inside the scope hands back its current handle.
        """
        if token in self._open_scopes:
            self._open_scopes.remove(token)
        handle = token.handle
        if token.provider_name is not None:
            try:
                handle = self._resolver.resolve(token.provider_name)
            except GatewayError as exc:
                logger.warning(
                    "Could not re-resolve provider %s on scope exit: %s", token.provider_name, exc,
                )
        self._handle = handle
        self._provider_name = token.provider_name
        self._pinned = token.pinned
        self._history = deque(token.history, maxlen=PROVIDER_HISTORY_DEPTH)
        for name, (touched, snapshot) in token.touched.items():
            try:
                touched.restore_snapshot(snapshot)
            except GatewayError as exc:
                logger.warning("Could not restore original model on %s: %s", name, exc)

    @contextmanager
    def using_provider(self, name: str) -> Iterator["CapabilityService"]:
        """Temporarily switch provider; the previous selection returns on exit."""
        with scoped(self):
            self.switch_provider(name)
            yield self

    @contextmanager
    def using_model(self, model: str) -> Iterator["CapabilityService"]:
        """Temporarily switch model; the previous model returns on exit."""
        self.ensure_provider()
        with scoped(self):
            self.switch_model(model)
            yield self

    def with_provider(self, name: str, fn: Callable[["CapabilityService"], T]) -> T:
        with self.using_provider(name):
            return fn(self)

    def with_model(self, model: str, fn: Callable[["CapabilityService"], T]) -> T:
        with self.using_model(model):
            return fn(self)

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def default_options(self, handle: BaseProvider) -> dict[str, Any]:
        """Capability defaults; subclasses may derive them from model metadata."""
        return dict(self.DEFAULT_OPTIONS)

    def build_params(
        self,
        handle: BaseProvider,
        prompt: str,
        options: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Caller options merged over capability defaults."""
        params = self.default_options(handle)
        params.update(options or {})
        params["prompt"] = prompt
        return params

    def _record(
        self,
        operation: str,
        handle: BaseProvider,
        model: Optional[str],
        started: float,
        error: Optional[Exception] = None,
    ) -> None:
        if self._recorder is None:
            return
        self._recorder.log(GenerationRecord(
            capability=self.capability,
            operation=operation,
            provider=handle.name,
            model=model,
            latency_ms=int((time.perf_counter() - started) * 1000),
            success=error is None,
            error=str(error)[:500] if error is not None else None,
        ))

    def _call(self, handle: BaseProvider, operation: str, call: Callable[[BaseProvider], T]) -> T:
        model = handle.model_for(self.capability)
        started = time.perf_counter()
        try:
            if not handle.is_available():
                raise OperationFailedError(handle.name, model, operation, "provider not available")
            result = call(handle)
        except GatewayError as exc:
            self._record(operation, handle, model, started, error=exc)
            raise
        self._record(operation, handle, model, started)
        return result

    def _invoke(self, operation: str, call: Callable[[BaseProvider], T]) -> T:
        """Run ``call`` on the active handle with the single re-resolution retry."""
        handle = self.ensure_provider()
        try:
            return self._call(handle, operation, call)
        except OperationFailedError as exc:
            if self._pinned:
                raise
            logger.warning(
                "%s via %s failed, re-resolving once: %s", operation, handle.name, exc,
            )
            self._handle = None
            try:
                retry_handle = self._resolver.resolve_for_capability(
                    self.capability, exclude={handle.name},
                )
            except NoProviderAvailableError:
                logger.warning("No alternative provider for %s", self.capability.value)
                self._adopt(handle, pinned=False)
                raise exc
            self._adopt(retry_handle, pinned=False)

        return self._call(retry_handle, operation, call)
