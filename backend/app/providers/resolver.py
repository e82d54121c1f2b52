"""
Provider resolver — turns a provider name or a capability into a live handle.

Handles are constructed lazily from catalog data and cached, one per
provider name. Capability resolution walks the default provider followed
by the fallback chain and returns the first candidate that is available
and supports the capability.
"""

import logging
import threading
from typing import Iterable, Mapping, Optional

from backend.app.catalog import CapabilityCatalog
from backend.app.exceptions import GatewayError, NoProviderAvailableError, UnknownProviderError
from backend.app.models import Capability
from backend.app.providers.anthropic_provider import AnthropicProvider
from backend.app.providers.base import BaseProvider
from backend.app.providers.ideogram_provider import IdeogramProvider
from backend.app.providers.mock_provider import MockProvider
from backend.app.providers.openai_provider import OpenAIProvider
from backend.app.providers.runware_provider import RunwareProvider

logger = logging.getLogger(__name__)

# Adapter binding key (ProviderConfig.adapter) -> handle class
DEFAULT_ADAPTERS: dict[str, type[BaseProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "ideogram": IdeogramProvider,
    "runware": RunwareProvider,
    "mock": MockProvider,
}


class ProviderResolver:
    """
    Builds and caches provider handles from an injected catalog.

    Safe to share across threads: the cache is guarded by a lock. The
    handles themselves carry mutable model state and are not.
    """

    def __init__(
        self,
        catalog: CapabilityCatalog,
        adapters: Optional[Mapping[str, type[BaseProvider]]] = None,
    ) -> None:
        self._catalog = catalog
        self._adapters = dict(DEFAULT_ADAPTERS if adapters is None else adapters)
        self._handles: dict[str, BaseProvider] = {}
        self._lock = threading.Lock()

    @property
    def catalog(self) -> CapabilityCatalog:
        return self._catalog

    # ------------------------------------------------------------------
    # By name
    # ------------------------------------------------------------------

    def resolve(self, name: str) -> BaseProvider:
        """
        Return the cached handle for ``name``, constructing it on first use.

        Raises:
            UnknownProviderError: name not in catalog, or adapter binding unknown.
            InvalidModelError: the provider's default model is not in its catalog entry.
        """
        with self._lock:
            handle = self._handles.get(name)
            if handle is not None:
                logger.debug("Provider cache hit: %s", name)
                return handle

            config = self._catalog.provider_config(name)
            adapter_cls = self._adapters.get(config.adapter)
            if adapter_cls is None:
                raise UnknownProviderError(name, reason=f"has unknown adapter '{config.adapter}'")

            handle = adapter_cls(name, config)
            self._handles[name] = handle
            logger.info("Created provider %s (%s, model %s)", name, config.adapter, handle.current_model)
            return handle

    # ------------------------------------------------------------------
    # By capability
    # ------------------------------------------------------------------

    def resolve_for_capability(
        self,
        capability: Capability,
        exclude: Iterable[str] = (),
    ) -> BaseProvider:
        """
        First-fit search over [default] + fallbacks, in declared order.

        Candidates that fail to resolve, are unavailable, or do not support
        the capability are logged and skipped.

        Raises:
            NoProviderAvailableError: no candidate qualified.
        """
        capability = Capability(capability)
        skipped = set(exclude)

        for candidate in self._catalog.candidates(capability):
            if candidate in skipped:
                continue
            try:
                handle = self.resolve(candidate)
            except GatewayError as exc:
                logger.warning("Provider %s failed to resolve for %s: %s", candidate, capability.value, exc)
                continue

            if not handle.is_available():
                logger.warning("Provider %s is not available for %s", candidate, capability.value)
                continue
            if not handle.supports(capability):
                logger.warning("Provider %s does not support %s", candidate, capability.value)
                continue
            return handle

        raise NoProviderAvailableError(capability)

    def probe_providers(self, capability: Capability) -> dict[str, BaseProvider]:
        """Resolve every provider the catalog lists for ``capability``."""
        providers: dict[str, BaseProvider] = {}
        for name in self._catalog.providers_for_capability(capability):
            try:
                providers[name] = self.resolve(name)
            except GatewayError as exc:
                logger.debug("Provider %s could not be resolved: %s", name, exc)
        return providers

    def available_providers(self, capability: Capability) -> dict[str, BaseProvider]:
        """Probed providers that report themselves available."""
        return {
            name: handle
            for name, handle in self.probe_providers(capability).items()
            if handle.is_available()
        }

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def cached_providers(self) -> list[str]:
        with self._lock:
            return list(self._handles)

    def clear_cache(self) -> None:
        """Drop every cached handle; the next resolve builds fresh ones."""
        with self._lock:
            self._handles.clear()
        logger.info("Cleared provider cache")
