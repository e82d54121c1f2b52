"""
Service factory — hands out capability services bound to one resolver.

``create()`` returns a cached instance per capability for long-lived,
single-threaded callers; ``new_service()`` returns a fresh instance, which
is what agents and per-request HTTP handlers use.
"""

import logging
from typing import Optional

from backend.app.exceptions import CapabilityMismatchError, GatewayError, UnknownProviderError
from backend.app.models import Capability
from backend.app.providers.resolver import ProviderResolver
from backend.app.services.base import CapabilityService, GenerationRecorder
from backend.app.services.image import ImageService
from backend.app.services.text import TextService
from backend.app.services.video import VideoService

logger = logging.getLogger(__name__)

SERVICE_CLASSES: dict[Capability, type[CapabilityService]] = {
    Capability.TEXT: TextService,
    Capability.IMAGE: ImageService,
    Capability.VIDEO: VideoService,
}


class ServiceFactory:
    def __init__(
        self,
        resolver: ProviderResolver,
        recorder: Optional[GenerationRecorder] = None,
    ) -> None:
        self._resolver = resolver
        self._recorder = recorder
        self._services: dict[Capability, CapabilityService] = {}
        self._default_provider: Optional[str] = None

    @property
    def resolver(self) -> ProviderResolver:
        return self._resolver

    @property
    def default_provider(self) -> Optional[str]:
        """Provider override applied to new services, if one was set."""
        return self._default_provider

    def new_service(self, capability: Capability) -> CapabilityService:
        """
        Build a fresh service for ``capability``.

        The factory-wide default provider is pinned on the new service when
        it serves the capability; otherwise the catalog decides.
        """
        capability = Capability(capability)
        service_cls = SERVICE_CLASSES.get(capability)
        if service_cls is None:
            raise CapabilityMismatchError("factory", capability)

        service = service_cls(self._resolver, recorder=self._recorder)
        if self._default_provider:
            try:
                service.switch_provider(self._default_provider)
            except CapabilityMismatchError:
                logger.debug(
                    "Default provider %s does not serve %s; using catalog order",
                    self._default_provider, capability.value,
                )
        return service

    def create(self, capability: Capability) -> CapabilityService:
        """Cached service for ``capability``."""
        capability = Capability(capability)
        service = self._services.get(capability)
        if service is None:
            service = self.new_service(capability)
            self._services[capability] = service
        return service

    def text(self) -> TextService:
        return self.create(Capability.TEXT)

    def image(self) -> ImageService:
        return self.create(Capability.IMAGE)

    def video(self) -> VideoService:
        return self.create(Capability.VIDEO)

    def set_default_provider(self, name: Optional[str]) -> None:
        """
        Pin ``name`` on every service created from now on (None clears it).

        Cached services and provider handles are dropped so nothing keeps
        the old selection.
        """
        if name is not None and not self._resolver.catalog.has_provider(name):
            raise UnknownProviderError(name)
        self._default_provider = name
        self._services.clear()
        self._resolver.clear_cache()
        logger.info("Default provider set to %s", name or "catalog default")

    def available_capabilities(self) -> list[Capability]:
        """Capabilities for which at least one provider currently resolves."""
        found = []
        for capability in SERVICE_CLASSES:
            try:
                self._resolver.resolve_for_capability(capability)
            except GatewayError:
                continue
            found.append(capability)
        return found
