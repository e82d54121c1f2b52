"""
Capability catalog — static knowledge of providers, models, and chains.

Holds every configured provider with its models and the capabilities each
model supports, plus a default provider and an ordered fallback list per
capability. Built once (see ``config.load_catalog``) and passed by
reference to the resolver; read-only afterwards.
"""

import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from backend.app.exceptions import CatalogError, UnknownProviderError
from backend.app.models import Capability, ModelMetadata, ProviderConfig

logger = logging.getLogger(__name__)


class CapabilityCatalog:
    """Read-only lookups over provider and model configuration."""

    def __init__(
        self,
        providers: Mapping[str, ProviderConfig],
        default_providers: Optional[Mapping[Capability, str]] = None,
        fallback_providers: Optional[Mapping[Capability, list[str]]] = None,
        default_provider: Optional[str] = None,
    ) -> None:
        self._providers: Mapping[str, ProviderConfig] = MappingProxyType(dict(providers))
        self._default_provider = default_provider or None

        defaults: dict[Capability, str] = {}
        for capability, name in (default_providers or {}).items():
            if name:
                defaults[Capability(capability)] = name
        self._default_providers = MappingProxyType(defaults)

        chains: dict[Capability, tuple[str, ...]] = {}
        for capability, names in (fallback_providers or {}).items():
            capability = Capability(capability)
            chains[capability] = self._validated_chain(capability, names)
        self._fallback_providers = MappingProxyType(chains)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CapabilityCatalog":
        """
        Build a catalog from plain configuration data.

        Expected keys: ``providers`` (name -> provider config dict),
        ``default_provider``, ``default_providers`` (capability -> name)
        and ``fallback_providers`` (capability -> [names]).
        """
        providers: dict[str, ProviderConfig] = {}
        for name, raw in (data.get("providers") or {}).items():
            try:
                providers[name] = ProviderConfig.model_validate(raw)
            except ValidationError as exc:
                raise CatalogError(
                    f"Invalid configuration for provider '{name}'",
                    details={"provider": name, "errors": exc.errors()},
                ) from exc

        try:
            default_providers = {
                Capability(cap): name
                for cap, name in (data.get("default_providers") or {}).items()
            }
            fallback_providers = {
                Capability(cap): list(names or [])
                for cap, names in (data.get("fallback_providers") or {}).items()
            }
        except ValueError as exc:
            raise CatalogError(f"Unknown capability in catalog: {exc}") from exc

        return cls(
            providers,
            default_providers=default_providers,
            fallback_providers=fallback_providers,
            default_provider=data.get("default_provider"),
        )

    def _validated_chain(self, capability: Capability, names: list[str]) -> tuple[str, ...]:
        """Drop chain entries that cannot serve the capability."""
        chain: list[str] = []
        for name in names:
            config = self._providers.get(name)
            if config is None:
                logger.warning(
                    "Dropping fallback provider '%s' for %s: not in catalog",
                    name, capability.value,
                )
                continue
            if capability not in config.capabilities():
                logger.warning(
                    "Dropping fallback provider '%s' for %s: no model supports it",
                    name, capability.value,
                )
                continue
            if name not in chain:
                chain.append(name)
        return tuple(chain)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def provider_config(self, name: str) -> ProviderConfig:
        """Return the config for ``name``; raise UnknownProviderError if absent."""
        config = self._providers.get(name)
        if config is None:
            raise UnknownProviderError(name)
        return config

    def has_provider(self, name: str) -> bool:
        return name in self._providers

    def provider_names(self) -> list[str]:
        return list(self._providers)

    def default_provider(self, capability: Optional[Capability] = None) -> Optional[str]:
        """Capability-specific default, else the global default, else None."""
        if capability is not None:
            name = self._default_providers.get(Capability(capability))
            if name:
                return name
        return self._default_provider

    def fallback_providers(self, capability: Capability) -> list[str]:
        return list(self._fallback_providers.get(Capability(capability), ()))

    def models_of(self, provider: str) -> dict[str, ModelMetadata]:
        return dict(self.provider_config(provider).models)

    def providers_for_capability(self, capability: Capability) -> list[str]:
        """Providers with at least one model supporting ``capability``."""
        capability = Capability(capability)
        return [
            name for name, config in self._providers.items()
            if capability in config.capabilities()
        ]

    def candidates(self, capability: Capability) -> list[str]:
        """Default followed by fallbacks, deduplicated, order preserved."""
        ordered: list[str] = []
        default = self.default_provider(capability)
        for name in ([default] if default else []) + self.fallback_providers(capability):
            if name not in ordered:
                ordered.append(name)
        return ordered
