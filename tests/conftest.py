"""
Pytest configuration and shared fixtures.

Catalogs in these tests use the ``mock`` adapter, so no vendor SDK or
network is touched. Availability and failures are controlled through the
mock provider options ``available`` and ``fail_times``.
"""

from typing import Any, Iterable, Optional

import pytest

from backend.app.catalog import CapabilityCatalog
from backend.app.logger import RequestLogger
from backend.app.providers.resolver import ProviderResolver
from backend.app.services.factory import ServiceFactory


def provider_entry(
    models: dict[str, Iterable[str]],
    default_model: Optional[str] = None,
    available: bool = True,
    fail_times: int = 0,
    adapter: str = "mock",
    **model_extras: Any,
) -> dict[str, Any]:
    """Catalog entry with ``models`` given as model id -> capability names."""
    return {
        "adapter": adapter,
        "default_model": default_model,
        "options": {"available": available, "fail_times": fail_times},
        "models": {
            model_id: {"name": model_id, "capabilities": list(caps), **model_extras}
            for model_id, caps in models.items()
        },
    }


@pytest.fixture
def make_entry():
    return provider_entry


@pytest.fixture
def make_catalog():
    """Build a catalog from provider entries plus optional chains."""

    def _make(
        providers: dict[str, dict[str, Any]],
        default_providers: Optional[dict[str, str]] = None,
        fallback_providers: Optional[dict[str, list[str]]] = None,
        default_provider: Optional[str] = None,
    ) -> CapabilityCatalog:
        return CapabilityCatalog.from_dict({
            "providers": providers,
            "default_providers": default_providers or {},
            "fallback_providers": fallback_providers or {},
            "default_provider": default_provider,
        })

    return _make


@pytest.fixture
def catalog(make_catalog) -> CapabilityCatalog:
    """
    alpha, beta: text.  pixel: image.  studio: text, image, video.

    text: alpha -> beta, image: pixel -> studio, video: studio.
    """
    return make_catalog(
        {
            "alpha": provider_entry({"alpha-1": ["text"], "alpha-2": ["text"]}, default_model="alpha-1"),
            "beta": provider_entry({"beta-1": ["text"]}),
            "pixel": provider_entry({"pixel-1": ["image"]}, default_size="512x512", default_style="flat"),
            "studio": provider_entry(
                {"studio-text": ["text"], "studio-image": ["image"], "studio-video": ["video"]},
                default_model="studio-text",
            ),
        },
        default_providers={"text": "alpha", "image": "pixel", "video": "studio"},
        fallback_providers={"text": ["alpha", "beta"], "image": ["pixel", "studio"]},
    )


@pytest.fixture
def resolver(catalog) -> ProviderResolver:
    return ProviderResolver(catalog)


@pytest.fixture
def recorder() -> RequestLogger:
    return RequestLogger()


@pytest.fixture
def factory(resolver, recorder) -> ServiceFactory:
    return ServiceFactory(resolver, recorder=recorder)
