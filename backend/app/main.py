"""
FastAPI application — AI Capability Gateway entry point.

Endpoints:
  GET  /providers       — providers per capability with availability
  GET  /models          — model catalog, optionally for one provider
  POST /text            — text generation (cached per selection)
  POST /image           — image generation
  POST /video           — submit a video generation job
  GET  /video/{job_id}  — video job status
  POST /content         — content creator agent, with optional fallback list
  GET  /logs            — generation history
  GET  /stats           — per-provider usage, failures, latency
  GET  /health          — simple health check
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.app.agents.content_creator import ContentCreatorAgent
from backend.app.cache import ResponseCache
from backend.app.config import configure_logging, load_catalog
from backend.app.exceptions import GatewayError
from backend.app.logger import RequestLogger
from backend.app.models import (
    Capability,
    ContentRequest,
    ContentResponse,
    GatewayStats,
    GenerationRecord,
    ImageRequest,
    ImageResponse,
    ModelMetadata,
    ProviderStatus,
    TextRequest,
    TextResponse,
    VideoJobResponse,
    VideoRequest,
    VideoStatus,
)
from backend.app.providers.resolver import ProviderResolver
from backend.app.scope import scoped
from backend.app.services.base import CapabilityService
from backend.app.services.factory import ServiceFactory

configure_logging()
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App init
# ---------------------------------------------------------------------------

app = FastAPI(
    title="AI Capability Gateway",
    description="Resolves text, image and video requests to configured AI providers with fallback.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ---------------------------------------------------------------------------
# Shared singletons
# ---------------------------------------------------------------------------

_cache = ResponseCache()
_logger = RequestLogger()
_resolver: Optional[ProviderResolver] = None
_resolver_lock = threading.Lock()


def get_resolver() -> ProviderResolver:
    """Process-wide resolver, built from the environment on first use."""
    global _resolver
    with _resolver_lock:
        if _resolver is None:
            _resolver = ProviderResolver(load_catalog())
        return _resolver


def get_request_logger() -> RequestLogger:
    return _logger


def get_response_cache() -> ResponseCache:
    return _cache


def get_factory(
    resolver: ProviderResolver = Depends(get_resolver),
    recorder: RequestLogger = Depends(get_request_logger),
) -> ServiceFactory:
    return ServiceFactory(resolver, recorder=recorder)


@contextmanager
def _selection(
    service: CapabilityService,
    provider: Optional[str],
    model: Optional[str],
) -> Iterator[CapabilityService]:
    """Per-request provider / model pins. Handles are shared, so the model is put back afterwards."""
    with scoped(service):
        if provider:
            service.switch_provider(provider)
        if model:
            service.switch_model(model)
        yield service


# ---------------------------------------------------------------------------
# GET /providers, GET /models
# ---------------------------------------------------------------------------

@app.get("/providers", response_model=list[ProviderStatus])
def list_providers(
    capability: Optional[Capability] = Query(default=None),
    factory: ServiceFactory = Depends(get_factory),
) -> list[ProviderStatus]:
    """Probe providers for one capability, or for all of them."""
    capabilities = [capability] if capability else list(Capability)
    merged: dict[str, ProviderStatus] = {}
    for cap in capabilities:
        for name, status in factory.new_service(cap).available_providers().items():
            if name in merged:
                merged[name].supports.append(cap)
            else:
                merged[name] = status
    return list(merged.values())


@app.get("/models", response_model=dict[str, dict[str, ModelMetadata]])
def list_models(
    provider: Optional[str] = Query(default=None),
    resolver: ProviderResolver = Depends(get_resolver),
) -> dict[str, dict[str, ModelMetadata]]:
    """Model catalog keyed by provider."""
    catalog = resolver.catalog
    names = [provider] if provider else catalog.provider_names()
    return {name: catalog.models_of(name) for name in names}


# ---------------------------------------------------------------------------
# POST /text
# ---------------------------------------------------------------------------

@app.post("/text", response_model=TextResponse)
def generate_text(
    request: TextRequest,
    factory: ServiceFactory = Depends(get_factory),
    cache: ResponseCache = Depends(get_response_cache),
) -> TextResponse:
    with _selection(factory.new_service(Capability.TEXT), request.provider, request.model) as service:
        provider, model = service.ensure_provider().name, service.current_model()
        key = cache.make_key(request.prompt, provider, model, request.options)
        cached = cache.get(key)
        if cached is not None:
            return cached.model_copy(update={"cached": True})

        text = service.generate(request.prompt, request.options)
        response = TextResponse(
            text=text,
            provider=service.current_provider(),
            model=service.current_model(),
        )

    # A retry may have moved the request to another provider
    if response.provider == provider:
        cache.put(key, response)
    return response


# ---------------------------------------------------------------------------
# POST /image
# ---------------------------------------------------------------------------

@app.post("/image", response_model=ImageResponse)
def generate_image(
    request: ImageRequest,
    factory: ServiceFactory = Depends(get_factory),
) -> ImageResponse:
    with _selection(factory.new_service(Capability.IMAGE), request.provider, request.model) as service:
        urls = service.generate_batch(request.prompt, request.count, request.options)
        return ImageResponse(
            urls=urls,
            provider=service.current_provider(),
            model=service.current_model(),
        )


# ---------------------------------------------------------------------------
# POST /video, GET /video/{job_id}
# ---------------------------------------------------------------------------

@app.post("/video", response_model=VideoJobResponse)
def submit_video(
    request: VideoRequest,
    factory: ServiceFactory = Depends(get_factory),
) -> VideoJobResponse:
    with _selection(factory.new_service(Capability.VIDEO), request.provider, request.model) as service:
        job_id = service.generate(request.prompt, request.options)
        return VideoJobResponse(
            job_id=job_id,
            provider=service.current_provider(),
            model=service.current_model(),
        )


@app.get("/video/{job_id}", response_model=VideoStatus)
def video_status(
    job_id: str,
    provider: Optional[str] = Query(default=None, description="Provider that accepted the job"),
    factory: ServiceFactory = Depends(get_factory),
) -> VideoStatus:
    with _selection(factory.new_service(Capability.VIDEO), provider, None) as service:
        return service.status(job_id)


# ---------------------------------------------------------------------------
# POST /content
# ---------------------------------------------------------------------------

@app.post("/content", response_model=ContentResponse)
def create_content(
    request: ContentRequest,
    factory: ServiceFactory = Depends(get_factory),
) -> ContentResponse:
    """Run the content creator agent, walking ``candidates`` when given."""
    agent = ContentCreatorAgent(factory)
    data = request.model_dump(exclude={"candidates"})
    if request.candidates:
        result = agent.execute_with_fallback(data, request.candidates)
    else:
        result = agent.execute(data)
    return ContentResponse(**result)


# ---------------------------------------------------------------------------
# GET /logs, GET /stats
# ---------------------------------------------------------------------------

@app.get("/logs", response_model=list[GenerationRecord])
def get_logs(
    limit: int = Query(default=50, ge=1, le=200, description="Max entries to return"),
    offset: int = Query(default=0, ge=0, description="Entries to skip"),
    recorder: RequestLogger = Depends(get_request_logger),
) -> list[GenerationRecord]:
    """Return generation history in reverse-chronological order."""
    return recorder.get_logs(limit=limit, offset=offset)


@app.get("/stats", response_model=GatewayStats)
def get_stats(recorder: RequestLogger = Depends(get_request_logger)) -> GatewayStats:
    return recorder.get_stats()


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------

@app.get("/health")
def health_check(
    factory: ServiceFactory = Depends(get_factory),
    recorder: RequestLogger = Depends(get_request_logger),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Simple health check endpoint."""
    return {
        "status": "healthy",
        "providers_configured": len(factory.resolver.catalog.provider_names()),
        "capabilities_available": [cap.value for cap in factory.available_capabilities()],
        "cache_stats": cache.stats(),
        "total_requests_logged": recorder.count,
    }
