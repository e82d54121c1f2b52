"""
Pydantic schemas for the AI Capability Gateway.

Covers: capabilities, catalog metadata, provider status, video job status,
request history / stats, and all API request / response envelopes.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Capability(str, Enum):
    """Generative operations a provider may offer."""
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


class VideoJobState(str, Enum):
    """Lifecycle of an asynchronous video generation job."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Catalog metadata
# ---------------------------------------------------------------------------

class ModelMetadata(BaseModel):
    """Static metadata for a single model of one provider."""
    name: str = Field(..., min_length=1, description="Display name")
    version: str = "unknown"
    capabilities: list[Capability] = Field(default_factory=list)
    max_tokens: Optional[int] = Field(default=None, ge=1)
    supports_streaming: bool = False
    supports_functions: bool = False

    # Image extras
    default_size: Optional[str] = None
    default_style: Optional[str] = None
    sizes: list[str] = Field(default_factory=list)
    styles: list[str] = Field(default_factory=list)
    quality: list[str] = Field(default_factory=list)

    def supports(self, capability: Capability) -> bool:
        return Capability(capability) in self.capabilities


class ProviderConfig(BaseModel):
    """Catalog entry for one provider."""
    adapter: str = Field(..., min_length=1, description="Adapter binding key")
    display_name: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    default_model: Optional[str] = None
    models: dict[str, ModelMetadata] = Field(default_factory=dict)
    options: dict[str, Any] = Field(default_factory=dict)

    def capabilities(self) -> set[Capability]:
        """Union of the capabilities of every configured model."""
        found: set[Capability] = set()
        for meta in self.models.values():
            found.update(meta.capabilities)
        return found


# ---------------------------------------------------------------------------
# Provider / job status
# ---------------------------------------------------------------------------

class ProviderStatus(BaseModel):
    """Liveness probe result for one provider."""
    name: str
    display_name: str
    available: bool
    capabilities: list[Capability] = Field(default_factory=list)
    supports: list[Capability] = Field(
        default_factory=list,
        description="Capabilities this provider serves for the asking agent",
    )


class VideoStatus(BaseModel):
    """Status record returned for a video generation job."""
    job_id: str
    state: VideoJobState
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    url: Optional[str] = None
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Request history / stats
# ---------------------------------------------------------------------------

class GenerationRecord(BaseModel):
    """One provider call made by a capability service."""
    record_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    capability: Capability
    operation: str
    provider: str
    model: Optional[str] = None
    latency_ms: int = Field(default=0, ge=0)
    success: bool = True
    error: Optional[str] = Field(default=None, max_length=500)


class ProviderUsageStat(BaseModel):
    """Call count, failure count, and latency for a single provider."""
    provider: str
    request_count: int = Field(..., ge=0)
    failure_count: int = Field(..., ge=0)
    avg_latency_ms: float = Field(..., ge=0.0)


class GatewayStats(BaseModel):
    """GET /stats — aggregated analytics."""
    total_requests: int = Field(..., ge=0)
    total_failures: int = Field(..., ge=0)
    success_rate_percent: float = Field(..., ge=0.0, le=100.0)
    provider_usage: list[ProviderUsageStat] = Field(default_factory=list)
    capability_counts: dict[Capability, int] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# API request / response envelopes
# ---------------------------------------------------------------------------

class _PromptRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=10_000)
    provider: Optional[str] = Field(
        default=None, description="Pin a provider for this request only",
    )
    model: Optional[str] = Field(
        default=None, description="Pin a model for this request only",
    )
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("prompt")
    @classmethod
    def validate_prompt_not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("prompt must not be blank or whitespace-only")
        return stripped


class TextRequest(_PromptRequest):
    """POST /text — request body."""


class TextResponse(BaseModel):
    """POST /text — generated text and the selection that produced it."""
    request_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    text: str
    provider: str
    model: str
    cached: bool = False


class ImageRequest(_PromptRequest):
    """POST /image — request body."""
    count: int = Field(default=1, ge=1, le=10)


class ImageResponse(BaseModel):
    """POST /image — generated image URLs."""
    request_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    urls: list[str]
    provider: str
    model: str


class VideoRequest(_PromptRequest):
    """POST /video — request body."""


class VideoJobResponse(BaseModel):
    """POST /video — accepted job."""
    job_id: str
    provider: str
    model: str


class ContentRequest(BaseModel):
    """POST /content — run the content creator agent."""
    topic: str = Field(..., min_length=1, max_length=500)
    style: str = "professional"
    include_image: bool = True
    candidates: list[str] = Field(
        default_factory=list,
        description="Ordered provider names to fall back through",
    )


class ContentResponse(BaseModel):
    """POST /content — agent output."""
    topic: str
    style: str
    content: str
    image: Optional[str] = None
    provider: str
