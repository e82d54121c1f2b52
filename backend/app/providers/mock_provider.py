"""
Mock provider for offline use and tests.

Serves all three capabilities without network calls. Responses are
deterministic and derived from the prompt; failures can be injected with
the ``fail_times`` option (the first N operations raise).

Usage:
    "mock": {
        "adapter": "mock",
        "default_model": "mock-text-v1",
        "options": {"fail_times": 1},
        "models": {...},
    }
"""

import hashlib
import logging
import uuid
from typing import Any, Iterator

from backend.app.exceptions import OperationFailedError
from backend.app.models import (
    Capability,
    ProviderConfig,
    VideoJobState,
    VideoStatus,
)
from backend.app.providers.base import BaseProvider

logger = logging.getLogger(__name__)


class MockProvider(BaseProvider):
    """Deterministic provider that never leaves the process."""

    SUPPORTED_CAPABILITIES = frozenset(Capability)
    VERSION = "1.0"
    DISPLAY_NAME = "Mock"

    def __init__(self, name: str, config: ProviderConfig) -> None:
        super().__init__(name, config)
        self._fail_times = int(config.options.get("fail_times", 0))
        self._jobs: dict[str, VideoStatus] = {}
        self.call_count = 0

    def is_available(self) -> bool:
        return bool(self._config.options.get("available", True))

    def _tick(self, operation: str, model: str) -> None:
        self.call_count += 1
        if self._fail_times > 0:
            self._fail_times -= 1
            raise OperationFailedError(self.name, model, operation, "simulated failure")

    @staticmethod
    def _digest(text: str) -> str:
        return hashlib.sha256(text.encode()).hexdigest()[:12]

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def generate_text(self, params: dict[str, Any]) -> str:
        model = self.model_for(Capability.TEXT)
        self._tick("generate_text", model)
        return f"[{self.name}:{model}] {params['prompt']}"

    def stream_text(self, params: dict[str, Any]) -> Iterator[str]:
        text = self.generate_text(params)
        for word in text.split(" "):
            yield word + " "

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def generate_image(self, params: dict[str, Any]) -> str:
        return self.generate_images({**params, "n": 1})[0]

    def generate_images(self, params: dict[str, Any]) -> list[str]:
        model = self.model_for(Capability.IMAGE)
        self._tick("generate_images", model)
        digest = self._digest(params["prompt"])
        count = int(params.get("n") or 1)
        return [f"mock://{self.name}/{model}/{digest}-{i}.png" for i in range(count)]

    # ------------------------------------------------------------------
    # Video
    # ------------------------------------------------------------------

    def generate_video(self, params: dict[str, Any]) -> str:
        model = self.model_for(Capability.VIDEO)
        self._tick("generate_video", model)
        job_id = uuid.uuid4().hex
        self._jobs[job_id] = VideoStatus(
            job_id=job_id,
            state=VideoJobState.COMPLETED,
            progress=1.0,
            url=f"mock://{self.name}/{model}/{job_id}.mp4",
        )
        logger.debug("Mock video job %s created", job_id)
        return job_id

    def video_status(self, job_id: str) -> VideoStatus:
        status = self._jobs.get(job_id)
        if status is None:
            return VideoStatus(job_id=job_id, state=VideoJobState.FAILED, error="unknown job")
        return status
