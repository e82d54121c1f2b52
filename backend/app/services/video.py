"""Video generation service."""

from typing import Any, Optional

from backend.app.models import Capability, VideoStatus
from backend.app.services.base import CapabilityService


class VideoService(CapabilityService):
    """
    Asynchronous video generation.

    ``generate`` submits a job and returns its id; poll with ``status``.
    Defaults: 5 second clip at 30 fps, 1280x720.
    """

    capability = Capability.VIDEO
    DEFAULT_OPTIONS = {"duration": 5, "fps": 30, "resolution": "1280x720"}

    def generate(self, prompt: str, options: Optional[dict[str, Any]] = None) -> str:
        return self._invoke(
            "generate_video",
            lambda handle: handle.generate_video(self.build_params(handle, prompt, options)),
        )

    def status(self, job_id: str) -> VideoStatus:
        # Jobs live on the provider that accepted them: no re-resolution here
        handle = self.ensure_provider()
        return self._call(handle, "video_status", lambda h: h.video_status(job_id))
