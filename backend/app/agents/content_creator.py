"""Content creator agent: an article on a topic plus an optional illustration."""

from typing import Any

from backend.app.agents.base import BaseAgent
from backend.app.models import Capability

# style -> (writing guide, image treatment)
STYLE_GUIDES: dict[str, tuple[str, str]] = {
    "casual": ("casual and conversational", "friendly, approachable illustration"),
    "professional": ("professional and informative", "clean, professional design"),
    "creative": ("creative and engaging", "artistic, creative visualization"),
    "technical": ("technical and detailed", "detailed technical diagram"),
    "educational": ("educational and clear", "clear educational infographic"),
}
_FALLBACK_GUIDE = ("clear and engaging", "modern, appealing design")


class ContentCreatorAgent(BaseAgent):
    required_services = (Capability.TEXT, Capability.IMAGE)

    def execute(self, data: dict[str, Any]) -> dict[str, Any]:
        topic = data.get("topic") or "General Content"
        style = data.get("style") or "professional"
        include_image = data.get("include_image", True)

        result: dict[str, Any] = {
            "content": self.generate_content(topic, style),
            "topic": topic,
            "style": style,
            "image": None,
            "provider": self.text_service.current_provider(),
        }
        if include_image and self.image_service is not None:
            result["image"] = self.image_service.generate(self.build_image_prompt(topic, style))
        return result

    def generate_content(self, topic: str, style: str) -> str:
        return self.text_service.generate(
            self.build_content_prompt(topic, style),
            {"max_tokens": 1000, "temperature": 0.8 if style == "creative" else 0.6},
        )

    @staticmethod
    def build_content_prompt(topic: str, style: str) -> str:
        guide, _ = STYLE_GUIDES.get(style, _FALLBACK_GUIDE)
        return (
            f"Create compelling content about: {topic}\n\n"
            f"Style: Write in a {guide} manner.\n"
            "Format: Use appropriate headings and structure.\n"
            "Length: Aim for comprehensive coverage while being concise.\n\n"
            "Please generate the content now."
        )

    @staticmethod
    def build_image_prompt(topic: str, style: str) -> str:
        _, treatment = STYLE_GUIDES.get(style, _FALLBACK_GUIDE)
        return f"Create a {treatment} representing: {topic}. High quality, visually appealing."
