"""Image generation adapter abstractions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class GeneratedImage:
    """One generated image: a fetchable or data URL plus provider metadata."""

    url: str
    provider: str = ""
    model: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "provider": self.provider,
            "model": self.model,
            "metadata": dict(self.metadata),
        }


class BaseImageAdapter:
    """Base adapter that can be replaced by a real backend or a test double."""

    provider = "base"

    async def generate_image(
        self,
        prompt: str,
        *,
        style_hint: Optional[str] = None,
        width: int = 1024,
        height: int = 1024,
    ) -> GeneratedImage:
        """Generate one image. Raises ``ImageGenerationError`` on failure."""
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


def compose_image_prompt(prompt: str, style_hint: Optional[str]) -> str:
    base = str(prompt or "").strip()
    style = str(style_hint or "").strip()
    if style and style not in base:
        return f"{base}, {style}" if base else style
    return base
