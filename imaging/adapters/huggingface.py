"""
HuggingFace Image Adapter
通过 HuggingFace Inference API 生成图像, 按顺序尝试配置的模型
"""
from typing import Any, List, Optional
import base64
import io
import logging

from huggingface_hub import AsyncInferenceClient

from utils.exceptions import ImageGenerationError

from .base import BaseImageAdapter, GeneratedImage, compose_image_prompt


logger = logging.getLogger(__name__)


DEFAULT_MODELS = [
    "stabilityai/stable-diffusion-xl-base-1.0",
    "runwayml/stable-diffusion-v1-5",
    "stabilityai/stable-diffusion-2-1",
]


def image_to_data_url(image: Any) -> str:
    """PIL 图像编码为 PNG data URL"""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


class HuggingFaceImageAdapter(BaseImageAdapter):
    """
    HuggingFace 文生图适配器

    某个模型失败 (冷启动、限流、下线) 时继续尝试下一个, 全部失败才报错。
    """

    provider = "huggingface"

    def __init__(
        self,
        token: Optional[str] = None,
        models: Optional[List[str]] = None,
        timeout: Optional[float] = None,
        client: Optional[AsyncInferenceClient] = None,
    ):
        self.models = [m for m in (models or DEFAULT_MODELS) if str(m or "").strip()]
        self.timeout = timeout
        self._client = client or AsyncInferenceClient(token=token, timeout=timeout)

    async def generate_image(
        self,
        prompt: str,
        *,
        style_hint: Optional[str] = None,
        width: int = 1024,
        height: int = 1024,
    ) -> GeneratedImage:
        full_prompt = compose_image_prompt(prompt, style_hint)
        if not full_prompt:
            raise ImageGenerationError("Image prompt is empty", provider=self.provider)

        errors = []
        for model in self.models:
            try:
                logger.info(f"[HuggingFace] Generating image with {model}")
                image = await self._client.text_to_image(
                    full_prompt,
                    model=model,
                    width=width,
                    height=height,
                )
                return GeneratedImage(
                    url=image_to_data_url(image),
                    provider=self.provider,
                    model=model,
                    metadata={"prompt": full_prompt, "width": width, "height": height},
                )
            except Exception as exc:
                logger.warning(f"[HuggingFace] {model} failed: {exc}")
                errors.append(f"{model}: {type(exc).__name__}")

        raise ImageGenerationError(
            "Image generation failed",
            provider=self.provider,
            attempts=errors,
        )

    async def aclose(self) -> None:
        close_fn = getattr(self._client, "close", None)
        if callable(close_fn):
            await close_fn()
