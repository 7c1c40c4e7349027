"""
Image Adapter Factory
根据配置创建图像生成适配器
"""
from typing import Optional
import logging

from utils.exceptions import ConfigurationError

from .adapters import BaseImageAdapter, HttpImageAdapter, HuggingFaceImageAdapter


logger = logging.getLogger(__name__)


def get_image_adapter(provider: Optional[str] = None) -> BaseImageAdapter:
    """
    获取图像生成适配器

    Args:
        provider: huggingface | http (不传则读取 IMAGE_PROVIDER)

    Returns:
        BaseImageAdapter 实例
    """
    from config import get_image_settings

    settings = get_image_settings()
    provider = str(provider or settings.provider or "huggingface").strip().lower()

    if provider == "huggingface":
        return HuggingFaceImageAdapter(
            token=settings.hf_token,
            models=list(settings.models),
            timeout=settings.timeout_sec,
        )
    if provider == "http":
        return HttpImageAdapter(
            endpoint_url=settings.endpoint_url,
            api_key=settings.api_key,
            timeout_s=settings.timeout_sec,
            max_retries=settings.max_retries,
        )
    raise ConfigurationError(f"Unsupported image provider: {provider}")
