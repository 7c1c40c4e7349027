"""Image generation adapters."""

from .base import BaseImageAdapter, GeneratedImage
from .http_endpoint import HttpImageAdapter
from .huggingface import HuggingFaceImageAdapter

__all__ = [
    "BaseImageAdapter",
    "GeneratedImage",
    "HttpImageAdapter",
    "HuggingFaceImageAdapter",
]
