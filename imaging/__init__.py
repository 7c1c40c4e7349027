"""
Imaging Module
图像生成 - 适配器与工厂
"""
from .adapters import BaseImageAdapter, GeneratedImage, HttpImageAdapter, HuggingFaceImageAdapter
from .factory import get_image_adapter

__all__ = [
    "BaseImageAdapter",
    "GeneratedImage",
    "HttpImageAdapter",
    "HuggingFaceImageAdapter",
    "get_image_adapter",
]
