"""
Utils Module
通用工具函数
"""
from .logger import setup_logger, get_logger, configure_package_logging
from .exceptions import (
    MemoryMuseError,
    ConfigurationError,
    ValidationError,
    NotFoundError,
    GenerationTimeoutError,
    UpstreamError,
    GenerationCallError,
    ImageGenerationError,
    StorageError,
)

__all__ = [
    "setup_logger",
    "get_logger",
    "configure_package_logging",
    "MemoryMuseError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "GenerationTimeoutError",
    "UpstreamError",
    "GenerationCallError",
    "ImageGenerationError",
    "StorageError",
]
