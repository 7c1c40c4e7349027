"""
Custom Exceptions
自定义异常类
"""
from typing import Optional


class MemoryMuseError(Exception):
    """Memory Muse 基础异常类"""

    status_code: int = 500

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(MemoryMuseError):
    """配置错误"""
    pass


class ValidationError(MemoryMuseError):
    """输入缺失或非法 (4xx)"""

    status_code = 400


class NotFoundError(MemoryMuseError):
    """引用的记忆/记录不存在"""

    status_code = 404


class GenerationTimeoutError(MemoryMuseError):
    """生成调用超出时间预算"""

    status_code = 504


class UpstreamError(MemoryMuseError):
    """生成服务不可用 (鉴权、配额、请求格式等)"""

    status_code = 503

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider


class GenerationCallError(UpstreamError):
    """LLM 调用本身失败"""
    pass


class ImageGenerationError(UpstreamError):
    """图像生成失败"""
    pass


class StorageError(MemoryMuseError):
    """存储错误"""
    pass
