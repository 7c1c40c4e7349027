"""
Configuration Management Module
统一配置管理
"""
from .settings import (
    Settings,
    LLMSettings,
    MuseSettings,
    ImageSettings,
    StorageSettings,
    get_settings,
    get_llm_settings,
    get_muse_settings,
    get_image_settings,
    get_storage_settings,
)

__all__ = [
    "Settings",
    "LLMSettings",
    "MuseSettings",
    "ImageSettings",
    "StorageSettings",
    "get_settings",
    "get_llm_settings",
    "get_muse_settings",
    "get_image_settings",
    "get_storage_settings",
]
