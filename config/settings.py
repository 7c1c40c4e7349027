"""
Settings Configuration
使用 Pydantic 进行配置验证和管理
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class LLMSettings(BaseSettings):
    """LLM 配置"""
    provider: str = Field(default="openai", description="LLM提供商: openai, anthropic, deepseek, gemini")
    model_name: Optional[str] = Field(default=None, description="模型名称(不填则使用默认)")
    chat_model: Optional[str] = Field(default=None, description="model_hint=chat 时使用的模型")
    thinking_model: Optional[str] = Field(default=None, description="model_hint=thinking 时使用的模型")
    temperature: float = Field(default=0.7, description="生成温度")
    max_tokens: int = Field(default=1400, description="最大生成token数")
    base_url: Optional[str] = Field(default=None, description="OpenAI 兼容接口地址 (可选)")

    # API Keys
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API Key")
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API Key")
    deepseek_api_key: Optional[str] = Field(default=None, description="DeepSeek API Key")
    gemini_api_key: Optional[str] = Field(default=None, description="Google Gemini API Key")

    class Config:
        env_prefix = "LLM_"


class MuseSettings(BaseSettings):
    """首扫 / 自动创作流水线配置"""
    char_budget: int = Field(default=350_000, description="单次生成调用允许的最大字符数")
    synthesis_timeout_sec: float = Field(default=30.0, description="首扫生成超时(秒)")
    artifact_timeout_sec: float = Field(default=20.0, description="诗歌/合集生成超时(秒)")
    analysis_timeout_sec: float = Field(default=30.0, description="记忆分析调用超时(秒)")
    default_limit: int = Field(default=8, description="未指定 limit 时读取的记忆条数")
    max_limit: int = Field(default=20, description="单次首扫最多读取的记忆条数")
    analyze_with_llm: bool = Field(default=True, description="是否使用 LLM 做记忆分析 (失败时回落到启发式)")
    analysis_cache_ttl: int = Field(default=7200, description="分析结果缓存时间(秒)")

    class Config:
        env_prefix = "MUSE_"


class ImageSettings(BaseSettings):
    """图像生成配置"""
    provider: str = Field(default="huggingface", description="图像提供商: huggingface, http")
    models: List[str] = Field(
        default_factory=lambda: [
            "stabilityai/stable-diffusion-xl-base-1.0",
            "runwayml/stable-diffusion-v1-5",
            "stabilityai/stable-diffusion-2-1",
        ],
        description="按顺序尝试的模型列表",
    )
    hf_token: Optional[str] = Field(default=None, description="HuggingFace Token")
    endpoint_url: Optional[str] = Field(default=None, description="HTTP 图像生成接口地址")
    api_key: Optional[str] = Field(default=None, description="HTTP 图像生成接口 Key")
    width: int = Field(default=1024, description="图像宽度")
    height: int = Field(default=1024, description="图像高度")
    timeout_sec: float = Field(default=60.0, description="图像生成超时(秒)")
    max_retries: int = Field(default=3, description="HTTP 接口最大重试次数")

    class Config:
        env_prefix = "IMAGE_"


class StorageSettings(BaseSettings):
    """存储配置"""
    artifact_backend: str = Field(default="memory", description="产物存储: memory, file")
    artifact_dir: str = Field(default="./data/artefacts", description="file 模式下的产物目录")
    cache_max_size: int = Field(default=1000, description="内存缓存最大条目数")

    class Config:
        env_prefix = "STORAGE_"


class Settings(BaseSettings):
    """主配置类 - 聚合所有子配置"""

    llm: LLMSettings = Field(default_factory=LLMSettings)
    muse: MuseSettings = Field(default_factory=MuseSettings)
    image: ImageSettings = Field(default_factory=ImageSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """从指定的 .env 文件加载配置"""
        if env_path is None:
            # 默认查找 config/.env
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            llm=LLMSettings(),
            muse=MuseSettings(),
            image=ImageSettings(),
            storage=StorageSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """获取全局配置单例"""
    return Settings.load_from_env_file()


# 便捷访问
def get_llm_settings() -> LLMSettings:
    return get_settings().llm


def get_muse_settings() -> MuseSettings:
    return get_settings().muse


def get_image_settings() -> ImageSettings:
    return get_settings().image


def get_storage_settings() -> StorageSettings:
    return get_settings().storage
