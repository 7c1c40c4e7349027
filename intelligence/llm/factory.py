"""
LLM Factory
工厂函数 - 根据配置自动创建 LLM 实例
"""
from typing import Optional
import logging

from utils.exceptions import ConfigurationError

from .base import BaseLLM
from .openai_llm import OpenAILLM
from .anthropic_llm import AnthropicLLM
from .deepseek_llm import DeepSeekLLM
from .gemini_llm import GeminiLLM


logger = logging.getLogger(__name__)


# 默认模型配置: (默认, chat, thinking)
DEFAULT_MODELS = {
    "openai": ("gpt-4o-mini", "gpt-4o-mini", "gpt-4o"),
    "anthropic": ("claude-3-5-sonnet-20241022", "claude-3-5-haiku-20241022", "claude-3-5-sonnet-20241022"),
    "deepseek": ("deepseek-chat", "deepseek-chat", "deepseek-reasoner"),
    "gemini": ("gemini-2.0-flash", "gemini-2.0-flash", "gemini-1.5-pro"),
}

SUPPORTED_PROVIDERS = tuple(DEFAULT_MODELS)


def get_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    **kwargs,
) -> BaseLLM:
    """
    获取 LLM 实例

    自动从 .env 读取配置，也可手动指定

    Args:
        provider: LLM 供应商 (openai, anthropic, deepseek, gemini)
        model: 模型名称 (不传则使用默认)
        **kwargs: 额外参数 (temperature, max_tokens, chat_model, thinking_model 等)

    Returns:
        BaseLLM 实例

    Example:
        llm = get_llm()
        llm = get_llm(provider="deepseek")
        llm = get_llm(provider="openai", model="gpt-4o")
    """
    from config import get_llm_settings

    settings = get_llm_settings()

    provider = str(provider or settings.provider or "openai").strip().lower()
    if provider not in DEFAULT_MODELS:
        raise ConfigurationError(
            f"Unsupported LLM provider: {provider}",
            {"supported": ", ".join(SUPPORTED_PROVIDERS)},
        )

    default_model, default_chat, default_thinking = DEFAULT_MODELS[provider]
    model = model or settings.model_name or default_model

    api_keys = {
        "openai": settings.openai_api_key,
        "anthropic": settings.anthropic_api_key,
        "deepseek": settings.deepseek_api_key,
        "gemini": settings.gemini_api_key,
    }
    api_key = kwargs.pop("api_key", None) or api_keys.get(provider)
    if not api_key:
        logger.warning("No API key configured for LLM provider %s", provider)

    # 合并默认参数
    default_params = {
        "temperature": settings.temperature,
        "max_tokens": settings.max_tokens,
        "chat_model": settings.chat_model or default_chat,
        "thinking_model": settings.thinking_model or default_thinking,
    }
    for key, value in default_params.items():
        if key not in kwargs:
            kwargs[key] = value

    logger.debug("Creating LLM provider=%s model=%s", provider, model)

    if provider == "openai":
        return OpenAILLM(
            model=model,
            api_key=api_key,
            base_url=kwargs.pop("base_url", None) or settings.base_url,
            **kwargs,
        )
    if provider == "anthropic":
        return AnthropicLLM(model=model, api_key=api_key, **kwargs)
    if provider == "deepseek":
        return DeepSeekLLM(
            model=model,
            api_key=api_key,
            base_url=kwargs.pop("base_url", None),
            **kwargs,
        )
    return GeminiLLM(model=model, api_key=api_key, **kwargs)
