"""
DeepSeek LLM
支持 DeepSeek-V3, DeepSeek-R1 等模型
"""
from typing import Optional
import logging

from .openai_llm import OpenAILLM


logger = logging.getLogger(__name__)


class DeepSeekLLM(OpenAILLM):
    """
    DeepSeek LLM 实现

    使用 OpenAI 兼容接口

    支持模型:
    - deepseek-chat (DeepSeek-V3, chat)
    - deepseek-reasoner (DeepSeek-R1, thinking)
    """

    DEFAULT_BASE_URL = "https://api.deepseek.com"

    def __init__(
        self,
        model: str = "deepseek-chat",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1400,
        timeout: float = 120.0,  # DeepSeek 可能需要更长时间
        **kwargs,
    ):
        kwargs.setdefault("thinking_model", "deepseek-reasoner")
        super().__init__(
            model=model,
            api_key=api_key,
            base_url=base_url or self.DEFAULT_BASE_URL,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            **kwargs,
        )

    @property
    def provider(self) -> str:
        return "deepseek"
